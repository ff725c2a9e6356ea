"""Unit tests for configuration module."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from woodart.core.config import Settings, get_settings

REQUIRED_ENV = {
    "SUPABASE_URL": "https://test.supabase.co",
    "SUPABASE_SECRET_KEY": "test-secret",
}


class TestSettings:
    """Tests for Settings class."""

    def test_settings_loads_from_environment(self) -> None:
        """Test that Settings loads values from environment variables."""
        env_vars = {
            **REQUIRED_ENV,
            "APP_NAME": "test-app",
            "APP_ENV": "testing",
            "DEBUG": "true",
            "PORT": "9000",
            "COMMISSION_RATE": "0.15",
            "STOCK_RELEASE_FLOOR": "40",
            "SSE_KEEPALIVE_SECONDS": "5",
        }

        with patch.dict(os.environ, env_vars, clear=False):
            settings = Settings()

            assert settings.app_name == "test-app"
            assert settings.app_env == "testing"
            assert settings.debug is True
            assert settings.port == 9000
            assert settings.commission_rate == 0.15
            assert settings.stock_release_floor == 40
            assert settings.sse_keepalive_seconds == 5.0

    def test_commerce_defaults(self) -> None:
        """Defaults match the gallery's pricing policy."""
        with patch.dict(os.environ, REQUIRED_ENV, clear=False):
            settings = Settings(_env_file=None)

            assert settings.delivery_fee == 250
            assert settings.stock_release_floor == 50
            assert settings.storage_bucket == "uploads"

    def test_settings_cors_origins_list(self) -> None:
        """Test that CORS origins are correctly parsed into a list."""
        env_vars = {
            **REQUIRED_ENV,
            "CORS_ORIGINS": "http://localhost:3000, http://example.com , http://test.com",
        }

        with patch.dict(os.environ, env_vars, clear=False):
            origins = Settings().cors_origins_list

            assert origins == ["http://localhost:3000", "http://example.com", "http://test.com"]

    def test_settings_is_production_property(self) -> None:
        """Test the is_production property."""
        with patch.dict(os.environ, {**REQUIRED_ENV, "APP_ENV": "production"}, clear=False):
            assert Settings().is_production is True

        with patch.dict(os.environ, {**REQUIRED_ENV, "APP_ENV": "development"}, clear=False):
            assert Settings().is_production is False

    @pytest.mark.parametrize("rate", ["-0.1", "1.5"])
    def test_commission_rate_must_be_fraction(self, rate: str) -> None:
        """Commission outside [0, 1] is rejected."""
        with patch.dict(os.environ, {**REQUIRED_ENV, "COMMISSION_RATE": rate}, clear=False):
            with pytest.raises(ValidationError):
                Settings()

    def test_negative_delivery_fee_rejected(self) -> None:
        with patch.dict(os.environ, {**REQUIRED_ENV, "DELIVERY_FEE": "-1"}, clear=False):
            with pytest.raises(ValidationError):
                Settings()

    def test_missing_supabase_settings(self) -> None:
        """Supabase URL and secret key are required."""
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)


class TestGetSettings:
    """Tests for get_settings function."""

    def test_get_settings_returns_cached_instance(self) -> None:
        """Test that get_settings returns the same cached instance."""
        get_settings.cache_clear()

        settings1 = get_settings()
        settings2 = get_settings()

        assert settings1 is settings2
        get_settings.cache_clear()
