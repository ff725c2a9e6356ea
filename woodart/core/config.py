"""Application configuration management using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Required settings will raise validation errors if not provided.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="woodart-backend", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/staging/production)")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=5000, description="Server port")
    max_request_body_size: int = Field(
        default=10 * 1024 * 1024,
        description="Maximum request body size in bytes (bank slips, reference images)",
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed CORS origins",
    )

    # Supabase
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_secret_key: str = Field(..., description="Supabase secret key for backend operations")
    supabase_signing_key_jwk: str = Field(
        default="",
        description="Supabase signing key JWK (JSON string) for optional JWT verification",
    )
    storage_bucket: str = Field(default="uploads", description="Supabase Storage bucket for uploaded files")

    # Email (Resend)
    resend_api_key: str = Field(default="", description="Resend API key for sending emails")
    email_from_address: str = Field(
        default="Wood Art Gallery <noreply@woodart.lk>",
        description="From address for transactional emails",
    )
    frontend_url: str = Field(default="http://localhost:5173", description="Frontend URL for email links")

    # Commerce policy
    delivery_fee: float = Field(default=250, ge=0, description="Flat delivery fee per order")
    commission_rate: float = Field(default=0.20, description="Company commission on marketplace item price")
    stock_release_floor: int = Field(
        default=50,
        ge=0,
        description="Raw material quantity that a stock release may not go below",
    )
    stock_reservation_max_attempts: int = Field(
        default=5,
        ge=1,
        description="Compare-and-set attempts per design before a reservation gives up",
    )
    stock_restore_max_attempts: int = Field(
        default=25,
        ge=1,
        description="Compare-and-set attempts per design when returning units to stock",
    )

    # Server-Sent Events
    sse_keepalive_seconds: float = Field(default=15.0, gt=0, description="Idle interval between keep-alive comments")
    sse_queue_size: int = Field(default=100, ge=1, description="Per-subscriber event buffer")

    @field_validator("commission_rate")
    @classmethod
    def validate_commission_rate(cls, value: float) -> float:
        """Commission must be a fraction of the item price."""
        if not 0 <= value <= 1:
            raise ValueError("commission_rate must be between 0 and 1")
        return value

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings: Application settings instance.

    Note:
        Settings are cached using lru_cache for performance.
        Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
