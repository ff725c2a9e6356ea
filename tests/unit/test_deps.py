"""Unit tests for FastAPI dependency injection functions."""

import time
from typing import Any
from unittest.mock import patch

import pytest

from woodart.api.deps import get_bank_slip_service, get_optional_user
from woodart.api.middleware.auth import AuthError, AuthErrorCode
from woodart.api.middleware.error_handler import AuthenticationError
from woodart.schemas.auth import TokenPayload, UserContext


def token_payload(sub: str = "550e8400-e29b-41d4-a716-446655440000") -> TokenPayload:
    now = int(time.time())
    return TokenPayload(sub=sub, email="delivery@example.com", role="delivery", exp=now + 3600, iat=now)


class TestGetOptionalUser:
    """Tests for get_optional_user dependency."""

    @pytest.mark.asyncio
    async def test_returns_none_for_missing_header(self) -> None:
        assert await get_optional_user(None) is None

    @pytest.mark.asyncio
    async def test_returns_none_for_empty_header(self) -> None:
        assert await get_optional_user("") is None

    @pytest.mark.asyncio
    @patch("woodart.api.deps.decode_jwt")
    async def test_returns_user_context_for_valid_token(self, mock_decode: Any) -> None:
        mock_decode.return_value = token_payload()

        user = await get_optional_user("Bearer valid-token")

        assert isinstance(user, UserContext)
        assert user.actor == "delivery@example.com"
        mock_decode.assert_called_once_with("valid-token")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("header", ["invalid-token", "Basic abc", "Bearer a b"])
    async def test_rejects_bad_header_format(self, header: str) -> None:
        with pytest.raises(AuthenticationError, match="Invalid authorization header format"):
            await get_optional_user(header)

    @pytest.mark.asyncio
    @patch("woodart.api.deps.decode_jwt")
    async def test_expired_token(self, mock_decode: Any) -> None:
        mock_decode.side_effect = AuthError("Token has expired", AuthErrorCode.TOKEN_EXPIRED)

        with pytest.raises(AuthenticationError) as exc_info:
            await get_optional_user("Bearer expired-token")

        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Token has expired"

    @pytest.mark.asyncio
    @patch("woodart.api.deps.decode_jwt")
    async def test_invalid_signature(self, mock_decode: Any) -> None:
        mock_decode.side_effect = AuthError("Invalid token signature", AuthErrorCode.INVALID_SIGNATURE)

        with pytest.raises(AuthenticationError, match="Invalid token signature"):
            await get_optional_user("Bearer forged")

    @pytest.mark.asyncio
    @patch("woodart.api.deps.decode_jwt")
    async def test_non_uuid_subject(self, mock_decode: Any) -> None:
        mock_decode.return_value = token_payload(sub="not-a-uuid")

        with pytest.raises(AuthenticationError, match="Invalid token subject"):
            await get_optional_user("Bearer odd-subject")


def test_bank_slip_service_shares_order_services(order_service: Any, custom_order_service: Any) -> None:
    service = get_bank_slip_service(order_service, custom_order_service)

    assert service.order_service is order_service
    assert service.custom_order_service is custom_order_service
