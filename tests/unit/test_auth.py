"""Unit tests for JWT decoding and authentication utilities."""

import json
import time
from typing import Any
from unittest.mock import patch

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import ec
from jwt.algorithms import ECAlgorithm

from woodart.api.middleware.auth import AuthError, AuthErrorCode, decode_jwt, get_signing_key

SIGNING_KEY = ec.generate_private_key(ec.SECP256R1())
OTHER_KEY = ec.generate_private_key(ec.SECP256R1())
USER_ID = "550e8400-e29b-41d4-a716-446655440000"


def create_test_token(
    sub: str = USER_ID,
    email: str | None = "finance@example.com",
    role: str | None = "financial",
    exp_offset: int = 3600,
    key: Any = SIGNING_KEY,
) -> str:
    """Create an ES256 test token.

    Args:
        sub: Subject (user ID).
        email: User email.
        role: User role.
        exp_offset: Seconds from now for expiration (negative for expired).
        key: EC private key used to sign.

    Returns:
        str: Encoded JWT token.
    """
    now = int(time.time())
    payload = {
        "sub": sub,
        "email": email,
        "role": role,
        "exp": now + exp_offset,
        "iat": now,
        "aud": "authenticated",
    }
    return jwt.encode(payload, key, algorithm="ES256")


@pytest.fixture
def signing_key():
    """Patch the verification key to the test key pair."""
    with patch("woodart.api.middleware.auth.get_signing_key", return_value=SIGNING_KEY.public_key()):
        yield


class TestDecodeJWT:
    """Tests for decode_jwt function."""

    def test_decode_jwt_with_valid_token(self, signing_key: None) -> None:
        payload = decode_jwt(create_test_token())

        assert payload.sub == USER_ID
        assert payload.email == "finance@example.com"
        assert payload.role == "financial"

    def test_decode_jwt_with_expired_token(self, signing_key: None) -> None:
        with pytest.raises(AuthError) as exc_info:
            decode_jwt(create_test_token(exp_offset=-3600))

        assert exc_info.value.code == AuthErrorCode.TOKEN_EXPIRED

    def test_decode_jwt_with_invalid_signature(self, signing_key: None) -> None:
        with pytest.raises(AuthError) as exc_info:
            decode_jwt(create_test_token(key=OTHER_KEY))

        assert exc_info.value.code == AuthErrorCode.INVALID_SIGNATURE

    def test_decode_jwt_with_garbage(self, signing_key: None) -> None:
        with pytest.raises(AuthError) as exc_info:
            decode_jwt("not-a-jwt")

        assert exc_info.value.code == AuthErrorCode.INVALID_TOKEN

    def test_payload_converts_to_user_context(self, signing_key: None) -> None:
        user = decode_jwt(create_test_token(email=None)).to_user_context()

        assert str(user.user_id) == USER_ID
        assert user.actor == USER_ID


class TestGetSigningKey:
    """Tests for loading the JWK."""

    def setup_method(self) -> None:
        get_signing_key.cache_clear()

    def teardown_method(self) -> None:
        get_signing_key.cache_clear()

    @patch("woodart.api.middleware.auth.get_settings")
    def test_loads_jwk(self, mock_settings: Any) -> None:
        mock_settings.return_value.supabase_signing_key_jwk = ECAlgorithm.to_jwk(SIGNING_KEY.public_key())

        token = create_test_token()
        payload = jwt.decode(token, get_signing_key(), algorithms=["ES256"], options={"verify_aud": False})

        assert payload["sub"] == USER_ID

    @patch("woodart.api.middleware.auth.get_settings")
    def test_missing_key(self, mock_settings: Any) -> None:
        mock_settings.return_value.supabase_signing_key_jwk = ""

        with pytest.raises(AuthError, match="not configured"):
            get_signing_key()

    @patch("woodart.api.middleware.auth.get_settings")
    def test_malformed_key(self, mock_settings: Any) -> None:
        mock_settings.return_value.supabase_signing_key_jwk = json.dumps({"kty": "EC"})[:-1]

        with pytest.raises(AuthError, match="Invalid signing key JWK format"):
            get_signing_key()
