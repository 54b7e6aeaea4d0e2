"""Tests for JWT helpers.

Tests cover:
- Token creation and decoding
- Token expiration handling
- Signature checks
"""

from datetime import timedelta

from jose import jwt

from arcana.core.config import get_settings
from arcana.core.security import create_access_token, create_user_token, decode_access_token


class TestJWTTokens:
    """Tests for JWT token functions."""

    def test_create_access_token_contains_sub(self):
        """Test access token contains subject claim."""
        payload = decode_access_token(create_access_token(data={"sub": "123"}))

        assert payload is not None
        assert payload["sub"] == "123"

    def test_create_access_token_contains_exp_and_iat(self):
        payload = decode_access_token(create_access_token(data={"sub": "123"}))

        assert payload is not None
        assert "exp" in payload
        assert "iat" in payload

    def test_user_token_subject_is_string_id(self):
        payload = decode_access_token(create_user_token(42))

        assert payload is not None
        assert payload["sub"] == "42"

    def test_create_access_token_preserves_custom_data(self):
        payload = decode_access_token(create_access_token(data={"sub": "1", "openid": "o-1"}))

        assert payload is not None
        assert payload["openid"] == "o-1"

    def test_decode_invalid_token_returns_none(self):
        assert decode_access_token("invalid.token.here") is None

    def test_decode_empty_token_returns_none(self):
        assert decode_access_token("") is None


class TestTokenExpiration:

    def test_expired_token_returns_none(self):
        """Token with negative expiry should be rejected."""
        token = create_access_token(data={"sub": "1"}, expires_delta=timedelta(seconds=-10))

        assert decode_access_token(token) is None

    def test_future_token_is_valid(self):
        token = create_access_token(data={"sub": "1"}, expires_delta=timedelta(hours=1))

        assert decode_access_token(token) is not None


class TestTokenSecurity:

    def test_different_users_get_different_tokens(self):
        assert create_user_token(1) != create_user_token(2)

    def test_token_with_wrong_secret_fails(self):
        settings = get_settings()
        forged = jwt.encode(
            {"sub": "1"},
            "a-completely-different-secret-key-of-length",
            algorithm=settings.jwt_algorithm,
        )

        assert decode_access_token(forged) is None
