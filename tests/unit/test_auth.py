"""Unit tests for JWT decoding and authentication utilities."""

import time
from unittest.mock import patch

import pytest
from jose import jwt

from src.api.middleware.auth import AuthError, AuthErrorCode, decode_jwt


# Test JWT secret for unit tests
TEST_JWT_SECRET = "test-jwt-secret-for-unit-tests"


def create_test_token(
    sub: str = "user-1",
    company_id: str | None = "company-1",
    email: str | None = "test@example.com",
    role: str | None = "vendor",
    exp_offset: int = 3600,
    secret: str = TEST_JWT_SECRET,
    algorithm: str = "HS256",
) -> str:
    """Create a test JWT token.

    Args:
        sub: Subject (user ID).
        company_id: Tenant claim, omitted when None.
        email: User email.
        role: User role.
        exp_offset: Seconds from now for expiration (negative for expired).
        secret: JWT secret for signing.
        algorithm: Signing algorithm.

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
    }
    if company_id is not None:
        payload["company_id"] = company_id
    return jwt.encode(payload, secret, algorithm=algorithm)


@pytest.fixture
def mock_settings():
    with patch("src.api.middleware.auth.get_settings") as mocked:
        mocked.return_value.jwt_secret = TEST_JWT_SECRET
        mocked.return_value.jwt_algorithm = "HS256"
        yield mocked


class TestDecodeJWT:
    """Tests for decode_jwt function."""

    def test_decode_jwt_with_valid_token(self, mock_settings) -> None:
        """Test decode_jwt successfully decodes a valid token."""
        payload = decode_jwt(create_test_token())

        assert payload.sub == "user-1"
        assert payload.company_id == "company-1"
        assert payload.email == "test@example.com"
        assert payload.role == "vendor"

    def test_user_context(self, mock_settings) -> None:
        context = decode_jwt(create_test_token()).to_user_context()

        assert context.user_id == "user-1"
        assert context.company_id == "company-1"

    def test_decode_jwt_with_expired_token(self, mock_settings) -> None:
        """Test decode_jwt raises AuthError for expired token."""
        token = create_test_token(exp_offset=-3600)

        with pytest.raises(AuthError) as exc_info:
            decode_jwt(token)

        assert exc_info.value.code == AuthErrorCode.TOKEN_EXPIRED
        assert "expired" in exc_info.value.message.lower()

    def test_decode_jwt_with_invalid_signature(self, mock_settings) -> None:
        """Test decode_jwt raises AuthError for invalid signature."""
        token = create_test_token(secret="wrong-secret")

        with pytest.raises(AuthError) as exc_info:
            decode_jwt(token)

        assert exc_info.value.code in [AuthErrorCode.INVALID_SIGNATURE, AuthErrorCode.INVALID_TOKEN]

    def test_decode_jwt_with_malformed_token(self, mock_settings) -> None:
        """Test decode_jwt raises AuthError for malformed token."""
        with pytest.raises(AuthError) as exc_info:
            decode_jwt("not-a-valid-jwt-token")

        assert exc_info.value.code == AuthErrorCode.INVALID_TOKEN

    def test_decode_jwt_without_company_claim(self, mock_settings) -> None:
        """Tokens must carry the tenant claim."""
        with pytest.raises(AuthError) as exc_info:
            decode_jwt(create_test_token(company_id=None))

        assert exc_info.value.code == AuthErrorCode.INVALID_TOKEN
        assert "company_id" in exc_info.value.message

    def test_decode_jwt_without_secret(self, mock_settings) -> None:
        mock_settings.return_value.jwt_secret = ""

        with pytest.raises(AuthError):
            decode_jwt(create_test_token())


class TestCurrentUserDependency:
    """Tests for bearer token handling on protected routes."""

    def test_missing_header_is_401(self, client) -> None:
        response = client.get("/api/v1/notifications/unread-count")

        assert response.status_code == 401

    def test_expired_token_is_401(self, client, token_factory) -> None:
        token = token_factory(expires_in=-60)

        response = client.get(
            "/api/v1/notifications/unread-count",
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 401
