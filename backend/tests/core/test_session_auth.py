"""
Session Authentication Tests
============================

Tests for Clerk session token validation and current-user resolution.
"""

import pytest

from backoffice.core.dependencies.auth import decode_session_token
from backoffice.core.exceptions import TokenExpiredError, TokenInvalidError
from backoffice.models.enums import UserStatus
from conftest import make_user


pytestmark = pytest.mark.rbac


class TestDecodeSessionToken:
    """Tests for decode_session_token."""

    def test_valid_token_returns_claims(self, token_for):
        # Arrange
        token = token_for("user_abc", azp="http://localhost:5173")

        # Act
        claims = decode_session_token(token)

        # Assert
        assert claims["sub"] == "user_abc"

    def test_expired_token(self, token_for):
        # Arrange
        token = token_for("user_abc", expires_in=-60)

        # Act & Assert
        with pytest.raises(TokenExpiredError):
            decode_session_token(token)

    def test_garbage_token(self):
        # Act & Assert
        with pytest.raises(TokenInvalidError):
            decode_session_token("not-a-jwt")

    def test_token_without_subject(self, token_for):
        # Arrange
        token = token_for("")

        # Act & Assert
        with pytest.raises(TokenInvalidError) as exc_info:
            decode_session_token(token)
        assert exc_info.value.details["reason"] == "Token has no subject"

    def test_unauthorized_party(self, token_for, monkeypatch):
        """Tokens minted for another frontend are rejected."""
        # Arrange
        from backoffice.core import config

        monkeypatch.setattr(config.settings, "CLERK_AUTHORIZED_PARTIES", "https://admin.example.com")
        token = token_for("user_abc", azp="https://evil.example.com")

        # Act & Assert
        with pytest.raises(TokenInvalidError):
            decode_session_token(token)


class TestGetCurrentUser:
    """Tests for the get_current_user dependency via /api/users/me."""

    def test_missing_token(self, client):
        # Act
        response = client.get("/api/users/me")

        # Assert
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert response.json()["message"] == "Missing bearer token"

    def test_valid_token_returns_user(self, client, sample_user, user_headers):
        # Act
        response = client.get("/api/users/me", headers=user_headers)

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == str(sample_user.id)
        assert data["email"] == "user@example.com"
        assert data["role"] == "user"

    def test_unknown_clerk_user(self, client, db_session, token_for):
        # Act
        response = client.get(
            "/api/users/me",
            headers={"Authorization": f"Bearer {token_for('user_never_synced')}"},
        )

        # Assert
        assert response.status_code == 401
        assert response.json()["details"]["clerk_id"] == "user_never_synced"

    @pytest.mark.parametrize("status", [UserStatus.SUSPENDED, UserStatus.INACTIVE, UserStatus.INVITED])
    def test_non_active_account_is_forbidden(self, client, db_session, headers_for, status):
        # Arrange
        user = make_user(db_session, "blocked@example.com", status=status)

        # Act
        response = client.get("/api/users/me", headers=headers_for(user))

        # Assert
        assert response.status_code == 403
        assert response.json()["details"]["status"] == status.value

    def test_expired_token_is_unauthorized(self, client, sample_user, token_for):
        # Act
        response = client.get(
            "/api/users/me",
            headers={"Authorization": f"Bearer {token_for(sample_user.clerk_id, expires_in=-60)}"},
        )

        # Assert
        assert response.status_code == 401
        assert response.json()["message"] == "Session token has expired"
