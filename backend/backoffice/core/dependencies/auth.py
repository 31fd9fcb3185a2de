"""
Authentication Dependencies Module
==================================

FastAPI dependencies for authentication and user extraction.

Features:
- Clerk session JWT validation (RS256)
- Authorized party (``azp``) check
- Local user lookup by Clerk id
- Account status verification

Usage:
    @router.get("/protected")
    def protected_route(user: User = Depends(get_current_user)):
        return {"user": user.email}
"""

from typing import Any, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError
from jose.exceptions import ExpiredSignatureError
from sqlalchemy.orm import Session

from backoffice.core.config import get_settings
from backoffice.core.exceptions import (
    AccountDisabledError,
    AuthenticationError,
    TokenExpiredError,
    TokenInvalidError,
    UserNotProvisionedError,
)
from backoffice.core.logging import get_logger, security_logger, user_id_context
from backoffice.db.session import get_db
from backoffice.models.user import User
from backoffice.services.user_service import UserService

# Initialize logger
logger = get_logger(__name__)


# =====================================
# Bearer Scheme
# =====================================

bearer_scheme = HTTPBearer(
    auto_error=False,
    description="Clerk session token",
)


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


# =====================================
# Token Verification
# =====================================

def decode_session_token(token: str) -> Dict[str, Any]:
    """
    Verify a Clerk session token and return its claims.

    Raises:
        TokenExpiredError: If the token has expired
        TokenInvalidError: If the signature, claims or authorized party are invalid
    """
    settings = get_settings()
    if not settings.CLERK_JWT_KEY:
        raise TokenInvalidError(reason="Session verification key is not configured")

    try:
        claims = jwt.decode(
            token,
            settings.CLERK_JWT_KEY,
            algorithms=["RS256"],
            options={"verify_aud": False},
        )
    except ExpiredSignatureError:
        raise TokenExpiredError()
    except JWTError as e:
        logger.warning("token_decode_error", error=str(e))
        raise TokenInvalidError(reason=str(e))

    authorized_parties = settings.authorized_parties_list
    azp = claims.get("azp")
    if authorized_parties and azp and azp not in authorized_parties:
        raise TokenInvalidError(reason=f"Unauthorized party: {azp}")

    if not claims.get("sub"):
        raise TokenInvalidError(reason="Token has no subject")

    return claims


# =====================================
# Get Current User
# =====================================

def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Validate the session token and return the matching local user.

    Security checks performed:
    - Token signature and expiry
    - Authorized party
    - User exists locally (synced from Clerk)
    - Account status is active

    Raises:
        AuthenticationError: If the token is missing or invalid, or the user is unknown
        AccountDisabledError: If the account is not active
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError(message="Missing bearer token")

    try:
        claims = decode_session_token(credentials.credentials)
    except AuthenticationError as e:
        security_logger.log_token_invalid(
            reason=e.details.get("reason", e.message),
            ip_address=_client_ip(request),
        )
        raise

    clerk_id = claims["sub"]
    user = UserService(db).get_user_by_clerk_id(clerk_id)
    if user is None:
        security_logger.log_token_invalid(
            reason="user_not_provisioned",
            ip_address=_client_ip(request),
        )
        raise UserNotProvisionedError(clerk_id)

    if not user.is_active:
        security_logger.log_unauthorized_access(
            user_id=str(user.id),
            resource=request.url.path,
            action=request.method,
        )
        raise AccountDisabledError(account_status=user.status)

    # Set request context for logging
    request.state.user_id = str(user.id)
    user_id_context.set(str(user.id))

    return user
