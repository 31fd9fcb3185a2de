"""
Centralized Exception Handling Module
=====================================

Defines custom exception classes for the application.

Every exception carries an HTTP status code and a machine-readable
error code so the API can render a consistent error body:

    {"code": "NOT_FOUND", "message": "User not found", "details": {...}}

Usage:
    raise NotFoundError("User", identifier=str(user_id))
    raise OrganizationRoleError(required_roles=["owner", "admin"])
"""

from typing import Any, Dict, Optional
from fastapi import status


class ErrorCode:
    """Machine-readable error codes returned in error responses."""
    BAD_REQUEST = "BAD_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    RATE_LIMITED = "RATE_LIMITED"
    UNSUPPORTED_VERSION = "UNSUPPORTED_VERSION"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


class BackofficeException(Exception):
    """
    Base exception class for the back-office application.

    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        code: str = ErrorCode.INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


# ==========================
# Authentication Exceptions
# ==========================

class AuthenticationError(BackofficeException):
    """Raised when authentication fails."""

    def __init__(
        self,
        message: str = "Could not validate credentials",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            code=ErrorCode.UNAUTHORIZED,
            details=details,
        )


class TokenExpiredError(AuthenticationError):
    """Raised when a session token has expired."""

    def __init__(self):
        super().__init__(message="Session token has expired")


class TokenInvalidError(AuthenticationError):
    """Raised when a session token is invalid."""

    def __init__(self, reason: str = "Invalid token"):
        super().__init__(
            message="Invalid token",
            details={"reason": reason}
        )


class UserNotProvisionedError(AuthenticationError):
    """Raised when a valid token references a user that has not been synced yet."""

    def __init__(self, clerk_id: str):
        super().__init__(
            message="User is not provisioned",
            details={"clerk_id": clerk_id}
        )


class WebhookVerificationError(AuthenticationError):
    """Raised when a webhook fails header or signature checks."""

    def __init__(self, message: str = "Webhook verification failed"):
        super().__init__(message=message)


# ==========================
# Authorization Exceptions
# ==========================

class AuthorizationError(BackofficeException):
    """Raised when user lacks required permissions."""

    def __init__(
        self,
        message: str = "Insufficient permissions",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            code=ErrorCode.FORBIDDEN,
            details=details,
        )


class RoleNotAuthorizedError(AuthorizationError):
    """Raised when user's role is not authorized for the action."""

    def __init__(self, required_roles: list):
        super().__init__(
            message="Your role is not authorized for this action",
            details={"required_roles": required_roles}
        )


class OrganizationRoleError(AuthorizationError):
    """Raised when the caller's role inside an organization is insufficient."""

    def __init__(self, required_roles: list):
        super().__init__(
            message="Insufficient organization permissions",
            details={"required_roles": required_roles}
        )


class AccountDisabledError(AuthorizationError):
    """Raised when account is suspended or inactive."""

    def __init__(self, account_status: str):
        super().__init__(
            message="Account is not active. Please contact your administrator.",
            details={"status": account_status},
        )


# ==========================
# Resource Exceptions
# ==========================

class NotFoundError(BackofficeException):
    """Raised when a resource is not found."""

    def __init__(self, resource: str = "Resource", identifier: Optional[str] = None):
        message = f"{resource} not found"
        details = {"resource": resource}
        if identifier:
            details["identifier"] = identifier
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            code=ErrorCode.NOT_FOUND,
            details=details,
        )


class UserNotFoundError(NotFoundError):
    """Raised when a user is not found."""

    def __init__(self, identifier: Optional[str] = None):
        super().__init__(resource="User", identifier=identifier)


class OrganizationNotFoundError(NotFoundError):
    """Raised when an organization is not found."""

    def __init__(self, identifier: Optional[str] = None):
        super().__init__(resource="Organization", identifier=identifier)


class MemberNotFoundError(NotFoundError):
    """Raised when a membership is not found."""

    def __init__(self, identifier: Optional[str] = None):
        super().__init__(resource="Member", identifier=identifier)


class ConflictError(BackofficeException):
    """Raised when a write violates a uniqueness or foreign-key constraint."""

    def __init__(
        self,
        message: str = "Resource already exists",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            code=ErrorCode.CONFLICT,
            details=details,
        )


# ==========================
# Request Exceptions
# ==========================

class BadRequestError(BackofficeException):
    """Raised when a request is malformed or unsupported."""

    def __init__(
        self,
        message: str = "Bad request",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            code=ErrorCode.BAD_REQUEST,
            details=details,
        )


class UnsupportedVersionError(BackofficeException):
    """Raised when the client requests an API version we do not serve."""

    def __init__(self, requested: str, supported: list):
        super().__init__(
            message=(
                f"API version {requested} is not supported. "
                f"Supported versions: {', '.join(supported)}"
            ),
            status_code=status.HTTP_400_BAD_REQUEST,
            code=ErrorCode.UNSUPPORTED_VERSION,
            details={"requested": requested, "supported": supported},
        )


class RateLimitError(BackofficeException):
    """Raised when rate limit is exceeded."""

    def __init__(self, retry_after: int = 60):
        super().__init__(
            message="Too many requests. Please try again later.",
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            code=ErrorCode.RATE_LIMITED,
            details={"retry_after_seconds": retry_after}
        )


# ==========================
# Infrastructure Exceptions
# ==========================

class DatabaseError(BackofficeException):
    """Raised when a database operation fails."""

    def __init__(
        self,
        message: str = "Database operation failed",
        cause: Optional[BaseException] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.cause = cause
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            code=ErrorCode.INTERNAL_SERVER_ERROR,
            details=details,
        )


class ServiceUnavailableError(BackofficeException):
    """Raised when a dependency is temporarily unavailable."""

    def __init__(
        self,
        message: str = "Service temporarily unavailable",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            code=ErrorCode.SERVICE_UNAVAILABLE,
            details=details,
        )

