"""
Schemas Package Initialization
==============================

Exports all Pydantic schemas for the application.

Usage:
    from backoffice.schemas import UserResponse, OrganizationCreate
"""

# Common schemas
from backoffice.schemas.common import (
    ErrorResponse,
    FieldError,
    SuccessResponse,
    error_responses,
    wrap_response,
)

# User schemas
from backoffice.schemas.user import (
    UserCreate,
    UserUpdate,
    UserResponse,
    UserListResponse,
    UserSyncSummary,
)

# Organization schemas
from backoffice.schemas.organization import (
    OrganizationCreate,
    OrganizationUpdate,
    OrganizationResponse,
    OrganizationWithRoleResponse,
    OrganizationListResponse,
    OrganizationContext,
    MemberAdd,
    MemberRoleUpdate,
    MemberResponse,
    MemberListResponse,
)

# Webhook schemas
from backoffice.schemas.webhook import (
    ClerkWebhookEvent,
    ClerkUserPayload,
    ClerkDeletedObject,
    ClerkOrganizationPayload,
    ClerkMembershipPayload,
    TransformedEvent,
)

__all__ = [
    # Common
    "ErrorResponse",
    "FieldError",
    "SuccessResponse",
    "error_responses",
    "wrap_response",
    # User
    "UserCreate",
    "UserUpdate",
    "UserResponse",
    "UserListResponse",
    "UserSyncSummary",
    # Organization
    "OrganizationCreate",
    "OrganizationUpdate",
    "OrganizationResponse",
    "OrganizationWithRoleResponse",
    "OrganizationListResponse",
    "OrganizationContext",
    "MemberAdd",
    "MemberRoleUpdate",
    "MemberResponse",
    "MemberListResponse",
    # Webhook
    "ClerkWebhookEvent",
    "ClerkUserPayload",
    "ClerkDeletedObject",
    "ClerkOrganizationPayload",
    "ClerkMembershipPayload",
    "TransformedEvent",
]
