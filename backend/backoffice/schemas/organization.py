"""
Organization Schemas Module
===========================

Pydantic models for organization and membership request/response
validation.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from backoffice.models.enums import OrganizationRole, SyncStatus

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


# ==========================
# Organization Requests
# ==========================

class OrganizationCreate(BaseModel):
    """Schema for creating a new organization."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Organization name"
    )
    slug: str = Field(
        ...,
        min_length=1,
        max_length=255,
        pattern=SLUG_PATTERN,
        description="Organization slug"
    )
    metadata: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Additional metadata for the organization"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Acme Corp",
                "slug": "acme-corp",
                "metadata": {"industry": "technology", "size": "enterprise"},
            }
        }
    )


class OrganizationUpdate(BaseModel):
    """Schema for updating organization information."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, min_length=1, max_length=255, pattern=SLUG_PATTERN)
    metadata: Optional[Dict[str, Any]] = None


# ==========================
# Organization Responses
# ==========================

class OrganizationResponse(BaseModel):
    """Organization response schema."""

    id: UUID
    clerk_id: str
    name: str
    slug: str
    metadata: Optional[Dict[str, Any]] = Field(
        default=None,
        validation_alias="metadata_dict",
    )
    member_count: int = 0
    sync_status: SyncStatus
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class OrganizationWithRoleResponse(OrganizationResponse):
    """Organization as seen by one of its members."""

    role: OrganizationRole


class OrganizationListResponse(BaseModel):
    """Response schema for organization list."""

    organizations: List[OrganizationResponse]
    total: int
    page: int = 1
    page_size: int = 20


# ==========================
# Membership Schemas
# ==========================

class MemberAdd(BaseModel):
    """Schema for adding a member to an organization."""

    user_id: UUID
    role: Literal["admin", "member"] = Field(
        default="member",
        description="Organization role (owner is assigned only at creation)",
    )


class MemberRoleUpdate(BaseModel):
    role: OrganizationRole


class MemberResponse(BaseModel):
    """Membership response schema."""

    id: UUID
    organization_id: UUID
    user_id: UUID
    role: OrganizationRole
    email: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MemberListResponse(BaseModel):
    members: List[MemberResponse]
    total: int


# ==========================
# Organization Context
# ==========================

class OrganizationContext(BaseModel):
    """
    Organization context for request processing.

    Resolved per request from the path parameter and the caller's
    membership. Used internally for role checks.
    """

    id: UUID
    clerk_id: str
    name: str
    role: OrganizationRole
