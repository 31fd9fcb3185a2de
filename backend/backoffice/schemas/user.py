"""
User Schemas Module
===================

Pydantic models for user-related request/response validation.

Benefits:
- Request validation
- Response serialization
- OpenAPI documentation
- Type safety
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from backoffice.models.enums import SyncStatus, UserRole, UserStatus


# ==========================
# Request Schemas
# ==========================

class UserCreate(BaseModel):
    """Schema for creating a user record (admin use)."""

    clerk_id: Optional[str] = Field(
        default=None,
        min_length=1,
        max_length=255,
        description="Clerk user identifier; omit to create an unlinked local user"
    )
    email: EmailStr = Field(
        ...,
        description="User email address"
    )
    first_name: str = Field(default="", max_length=255)
    last_name: str = Field(default="", max_length=255)
    image_url: Optional[str] = Field(default=None, max_length=1024)
    role: UserRole = Field(
        default=UserRole.USER,
        description="User role"
    )
    status: UserStatus = Field(
        default=UserStatus.ACTIVE,
        description="Account status"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "clerk_id": "user_2abc",
                "email": "jane@example.com",
                "first_name": "Jane",
                "last_name": "Doe",
                "role": "admin",
            }
        }
    )


class UserUpdate(BaseModel):
    """Schema for updating user information. Omitted fields are left unchanged."""

    email: Optional[EmailStr] = None
    first_name: Optional[str] = Field(default=None, max_length=255)
    last_name: Optional[str] = Field(default=None, max_length=255)
    image_url: Optional[str] = Field(default=None, max_length=1024)
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None


# ==========================
# Response Schemas
# ==========================

class UserResponse(BaseModel):
    """User response schema."""

    id: UUID
    clerk_id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    image_url: Optional[str] = None
    role: UserRole
    status: UserStatus
    sync_status: SyncStatus
    last_sync_attempt: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": "550e8400-e29b-41d4-a716-446655440000",
                "clerk_id": "user_2abc",
                "email": "jane@example.com",
                "first_name": "Jane",
                "last_name": "Doe",
                "image_url": None,
                "role": "admin",
                "status": "active",
                "sync_status": "synced",
                "last_sync_attempt": "2024-01-15T10:30:00Z",
                "created_at": "2024-01-15T10:30:00Z",
                "updated_at": "2024-01-15T10:30:00Z",
            }
        }
    )


class UserListResponse(BaseModel):
    """Response schema for user list."""

    users: List[UserResponse]
    total: int = Field(
        ...,
        description="Total number of users"
    )
    page: int = Field(
        default=1,
        description="Current page number"
    )
    page_size: int = Field(
        default=20,
        description="Number of users per page"
    )


class UserSyncSummary(BaseModel):
    """Outcome of a pull sync from Clerk."""

    total: int
    created: int
    updated: int
    failed: int
    errors: List[str] = Field(default_factory=list)
