"""
User Routes Module
==================

Back-office user management.

Security:
- All endpoints require authentication
- Management endpoints require ADMIN or higher
- Only SUPER_ADMIN may grant SUPER_ADMIN
- All changes are audit logged
"""

import uuid
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from backoffice.core.dependencies.auth import get_current_user
from backoffice.core.dependencies.rbac import require_role_or_higher
from backoffice.core.exceptions import (
    BadRequestError,
    RoleNotAuthorizedError,
    ServiceUnavailableError,
    UserNotFoundError,
)
from backoffice.core.logging import audit_logger, get_logger
from backoffice.db.session import get_db
from backoffice.models.enums import UserRole, UserStatus
from backoffice.models.user import LOCAL_CLERK_ID_PREFIX, User
from backoffice.schemas import (
    SuccessResponse,
    UserCreate,
    UserListResponse,
    UserResponse,
    UserSyncSummary,
    UserUpdate,
    error_responses,
)
from backoffice.services.clerk_client import ClerkClient
from backoffice.services.user_service import UserService
from backoffice.sync.types import SyncResult
from backoffice.sync.user import UserSyncService

# Initialize logger
logger = get_logger(__name__)

require_admin = require_role_or_higher(UserRole.ADMIN)


# =====================================
# Router Setup
# =====================================

router = APIRouter(
    prefix="/api/users",
    tags=["Users"],
    responses=error_responses,
)


def get_clerk_client():
    """Clerk client for the duration of one request."""
    with ClerkClient() as client:
        yield client


def _check_role_grant(actor: User, role: Optional[UserRole]) -> None:
    if role == UserRole.SUPER_ADMIN and actor.role != UserRole.SUPER_ADMIN.value:
        raise RoleNotAuthorizedError(required_roles=[UserRole.SUPER_ADMIN.value])


def _get_user_or_404(service: UserService, user_id: UUID) -> User:
    user = service.get_user_by_id(user_id)
    if user is None:
        raise UserNotFoundError(identifier=str(user_id))
    return user


def _raise_for_sync_failure(result: SyncResult) -> None:
    if result.success:
        return
    error = result.error
    details = {"code": error.code, **(error.details or {})}
    if error.code == "NON_RETRYABLE_ERROR":
        raise BadRequestError(message=error.message, details=details)
    raise ServiceUnavailableError(message=error.message, details=details)


# =====================================
# Current User
# =====================================

@router.get(
    "/me",
    response_model=UserResponse,
    summary="Current User",
)
def read_current_user(current_user: User = Depends(get_current_user)) -> User:
    return current_user


# =====================================
# Listing
# =====================================

@router.get(
    "",
    response_model=UserListResponse,
    summary="List Users",
    description="List users with pagination and filtering. Requires ADMIN or higher.",
)
def list_users(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Users per page"),
    role: Optional[UserRole] = Query(None, description="Filter by role"),
    user_status: Optional[UserStatus] = Query(None, alias="status", description="Filter by status"),
    search: Optional[str] = Query(None, min_length=1, max_length=255, description="Match email or name"),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> dict:
    """
    List users newest first.

    Args:
        page: Page number
        page_size: Users per page
        role: Optional role filter
        user_status: Optional status filter
        search: Optional case-insensitive match on email or name
    """
    users, total = UserService(db).list_users(
        page=page,
        page_size=page_size,
        role=role,
        status=user_status,
        search=search,
    )
    return {
        "users": users,
        "total": total,
        "page": page,
        "page_size": page_size,
    }


# =====================================
# Clerk Pull Sync
# =====================================

@router.post(
    "/sync",
    response_model=UserSyncSummary,
    summary="Sync Users From Clerk",
    description="Upsert every Clerk user locally. Requires ADMIN or higher.",
)
def sync_users(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
    clerk: ClerkClient = Depends(get_clerk_client),
) -> UserSyncSummary:
    logger.info("clerk_pull_sync_requested", actor_id=str(current_user.id))
    result = UserSyncService(db, clerk=clerk).sync_from_clerk()
    _raise_for_sync_failure(result)
    return result.data


# =====================================
# Single User CRUD
# =====================================

@router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get User",
)
def get_user(
    user_id: UUID,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> User:
    return _get_user_or_404(UserService(db), user_id)


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create User",
    description=(
        "Create a user record. Without a clerk_id the user is local until "
        "linked to a Clerk account."
    ),
)
def create_user(
    payload: UserCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> User:
    _check_role_grant(current_user, payload.role)

    fields = payload.model_dump()
    if not fields.get("clerk_id"):
        fields["clerk_id"] = f"{LOCAL_CLERK_ID_PREFIX}{uuid.uuid4().hex}"

    user = UserService(db).create_user(fields)
    audit_logger.log_user_modified(
        actor_id=str(current_user.id),
        target_user_id=str(user.id),
        changes={"action": "created", "role": user.role, "status": user.status},
    )
    return user


@router.patch(
    "/{user_id}",
    response_model=UserResponse,
    summary="Update User",
)
def update_user(
    user_id: UUID,
    payload: UserUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> User:
    _check_role_grant(current_user, payload.role)

    service = UserService(db)
    user = _get_user_or_404(service, user_id)

    if user.role == UserRole.SUPER_ADMIN.value:
        _check_role_grant(current_user, UserRole.SUPER_ADMIN)

    changes = payload.model_dump(exclude_unset=True, exclude_none=True, mode="json")
    user = service.update_user(user, payload.model_dump(exclude_unset=True, exclude_none=True))

    audit_logger.log_user_modified(
        actor_id=str(current_user.id),
        target_user_id=str(user.id),
        changes=changes,
    )
    return user


@router.post(
    "/{user_id}/link",
    response_model=UserResponse,
    summary="Link User To Clerk",
    description="Attach a locally created user to the Clerk account with the same email.",
)
def link_user(
    user_id: UUID,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
    clerk: ClerkClient = Depends(get_clerk_client),
) -> User:
    user = _get_user_or_404(UserService(db), user_id)
    result = UserSyncService(db, clerk=clerk).link_user_to_clerk(user)
    _raise_for_sync_failure(result)
    return result.data


@router.delete(
    "/{user_id}",
    response_model=SuccessResponse,
    summary="Delete User",
)
def delete_user(
    user_id: UUID,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> SuccessResponse:
    if user_id == current_user.id:
        raise BadRequestError(message="You cannot delete your own account")

    service = UserService(db)
    user = _get_user_or_404(service, user_id)
    service.delete_user_with_metadata(user)

    audit_logger.log_user_deleted(
        actor_id=str(current_user.id),
        target_user_id=str(user_id),
    )
    return SuccessResponse()
