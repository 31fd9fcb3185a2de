"""
Role-Based Access Control (RBAC) Dependencies Module
=====================================================

FastAPI dependencies for system-wide role authorization.

Roles are ordered ``user < admin < super_admin``; a requirement is met
by the required role or any role above it.

Usage:
    @router.get("/users")
    def list_users(user: User = Depends(require_role_or_higher(UserRole.ADMIN))):
        ...
"""

from typing import Callable

from fastapi import Depends, Request

from backoffice.core.dependencies.auth import get_current_user
from backoffice.core.exceptions import RoleNotAuthorizedError
from backoffice.core.logging import get_logger, security_logger
from backoffice.models.enums import UserRole
from backoffice.models.user import User

# Initialize logger
logger = get_logger(__name__)


# =====================================
# Role Hierarchy
# =====================================

# Higher index = more permissions
ROLE_HIERARCHY: list[UserRole] = [
    UserRole.USER,
    UserRole.ADMIN,
    UserRole.SUPER_ADMIN,
]


def get_role_level(role: UserRole | str) -> int:
    """
    Get the hierarchy level for a role.

    Returns:
        Integer level (higher = more permissions), -1 for unknown roles
    """
    try:
        return ROLE_HIERARCHY.index(UserRole(role))
    except ValueError:
        return -1


def has_role_or_higher(user_role: UserRole | str, required_role: UserRole | str) -> bool:
    return get_role_level(user_role) >= get_role_level(required_role)


def _deny(request: Request, user: User, required: list[str]) -> RoleNotAuthorizedError:
    security_logger.log_unauthorized_access(
        user_id=str(user.id),
        resource=request.url.path,
        action=request.method,
    )
    logger.warning(
        "role_access_denied",
        user_role=user.role,
        required_roles=required,
        path=request.url.path,
    )
    return RoleNotAuthorizedError(required_roles=required)


# =====================================
# Role Requirement Dependencies
# =====================================

def require_role_or_higher(minimum_role: UserRole) -> Callable:
    """
    Create a dependency that requires a minimum role level.

    Args:
        minimum_role: Minimum role required

    Returns:
        Dependency function returning the current user
    """
    def role_checker(
        request: Request,
        current_user: User = Depends(get_current_user),
    ) -> User:
        if not has_role_or_higher(current_user.role, minimum_role):
            allowed = [r.value for r in ROLE_HIERARCHY[get_role_level(minimum_role):]]
            raise _deny(request, current_user, allowed)
        return current_user

    return role_checker


def require_super_admin(
    request: Request,
    current_user: User = Depends(get_current_user),
) -> User:
    """Dependency that requires the super_admin role."""
    if current_user.role != UserRole.SUPER_ADMIN.value:
        raise _deny(request, current_user, [UserRole.SUPER_ADMIN.value])
    return current_user
