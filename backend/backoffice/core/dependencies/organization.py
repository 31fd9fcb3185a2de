"""
Organization Context Dependencies
=================================

Resolves the organization named in the path and the caller's role in it.

Super admins are treated as owners of every organization.

Usage:
    @router.patch("/{organization_id}")
    def update(
        context: OrganizationContext = Depends(require_organization_role(
            OrganizationRole.OWNER, OrganizationRole.ADMIN,
        )),
    ):
        ...
"""

from typing import Callable
from uuid import UUID

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from backoffice.core.dependencies.auth import get_current_user
from backoffice.core.exceptions import OrganizationNotFoundError, OrganizationRoleError
from backoffice.core.logging import get_logger, organization_id_context, security_logger
from backoffice.db.session import get_db
from backoffice.models.enums import OrganizationRole, UserRole
from backoffice.models.user import User
from backoffice.schemas.organization import OrganizationContext
from backoffice.services.member_service import MemberService
from backoffice.services.organization_service import OrganizationService

logger = get_logger(__name__)

ALL_ORGANIZATION_ROLES = (OrganizationRole.OWNER, OrganizationRole.ADMIN, OrganizationRole.MEMBER)


def get_organization_context(
    organization_id: UUID,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> OrganizationContext:
    """
    Load the organization and the caller's membership role.

    Raises:
        OrganizationNotFoundError: If the organization does not exist
        OrganizationRoleError: If the caller is not a member
    """
    organization = OrganizationService(db).get_organization_by_id(organization_id)
    if organization is None:
        raise OrganizationNotFoundError(identifier=str(organization_id))

    if current_user.role == UserRole.SUPER_ADMIN.value:
        role = OrganizationRole.OWNER
    else:
        member = MemberService(db).get_member(organization.id, current_user.id)
        if member is None:
            security_logger.log_unauthorized_access(
                user_id=str(current_user.id),
                resource=request.url.path,
                action=request.method,
            )
            raise OrganizationRoleError(required_roles=[r.value for r in ALL_ORGANIZATION_ROLES])
        role = OrganizationRole(member.role)

    organization_id_context.set(str(organization.id))
    return OrganizationContext(
        id=organization.id,
        clerk_id=organization.clerk_id,
        name=organization.name,
        role=role,
    )


def require_organization_role(*allowed_roles: OrganizationRole) -> Callable:
    """
    Create a dependency that requires one of the given organization roles.

    Args:
        *allowed_roles: Organization roles that are allowed access

    Returns:
        Dependency function returning the organization context
    """
    def role_checker(
        request: Request,
        context: OrganizationContext = Depends(get_organization_context),
        current_user: User = Depends(get_current_user),
    ) -> OrganizationContext:
        if context.role not in allowed_roles:
            security_logger.log_unauthorized_access(
                user_id=str(current_user.id),
                resource=request.url.path,
                action=request.method,
            )
            logger.warning(
                "organization_role_denied",
                organization_id=str(context.id),
                role=context.role.value,
                required_roles=[r.value for r in allowed_roles],
            )
            raise OrganizationRoleError(required_roles=[r.value for r in allowed_roles])
        return context

    return role_checker
