"""
Organization Routes Module
==========================

Organization and membership management.

Security:
- All endpoints require authentication
- Reading an organization requires membership
- Changing it or its members requires the org role OWNER or ADMIN
- Super admins act as owners everywhere
"""

import uuid
from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from backoffice.core.dependencies.auth import get_current_user
from backoffice.core.dependencies.organization import (
    get_organization_context,
    require_organization_role,
)
from backoffice.core.exceptions import OrganizationNotFoundError, UserNotFoundError
from backoffice.core.logging import audit_logger, get_logger
from backoffice.db.session import get_db
from backoffice.models.enums import OrganizationRole, UserRole
from backoffice.models.organization import Organization
from backoffice.models.user import User
from backoffice.schemas import (
    MemberAdd,
    MemberListResponse,
    MemberResponse,
    MemberRoleUpdate,
    OrganizationContext,
    OrganizationCreate,
    OrganizationListResponse,
    OrganizationResponse,
    OrganizationUpdate,
    OrganizationWithRoleResponse,
    SuccessResponse,
    error_responses,
)
from backoffice.services.member_service import MemberService
from backoffice.services.organization_service import OrganizationService
from backoffice.services.user_service import UserService

# Initialize logger
logger = get_logger(__name__)

require_org_admin = require_organization_role(OrganizationRole.OWNER, OrganizationRole.ADMIN)

# Prefix for organizations created here rather than in Clerk
LOCAL_ORGANIZATION_PREFIX = "org_local_"


# =====================================
# Router Setup
# =====================================

router = APIRouter(
    prefix="/api/organizations",
    tags=["Organizations"],
    responses=error_responses,
)


def _with_role(organization: Organization, role: OrganizationRole | str) -> Dict[str, Any]:
    body = OrganizationResponse.model_validate(organization).model_dump()
    body["role"] = OrganizationRole(role)
    return body


def _load(db: Session, context: OrganizationContext) -> Organization:
    organization = OrganizationService(db).get_organization_by_id(context.id)
    if organization is None:
        raise OrganizationNotFoundError(identifier=str(context.id))
    return organization


# =====================================
# Organizations
# =====================================

@router.get(
    "",
    response_model=OrganizationListResponse,
    summary="List Organizations",
    description="Super admins see every organization; other users see their own.",
)
def list_organizations(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Organizations per page"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    service = OrganizationService(db)

    if current_user.role == UserRole.SUPER_ADMIN.value:
        organizations, total = service.list_organizations(page=page, page_size=page_size)
    else:
        memberships = service.list_organizations_for_user(current_user.id)
        total = len(memberships)
        start = (page - 1) * page_size
        organizations = [organization for organization, _ in memberships[start:start + page_size]]

    return {
        "organizations": organizations,
        "total": total,
        "page": page,
        "page_size": page_size,
    }


@router.post(
    "",
    response_model=OrganizationWithRoleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Organization",
    description="Create an organization; the creator becomes its admin.",
)
def create_organization(
    payload: OrganizationCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    organization = OrganizationService(db).create_organization(
        {
            "clerk_id": f"{LOCAL_ORGANIZATION_PREFIX}{uuid.uuid4().hex}",
            "name": payload.name,
            "slug": payload.slug,
            "metadata": payload.metadata,
        }
    )
    MemberService(db).add_member(organization.id, current_user.id, OrganizationRole.ADMIN)
    db.refresh(organization, attribute_names=["members"])

    audit_logger.log_membership_changed(
        actor_id=str(current_user.id),
        organization_id=str(organization.id),
        user_id=str(current_user.id),
        action="organization_created",
        role=OrganizationRole.ADMIN.value,
    )
    return _with_role(organization, OrganizationRole.ADMIN)


@router.get(
    "/{organization_id}",
    response_model=OrganizationWithRoleResponse,
    summary="Get Organization",
)
def get_organization(
    context: OrganizationContext = Depends(get_organization_context),
    db: Session = Depends(get_db),
) -> dict:
    return _with_role(_load(db, context), context.role)


@router.patch(
    "/{organization_id}",
    response_model=OrganizationWithRoleResponse,
    summary="Update Organization",
)
def update_organization(
    payload: OrganizationUpdate,
    context: OrganizationContext = Depends(require_org_admin),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    fields = payload.model_dump(exclude_unset=True)
    for required in ("name", "slug"):
        if fields.get(required) is None:
            fields.pop(required, None)

    organization = OrganizationService(db).update_organization(_load(db, context), fields)
    logger.info(
        "organization_updated",
        organization_id=str(organization.id),
        actor_id=str(current_user.id),
    )
    return _with_role(organization, context.role)


@router.delete(
    "/{organization_id}",
    response_model=SuccessResponse,
    summary="Delete Organization",
)
def delete_organization(
    context: OrganizationContext = Depends(require_org_admin),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> SuccessResponse:
    OrganizationService(db).delete_organization(_load(db, context))
    audit_logger.log_membership_changed(
        actor_id=str(current_user.id),
        organization_id=str(context.id),
        user_id=str(current_user.id),
        action="organization_deleted",
    )
    return SuccessResponse()


# =====================================
# Members
# =====================================

@router.get(
    "/{organization_id}/members",
    response_model=MemberListResponse,
    summary="List Members",
)
def list_members(
    context: OrganizationContext = Depends(get_organization_context),
    db: Session = Depends(get_db),
) -> dict:
    members = MemberService(db).list_members(context.id)
    return {"members": members, "total": len(members)}


@router.post(
    "/{organization_id}/members",
    response_model=MemberResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add Member",
)
def add_member(
    payload: MemberAdd,
    context: OrganizationContext = Depends(require_org_admin),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if UserService(db).get_user_by_id(payload.user_id) is None:
        raise UserNotFoundError(identifier=str(payload.user_id))

    member = MemberService(db).add_member(context.id, payload.user_id, payload.role)
    audit_logger.log_membership_changed(
        actor_id=str(current_user.id),
        organization_id=str(context.id),
        user_id=str(payload.user_id),
        action="added",
        role=member.role,
    )
    return member


@router.patch(
    "/{organization_id}/members/{user_id}",
    response_model=MemberResponse,
    summary="Change Member Role",
)
def update_member_role(
    user_id: UUID,
    payload: MemberRoleUpdate,
    context: OrganizationContext = Depends(require_org_admin),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    member = MemberService(db).update_member_role(context.id, user_id, payload.role)
    audit_logger.log_membership_changed(
        actor_id=str(current_user.id),
        organization_id=str(context.id),
        user_id=str(user_id),
        action="role_changed",
        role=member.role,
    )
    return member


@router.delete(
    "/{organization_id}/members/{user_id}",
    response_model=SuccessResponse,
    summary="Remove Member",
)
def remove_member(
    user_id: UUID,
    context: OrganizationContext = Depends(require_org_admin),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> SuccessResponse:
    MemberService(db).remove_member(context.id, user_id)
    audit_logger.log_membership_changed(
        actor_id=str(current_user.id),
        organization_id=str(context.id),
        user_id=str(user_id),
        action="removed",
    )
    return SuccessResponse()
