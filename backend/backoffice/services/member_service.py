"""
Member Service Module
=====================

Data access for organization memberships.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select

from backoffice.core.exceptions import MemberNotFoundError
from backoffice.core.logging import get_logger
from backoffice.models.enums import OrganizationRole
from backoffice.models.member import Member
from backoffice.services.base import BaseService

logger = get_logger(__name__)


def _role_value(role) -> str:
    return role.value if isinstance(role, OrganizationRole) else role


class MemberService(BaseService):
    """Membership persistence operations."""

    def add_member(
        self,
        organization_id: UUID,
        user_id: UUID,
        role: OrganizationRole | str = OrganizationRole.MEMBER,
    ) -> Member:
        """
        Add a user to an organization.

        Raises:
            ConflictError: If the user is already a member, or either side does not exist
        """
        with self.query("add_member"):
            member = Member(
                organization_id=organization_id,
                user_id=user_id,
                role=_role_value(role),
            )
            self.db.add(member)
            self.db.commit()
            self.db.refresh(member)

        logger.info(
            "member_added",
            organization_id=str(organization_id),
            user_id=str(user_id),
            role=member.role,
        )
        return member

    def get_member(self, organization_id: UUID, user_id: UUID) -> Optional[Member]:
        with self.query("get_member"):
            return self.db.scalar(
                select(Member).where(
                    Member.organization_id == organization_id,
                    Member.user_id == user_id,
                )
            )

    def list_members(self, organization_id: UUID) -> List[Member]:
        with self.query("list_members"):
            return list(
                self.db.scalars(
                    select(Member)
                    .where(Member.organization_id == organization_id)
                    .order_by(Member.created_at)
                ).all()
            )

    def update_member_role(
        self,
        organization_id: UUID,
        user_id: UUID,
        role: OrganizationRole | str,
    ) -> Member:
        """
        Change a member's role.

        Raises:
            MemberNotFoundError: If the user is not a member
        """
        member = self.get_member(organization_id, user_id)
        if member is None:
            raise MemberNotFoundError(identifier=str(user_id))

        with self.query("update_member_role"):
            member.role = _role_value(role)
            self.db.commit()
            self.db.refresh(member)
        return member

    def remove_member(self, organization_id: UUID, user_id: UUID) -> None:
        """
        Remove a user from an organization.

        Raises:
            MemberNotFoundError: If the user is not a member
        """
        member = self.get_member(organization_id, user_id)
        if member is None:
            raise MemberNotFoundError(identifier=str(user_id))

        with self.query("remove_member"):
            self.db.delete(member)
            self.db.commit()

        logger.info(
            "member_removed",
            organization_id=str(organization_id),
            user_id=str(user_id),
        )
