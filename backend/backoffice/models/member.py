"""
Member Model
============

Links a user to an organization with an organization-scoped role.

Database Indexes:
- Primary key: id (UUID)
- Unique constraint: (organization_id, user_id)
"""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.db.base import Base
from backoffice.models.enums import OrganizationRole
from backoffice.models.mixins import TimestampMixin

if TYPE_CHECKING:
    from backoffice.models.organization import Organization
    from backoffice.models.user import User


class Member(TimestampMixin, Base):
    """Organization membership."""

    __tablename__ = "members"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=OrganizationRole.MEMBER.value,
    )

    organization: Mapped["Organization"] = relationship(
        "Organization",
        back_populates="members",
    )

    user: Mapped["User"] = relationship(
        "User",
        back_populates="memberships",
        lazy="joined",
    )

    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", name="uq_members_organization_user"),
    )

    def __repr__(self) -> str:
        return (
            f"<Member(organization_id={self.organization_id}, "
            f"user_id={self.user_id}, role={self.role})>"
        )

    @property
    def email(self) -> str | None:
        return self.user.email if self.user else None
