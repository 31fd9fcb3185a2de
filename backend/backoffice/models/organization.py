"""
Organization Model
==================

Represents a tenant in the multi-tenant architecture.

Each organization:
- Mirrors a Clerk organization (clerk_id)
- Owns memberships linking users to it with a role
- Acts as the authorization boundary for its members

Database Indexes:
- Primary key: id (UUID)
- Unique index: clerk_id, slug
"""

import json
import uuid
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import String, Text, Uuid
from sqlalchemy.orm import relationship, Mapped, mapped_column

from backoffice.db.base import Base
from backoffice.models.mixins import SyncTrackingMixin, TimestampMixin

if TYPE_CHECKING:
    from backoffice.models.member import Member


class Organization(TimestampMixin, SyncTrackingMixin, Base):
    """
    Organization Entity (Tenant Root).

    Attributes:
        id: UUID primary key
        clerk_id: Clerk organization identifier (``org_...``)
        name: Display name
        slug: Unique URL-safe handle
        metadata_json: Free-form metadata serialized as JSON
        members: Relationship to memberships
    """

    __tablename__ = "organizations"

    # ==========================
    # Primary Key
    # ==========================
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # ==========================
    # Organization Info
    # ==========================
    clerk_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    slug: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
    )

    # "metadata" is reserved on declarative classes
    metadata_json: Mapped[Optional[str]] = mapped_column(
        "metadata",
        Text,
        nullable=True,
    )

    # ==========================
    # Relationships
    # ==========================
    members: Mapped[List["Member"]] = relationship(
        "Member",
        back_populates="organization",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    # ==========================
    # Methods
    # ==========================

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, slug={self.slug})>"

    @property
    def member_count(self) -> int:
        """
        Get the number of members in this organization.

        Returns:
            Number of members
        """
        return len(self.members) if self.members else 0

    @property
    def metadata_dict(self) -> Optional[Dict[str, Any]]:
        if not self.metadata_json:
            return None
        return json.loads(self.metadata_json)
