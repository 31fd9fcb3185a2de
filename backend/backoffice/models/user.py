"""
User Model
==========

Local mirror of a Clerk user.

Identity (email, names, avatar) is owned by Clerk and arrives through
webhooks or the pull sync. Role and status are owned by the back-office.

Database Indexes:
- Primary key: id (UUID)
- Unique index: clerk_id
- Index: email, role
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    DateTime,
    Index,
    String,
    Uuid,
)
from sqlalchemy.orm import relationship, Mapped, mapped_column

from backoffice.db.base import Base
from backoffice.models.enums import UserRole, UserStatus
from backoffice.models.mixins import SyncTrackingMixin, TimestampMixin

if TYPE_CHECKING:
    from backoffice.models.member import Member
    from backoffice.models.user_data import UserData

# Placeholder Clerk ids for users created locally and not yet linked
LOCAL_CLERK_ID_PREFIX = "local_"


class User(TimestampMixin, SyncTrackingMixin, Base):
    """
    User entity synchronized from Clerk.

    Attributes:
        id: UUID primary key
        clerk_id: Clerk user identifier (``user_...``)
        email: Primary email address
        first_name / last_name: Display names
        role: Back-office role (enum)
        status: Account status (enum)
        memberships: Organization memberships
        data: Key/value metadata rows
    """

    __tablename__ = "users"

    def __init__(self, **kwargs):
        """Initialize User with Python-level defaults."""
        kwargs.setdefault("role", UserRole.USER.value)
        kwargs.setdefault("status", UserStatus.ACTIVE.value)
        super().__init__(**kwargs)

    # ==========================
    # Primary Key
    # ==========================
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # ==========================
    # Identity
    # ==========================
    clerk_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        index=True,
    )

    first_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    username: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # ==========================
    # Authorization
    # ==========================
    role: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=UserRole.USER.value,
    )

    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=UserStatus.ACTIVE.value,
    )

    last_sign_in_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ==========================
    # Relationships
    # ==========================
    memberships: Mapped[List["Member"]] = relationship(
        "Member",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    data: Mapped[List["UserData"]] = relationship(
        "UserData",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_users_role", "role"),
    )

    # ==========================
    # Methods
    # ==========================

    def __repr__(self) -> str:
        return f"<User(id={self.id}, clerk_id={self.clerk_id}, role={self.role})>"

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE.value

    @property
    def is_linked(self) -> bool:
        """Whether the row points at a real Clerk user."""
        return bool(self.clerk_id) and not self.clerk_id.startswith(LOCAL_CLERK_ID_PREFIX)
