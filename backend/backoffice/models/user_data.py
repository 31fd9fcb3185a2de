"""
User Data Model
===============

Key/value metadata attached to a user (signup details, name history).

Values are stored as JSON text; use ``decoded_value`` to read them.
"""

import json
import uuid
from typing import TYPE_CHECKING, Any

from sqlalchemy import ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.db.base import Base
from backoffice.models.mixins import TimestampMixin

if TYPE_CHECKING:
    from backoffice.models.user import User


class UserData(TimestampMixin, Base):
    """One metadata entry; (user_id, key) is unique."""

    __tablename__ = "user_data"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    key: Mapped[str] = mapped_column(String(255), nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)

    user: Mapped["User"] = relationship("User", back_populates="data")

    __table_args__ = (
        UniqueConstraint("user_id", "key", name="uq_user_data_user_id_key"),
    )

    def __repr__(self) -> str:
        return f"<UserData(user_id={self.user_id}, key={self.key})>"

    @property
    def decoded_value(self) -> Any:
        return json.loads(self.value)
