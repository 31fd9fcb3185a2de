"""
Model Mixins
============

Column groups shared by several tables.
"""

import json
from datetime import datetime, UTC
from typing import Any, Dict, Optional

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from backoffice.models.enums import SyncStatus


def utcnow() -> datetime:
    return datetime.now(UTC)


class TimestampMixin:
    """Creation and last-update timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )


class SyncTrackingMixin:
    """
    Reconciliation state against Clerk.

    ``sync_error`` holds the last failure as JSON so operators can see
    why a row is in the ``failed`` state without digging through logs.
    """

    sync_status: Mapped[str] = mapped_column(
        String(20),
        default=SyncStatus.PENDING.value,
        server_default=SyncStatus.PENDING.value,
        nullable=False,
        index=True,
    )

    last_sync_attempt: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    sync_error: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    @property
    def sync_error_details(self) -> Optional[Dict[str, Any]]:
        """Decoded ``sync_error`` payload."""
        if not self.sync_error:
            return None
        return json.loads(self.sync_error)
