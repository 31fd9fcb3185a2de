"""
Webhook Transform Module
========================

Flattens Clerk user events into the shape used in logs and forwards.
"""

import time
from typing import Optional

from backoffice.schemas.webhook import ClerkUserPayload, ClerkWebhookEvent, TransformedEvent, TransformedUserData
from backoffice.sync.user import ms_to_datetime


def _iso(value: Optional[int]) -> str:
    converted = ms_to_datetime(value)
    return converted.isoformat() if converted else ""


def transform_clerk_event(event: ClerkWebhookEvent, now: Optional[int] = None) -> TransformedEvent:
    """
    Flatten a Clerk user event.

    Args:
        event: Parsed webhook envelope
        now: Epoch milliseconds for ``timestamp``; defaults to the current time

    Returns:
        ``{event, data: {clerk_id, email, first_name, last_name, created_at, updated_at}, timestamp}``
    """
    user = ClerkUserPayload.model_validate(event.data)
    return TransformedEvent(
        event=event.type,
        data=TransformedUserData(
            clerk_id=user.id,
            email=user.first_email,
            first_name=user.first_name or "",
            last_name=user.last_name or "",
            created_at=_iso(user.created_at),
            updated_at=_iso(user.updated_at),
        ),
        timestamp=now if now is not None else int(time.time() * 1000),
    )
