"""
Webhook Dispatch Module
=======================

Routes verified Clerk events to the matching sync handler.
"""

from typing import Any, Callable

from sqlalchemy.orm import Session

from backoffice.core.exceptions import BadRequestError
from backoffice.core.logging import get_logger
from backoffice.schemas.webhook import ClerkWebhookEvent
from backoffice.sync.organization import OrganizationSyncService
from backoffice.sync.types import SyncResult
from backoffice.sync.user import UserSyncService
from backoffice.webhooks.transform import transform_clerk_event

logger = get_logger(__name__)

USER_EVENTS = {
    "user.created": "handle_user_created",
    "user.updated": "handle_user_updated",
    "user.deleted": "handle_user_deleted",
}

ORGANIZATION_EVENTS = {
    "organization.created": "handle_organization_created",
    "organization.updated": "handle_organization_updated",
    "organization.deleted": "handle_organization_deleted",
    "organizationMembership.created": "handle_membership_created",
    "organizationMembership.updated": "handle_membership_updated",
    "organizationMembership.deleted": "handle_membership_deleted",
}

SUPPORTED_EVENTS = frozenset(USER_EVENTS) | frozenset(ORGANIZATION_EVENTS)


def dispatch_event(db: Session, event: ClerkWebhookEvent, **sync_options: Any) -> SyncResult:
    """
    Apply a verified Clerk event.

    Args:
        db: SQLAlchemy session
        event: Parsed webhook envelope
        **sync_options: Passed to the sync service (``max_retries``, ``retry_delay``)

    Raises:
        BadRequestError: If the event type is not handled
        ValidationError: (sync) If the event data is malformed
    """
    handler: Callable[[ClerkWebhookEvent], SyncResult]
    if event.type in USER_EVENTS:
        service = UserSyncService(db, **sync_options)
        handler = getattr(service, USER_EVENTS[event.type])
    elif event.type in ORGANIZATION_EVENTS:
        service = OrganizationSyncService(db, **sync_options)
        handler = getattr(service, ORGANIZATION_EVENTS[event.type])
    else:
        logger.warning("webhook_event_unsupported", type=event.type)
        raise BadRequestError(
            message="Unsupported event type",
            details={"type": event.type},
        )

    result = handler(event)
    if result.success and event.type in ("user.created", "user.updated"):
        logger.info("clerk_user_event", transformed=transform_clerk_event(event).model_dump())
    return result
