"""
Webhook Routes Module
=====================

Receives Clerk webhooks, directly from Svix or through the webhook worker.

Responses:
- 200 with the standard envelope when the event was applied
- 400 for unsupported event types, malformed data and permanent failures
- 401 for missing headers, bad signatures or a wrong forward secret
- 503 when retries are exhausted, so the sender delivers again
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Header, Request
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from backoffice.core.config import get_settings
from backoffice.core.exceptions import (
    BadRequestError,
    BackofficeException,
    ServiceUnavailableError,
)
from backoffice.core.logging import get_logger
from backoffice.db.session import get_db
from backoffice.models.member import Member
from backoffice.models.organization import Organization
from backoffice.models.user import User
from backoffice.schemas import (
    ClerkWebhookEvent,
    MemberResponse,
    OrganizationResponse,
    UserResponse,
    error_responses,
    wrap_response,
)
from backoffice.sync import types as sync_types
from backoffice.webhooks.handler import dispatch_event
from backoffice.webhooks.verification import check_forward_secret, verify_webhook

# Initialize logger
logger = get_logger(__name__)


# =====================================
# Router Setup
# =====================================

router = APIRouter(
    prefix="/api/webhooks",
    tags=["Webhooks"],
    responses=error_responses,
)


def serialize_result(data: Any) -> Any:
    """Render a sync handler's return value as JSON-ready data."""
    if isinstance(data, User):
        return UserResponse.model_validate(data).model_dump(mode="json")
    if isinstance(data, Organization):
        return OrganizationResponse.model_validate(data).model_dump(mode="json")
    if isinstance(data, Member):
        return MemberResponse.model_validate(data).model_dump(mode="json")
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if isinstance(data, str):
        return {"message": data}
    return data


def failure_to_exception(result: sync_types.SyncResult) -> BackofficeException:
    """Map a failed sync result to the HTTP error the sender should see."""
    error = result.error
    details = {
        "code": error.code,
        "retry_count": result.retry_count,
        **(error.details or {}),
    }
    if error.code in (sync_types.NonRetryableError.code, sync_types.ValidationError.code):
        return BadRequestError(message=error.message, details=details)
    if error.code == sync_types.RetryableError.code:
        return ServiceUnavailableError(message=error.message, details=details)
    return BackofficeException(message=error.message, details=details)


# =====================================
# Clerk Webhook
# =====================================

@router.post(
    "/clerk",
    summary="Clerk Webhook",
    description="Apply a Svix-signed Clerk event.",
)
async def clerk_webhook(
    request: Request,
    x_webhook_secret: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> dict:
    settings = get_settings()
    ip_address = request.client.host if request.client else None
    payload = await request.body()

    raw_event = verify_webhook(
        payload,
        request.headers,
        settings.CLERK_WEBHOOK_SECRET,
        ip_address=ip_address,
    )
    check_forward_secret(x_webhook_secret, settings.WEBHOOK_FORWARD_SECRET)

    try:
        event = ClerkWebhookEvent.model_validate(raw_event)
    except PydanticValidationError as e:
        raise BadRequestError(
            message="Invalid webhook payload",
            details={"errors": [err["msg"] for err in e.errors()]},
        )

    logger.info(
        "webhook_received",
        type=event.type,
        svix_id=request.headers.get("svix-id"),
    )

    try:
        result = await run_in_threadpool(dispatch_event, db, event)
    except sync_types.ValidationError as e:
        logger.warning("webhook_payload_invalid", type=event.type, error=e.message)
        raise BadRequestError(message=e.message, details=e.details)

    if not result.success:
        logger.error(
            "webhook_processing_failed",
            type=event.type,
            code=result.error.code,
            retry_count=result.retry_count,
        )
        raise failure_to_exception(result)

    logger.info("webhook_processed", type=event.type, retry_count=result.retry_count)
    return wrap_response(serialize_result(result.data))
