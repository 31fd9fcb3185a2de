"""
User Sync Module
================

Keeps local users in step with Clerk.

Sources of change:
- ``user.created`` / ``user.updated`` / ``user.deleted`` webhooks
- A pull sync over the Clerk user list (``sync_from_clerk``)
- Linking a locally created user to an existing Clerk account

Each write runs inside ``with_retry`` and the outcome is recorded on the
row (``synced`` or ``failed`` with the error).
"""

from datetime import datetime, UTC
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel
from sqlalchemy.orm import Session

from backoffice.core.logging import get_logger, log_execution_time
from backoffice.models.mixins import utcnow
from backoffice.models.user import User
from backoffice.schemas.user import UserSyncSummary
from backoffice.schemas.webhook import ClerkDeletedObject, ClerkUserPayload, ClerkWebhookEvent
from backoffice.services.clerk_client import ClerkClient
from backoffice.services.user_service import UserService
from backoffice.sync.base import BaseSyncService
from backoffice.sync.types import (
    NonRetryableError,
    SyncFailure,
    SyncResult,
    SyncState,
    ValidationError,
)

logger = get_logger(__name__)

SIGNUP_SOURCE = "clerk"

EVENT_SCHEMAS = {
    "user.created": ClerkUserPayload,
    "user.updated": ClerkUserPayload,
    "user.deleted": ClerkDeletedObject,
}


def ms_to_datetime(value: Optional[int]) -> Optional[datetime]:
    """Convert Clerk epoch milliseconds to an aware datetime."""
    if value is None:
        return None
    return datetime.fromtimestamp(value / 1000, tz=UTC)


def profile_fields(payload: ClerkUserPayload) -> Dict[str, Any]:
    """Map a Clerk user payload onto User columns."""
    fields: Dict[str, Any] = {
        "clerk_id": payload.id,
        "email": payload.first_email,
        "first_name": payload.first_name or "",
        "last_name": payload.last_name or "",
        "image_url": payload.image_url,
        "username": payload.username,
        "last_sign_in_at": ms_to_datetime(payload.last_sign_in_at),
    }
    created_at = ms_to_datetime(payload.created_at)
    updated_at = ms_to_datetime(payload.updated_at)
    if created_at is not None:
        fields["created_at"] = created_at
    if updated_at is not None:
        fields["updated_at"] = updated_at
    return fields


class UserSyncService(BaseSyncService):
    """
    Applies Clerk user changes to the local database.

    Args:
        db: SQLAlchemy session
        clerk: Clerk API client, needed for pull sync and linking
    """

    def __init__(self, db: Session, clerk: Optional[ClerkClient] = None, **kwargs: Any):
        super().__init__(db, **kwargs)
        self.users = UserService(db)
        self.clerk = clerk

    # --------------------------
    # Hooks
    # --------------------------

    def update_sync_status(self, entity_id: str, state: SyncState) -> None:
        user = self.users.get_user_by_clerk_id(entity_id)
        if user is None:
            return
        self.apply_sync_state(user, state)

    def validate_external_data(self, event_type: str, data: Dict[str, Any]) -> BaseModel:
        schema = EVENT_SCHEMAS.get(event_type)
        if schema is None:
            raise ValidationError(
                f"Unsupported user event: {event_type}",
                details={"type": event_type},
            )
        return self.parse_payload(schema, data)

    # --------------------------
    # Webhook events
    # --------------------------

    def handle_user_created(self, event: ClerkWebhookEvent) -> SyncResult[User]:
        """Create the user, or refresh it if an earlier delivery already did."""
        payload = self.validate_external_data(event.type, event.data)
        logger.info("user_created_event", clerk_id=payload.id)

        result = self.with_retry(lambda: self._upsert(payload)[0])
        self._record_outcome(payload.id, result)
        return result

    def handle_user_updated(self, event: ClerkWebhookEvent) -> SyncResult[User]:
        """Update the user; an unknown user is created."""
        payload = self.validate_external_data(event.type, event.data)
        logger.info("user_updated_event", clerk_id=payload.id)

        result = self.with_retry(lambda: self._upsert(payload)[0])
        self._record_outcome(payload.id, result)
        return result

    def handle_user_deleted(self, event: ClerkWebhookEvent) -> SyncResult[str]:
        """Delete the user with its metadata and memberships."""
        payload = self.validate_external_data(event.type, event.data)
        logger.info("user_deleted_event", clerk_id=payload.id)

        def delete() -> str:
            user = self.users.get_user_by_clerk_id(payload.id)
            if user is None:
                return "User already deleted"
            self.users.delete_user_with_metadata(user)
            return "User deleted"

        result = self.with_retry(delete)
        if not result.success:
            self.log_sync_error(payload.id, result.error)
        return result

    # --------------------------
    # Pull sync and linking
    # --------------------------

    @log_execution_time(logger, "clerk_pull_sync")
    def sync_from_clerk(self) -> SyncResult[UserSyncSummary]:
        """
        Upsert every Clerk user into the local database.

        A failing user is counted and recorded without stopping the run.
        """
        clerk = self._require_clerk()
        fetched = self.with_retry(clerk.list_users)
        if not fetched.success:
            return SyncResult(success=False, error=fetched.error, retry_count=fetched.retry_count)

        summary = UserSyncSummary(total=len(fetched.data), created=0, updated=0, failed=0)
        for raw in fetched.data:
            try:
                payload = self.validate_external_data("user.created", raw)
            except ValidationError as e:
                summary.failed += 1
                summary.errors.append(f"{raw.get('id', '<unknown>')}: {e.message}")
                continue

            result = self.with_retry(lambda: self._upsert(payload))
            self._record_outcome(payload.id, result)
            if not result.success:
                summary.failed += 1
                summary.errors.append(f"{payload.id}: {result.error.message}")
            elif result.data[1]:
                summary.created += 1
            else:
                summary.updated += 1

        logger.info(
            "clerk_pull_sync_summary",
            total=summary.total,
            created=summary.created,
            updated=summary.updated,
            failed=summary.failed,
        )
        return SyncResult(success=True, data=summary, retry_count=fetched.retry_count)

    def link_user_to_clerk(self, user: User) -> SyncResult[User]:
        """
        Point a locally created user at the Clerk account with the same email.

        Never creates Clerk users; no match is a permanent failure.
        """
        if user.is_linked:
            return SyncResult(success=True, data=user)

        clerk = self._require_clerk()
        local_id = user.clerk_id

        def link() -> User:
            email = user.email.lower()
            for candidate in clerk.list_users():
                addresses = candidate.get("email_addresses") or []
                if any((a.get("email_address") or "").lower() == email for a in addresses):
                    owner = self.users.get_user_by_clerk_id(candidate["id"])
                    if owner is not None:
                        raise NonRetryableError(
                            "Clerk user already linked to another user",
                            details={"clerk_id": candidate["id"], "linked_user_id": str(owner.id)},
                        )
                    logger.info("clerk_user_matched", user_id=str(user.id), clerk_id=candidate["id"])
                    return self.users.update_user(user, {"clerk_id": candidate["id"]})
            raise NonRetryableError(
                "No matching Clerk user found",
                details={"email": user.email},
            )

        result = self.with_retry(link)
        if result.success:
            self.mark_sync_complete(result.data.clerk_id)
        else:
            self.log_sync_error(local_id, result.error)
        return result

    # --------------------------
    # Internals
    # --------------------------

    def _upsert(self, payload: ClerkUserPayload) -> Tuple[User, bool]:
        """Insert or update by Clerk id; returns (user, created)."""
        fields = profile_fields(payload)
        existing = self.users.get_user_by_clerk_id(payload.id)
        if existing is not None:
            fields.pop("created_at", None)
            return self.users.update_user_with_metadata(existing, fields), False

        signed_up = fields.get("created_at") or utcnow()
        metadata = {
            "signup_date": signed_up.isoformat(),
            "signup_source": SIGNUP_SOURCE,
            "name_history": [
                {
                    "first_name": fields["first_name"],
                    "last_name": fields["last_name"],
                    "changed_at": signed_up.isoformat(),
                }
            ],
        }
        return self.users.create_user_with_metadata(fields, metadata), True

    def _record_outcome(self, clerk_id: str, result: SyncResult) -> None:
        if result.success:
            self.mark_sync_complete(clerk_id)
        else:
            self.log_sync_error(clerk_id, result.error)

    def _require_clerk(self) -> ClerkClient:
        if self.clerk is None:
            raise SyncFailure("Clerk client is not configured", code="CLERK_NOT_CONFIGURED")
        return self.clerk
