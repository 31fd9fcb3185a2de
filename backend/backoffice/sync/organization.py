"""
Organization Sync Module
========================

Applies Clerk organization and membership events locally.

Memberships reference a user and an organization by Clerk id. When
either has not been synced yet the event raises RetryableError so the
retry loop, and failing that the webhook sender, can deliver it again
once the referenced row exists.
"""

import json
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel
from sqlalchemy.orm import Session

from backoffice.core.logging import get_logger
from backoffice.models.enums import OrganizationRole
from backoffice.models.member import Member
from backoffice.models.organization import Organization
from backoffice.models.user import User
from backoffice.schemas.webhook import (
    ClerkDeletedObject,
    ClerkMembershipPayload,
    ClerkOrganizationPayload,
    ClerkWebhookEvent,
)
from backoffice.services.member_service import MemberService
from backoffice.services.organization_service import OrganizationService
from backoffice.services.user_service import UserService
from backoffice.sync.base import BaseSyncService
from backoffice.sync.types import (
    NonRetryableError,
    RetryableError,
    SyncResult,
    SyncState,
    ValidationError,
)
from backoffice.sync.user import ms_to_datetime

logger = get_logger(__name__)

EVENT_SCHEMAS = {
    "organization.created": ClerkOrganizationPayload,
    "organization.updated": ClerkOrganizationPayload,
    "organization.deleted": ClerkDeletedObject,
    "organizationMembership.created": ClerkMembershipPayload,
    "organizationMembership.updated": ClerkMembershipPayload,
    "organizationMembership.deleted": ClerkMembershipPayload,
}

CLERK_ROLE_MAP = {
    "org:admin": OrganizationRole.ADMIN,
    "org:owner": OrganizationRole.OWNER,
}


def map_clerk_role(role: str) -> OrganizationRole:
    """Map a Clerk membership role to a local role; unknown roles become member."""
    return CLERK_ROLE_MAP.get(role, OrganizationRole.MEMBER)


class OrganizationSyncService(BaseSyncService):
    """Applies Clerk organization and membership changes."""

    def __init__(self, db: Session, **kwargs: Any):
        super().__init__(db, **kwargs)
        self.organizations = OrganizationService(db)
        self.members = MemberService(db)
        self.users = UserService(db)

    # --------------------------
    # Hooks
    # --------------------------

    def update_sync_status(self, entity_id: str, state: SyncState) -> None:
        organization = self.organizations.get_organization_by_clerk_id(entity_id)
        if organization is None:
            return
        self.apply_sync_state(organization, state)

    def validate_external_data(self, event_type: str, data: Dict[str, Any]) -> BaseModel:
        schema = EVENT_SCHEMAS.get(event_type)
        if schema is None:
            raise ValidationError(
                f"Unsupported organization event: {event_type}",
                details={"type": event_type},
            )
        return self.parse_payload(schema, data)

    # --------------------------
    # Organization events
    # --------------------------

    def handle_organization_created(self, event: ClerkWebhookEvent) -> SyncResult[Organization]:
        payload = self.validate_external_data(event.type, event.data)
        logger.info("organization_created_event", clerk_id=payload.id)
        return self._upsert_and_record(payload)

    def handle_organization_updated(self, event: ClerkWebhookEvent) -> SyncResult[Organization]:
        payload = self.validate_external_data(event.type, event.data)
        logger.info("organization_updated_event", clerk_id=payload.id)
        return self._upsert_and_record(payload)

    def handle_organization_deleted(self, event: ClerkWebhookEvent) -> SyncResult[str]:
        payload = self.validate_external_data(event.type, event.data)
        logger.info("organization_deleted_event", clerk_id=payload.id)

        def delete() -> str:
            organization = self.organizations.get_organization_by_clerk_id(payload.id)
            if organization is None:
                return "Organization already deleted"
            self.organizations.delete_organization(organization)
            return "Organization deleted"

        result = self.with_retry(delete)
        if not result.success:
            self.log_sync_error(payload.id, result.error)
        return result

    def sync_organization(self, clerk_id: str) -> SyncResult[Organization]:
        """Re-mark a known organization as synced."""

        def load() -> Organization:
            organization = self.organizations.get_organization_by_clerk_id(clerk_id)
            if organization is None:
                raise NonRetryableError(
                    f"Organization not found: {clerk_id}",
                    details={"clerk_id": clerk_id},
                )
            return organization

        result = self.with_retry(load)
        if result.success:
            self.mark_sync_complete(clerk_id)
        else:
            logger.error("organization_sync_failed", clerk_id=clerk_id, error=result.error.message)
        return result

    # --------------------------
    # Membership events
    # --------------------------

    def handle_membership_created(self, event: ClerkWebhookEvent) -> SyncResult[Member]:
        payload = self.validate_external_data(event.type, event.data)
        return self._membership_result(payload, self.with_retry(lambda: self._upsert_member(payload)))

    def handle_membership_updated(self, event: ClerkWebhookEvent) -> SyncResult[Member]:
        payload = self.validate_external_data(event.type, event.data)
        return self._membership_result(payload, self.with_retry(lambda: self._upsert_member(payload)))

    def handle_membership_deleted(self, event: ClerkWebhookEvent) -> SyncResult[str]:
        payload = self.validate_external_data(event.type, event.data)

        def remove() -> str:
            organization = self.organizations.get_organization_by_clerk_id(payload.organization.id)
            user = self.users.get_user_by_clerk_id(payload.public_user_data.user_id)
            if organization is None or user is None:
                return "Membership already removed"
            if self.members.get_member(organization.id, user.id) is None:
                return "Membership already removed"
            self.members.remove_member(organization.id, user.id)
            return "Membership removed"

        return self._membership_result(payload, self.with_retry(remove))

    # --------------------------
    # Internals
    # --------------------------

    def _upsert_and_record(self, payload: ClerkOrganizationPayload) -> SyncResult[Organization]:
        result = self.with_retry(lambda: self._upsert_organization(payload))
        if result.success:
            self.mark_sync_complete(payload.id)
        else:
            self.log_sync_error(payload.id, result.error)
        return result

    def _upsert_organization(self, payload: ClerkOrganizationPayload) -> Organization:
        fields: Dict[str, Any] = {
            "clerk_id": payload.id,
            "name": payload.name,
            "slug": payload.slug,
            "metadata": payload.public_metadata or None,
        }
        updated_at = ms_to_datetime(payload.updated_at)
        if updated_at is not None:
            fields["updated_at"] = updated_at

        existing = self.organizations.get_organization_by_clerk_id(payload.id)
        if existing is not None:
            return self.organizations.update_organization(existing, fields)

        created_at = ms_to_datetime(payload.created_at)
        if created_at is not None:
            fields["created_at"] = created_at
        return self.organizations.create_organization(fields)

    def _resolve_membership(self, payload: ClerkMembershipPayload) -> Tuple[Organization, User]:
        organization = self.organizations.get_organization_by_clerk_id(payload.organization.id)
        if organization is None:
            raise RetryableError(
                "Organization not synced yet",
                details={"organization_clerk_id": payload.organization.id},
            )
        user = self.users.get_user_by_clerk_id(payload.public_user_data.user_id)
        if user is None:
            raise RetryableError(
                "User not synced yet",
                details={"user_clerk_id": payload.public_user_data.user_id},
            )
        return organization, user

    def _upsert_member(self, payload: ClerkMembershipPayload) -> Member:
        organization, user = self._resolve_membership(payload)
        role = map_clerk_role(payload.role)
        if self.members.get_member(organization.id, user.id) is None:
            return self.members.add_member(organization.id, user.id, role)
        return self.members.update_member_role(organization.id, user.id, role)

    def _membership_result(
        self,
        payload: ClerkMembershipPayload,
        result: SyncResult,
    ) -> SyncResult:
        log_fields: Dict[str, Optional[str]] = {
            "membership_id": payload.id,
            "organization_clerk_id": payload.organization.id,
            "user_clerk_id": payload.public_user_data.user_id,
            "role": payload.role,
        }
        if result.success:
            logger.info("membership_synced", **log_fields)
        else:
            logger.error(
                "membership_sync_failed",
                error=json.dumps(result.error.to_dict()),
                **log_fields,
            )
        return result
