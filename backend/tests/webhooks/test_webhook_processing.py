"""
Webhook Processing Tests
========================

Tests for Svix verification, the forward secret check, event
flattening and dispatch to the sync services.
"""

import json
from datetime import datetime, timedelta, UTC

import pytest

from backoffice.core.exceptions import BadRequestError, WebhookVerificationError
from backoffice.schemas.webhook import ClerkWebhookEvent
from backoffice.webhooks.handler import SUPPORTED_EVENTS, dispatch_event
from backoffice.webhooks.transform import transform_clerk_event
from backoffice.webhooks.verification import (
    check_forward_secret,
    extract_svix_headers,
    verify_webhook,
)
from conftest import WEBHOOK_SECRET, clerk_user_data, sign_body, signed_webhook


pytestmark = pytest.mark.webhooks


class TestVerifyWebhook:

    def test_valid_signature_returns_event(self):
        # Arrange
        body, headers = signed_webhook({"type": "user.created", "data": {"id": "user_1"}})

        # Act
        event = verify_webhook(body, headers, WEBHOOK_SECRET)

        # Assert
        assert event == {"type": "user.created", "data": {"id": "user_1"}}

    def test_signed_body_that_is_not_json(self):
        # Arrange
        body, headers = sign_body("not json")

        # Act & Assert
        with pytest.raises(BadRequestError) as exc_info:
            verify_webhook(body, headers, WEBHOOK_SECRET)
        assert exc_info.value.message == "Invalid webhook payload"

    def test_missing_headers(self):
        # Arrange
        body, headers = signed_webhook({"type": "user.created", "data": {}})
        del headers["svix-signature"]

        # Act & Assert
        with pytest.raises(WebhookVerificationError) as exc_info:
            verify_webhook(body, headers, WEBHOOK_SECRET)
        assert exc_info.value.message == "Missing required headers"

    def test_tampered_body(self):
        # Arrange
        body, headers = signed_webhook({"type": "user.created", "data": {"id": "user_1"}})
        tampered = body.replace(b"user_1", b"user_2")

        # Act & Assert
        with pytest.raises(WebhookVerificationError) as exc_info:
            verify_webhook(tampered, headers, WEBHOOK_SECRET)
        assert exc_info.value.message == "Webhook verification failed"

    def test_stale_timestamp(self):
        # Arrange
        body, headers = signed_webhook(
            {"type": "user.created", "data": {}},
            timestamp=datetime.now(UTC) - timedelta(hours=1),
        )

        # Act & Assert
        with pytest.raises(WebhookVerificationError):
            verify_webhook(body, headers, WEBHOOK_SECRET)

    def test_unconfigured_secret(self):
        # Arrange
        body, headers = signed_webhook({"type": "user.created", "data": {}})

        # Act & Assert
        with pytest.raises(WebhookVerificationError):
            verify_webhook(body, headers, "")

    def test_extract_rejects_empty_values(self):
        # Act & Assert
        with pytest.raises(WebhookVerificationError):
            extract_svix_headers({"svix-id": "msg", "svix-timestamp": "", "svix-signature": "v1,x"})


class TestForwardSecret:

    def test_blank_expected_disables_check(self):
        # Act & Assert
        check_forward_secret(None, "")

    def test_matching_secret(self):
        # Act & Assert
        check_forward_secret("s3cret", "s3cret")

    @pytest.mark.parametrize("provided", [None, "", "wrong"])
    def test_wrong_or_missing_secret(self, provided):
        # Act & Assert
        with pytest.raises(WebhookVerificationError):
            check_forward_secret(provided, "s3cret")


class TestTransform:

    def test_flattens_user_event(self):
        # Arrange
        event = ClerkWebhookEvent(type="user.created", data=clerk_user_data(last_name=None))

        # Act
        transformed = transform_clerk_event(event, now=1700000000123)

        # Assert
        assert transformed.model_dump() == {
            "event": "user.created",
            "data": {
                "clerk_id": "user_clerk_1",
                "email": "jane@example.com",
                "first_name": "Jane",
                "last_name": "",
                "created_at": "2023-11-14T22:13:20+00:00",
                "updated_at": "2023-11-14T22:13:20+00:00",
            },
            "timestamp": 1700000000123,
        }

    def test_missing_timestamps_are_empty(self):
        # Arrange
        event = ClerkWebhookEvent(type="user.updated", data=clerk_user_data(created_at=None, updated_at=None))

        # Act
        transformed = transform_clerk_event(event)

        # Assert
        assert transformed.data.created_at == ""
        assert transformed.timestamp > 0


class TestDispatch:

    def test_supported_events(self):
        # Assert
        assert SUPPORTED_EVENTS == {
            "user.created",
            "user.updated",
            "user.deleted",
            "organization.created",
            "organization.updated",
            "organization.deleted",
            "organizationMembership.created",
            "organizationMembership.updated",
            "organizationMembership.deleted",
        }

    def test_user_event_is_applied(self, db_session):
        # Act
        result = dispatch_event(db_session, ClerkWebhookEvent(type="user.created", data=clerk_user_data()))

        # Assert
        assert result.success is True
        assert result.data.clerk_id == "user_clerk_1"

    def test_organization_event_is_applied(self, db_session):
        # Arrange
        data = {"id": "org_1", "name": "Initech", "slug": "initech"}

        # Act
        result = dispatch_event(db_session, ClerkWebhookEvent(type="organization.created", data=data))

        # Assert
        assert result.success is True
        assert result.data.slug == "initech"

    def test_unsupported_event(self, db_session):
        # Act & Assert
        with pytest.raises(BadRequestError) as exc_info:
            dispatch_event(db_session, ClerkWebhookEvent(type="session.created", data={}))
        assert exc_info.value.details == {"type": "session.created"}
