"""
Webhook Worker Tests
====================

Tests for the worker's rate limiter, request screening helpers and the
forwarding endpoint.
"""

from datetime import datetime, timedelta, UTC

import httpx
import pytest
from fastapi.testclient import TestClient

from webhook_worker.config import WorkerSettings, get_worker_settings
from webhook_worker.main import app as worker_app, get_api_client, get_rate_limiter
from webhook_worker.rate_limit import RateLimit
from webhook_worker.validation import (
    validate_required_headers,
    validate_signature,
    validate_timestamp,
)
from conftest import WEBHOOK_SECRET, clerk_user_data, signed_webhook


pytestmark = pytest.mark.worker


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class TestRateLimit:

    def test_allows_up_to_limit(self):
        # Arrange
        limiter = RateLimit(window=60, limit=2, clock=FakeClock())

        # Act
        results = [limiter.is_allowed("1.2.3.4") for _ in range(3)]

        # Assert
        assert results == [True, True, False]

    def test_keys_are_independent(self):
        # Arrange
        limiter = RateLimit(window=60, limit=1, clock=FakeClock())
        limiter.is_allowed("a")

        # Assert
        assert limiter.is_allowed("b") is True

    def test_window_slides(self):
        # Arrange
        clock = FakeClock()
        limiter = RateLimit(window=60, limit=1, clock=clock)
        limiter.is_allowed("a")

        # Act
        clock.now += 61

        # Assert
        assert limiter.is_allowed("a") is True

    def test_cleanup_drops_idle_keys(self):
        # Arrange
        clock = FakeClock()
        limiter = RateLimit(window=60, limit=5, clock=clock)
        limiter.is_allowed("a")
        clock.now += 30
        limiter.is_allowed("b")
        clock.now += 40

        # Act
        limiter.cleanup()

        # Assert
        assert len(limiter) == 1


class TestValidation:

    def test_timestamp_within_window(self):
        # Assert
        assert validate_timestamp("1000", now=1200) is True
        assert validate_timestamp("1000", now=1301) is False
        assert validate_timestamp("1500", now=1000, max_diff=600) is True

    @pytest.mark.parametrize("value", [None, "", "soon", "1.5"])
    def test_timestamp_must_be_integer(self, value):
        # Assert
        assert validate_timestamp(value) is False

    def test_required_headers(self):
        # Assert
        assert validate_required_headers({"svix-id": "a", "svix-timestamp": "1", "svix-signature": "v1,x"})
        assert not validate_required_headers({"svix-id": "a", "svix-timestamp": "1"})
        assert not validate_required_headers({"svix-id": "", "svix-timestamp": "1", "svix-signature": "s"})

    def test_signature_outcomes(self):
        # Arrange
        def failing(payload, signature, secret):
            raise ValueError("bad signature")

        # Assert
        assert validate_signature(b"{}", "v1,x", "s", lambda p, s, k: True) is True
        assert validate_signature(b"{}", "v1,x", "s", lambda p, s, k: False) is False
        assert validate_signature(b"{}", None, "s", lambda p, s, k: True) is False
        assert validate_signature(b"{}", "v1,x", "s", failing) is False


# =====================================
# Forwarding Endpoint
# =====================================

@pytest.fixture
def upstream_requests():
    return []


@pytest.fixture
def upstream_status():
    return {"code": 200}


@pytest.fixture
def worker_client(upstream_requests, upstream_status):
    settings = WorkerSettings(
        API_URL="http://api.test",
        API_SECRET="forward-secret",
        CLERK_WEBHOOK_SECRET=WEBHOOK_SECRET,
        RATE_LIMIT=3,
    )
    limiter = RateLimit(window=settings.RATE_LIMIT_WINDOW, limit=settings.RATE_LIMIT)

    def handler(request):
        upstream_requests.append(request)
        if upstream_status.get("refuse"):
            raise httpx.ConnectError("Connection refused", request=request)
        return httpx.Response(upstream_status["code"], json={"data": {}})

    async def api_client():
        async with httpx.AsyncClient(base_url=settings.API_URL, transport=httpx.MockTransport(handler)) as client:
            yield client

    worker_app.dependency_overrides[get_worker_settings] = lambda: settings
    worker_app.dependency_overrides[get_rate_limiter] = lambda: limiter
    worker_app.dependency_overrides[get_api_client] = api_client

    with TestClient(worker_app) as client:
        yield client

    worker_app.dependency_overrides.clear()


def user_created_event():
    return {"data": clerk_user_data(), "object": "event", "type": "user.created"}


class TestLifespan:

    def test_cleanup_task_stops_on_shutdown(self):
        # Act
        with TestClient(worker_app):
            task = worker_app.state.cleanup_task
            running = not task.done()

        # Assert
        assert running is True
        assert task.cancelled() is True


class TestWorkerEndpoint:

    def test_health(self, worker_client):
        # Act
        response = worker_client.get("/health")

        # Assert
        assert response.status_code == 200
        assert response.text == "OK"

    def test_forwards_signed_webhook(self, worker_client, upstream_requests):
        # Arrange
        body, headers = signed_webhook(user_created_event())

        # Act
        response = worker_client.post("/webhooks/clerk", content=body, headers=headers)

        # Assert
        assert response.status_code == 200
        assert response.text == "OK"
        forwarded = upstream_requests[0]
        assert str(forwarded.url) == "http://api.test/api/webhooks/clerk"
        assert forwarded.headers["X-Webhook-Secret"] == "forward-secret"
        assert forwarded.headers["svix-id"] == headers["svix-id"]
        assert forwarded.headers["svix-signature"] == headers["svix-signature"]
        assert forwarded.content == body

    def test_missing_headers(self, worker_client, upstream_requests):
        # Act
        response = worker_client.post("/webhooks/clerk", json=user_created_event())

        # Assert
        assert response.status_code == 401
        assert response.json()["message"] == "Missing required headers"
        assert upstream_requests == []

    def test_stale_timestamp(self, worker_client, upstream_requests):
        # Arrange
        body, headers = signed_webhook(user_created_event(), timestamp=datetime.now(UTC) - timedelta(minutes=10))

        # Act
        response = worker_client.post("/webhooks/clerk", content=body, headers=headers)

        # Assert
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid timestamp"
        assert upstream_requests == []

    def test_bad_signature(self, worker_client, upstream_requests):
        # Arrange
        body, headers = signed_webhook(user_created_event())
        headers["svix-signature"] = "v1,bm90LWEtc2lnbmF0dXJl"

        # Act
        response = worker_client.post("/webhooks/clerk", content=body, headers=headers)

        # Assert
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid signature"
        assert upstream_requests == []

    def test_upstream_failure(self, worker_client, upstream_status):
        # Arrange
        upstream_status["code"] = 503
        body, headers = signed_webhook(user_created_event())

        # Act
        response = worker_client.post("/webhooks/clerk", content=body, headers=headers)

        # Assert
        assert response.status_code == 500
        assert response.text == "Internal Server Error"

    def test_upstream_unreachable(self, worker_client, upstream_requests, upstream_status):
        # Arrange
        upstream_status["refuse"] = True
        body, headers = signed_webhook(user_created_event())

        # Act
        response = worker_client.post("/webhooks/clerk", content=body, headers=headers)

        # Assert
        assert response.status_code == 500
        assert response.text == "Internal Server Error"
        assert len(upstream_requests) == 1

    def test_rate_limited(self, worker_client):
        # Arrange
        responses = [worker_client.post("/webhooks/clerk", json={}) for _ in range(4)]

        # Assert
        assert [r.status_code for r in responses] == [401, 401, 401, 429]
        assert responses[-1].headers["Retry-After"] == "60"
        assert responses[-1].json()["code"] == "RATE_LIMITED"
