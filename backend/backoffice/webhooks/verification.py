"""
Webhook Verification Module
===========================

Verifies Svix-signed Clerk webhooks.
"""

import hmac
import json
from typing import Any, Dict, Mapping, Optional

from svix.webhooks import Webhook, WebhookVerificationError as SvixVerificationError

from backoffice.core.exceptions import BadRequestError, WebhookVerificationError
from backoffice.core.logging import get_logger, security_logger

logger = get_logger(__name__)

REQUIRED_HEADERS = ("svix-id", "svix-timestamp", "svix-signature")


def extract_svix_headers(headers: Mapping[str, str]) -> Dict[str, str]:
    """
    Pick the Svix headers out of a request.

    Raises:
        WebhookVerificationError: If any of them is missing or empty
    """
    picked = {name: headers.get(name) for name in REQUIRED_HEADERS}
    missing = [name for name, value in picked.items() if not value]
    if missing:
        raise WebhookVerificationError(message="Missing required headers")
    return picked


def verify_webhook(
    payload: bytes,
    headers: Mapping[str, str],
    secret: str,
    ip_address: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Verify a webhook body against its Svix headers.

    Args:
        payload: Raw request body
        headers: Request headers
        secret: Signing secret (``whsec_...``)
        ip_address: Client address, for security logs

    Returns:
        Decoded event

    Raises:
        WebhookVerificationError: On missing headers or a bad signature
        BadRequestError: If a correctly signed body is not JSON
    """
    try:
        svix_headers = extract_svix_headers(headers)
    except WebhookVerificationError:
        security_logger.log_webhook_rejected("missing_headers", "clerk", ip_address)
        raise

    if not secret:
        logger.error("webhook_secret_not_configured")
        raise WebhookVerificationError()

    try:
        Webhook(secret).verify(payload, svix_headers)
    except SvixVerificationError as e:
        security_logger.log_webhook_rejected(f"invalid_signature: {e}", "clerk", ip_address)
        raise WebhookVerificationError() from e

    # verify() only checks the signature; the body is decoded here
    try:
        return json.loads(payload)
    except ValueError as e:
        logger.warning("webhook_body_not_json", svix_id=svix_headers["svix-id"], error=str(e))
        raise BadRequestError(message="Invalid webhook payload") from e


def check_forward_secret(provided: Optional[str], expected: str) -> None:
    """
    Check the shared secret added by the webhook worker.

    A blank ``expected`` disables the check.

    Raises:
        WebhookVerificationError: If the secret is missing or wrong
    """
    if not expected:
        return
    if not provided or not hmac.compare_digest(provided, expected):
        security_logger.log_webhook_rejected("invalid_forward_secret", "webhook_worker")
        raise WebhookVerificationError()
