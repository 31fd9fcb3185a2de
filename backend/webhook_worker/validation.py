"""
Request screening helpers for incoming webhooks.
"""

import time
from typing import Callable, Iterable, Mapping, Optional

from backoffice.core.logging import get_logger

logger = get_logger(__name__)

REQUIRED_SVIX_HEADERS = ("svix-id", "svix-timestamp", "svix-signature")
MAX_TIMESTAMP_DIFF = 5 * 60  # seconds


def validate_timestamp(
    timestamp: Optional[str],
    max_diff: int = MAX_TIMESTAMP_DIFF,
    now: Optional[float] = None,
) -> bool:
    """
    Check that a ``svix-timestamp`` (epoch seconds) is within ``max_diff`` of now.
    """
    try:
        value = int(timestamp)
    except (TypeError, ValueError):
        return False

    current = time.time() if now is None else now
    return abs(current - value) <= max_diff


def validate_required_headers(
    headers: Mapping[str, Optional[str]],
    required: Iterable[str] = REQUIRED_SVIX_HEADERS,
) -> bool:
    """True when every required header is present and non-empty."""
    return all(headers.get(name) for name in required)


def validate_signature(
    payload: bytes,
    signature: Optional[str],
    secret: str,
    verify_fn: Callable[[bytes, str, str], bool],
) -> bool:
    """
    Run ``verify_fn`` and report the outcome.

    A missing signature, a False result and any exception raised by
    ``verify_fn`` all count as invalid.
    """
    if not signature:
        return False
    try:
        return bool(verify_fn(payload, signature, secret))
    except Exception as e:
        logger.debug("signature_verification_error", error=str(e), error_type=type(e).__name__)
        return False
