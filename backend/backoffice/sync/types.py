"""
Sync Types Module
=================

Result records and error categories shared by the Clerk sync services.

Error categories decide what the retry loop does:
- ValidationError: payload is malformed, never retried
- RetryableError: transient, retried with linear backoff
- NonRetryableError: permanent, fails immediately
"""

from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Any, Callable, Dict, Generic, Literal, Optional, TypeVar

from backoffice.models.enums import SyncStatus

T = TypeVar("T")


def now_iso() -> str:
    return datetime.now(UTC).isoformat()


# ==========================
# Exceptions
# ==========================

class SyncFailure(Exception):
    """
    Base class for categorized sync failures.

    Args:
        message: Human-readable description
        code: Machine-readable category code
        details: Extra context for logs and the API response
        original_error: Lower-level exception that caused the failure
    """

    code = "SYNC_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[BaseException] = None,
    ):
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or {}
        self.original_error = original_error
        super().__init__(message)


class ValidationError(SyncFailure):
    """Payload failed validation."""

    code = "VALIDATION_ERROR"


class RetryableError(SyncFailure):
    """Transient failure, safe to try again."""

    code = "RETRYABLE_ERROR"


class NonRetryableError(SyncFailure):
    """Permanent failure."""

    code = "NON_RETRYABLE_ERROR"


# ==========================
# Records
# ==========================

@dataclass
class SyncError:
    """Normalized description of a failed sync, as persisted on the row."""

    name: str
    message: str
    code: str
    timestamp: str = field(default_factory=now_iso)
    details: Optional[Dict[str, Any]] = None
    original_error: Optional[BaseException] = None

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe form; the original exception is reduced to its repr."""
        data: Dict[str, Any] = {
            "name": self.name,
            "message": self.message,
            "code": self.code,
            "timestamp": self.timestamp,
        }
        if self.details:
            data["details"] = self.details
        if self.original_error is not None:
            data["original_error"] = repr(self.original_error)
        return data


@dataclass
class SyncResult(Generic[T]):
    success: bool
    data: Optional[T] = None
    error: Optional[SyncError] = None
    retry_count: int = 0
    timestamp: str = field(default_factory=now_iso)


@dataclass
class SyncState:
    """Sync state to persist for one entity."""

    status: SyncStatus
    last_sync_at: Optional[str] = None
    last_error: Optional[SyncError] = None
    retry_count: int = 0
    validation_status: Optional[Literal["valid", "invalid"]] = None


@dataclass
class RetryOptions:
    """Per-call overrides for ``with_retry``."""

    max_retries: Optional[int] = None
    retry_delay: Optional[float] = None
    should_retry: Optional[Callable[[BaseException], bool]] = None
