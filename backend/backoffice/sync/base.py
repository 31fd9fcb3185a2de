"""
Sync Base Module
================

Base class for services that reconcile local rows with Clerk.

Provides:
- Retry logic with linear backoff (``retry_delay * attempt``)
- Error categorization and normalization
- Sync status tracking on the synced row
- A validation hook for incoming Clerk payloads
"""

import json
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from backoffice.core.config import get_settings
from backoffice.core.exceptions import DatabaseError
from backoffice.core.logging import get_logger
from backoffice.models.enums import SyncStatus
from backoffice.models.mixins import SyncTrackingMixin, utcnow
from backoffice.sync.types import (
    NonRetryableError,
    RetryableError,
    RetryOptions,
    SyncError,
    SyncFailure,
    SyncResult,
    SyncState,
    ValidationError,
    now_iso,
)

logger = get_logger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

TRANSIENT_ERROR_MESSAGES = (
    "network error",
    "timeout",
    "connection refused",
    "too many requests",
)


class BaseSyncService(ABC):
    """
    Common machinery for the user and organization sync services.

    Args:
        db: SQLAlchemy session
        max_retries: Retries after the first attempt (default from settings)
        retry_delay: Base delay in seconds; attempt ``n`` waits ``retry_delay * n``
        sleep: Sleep function, replaceable in tests
    """

    def __init__(
        self,
        db: Session,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        settings = get_settings()
        self.db = db
        self.max_retries = settings.SYNC_MAX_RETRIES if max_retries is None else max_retries
        self.retry_delay = settings.SYNC_RETRY_DELAY if retry_delay is None else retry_delay
        self._sleep = sleep

    # --------------------------
    # Hooks
    # --------------------------

    @abstractmethod
    def update_sync_status(self, entity_id: str, state: SyncState) -> None:
        """Persist sync state for the entity with the given Clerk id."""

    @abstractmethod
    def validate_external_data(self, event_type: str, data: Dict[str, Any]) -> BaseModel:
        """
        Validate a Clerk payload for the given event type.

        Raises:
            ValidationError: If the payload is malformed
        """

    # --------------------------
    # Status tracking
    # --------------------------

    def log_sync_error(self, entity_id: str, error: SyncError) -> None:
        """Log a failed sync and mark the entity as failed."""
        logger.error(
            "sync_error",
            entity_id=entity_id,
            error=error.to_dict(),
        )
        self.update_sync_status(
            entity_id,
            SyncState(
                status=SyncStatus.FAILED,
                last_error=error,
                last_sync_at=now_iso(),
            ),
        )

    def mark_sync_complete(self, entity_id: str) -> None:
        """Mark the entity as synced and clear its last error."""
        self.update_sync_status(
            entity_id,
            SyncState(status=SyncStatus.SYNCED, last_sync_at=now_iso()),
        )

    def apply_sync_state(self, row: SyncTrackingMixin, state: SyncState) -> None:
        """Write a sync state onto a row and commit."""
        row.sync_status = state.status.value
        row.last_sync_attempt = utcnow()
        row.sync_error = json.dumps(state.last_error.to_dict()) if state.last_error else None
        self.db.commit()

    # --------------------------
    # Retry
    # --------------------------

    def with_retry(
        self,
        operation: Callable[[], T],
        options: Optional[RetryOptions] = None,
    ) -> SyncResult[T]:
        """
        Run an operation, retrying transient failures with linear backoff.

        Args:
            operation: Zero-argument callable doing the work
            options: Per-call overrides

        Returns:
            SyncResult with the operation's return value or the final error
        """
        options = options or RetryOptions()
        max_retries = self.max_retries if options.max_retries is None else options.max_retries
        retry_delay = self.retry_delay if options.retry_delay is None else options.retry_delay
        should_retry = options.should_retry or self.should_retry
        retry_count = 0

        while True:
            try:
                data = operation()
                return SyncResult(success=True, data=data, retry_count=retry_count)
            except NonRetryableError as e:
                return SyncResult(
                    success=False,
                    error=SyncError(
                        name=type(e).__name__,
                        message=e.message,
                        code=e.code,
                        details=e.details,
                        original_error=e.original_error,
                    ),
                    retry_count=retry_count,
                )
            except Exception as e:
                if retry_count >= max_retries or not should_retry(e):
                    return SyncResult(
                        success=False,
                        error=SyncError(
                            name=type(e).__name__,
                            message=str(e),
                            code=e.code if isinstance(e, RetryableError) else "UNKNOWN_ERROR",
                            original_error=e,
                        ),
                        retry_count=retry_count,
                    )

                retry_count += 1
                delay = retry_delay * retry_count
                logger.warning(
                    "sync_retry_scheduled",
                    attempt=retry_count,
                    delay_seconds=delay,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                self._sleep(delay)

    def should_retry(self, error: BaseException) -> bool:
        """Whether a failure may succeed on another attempt."""
        if isinstance(error, (NonRetryableError, ValidationError)):
            return False
        return isinstance(error, RetryableError) or self.is_transient_error(error)

    @staticmethod
    def is_transient_error(error: BaseException) -> bool:
        """Connection-level database failures and known transient messages."""
        if isinstance(error, OperationalError):
            return True
        if isinstance(error, DatabaseError) and isinstance(error.cause, OperationalError):
            return True
        message = str(error).lower()
        return any(pattern in message for pattern in TRANSIENT_ERROR_MESSAGES)

    # --------------------------
    # Error normalization
    # --------------------------

    @staticmethod
    def handle_sync_error(error: BaseException) -> SyncError:
        """Convert any exception into a SyncError record."""
        if isinstance(error, SyncFailure):
            return SyncError(
                name=type(error).__name__,
                message=error.message,
                code=error.code,
                details=error.details or None,
                original_error=error.original_error,
            )
        return SyncError(
            name=type(error).__name__ or "UnknownError",
            message=str(error),
            code="UNKNOWN_ERROR",
            original_error=error,
        )

    @staticmethod
    def parse_payload(schema: Type[M], data: Dict[str, Any]) -> M:
        """
        Parse a Clerk payload into a schema.

        Raises:
            ValidationError: With per-field errors when parsing fails
        """
        try:
            return schema.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid {schema.__name__} payload",
                details={
                    "errors": [
                        {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                        for err in e.errors()
                    ]
                },
                original_error=e,
            ) from e
