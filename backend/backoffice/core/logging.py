"""
Back-Office Logging Infrastructure

structlog on top of the stdlib logging module.

Every entry carries the request, user and organization ids bound for the
current request. JSON output is used in production and colored console
output in development. SecurityLogger and AuditLogger give security and audit
events a fixed vocabulary.
"""

from __future__ import annotations

import logging
import sys
import time
from contextvars import ContextVar
from functools import wraps
from typing import Any, Callable, Dict, Optional, TypeVar, ParamSpec

import structlog
from structlog.types import Processor

from backoffice.core.config import get_settings

# Bound per request by the middleware and auth dependencies
request_id_context: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
user_id_context: ContextVar[Optional[str]] = ContextVar("user_id", default=None)
organization_id_context: ContextVar[Optional[str]] = ContextVar("organization_id", default=None)

P = ParamSpec("P")
R = TypeVar("R")


def add_context_variables(
    logger: logging.Logger,
    method_name: str,
    event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """Processor copying the bound request, user and organization ids into the entry."""
    request_id = request_id_context.get()
    if request_id:
        event_dict["request_id"] = request_id

    user_id = user_id_context.get()
    if user_id:
        event_dict["user_id"] = user_id

    organization_id = organization_id_context.get()
    if organization_id:
        event_dict["organization_id"] = organization_id

    return event_dict


def get_log_level(settings: Any) -> int:
    """Map LOG_LEVEL onto a stdlib level, falling back to INFO."""
    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return level_map.get(settings.LOG_LEVEL.upper(), logging.INFO)


def get_processors(settings: Any) -> list[Processor]:
    """Processor chain ending in the JSON or console renderer."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_context_variables,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.LOG_FORMAT == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    return processors


def configure_logging() -> None:
    """Set up stdlib logging and structlog. Called from each app's lifespan."""
    settings = get_settings()

    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=get_log_level(settings),
    )

    # Configure structlog
    structlog.configure(
        processors=get_processors(settings),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name. If None, uses the calling module's name.

    Returns:
        A structlog BoundLogger instance.

    Example:
        >>> log = get_logger(__name__)
        >>> log.info("user_synced", clerk_id="user_123")
    """
    return structlog.get_logger(name)


def log_execution_time(
    log: structlog.stdlib.BoundLogger,
    operation: str,
    **extra_fields: Any
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Decorator to log execution time of a function.

    Args:
        log: Logger instance
        operation: Name of the operation being timed
        **extra_fields: Additional fields to include in the log

    Example:
        >>> @log_execution_time(log, "clerk_pull_sync")
        ... def sync_from_clerk() -> SyncResult:
        ...     ...
    """
    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            start_time = time.perf_counter()
            try:
                result = func(*args, **kwargs)
                duration_ms = (time.perf_counter() - start_time) * 1000
                log.info(
                    f"{operation}_completed",
                    duration_ms=round(duration_ms, 2),
                    success=True,
                    **extra_fields
                )
                return result
            except Exception as e:
                duration_ms = (time.perf_counter() - start_time) * 1000
                log.error(
                    f"{operation}_failed",
                    duration_ms=round(duration_ms, 2),
                    success=False,
                    error=str(e),
                    error_type=type(e).__name__,
                    **extra_fields
                )
                raise
        return wrapper
    return decorator


class SecurityLogger:
    """
    Specialized logger for security-relevant events.

    Emits events on a dedicated ``security`` logger so they can be
    routed separately from application logs.
    """

    def __init__(self) -> None:
        self.log = get_logger("security")

    def log_unauthorized_access(self, user_id: str, resource: str, action: str) -> None:
        """Log an access attempt rejected by RBAC."""
        self.log.warning(
            "unauthorized_access",
            user_id=user_id,
            resource=resource,
            action=action,
        )

    def log_token_invalid(self, reason: str, ip_address: str) -> None:
        """Log a rejected session token."""
        self.log.warning(
            "token_invalid",
            reason=reason,
            ip_address=ip_address,
        )

    def log_webhook_rejected(self, reason: str, source: str, ip_address: Optional[str] = None) -> None:
        """Log a webhook that failed header or signature checks."""
        self.log.warning(
            "webhook_rejected",
            reason=reason,
            source=source,
            ip_address=ip_address,
        )

    def log_rate_limit_exceeded(self, ip_address: str, endpoint: str) -> None:
        """Log a request dropped by the rate limiter."""
        self.log.warning(
            "rate_limit_exceeded",
            ip_address=ip_address,
            endpoint=endpoint,
        )


class AuditLogger:
    """
    Specialized logger for administrative changes.
    """

    def __init__(self) -> None:
        self.log = get_logger("audit")

    def log_user_modified(self, actor_id: str, target_user_id: str, changes: Dict[str, Any]) -> None:
        self.log.info(
            "user_modified",
            actor_id=actor_id,
            target_user_id=target_user_id,
            changes=changes,
        )

    def log_user_deleted(self, actor_id: str, target_user_id: str) -> None:
        self.log.info(
            "user_deleted",
            actor_id=actor_id,
            target_user_id=target_user_id,
        )

    def log_membership_changed(
        self,
        actor_id: str,
        organization_id: str,
        user_id: str,
        action: str,
        role: Optional[str] = None,
    ) -> None:
        self.log.info(
            "membership_changed",
            actor_id=actor_id,
            organization_id=organization_id,
            target_user_id=user_id,
            action=action,
            role=role,
        )


security_logger = SecurityLogger()
audit_logger = AuditLogger()
