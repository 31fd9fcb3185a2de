"""
Request Middleware Module
=========================

Starlette middleware for request processing.

Features:
- Request ID generation for tracing
- Request timing and completion logging
- API version negotiation
- Security headers
"""

import time
import uuid
from typing import Callable

from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from backoffice.core.config import settings
from backoffice.core.exceptions import UnsupportedVersionError
from backoffice.core.logging import get_logger, request_id_context
from backoffice.schemas.common import ErrorResponse

# Initialize logger
logger = get_logger(__name__)

API_VERSION_HEADER = "x-api-version"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Tracing middleware.

    Responsibilities:
    - Reuse or generate the request ID and bind it to the log context
    - Add ``X-Request-ID`` and ``X-Process-Time`` response headers
    - Log each completed request at a level matching its status
    """

    # Probes are not worth a log line each
    _QUIET_PATHS = {"/", "/health", "/ready"}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        token = request_id_context.set(request_id)

        request.state.request_id = request_id
        request.state.user_id = None

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_processing_error",
                error=str(e),
                path=request.url.path,
                method=request.method,
            )
            raise
        else:
            process_time = time.perf_counter() - start_time
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Process-Time"] = f"{process_time:.4f}"
            self._log_request(request, response, process_time)
            return response
        finally:
            request_id_context.reset(token)

    def _log_request(self, request: Request, response: Response, process_time: float) -> None:
        if request.url.path in self._QUIET_PATHS:
            return

        log_data = {
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "process_time_ms": round(process_time * 1000, 2),
            "user_id": getattr(request.state, "user_id", None),
            "ip_address": request.client.host if request.client else None,
        }

        # Log based on status code
        if response.status_code >= 500:
            logger.error("request_completed_with_error", **log_data)
        elif response.status_code >= 400:
            logger.warning("request_completed_with_client_error", **log_data)
        else:
            logger.info("request_completed", **log_data)


class ApiVersionMiddleware(BaseHTTPMiddleware):
    """
    API version negotiation.

    Every response carries the current version. A request asking for an
    unsupported version is rejected with 400 ``UNSUPPORTED_VERSION``;
    no header means the current version.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        requested = request.headers.get(API_VERSION_HEADER)
        supported = settings.supported_api_versions_list

        if requested and requested not in supported:
            error = UnsupportedVersionError(requested=requested, supported=supported)
            logger.warning("unsupported_api_version", requested=requested, path=request.url.path)
            response: Response = JSONResponse(
                status_code=error.status_code,
                content=ErrorResponse(
                    code=error.code,
                    message=error.message,
                    details=error.details,
                    request_id=request_id_context.get(),
                ).model_dump(),
            )
        else:
            response = await call_next(request)

        response.headers[API_VERSION_HEADER] = settings.API_VERSION
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add security headers to all responses.

    Headers added:
    - X-Content-Type-Options: nosniff
    - X-Frame-Options: DENY
    - Referrer-Policy
    - Strict-Transport-Security (in production)
    """

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        if settings.ENVIRONMENT == "production":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains; preload"
            )

        return response
