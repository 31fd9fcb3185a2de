"""
Webhook Worker Application
==========================

Edge service in front of the back-office API.

For each Clerk webhook it:
- Rate limits per client IP
- Checks the Svix headers and timestamp
- Optionally verifies the signature
- Forwards the untouched body upstream with the shared secret
"""

import asyncio
from contextlib import asynccontextmanager, suppress
from datetime import datetime, UTC
from typing import AsyncIterator, Dict

import httpx
from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from svix.webhooks import Webhook

from backoffice.core.exceptions import ErrorCode, RateLimitError
from backoffice.core.logging import configure_logging, get_logger, security_logger
from webhook_worker.config import WorkerSettings, get_worker_settings
from webhook_worker.rate_limit import RateLimit
from webhook_worker.validation import (
    REQUIRED_SVIX_HEADERS,
    validate_required_headers,
    validate_signature,
    validate_timestamp,
)

logger = get_logger(__name__)

UPSTREAM_PATH = "/api/webhooks/clerk"

_settings = get_worker_settings()
rate_limiter = RateLimit(window=_settings.RATE_LIMIT_WINDOW, limit=_settings.RATE_LIMIT)


async def _cleanup_loop(limiter: RateLimit, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        limiter.cleanup()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info("webhook_worker_starting", api_url=_settings.API_URL)
    cleanup = asyncio.create_task(_cleanup_loop(rate_limiter, _settings.RATE_LIMIT_WINDOW))
    app.state.cleanup_task = cleanup
    try:
        yield
    finally:
        cleanup.cancel()
        with suppress(asyncio.CancelledError):
            await cleanup
        logger.info("webhook_worker_stopped")


app = FastAPI(
    title="Back-Office Webhook Worker",
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)


# =====================================
# Dependencies
# =====================================

def get_rate_limiter() -> RateLimit:
    return rate_limiter


async def get_api_client(
    settings: WorkerSettings = Depends(get_worker_settings),
) -> AsyncIterator[httpx.AsyncClient]:
    """HTTP client for the upstream API."""
    async with httpx.AsyncClient(base_url=settings.API_URL, timeout=settings.FORWARD_TIMEOUT) as client:
        yield client


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "code": code,
            "message": message,
            "details": {"timestamp": datetime.now(UTC).isoformat()},
        },
    )


def _svix_verifier(headers: Dict[str, str]):
    """Signature check bound to this request's id and timestamp."""
    def verify(payload: bytes, signature: str, secret: str) -> bool:
        Webhook(secret).verify(payload, {**headers, "svix-signature": signature})
        return True
    return verify


# =====================================
# Routes
# =====================================

@app.get("/health", response_class=PlainTextResponse)
def health() -> str:
    return "OK"


@app.post("/webhooks/clerk")
async def clerk_webhook(
    request: Request,
    settings: WorkerSettings = Depends(get_worker_settings),
    limiter: RateLimit = Depends(get_rate_limiter),
    client: httpx.AsyncClient = Depends(get_api_client),
) -> Response:
    ip_address = request.client.host if request.client else "unknown"

    if not limiter.is_allowed(ip_address):
        security_logger.log_rate_limit_exceeded(ip_address=ip_address, endpoint=request.url.path)
        exc = RateLimitError(retry_after=int(limiter.window))
        response = _error(exc.status_code, exc.code, exc.message)
        response.headers["Retry-After"] = str(exc.details["retry_after_seconds"])
        return response

    svix_headers = {name: request.headers.get(name) for name in REQUIRED_SVIX_HEADERS}
    if not validate_required_headers(svix_headers):
        security_logger.log_webhook_rejected("missing_headers", "clerk", ip_address)
        return _error(status.HTTP_401_UNAUTHORIZED, ErrorCode.UNAUTHORIZED, "Missing required headers")

    if not validate_timestamp(svix_headers["svix-timestamp"], max_diff=settings.MAX_TIMESTAMP_DIFF):
        security_logger.log_webhook_rejected("stale_timestamp", "clerk", ip_address)
        return _error(status.HTTP_401_UNAUTHORIZED, ErrorCode.UNAUTHORIZED, "Invalid timestamp")

    body = await request.body()

    if settings.CLERK_WEBHOOK_SECRET and not validate_signature(
        body,
        svix_headers["svix-signature"],
        settings.CLERK_WEBHOOK_SECRET,
        _svix_verifier(svix_headers),
    ):
        security_logger.log_webhook_rejected("invalid_signature", "clerk", ip_address)
        return _error(status.HTTP_401_UNAUTHORIZED, ErrorCode.UNAUTHORIZED, "Invalid signature")

    try:
        upstream = await client.post(
            UPSTREAM_PATH,
            content=body,
            headers={
                "Content-Type": "application/json",
                "X-Webhook-Secret": settings.API_SECRET,
                **svix_headers,
            },
        )
        upstream.raise_for_status()
    except httpx.HTTPError as e:
        logger.error(
            "webhook_forward_failed",
            svix_id=svix_headers["svix-id"],
            error=str(e),
            error_type=type(e).__name__,
        )
        return PlainTextResponse("Internal Server Error", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    logger.info("webhook_forwarded", svix_id=svix_headers["svix-id"], upstream_status=upstream.status_code)
    return PlainTextResponse("OK")
