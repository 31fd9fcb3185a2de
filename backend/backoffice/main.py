"""
Main Application Entry Point
============================

Responsibilities:
- Initialize FastAPI application
- Configure middleware stack
- Register API routers
- Set up exception handlers
- Provide health check endpoints
- Configure CORS

IMPORTANT:
    Database tables are managed via Alembic migrations.
    Do NOT use Base.metadata.create_all() in production.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backoffice.core.config import settings
from backoffice.core.exceptions import BackofficeException, ErrorCode
from backoffice.core.logging import configure_logging, get_logger, request_id_context
from backoffice.db.session import check_database_connection
from backoffice.middleware.request_middleware import (
    ApiVersionMiddleware,
    RequestContextMiddleware,
    SecurityHeadersMiddleware,
)
from backoffice.routes import organizations, users, webhooks
from backoffice.schemas.common import ErrorResponse

# Initialize logger
logger = get_logger(__name__)


# =====================================
# Application Lifespan Handler
# =====================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: configure logging and check the database.
    Shutdown: log it.
    """
    configure_logging()
    logger.info(
        "application_starting",
        app_name=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    if not check_database_connection():
        logger.error("database_connection_failed_on_startup")
    else:
        logger.info("database_connection_established")

    try:
        yield
    finally:
        logger.info("application_shutdown_complete")


# =====================================
# FastAPI App Initialization
# =====================================

app = FastAPI(
    title=settings.APP_NAME,
    description="""
    Admin Back-Office API

    ## Features

    * **Users**: CRUD over back-office users mirrored from Clerk
    * **Organizations**: Multi-tenant organizations and memberships
    * **Clerk Sync**: Signed webhooks and an on-demand pull sync

    ## Authentication

    Send the Clerk session token as `Authorization: Bearer <token>`.

    ## Authorization

    System roles (in order of increasing permissions): `user`, `admin`, `super_admin`.
    Organization roles: `member`, `admin`, `owner`.
    """,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
)


# =====================================
# Middleware
# =====================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.cors_methods_list,
    allow_headers=settings.cors_headers_list,
    expose_headers=["X-Request-ID", "X-Process-Time", "x-api-version"],
    max_age=3600,  # Cache preflight requests for 1 hour
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(ApiVersionMiddleware)

# Outermost, so every response and log line carries the request ID
app.add_middleware(RequestContextMiddleware)


# =====================================
# Exception Handlers
# =====================================

def _error_response(
    status_code: int,
    code: str,
    message: str,
    details: dict | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        code=code,
        message=message,
        details=details or {},
        request_id=request_id_context.get(),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(BackofficeException)
async def backoffice_exception_handler(request: Request, exc: BackofficeException):
    """Render application exceptions with their status and code."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "backoffice_exception",
        exception_type=type(exc).__name__,
        message=exc.message,
        status_code=exc.status_code,
        path=request.url.path,
    )

    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    response = _error_response(exc.status_code, exc.code, exc.message, exc.details)
    if headers:
        response.headers.update(headers)
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report request validation errors per field."""
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]

    logger.warning("request_validation_error", path=request.url.path, errors=errors)

    return _error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        ErrorCode.VALIDATION_ERROR,
        "Validation error",
        {"errors": errors},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Log unexpected exceptions; hide their message in production."""
    logger.error(
        "unhandled_exception",
        exception_type=type(exc).__name__,
        message=str(exc),
        path=request.url.path,
        method=request.method,
        exc_info=True,
    )

    if settings.ENVIRONMENT == "production":
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            ErrorCode.INTERNAL_SERVER_ERROR,
            "An unexpected error occurred",
        )
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorCode.INTERNAL_SERVER_ERROR,
        str(exc),
        {"type": type(exc).__name__},
    )


# =====================================
# Register Routers
# =====================================

app.include_router(users.router)
app.include_router(organizations.router)
app.include_router(webhooks.router)


# =====================================
# Health Check Endpoints
# =====================================

@app.get("/", tags=["Health"], summary="Basic Health Check")
def health_check():
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }


@app.get(
    "/health",
    tags=["Health"],
    summary="Detailed Health Check",
    description="Returns detailed health status including database connectivity.",
)
def detailed_health_check():
    db_healthy = check_database_connection()

    return {
        "status": "healthy" if db_healthy else "degraded",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "checks": {
            "database": "healthy" if db_healthy else "unhealthy",
        },
    }


@app.get(
    "/ready",
    tags=["Health"],
    summary="Readiness Check",
    description="200 when the database is reachable, 503 otherwise.",
)
def readiness_check():
    if not check_database_connection():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "database_unavailable",
            },
        )

    return {"status": "ready"}


# =====================================
# Application Info
# =====================================

@app.get(
    "/info",
    tags=["Info"],
    summary="Application Information",
    description="Returns application configuration information (non-sensitive).",
)
def application_info():
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "api_version": settings.API_VERSION,
        "supported_api_versions": settings.supported_api_versions_list,
        "sync": {
            "max_retries": settings.SYNC_MAX_RETRIES,
            "retry_delay_seconds": settings.SYNC_RETRY_DELAY,
        },
        "features": {
            "clerk_webhooks": bool(settings.CLERK_WEBHOOK_SECRET),
            "webhook_forward_secret": bool(settings.WEBHOOK_FORWARD_SECRET),
            "clerk_pull_sync": bool(settings.CLERK_SECRET_KEY),
        },
    }
