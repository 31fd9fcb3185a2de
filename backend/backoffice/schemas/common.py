"""
Common Schemas Module
=====================

Error bodies and the response envelope shared by all routers.
"""

from datetime import datetime, UTC
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response body."""

    code: str = Field(..., description="Error code indicating the type of error")
    message: str = Field(..., description="Human-readable error message")
    details: Dict[str, Any] = Field(
        default_factory=dict,
        description="Additional error details",
    )
    request_id: Optional[str] = Field(
        default=None,
        description="Unique identifier for the request, useful for error tracking",
    )


class FieldError(BaseModel):
    """One failed field from request validation."""

    field: str
    message: str
    type: str


class SuccessResponse(BaseModel):
    """Acknowledgement for operations without a body."""

    success: bool = True


def wrap_response(data: Any) -> Dict[str, Any]:
    """
    Wrap a payload in the standard envelope.

    Args:
        data: JSON-serializable payload

    Returns:
        ``{"data": data, "meta": {"timestamp": ...}}``
    """
    return {
        "data": data,
        "meta": {"timestamp": datetime.now(UTC).isoformat()},
    }


# Shared OpenAPI error declarations for routers
error_responses: Dict[int | str, Dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Bad Request - The request was invalid"},
    401: {"model": ErrorResponse, "description": "Unauthorized - Authentication is required"},
    403: {"model": ErrorResponse, "description": "Forbidden - Insufficient permissions"},
    404: {"model": ErrorResponse, "description": "Not Found - The requested resource was not found"},
    500: {"model": ErrorResponse, "description": "Internal Server Error - Something went wrong"},
}
