"""API error handling.

Provides ApiHttpError and the FastAPI exception handlers that turn every
failure into the shared error envelope with request_id tracing.

Global exception handlers:
- ApiHttpError: Application-specific errors raised by routes
- DocumentStorageError: Object store failures (NotFound -> 404, others -> 500)
- StarletteHTTPException: FastAPI/Starlette HTTP exceptions, including unmatched routes
- RequestValidationError: Pydantic validation errors
- Exception: Catch-all for unhandled exceptions (no stack traces to clients)
"""

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from brokerdocs.api.error_model import get_error_code_for_status, make_error_response
from brokerdocs.storage.errors import (
    DocumentStorageError,
    FolderOperationError,
    InvalidKeyError,
    NotFound,
)

logger = logging.getLogger(__name__)


class ApiHttpError(Exception):
    """Application-level HTTP error with structured error envelope.

    Attributes:
        status_code: HTTP status code (e.g., 400, 404, 415).
        code: Machine-readable error code.
        message: Human-readable error message.
        details: Optional dict with additional error context.
    """

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details


def storage_error_status(exc: DocumentStorageError) -> int:
    """Map a storage error kind to an HTTP status."""
    if isinstance(exc, NotFound):
        return 404
    if isinstance(exc, InvalidKeyError):
        return 400
    return 500


async def api_http_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """FastAPI exception handler for ApiHttpError."""
    assert isinstance(exc, ApiHttpError)

    return make_error_response(
        request,
        code=exc.code,
        message=exc.message,
        http_status=exc.status_code,
        details=exc.details,
    )


async def storage_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """FastAPI exception handler for DocumentStorageError.

    Absent objects become 404; every other storage failure becomes a 5xx
    carrying the error kind. The transport message is logged, not returned.
    """
    assert isinstance(exc, DocumentStorageError)

    status = storage_error_status(exc)
    details: dict[str, Any] | None = None

    if status == 404:
        message = "File not found"
    elif status == 400:
        message = exc.message
    else:
        message = "Storage operation failed"
        logger.error(
            "Storage failure: %s",
            exc,
            extra={"request_id": getattr(request.state, "request_id", None)},
        )

    if isinstance(exc, FolderOperationError):
        details = {"failed_key": exc.key, "processed_keys": list(exc.processed_keys)}

    return make_error_response(
        request,
        code=exc.kind,
        message=message,
        http_status=status,
        details=details,
    )


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """FastAPI exception handler for HTTPException."""
    assert isinstance(exc, StarletteHTTPException)

    code = get_error_code_for_status(exc.status_code)
    message = str(exc.detail) if exc.detail else f"HTTP {exc.status_code}"

    return make_error_response(
        request,
        code=code,
        message=message,
        http_status=exc.status_code,
        details=None,
    )


async def request_validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """FastAPI exception handler for RequestValidationError."""
    assert isinstance(exc, RequestValidationError)

    safe_details: list[dict[str, Any]] = []
    for error in exc.errors():
        loc = error.get("loc", ())
        safe_loc = [str(part) for part in loc if part not in ("body", "query", "path")]
        safe_details.append(
            {
                "field": ".".join(safe_loc) if safe_loc else "request",
                "message": error.get("msg", "Validation error"),
            }
        )

    return make_error_response(
        request,
        code="REQUEST_VALIDATION_FAILED",
        message="Request validation failed",
        http_status=422,
        details={"errors": safe_details} if safe_details else None,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler for unhandled exceptions.

    Returns 500 with a generic message and logs the exception.
    """
    request_id = getattr(request.state, "request_id", None)

    logger.exception(
        "Unhandled exception: %s",
        type(exc).__name__,
        extra={"request_id": request_id},
    )

    return make_error_response(
        request,
        code="INTERNAL_ERROR",
        message="An internal error occurred",
        http_status=500,
        details=None,
    )
