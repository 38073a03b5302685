"""Error envelope shared by every API exception handler.

    {"code": "NOT_FOUND", "message": "File not found", "details": null,
     "request_id": "5f0c..."}

``request_id`` is always present and matches the ``X-Request-Id`` response
header, so a client report can be matched to server logs.
"""

from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from brokerdocs.api.middleware.request_id import REQUEST_ID_HEADER, resolve_request_id

HTTP_STATUS_TO_CODE: dict[int, str] = {
    400: "BAD_REQUEST",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    413: "PAYLOAD_TOO_LARGE",
    415: "UNSUPPORTED_MEDIA_TYPE",
    422: "UNPROCESSABLE_ENTITY",
    500: "INTERNAL_ERROR",
    503: "SERVICE_UNAVAILABLE",
}


def get_error_code_for_status(status_code: int) -> str:
    """Map an HTTP status to the envelope's generic error code."""
    return HTTP_STATUS_TO_CODE.get(status_code, "ERROR")


def _request_id_for(request: Request) -> str:
    # Handlers outside RequestIdMiddleware (e.g. the catch-all 500) still get an ID.
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return str(request_id)
    return resolve_request_id(request.headers.get(REQUEST_ID_HEADER))


def make_error_response(
    request: Request,
    *,
    code: str,
    message: str,
    http_status: int,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Build the JSON error envelope and set the X-Request-Id header.

    Args:
        request: Request being answered.
        code: Machine-readable error code, e.g. "STORAGE_COPY_FAILED".
        message: Client-safe message; never a transport error string.
        http_status: Response status.
        details: Optional structured context, e.g. processed keys.
    """
    request_id = _request_id_for(request)
    response = JSONResponse(
        status_code=http_status,
        content={
            "code": code,
            "message": message,
            "details": details,
            "request_id": request_id,
        },
    )
    response.headers[REQUEST_ID_HEADER] = request_id
    return response
