"""Health check endpoint."""

from datetime import UTC, datetime

from fastapi import APIRouter, Request
from pydantic import BaseModel

from brokerdocs import __version__

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    time: str
    version: str
    storage_backend: str | None = None


@router.get("/health", response_model=HealthResponse)
def get_health(request: Request) -> HealthResponse:
    """Health check endpoint.

    Reports the configured storage backend without contacting it.
    """
    services = getattr(request.app.state, "storage_services", None)
    return HealthResponse(
        status="ok",
        time=datetime.now(UTC).isoformat(),
        version=__version__,
        storage_backend=services.gateway.backend_name if services is not None else None,
    )
