"""FastAPI dependencies shared by the routers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from brokerdocs.api.errors import ApiHttpError
from brokerdocs.services.registry import StorageServices


def get_storage_services(request: Request) -> StorageServices:
    """Return the StorageServices attached to the app by create_app()."""
    services: StorageServices | None = getattr(request.app.state, "storage_services", None)
    if services is None:
        raise ApiHttpError(
            status_code=503,
            code="STORAGE_NOT_CONFIGURED",
            message="Document storage is not configured",
        )
    return services


RequireStorageServices = Annotated[StorageServices, Depends(get_storage_services)]
