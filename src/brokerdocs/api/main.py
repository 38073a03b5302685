"""brokerdocs FastAPI application factory.

This module provides the create_app() factory for bootstrapping the API.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from brokerdocs import __version__
from brokerdocs.api.errors import (
    ApiHttpError,
    api_http_error_handler,
    generic_exception_handler,
    http_exception_handler,
    request_validation_error_handler,
    storage_error_handler,
)
from brokerdocs.api.middleware.request_id import RequestIdMiddleware
from brokerdocs.api.routes.files import build_files_router
from brokerdocs.api.routes.folders import router as folders_router
from brokerdocs.api.routes.health import router as health_router
from brokerdocs.config import StorageConfig, load_storage_config
from brokerdocs.observability.tracing import configure_tracing, instrument_fastapi
from brokerdocs.services.registry import StorageServices
from brokerdocs.storage.errors import DocumentStorageError
from brokerdocs.storage.factory import build_gateway

logger = logging.getLogger(__name__)


def create_app(
    storage_services: StorageServices | None = None,
    config: StorageConfig | None = None,
) -> FastAPI:
    """Create and configure the brokerdocs FastAPI application.

    This factory:
    - Builds StorageServices from ``config`` (or the environment) unless
      ``storage_services`` is injected
    - Registers the request ID middleware and the exception handlers
    - Mounts the health router, one file router per category and the
      folder administration router

    Args:
        storage_services: Optional pre-built services (tests inject fakes).
        config: Optional storage configuration; read from the environment
            when neither argument is given.

    Returns:
        Configured FastAPI application instance.

    Raises:
        StorageConfigError: If the configuration is incomplete.
    """
    if storage_services is None:
        resolved = config or load_storage_config()
        storage_services = StorageServices(
            build_gateway(resolved),
            default_ttl_seconds=resolved.presign_ttl_seconds,
        )

    app = FastAPI(
        title="brokerdocs API",
        description="Document storage and folder lifecycle for brokerage records",
        version=__version__,
    )
    app.state.storage_services = storage_services

    configure_tracing()

    app.add_middleware(RequestIdMiddleware)

    instrument_fastapi(app)

    app.add_exception_handler(ApiHttpError, api_http_error_handler)
    app.add_exception_handler(DocumentStorageError, storage_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(health_router)
    for category in storage_services.categories:
        app.include_router(build_files_router(category))
    app.include_router(folders_router)

    logger.info(
        "brokerdocs API created: backend=%s categories=%s",
        storage_services.gateway.backend_name,
        [c.name for c in storage_services.categories],
    )
    return app
