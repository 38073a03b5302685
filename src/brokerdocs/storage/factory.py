"""Gateway construction from configuration."""

from __future__ import annotations

import logging

from brokerdocs.config import BACKEND_FILESYSTEM, BACKEND_S3, StorageConfig
from brokerdocs.storage.errors import StorageConfigError
from brokerdocs.storage.gateway import ObjectStoreGateway

logger = logging.getLogger(__name__)


def build_gateway(config: StorageConfig) -> ObjectStoreGateway:
    """Create the gateway selected by ``config.backend``.

    Raises:
        StorageConfigError: If the S3 backend is selected without credentials.
    """
    logger.debug("Building %s gateway for bucket=%s", config.backend, config.bucket)

    if config.backend == BACKEND_FILESYSTEM:
        from brokerdocs.storage.filesystem_gateway import FilesystemObjectStoreGateway

        return FilesystemObjectStoreGateway(config)

    if config.backend == BACKEND_S3:
        if not config.is_configured():
            raise StorageConfigError(
                "S3 storage is not configured. Set BROKERDOCS_S3_ACCESS_KEY_ID and "
                "BROKERDOCS_S3_SECRET_ACCESS_KEY (and an endpoint for R2/MinIO)."
            )
        from brokerdocs.storage.s3_gateway import S3ObjectStoreGateway

        return S3ObjectStoreGateway(config)

    raise StorageConfigError(f"Unknown storage backend '{config.backend}'")
