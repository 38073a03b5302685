"""Object storage for brokerage documents.

Provides an S3-compatible gateway, the key naming convention and typed
errors shared by the document and folder services.

Backends:
- S3ObjectStoreGateway: Cloudflare R2, MinIO or AWS S3 (production)
- FilesystemObjectStoreGateway: Local filesystem (dev)
"""

from brokerdocs.storage.errors import (
    CopyFailure,
    DeleteFailure,
    DocumentStorageError,
    DownloadFailure,
    FolderOperationError,
    InvalidKeyError,
    ListFailure,
    NotFound,
    PresignFailure,
    StorageConfigError,
    UploadFailure,
)
from brokerdocs.storage.gateway import ObjectStoreGateway
from brokerdocs.storage.models import (
    FolderBackupOperation,
    FolderDeleteOperation,
    ListPage,
    ObjectInfo,
    StoredDocument,
)

__all__ = [
    "ObjectStoreGateway",
    "StoredDocument",
    "ObjectInfo",
    "ListPage",
    "FolderBackupOperation",
    "FolderDeleteOperation",
    "DocumentStorageError",
    "FolderOperationError",
    "NotFound",
    "UploadFailure",
    "DownloadFailure",
    "DeleteFailure",
    "PresignFailure",
    "ListFailure",
    "CopyFailure",
    "InvalidKeyError",
    "StorageConfigError",
]
