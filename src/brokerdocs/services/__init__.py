"""Document and folder services built on an object store gateway."""

from brokerdocs.services.documents import DocumentStorageService
from brokerdocs.services.folders import FolderLifecycleService
from brokerdocs.services.registry import (
    DEFAULT_CATEGORIES,
    LICENSES,
    POLICIES,
    DocumentCategory,
    StorageServices,
)

__all__ = [
    "DocumentStorageService",
    "FolderLifecycleService",
    "DocumentCategory",
    "StorageServices",
    "LICENSES",
    "POLICIES",
    "DEFAULT_CATEGORIES",
]
