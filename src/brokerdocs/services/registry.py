"""Document categories and their service pairs.

Each category owns a key namespace, an application route that serves its
files, and one DocumentStorageService / FolderLifecycleService pair built on
a shared gateway.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime

from brokerdocs.services.documents import DocumentStorageService
from brokerdocs.services.folders import FolderLifecycleService
from brokerdocs.storage.gateway import ObjectStoreGateway


@dataclass(frozen=True)
class DocumentCategory:
    """A key namespace together with the route that serves its files."""

    name: str
    route_prefix: str
    category_scoped_backups: bool = True

    @property
    def display_route(self) -> str:
        return self.route_prefix + "/{owner_id}/{file_name}"


LICENSES = DocumentCategory(name="licenses", route_prefix="/api/v1/licenses/files")
POLICIES = DocumentCategory(
    name="policies", route_prefix="/api/v1/files", category_scoped_backups=False
)

DEFAULT_CATEGORIES: tuple[DocumentCategory, ...] = (LICENSES, POLICIES)


@dataclass(frozen=True)
class CategoryServices:
    category: DocumentCategory
    documents: DocumentStorageService
    folders: FolderLifecycleService


class StorageServices:
    """Lookup of service pairs by category name."""

    def __init__(
        self,
        gateway: ObjectStoreGateway,
        categories: Iterable[DocumentCategory] = DEFAULT_CATEGORIES,
        *,
        default_ttl_seconds: int = 3600,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.gateway = gateway
        self._by_name: dict[str, CategoryServices] = {}
        for category in categories:
            self._by_name[category.name] = CategoryServices(
                category=category,
                documents=DocumentStorageService(
                    gateway,
                    category=category.name,
                    display_route=category.display_route,
                    default_ttl_seconds=default_ttl_seconds,
                ),
                folders=FolderLifecycleService(
                    gateway,
                    category=category.name,
                    clock=clock,
                    category_scoped_backups=category.category_scoped_backups,
                ),
            )

    @property
    def categories(self) -> list[DocumentCategory]:
        return [entry.category for entry in self._by_name.values()]

    def get(self, name: str) -> CategoryServices | None:
        return self._by_name.get(name)

    def documents(self, name: str) -> DocumentStorageService:
        return self._require(name).documents

    def folders(self, name: str) -> FolderLifecycleService:
        return self._require(name).folders

    def _require(self, name: str) -> CategoryServices:
        entry = self._by_name.get(name)
        if entry is None:
            raise KeyError(f"Unknown document category: {name}")
        return entry
