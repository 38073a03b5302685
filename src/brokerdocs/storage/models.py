"""Document storage data models.

Provides typed dataclasses for stored documents, listing pages and the
ephemeral results of folder workflows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class StoredDocument:
    """Descriptor of one uploaded file.

    The key is the identifier: ``file_id`` in external APIs is the key
    verbatim. Size and upload time are descriptive only and are not persisted
    by the storage layer.

    Attributes:
        key: Object store address, ``<category>/<owner_id>/<file_name>``.
        file_name: Name under which the blob is stored.
        mime_type: Content type supplied by the caller at upload time.
        display_url: Application route serving the file (not a store URL).
        size_bytes: Size of the uploaded content.
        uploaded_at: Time the upload completed.
    """

    key: str
    file_name: str
    mime_type: str
    display_url: str
    size_bytes: int | None = None
    uploaded_at: datetime | None = None

    @property
    def file_id(self) -> str:
        return self.key

    def to_dict(self) -> dict[str, str | int | None]:
        """Convert to dictionary for JSON serialization."""
        return {
            "file_id": self.key,
            "key": self.key,
            "file_name": self.file_name,
            "mime_type": self.mime_type,
            "display_url": self.display_url,
            "size_bytes": self.size_bytes,
            "uploaded_at": self.uploaded_at.isoformat() if self.uploaded_at else None,
        }


@dataclass(frozen=True)
class ObjectInfo:
    """Metadata of a stored object as reported by a head request.

    Attributes:
        key: Object key.
        size_bytes: Content length in bytes.
        content_type: MIME type recorded at upload time.
        last_modified: Last modification timestamp reported by the store.
        etag: Entity tag reported by the store, if any.
    """

    key: str
    size_bytes: int
    content_type: str
    last_modified: datetime | None = None
    etag: str | None = None


@dataclass(frozen=True)
class ListPage:
    """One page of a prefix listing.

    Attributes:
        keys: Keys in the order returned by the store.
        next_token: Continuation token, None when the listing is exhausted.
    """

    keys: tuple[str, ...]
    next_token: str | None = None


@dataclass
class FolderBackupOperation:
    """Result of copying an owner folder to a timestamped backup location.

    Not persisted; used for logging and troubleshooting.
    """

    source_prefix: str
    dest_prefix: str
    copied_keys: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "source_prefix": self.source_prefix,
            "dest_prefix": self.dest_prefix,
            "copied_keys": list(self.copied_keys),
        }


@dataclass
class FolderDeleteOperation:
    """Result of deleting every object under an owner folder."""

    source_prefix: str
    deleted_keys: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "source_prefix": self.source_prefix,
            "deleted_keys": list(self.deleted_keys),
        }
