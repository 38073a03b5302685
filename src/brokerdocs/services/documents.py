"""Document storage service.

Owns the key naming convention of one document category (``licenses``,
``policies``) and per-document operations: upload, download, signed URLs,
delete. Keys are ``<category>/<owner_id>/<file_name>`` where ``owner_id`` is
the parent record's business identifier (license or policy number).

The service performs no retries and no local recovery: every object store
failure reaches the caller as a typed DocumentStorageError.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from urllib.parse import quote

from brokerdocs.config import DEFAULT_PRESIGN_TTL_SECONDS, MAX_PRESIGN_TTL_SECONDS
from brokerdocs.storage.errors import NotFound, PresignFailure
from brokerdocs.storage.gateway import ObjectStoreGateway
from brokerdocs.storage.keys import document_key, owner_prefix, relative_key, validate_segment
from brokerdocs.storage.models import ObjectInfo, StoredDocument

logger = logging.getLogger(__name__)


def content_disposition(disposition: str, file_name: str) -> str:
    """Build a Content-Disposition value safe for any file name.

    Non-ASCII names get an RFC 5987 ``filename*`` parameter next to an ASCII
    ``filename`` fallback. Double quotes are dropped from the fallback.
    """
    ascii_name = file_name.encode("ascii", "replace").decode("ascii").replace('"', "")
    value = f'{disposition}; filename="{ascii_name}"'
    if ascii_name != file_name.replace('"', ""):
        value += f"; filename*=UTF-8''{quote(file_name)}"
    return value


class DocumentStorageService:
    """Per-document operations for one category of stored documents.

    Attributes:
        category: Fixed key namespace, e.g. "licenses".
        display_route: Application route template with ``{owner_id}`` and
            ``{file_name}`` placeholders used to build display URLs.
    """

    def __init__(
        self,
        gateway: ObjectStoreGateway,
        *,
        category: str,
        display_route: str,
        default_ttl_seconds: int = DEFAULT_PRESIGN_TTL_SECONDS,
    ) -> None:
        self._gateway = gateway
        self.category = validate_segment(category, label="category")
        self.display_route = display_route
        self.default_ttl_seconds = default_ttl_seconds

    def key_for(self, owner_id: str, file_name: str) -> str:
        """Return the key a document of ``owner_id`` named ``file_name`` lives at."""
        return document_key(self.category, owner_id, file_name)

    def display_url_for(self, owner_id: str, file_name: str) -> str:
        return self.display_route.format(owner_id=owner_id, file_name=file_name)

    async def upload(
        self,
        content: bytes,
        file_name: str,
        mime_type: str,
        owner_id: str,
    ) -> StoredDocument:
        """Store a document under its owner's folder.

        The caller is responsible for file name uniqueness per owner: an
        existing object under the same key is silently overwritten.

        Args:
            content: Raw bytes of the file.
            file_name: Name to store the file under.
            mime_type: Content type, trusted as supplied.
            owner_id: Business identifier of the owning record.

        Returns:
            StoredDocument descriptor including the display URL.

        Raises:
            InvalidKeyError: If owner_id or file_name is not a single segment.
            UploadFailure: If the object store rejects the write.
        """
        key = self.key_for(owner_id, file_name)
        await self._gateway.put(key, content, content_type=mime_type)

        logger.info(
            "Document uploaded: key=%s size=%d",
            key,
            len(content),
            extra={"category": self.category, "owner_id": owner_id},
        )

        return StoredDocument(
            key=key,
            file_name=file_name,
            mime_type=mime_type,
            display_url=self.display_url_for(owner_id, file_name),
            size_bytes=len(content),
            uploaded_at=datetime.now(UTC),
        )

    async def download(self, key: str) -> bytes:
        """Fetch a document's bytes exactly as stored.

        Raises:
            NotFound: If no object exists under the key.
            DownloadFailure: On any other object store error.
        """
        return await self._gateway.get(key)

    async def presign(self, key: str, ttl_seconds: int | None = None) -> str:
        """Issue a read-only URL for one object, valid for ``ttl_seconds``.

        Raises:
            PresignFailure: If the lifetime is out of range or signing fails.
        """
        ttl = self._checked_ttl(key, ttl_seconds)
        return await self._gateway.presign(key, ttl)

    async def download_url(
        self,
        key: str,
        download_name: str | None = None,
        ttl_seconds: int | None = None,
    ) -> str:
        """Issue a signed URL that makes browsers save the file.

        The response carries ``Content-Disposition: attachment`` with
        ``download_name`` (defaults to the stored file name).
        """
        ttl = self._checked_ttl(key, ttl_seconds)
        name = download_name or key.rsplit("/", 1)[-1]
        return await self._gateway.presign(
            key,
            ttl,
            response_content_disposition=content_disposition("attachment", name),
        )

    async def delete(self, key: str) -> None:
        """Delete one document. Deleting an absent key succeeds.

        Raises:
            DeleteFailure: On transport or authorization errors only.
        """
        await self._gateway.delete(key)
        logger.info("Document deleted: key=%s", key, extra={"category": self.category})

    async def exists(self, key: str) -> bool:
        """Return True if an object is stored under ``key``."""
        try:
            await self._gateway.head(key)
        except NotFound:
            return False
        return True

    async def get_metadata(self, key: str) -> ObjectInfo:
        """Return size, content type and modification time of one object."""
        return await self._gateway.head(key)

    async def list_files(self, owner_id: str) -> list[str]:
        """Return the names of every file stored for ``owner_id``."""
        prefix = owner_prefix(self.category, owner_id)
        return [relative_key(key, prefix) async for key in self._gateway.iter_keys(prefix)]

    def _checked_ttl(self, key: str, ttl_seconds: int | None) -> int:
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        if not 0 < ttl <= MAX_PRESIGN_TTL_SECONDS:
            raise PresignFailure(
                f"ttl_seconds must be between 1 and {MAX_PRESIGN_TTL_SECONDS}, got {ttl}",
                key=key,
            )
        return ttl
