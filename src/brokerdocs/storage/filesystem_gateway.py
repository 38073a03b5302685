"""Filesystem object store gateway.

Local development backend with the same contract as the S3 gateway:
- Lexicographic key listing with a page cap and continuation tokens
- Idempotent delete and batch delete
- Server-side style copy
- Time-boxed ``file://`` URLs in place of presigned URLs (not enforced)

Objects are stored in a flat directory structure:
    {base_dir}/{bucket}/
        {safe_key}_{key_hash}.data       # content
        {safe_key}_{key_hash}.meta.json  # key, content type, size, sha256

Keys are hashed into file names, so a key can never resolve outside the
bucket directory.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import re
import time
import uuid
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from urllib.parse import urlencode

from brokerdocs.config import StorageConfig
from brokerdocs.storage.errors import (
    CopyFailure,
    DeleteFailure,
    DownloadFailure,
    InvalidKeyError,
    ListFailure,
    NotFound,
    PresignFailure,
    UploadFailure,
)
from brokerdocs.storage.gateway import MAX_DELETE_BATCH, ObjectStoreGateway
from brokerdocs.storage.models import ListPage, ObjectInfo
from brokerdocs.storage.tracing import traced_storage_operation

logger = logging.getLogger(__name__)

_METADATA_SUFFIX = ".meta.json"
_CONTENT_SUFFIX = ".data"


def _validate_key(key: str) -> None:
    """Reject keys no S3-compatible store would accept."""
    if not key or "\x00" in key or key.startswith("/"):
        raise InvalidKeyError(message="Invalid object key", key=key)


def _object_stem(key: str) -> str:
    key_hash = hashlib.sha256(key.encode("utf-8")).hexdigest()[:16]
    safe_key = re.sub(r"[^a-zA-Z0-9_\-]", "_", key)[:64]
    return f"{safe_key}_{key_hash}"


class FilesystemObjectStoreGateway(ObjectStoreGateway):
    """Filesystem-based object store gateway for development."""

    def __init__(self, config: StorageConfig) -> None:
        """Initialize filesystem storage.

        Args:
            config: Storage configuration; ``base_dir`` and ``bucket`` select
                the directory, ``list_page_size`` caps list responses.
        """
        self._config = config
        self._root = (config.resolved_base_dir() / config.bucket).resolve()
        logger.debug("FilesystemObjectStoreGateway initialized with root=%s", self._root)

    @property
    def backend_name(self) -> str:
        """Return the backend identifier."""
        return "filesystem"

    @property
    def page_size(self) -> int:
        return self._config.list_page_size

    @property
    def root(self) -> Path:
        """Return the bucket directory path."""
        return self._root

    def _paths(self, key: str) -> tuple[Path, Path]:
        _validate_key(key)
        stem = _object_stem(key)
        return self._root / f"{stem}{_CONTENT_SUFFIX}", self._root / f"{stem}{_METADATA_SUFFIX}"

    @staticmethod
    def _write_atomic(path: Path, data: bytes) -> None:
        tmp_file = path.with_name(f"{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            tmp_file.write_bytes(data)
            tmp_file.replace(path)
        finally:
            tmp_file.unlink(missing_ok=True)

    def _read_meta(self, meta_file: Path) -> dict[str, Any] | None:
        try:
            data: dict[str, Any] = json.loads(meta_file.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        return data

    def _put_sync(self, key: str, data: bytes, content_type: str) -> None:
        content_file, meta_file = self._paths(key)
        self._root.mkdir(parents=True, exist_ok=True)
        meta = {
            "key": key,
            "content_type": content_type,
            "size_bytes": len(data),
            "sha256": hashlib.sha256(data).hexdigest(),
            "last_modified": datetime.now(UTC).isoformat(),
        }
        self._write_atomic(content_file, data)
        self._write_atomic(meta_file, json.dumps(meta, indent=2).encode("utf-8"))

    @traced_storage_operation("put")
    async def put(self, key: str, data: bytes, *, content_type: str) -> None:
        """Store an object."""
        try:
            await asyncio.to_thread(self._put_sync, key, data, content_type)
        except OSError as e:
            raise UploadFailure(f"Failed to write object: {e}", key=key, cause=e) from e
        logger.debug("Stored object: key=%s size=%d", key, len(data))

    @traced_storage_operation("get")
    async def get(self, key: str) -> bytes:
        """Retrieve an object."""
        content_file, _ = self._paths(key)
        try:
            return await asyncio.to_thread(content_file.read_bytes)
        except FileNotFoundError as e:
            raise NotFound(key=key, cause=e) from e
        except OSError as e:
            raise DownloadFailure(f"Failed to read object: {e}", key=key, cause=e) from e

    @traced_storage_operation("head")
    async def head(self, key: str) -> ObjectInfo:
        """Get object metadata without retrieving content."""
        _, meta_file = self._paths(key)
        try:
            meta = await asyncio.to_thread(self._read_meta, meta_file)
        except (OSError, json.JSONDecodeError) as e:
            raise DownloadFailure(f"Failed to read metadata: {e}", key=key, cause=e) from e
        if meta is None:
            raise NotFound(key=key)

        return ObjectInfo(
            key=key,
            size_bytes=int(meta.get("size_bytes", 0)),
            content_type=str(meta.get("content_type") or "application/octet-stream"),
            last_modified=datetime.fromisoformat(meta["last_modified"])
            if meta.get("last_modified")
            else None,
            etag=meta.get("sha256"),
        )

    def _delete_sync(self, key: str) -> None:
        content_file, meta_file = self._paths(key)
        meta_file.unlink(missing_ok=True)
        content_file.unlink(missing_ok=True)

    @traced_storage_operation("delete")
    async def delete(self, key: str) -> None:
        """Delete an object; an absent key is not an error."""
        try:
            await asyncio.to_thread(self._delete_sync, key)
        except OSError as e:
            raise DeleteFailure(f"Failed to delete object: {e}", key=key, cause=e) from e

    @traced_storage_operation("delete_many")
    async def delete_many(self, keys: Sequence[str]) -> list[str]:
        """Delete a batch of objects, stopping at the first failure."""
        if len(keys) > MAX_DELETE_BATCH:
            raise ValueError(f"At most {MAX_DELETE_BATCH} keys per batch, got {len(keys)}")

        deleted: list[str] = []
        for key in keys:
            try:
                await asyncio.to_thread(self._delete_sync, key)
            except OSError as e:
                raise DeleteFailure(
                    f"Failed to delete object: {e}",
                    key=key,
                    cause=e,
                    processed_keys=deleted,
                ) from e
            deleted.append(key)
        return deleted

    def _list_sync(self, prefix: str, start_after: str | None) -> ListPage:
        if not self._root.exists():
            return ListPage(keys=())

        keys: list[str] = []
        for meta_file in self._root.glob(f"*{_METADATA_SUFFIX}"):
            meta = self._read_meta(meta_file)
            if meta is None:
                continue
            key = str(meta["key"])
            if key.startswith(prefix) and (start_after is None or key > start_after):
                keys.append(key)

        keys.sort()
        page = keys[: self.page_size]
        next_token = page[-1] if len(keys) > len(page) else None
        return ListPage(keys=tuple(page), next_token=next_token)

    @traced_storage_operation("list_page")
    async def list_page(
        self,
        prefix: str,
        *,
        continuation_token: str | None = None,
    ) -> ListPage:
        """List one page of keys in lexicographic order.

        The continuation token is the last key of the previous page.
        """
        try:
            return await asyncio.to_thread(self._list_sync, prefix, continuation_token)
        except (OSError, json.JSONDecodeError) as e:
            raise ListFailure(f"Failed to list objects: {e}", key=prefix, cause=e) from e

    def _copy_sync(self, source_key: str, dest_key: str) -> None:
        source_content, source_meta = self._paths(source_key)
        meta = self._read_meta(source_meta)
        if meta is None:
            raise FileNotFoundError(f"No such key: {source_key}")
        self._put_sync(dest_key, source_content.read_bytes(), str(meta["content_type"]))

    @traced_storage_operation("copy")
    async def copy(self, source_key: str, dest_key: str) -> None:
        """Copy an object to a new key."""
        try:
            await asyncio.to_thread(self._copy_sync, source_key, dest_key)
        except OSError as e:
            raise CopyFailure(f"Failed to copy object: {e}", key=source_key, cause=e) from e

    @traced_storage_operation("presign")
    async def presign(
        self,
        key: str,
        ttl_seconds: int,
        *,
        response_content_disposition: str | None = None,
    ) -> str:
        """Return a ``file://`` URL carrying its expiry time."""
        if ttl_seconds <= 0:
            raise PresignFailure("ttl_seconds must be positive", key=key)
        try:
            content_file, _ = self._paths(key)
        except InvalidKeyError as e:
            raise PresignFailure(e.message, key=key, cause=e) from e

        query: dict[str, str] = {"expires": str(int(time.time()) + ttl_seconds)}
        if response_content_disposition:
            query["response-content-disposition"] = response_content_disposition
        return f"{content_file.as_uri()}?{urlencode(query)}"
