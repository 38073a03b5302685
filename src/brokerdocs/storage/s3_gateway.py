"""S3-compatible object store gateway.

Wraps a boto3 S3 client. Works against Cloudflare R2, MinIO and AWS S3
through the configured endpoint URL. boto3 is blocking, so every call runs
in a worker thread via ``asyncio.to_thread`` and the event loop is never
blocked on the network.

The boto3 client is created once per gateway from an explicit StorageConfig;
boto3 clients are thread-safe and the gateway holds no other state.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from brokerdocs.config import StorageConfig
from brokerdocs.storage.errors import (
    CopyFailure,
    DeleteFailure,
    DownloadFailure,
    ListFailure,
    NotFound,
    PresignFailure,
    StorageConfigError,
    UploadFailure,
)
from brokerdocs.storage.gateway import MAX_DELETE_BATCH, ObjectStoreGateway
from brokerdocs.storage.models import ListPage, ObjectInfo
from brokerdocs.storage.tracing import traced_storage_operation

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = frozenset({"NoSuchKey", "NotFound", "404"})
_STREAM_CHUNK_SIZE = 64 * 1024


def _error_code(e: ClientError) -> str:
    return str(e.response.get("Error", {}).get("Code", ""))


def _is_not_found(e: Exception) -> bool:
    return isinstance(e, ClientError) and _error_code(e) in _NOT_FOUND_CODES


def create_s3_client(config: StorageConfig) -> Any:
    """Create a boto3 S3 client from an explicit configuration.

    Credentials left unset fall back to the standard boto3 credential chain
    (environment, shared config, instance role).
    """
    client_config: dict[str, Any] = {
        "service_name": "s3",
        "region_name": config.region,
        "config": Config(
            signature_version="s3v4",
            connect_timeout=config.connect_timeout,
            read_timeout=config.read_timeout,
        ),
    }
    if config.endpoint_url:
        client_config["endpoint_url"] = config.endpoint_url
    if config.access_key_id and config.secret_access_key:
        client_config["aws_access_key_id"] = config.access_key_id
        client_config["aws_secret_access_key"] = config.secret_access_key

    try:
        return boto3.client(**client_config)
    except BotoCoreError as e:
        raise StorageConfigError(f"Failed to initialize S3 client: {e}", cause=e) from e


class S3ObjectStoreGateway(ObjectStoreGateway):
    """Object store gateway backed by an S3-compatible service."""

    def __init__(self, config: StorageConfig, *, client: Any | None = None) -> None:
        """Initialize the gateway.

        Args:
            config: Storage configuration (bucket, region, credentials).
            client: Optional pre-built boto3 S3 client (tests use a stubbed one).
        """
        self._config = config
        self._bucket = config.bucket
        self._client = client if client is not None else create_s3_client(config)
        logger.info(
            "S3ObjectStoreGateway initialized with bucket=%s endpoint=%s",
            self._bucket,
            config.endpoint_url or "AWS S3 default",
        )

    @property
    def backend_name(self) -> str:
        """Return the backend identifier."""
        return "s3"

    @property
    def page_size(self) -> int:
        return self._config.list_page_size

    @property
    def bucket(self) -> str:
        return self._bucket

    @traced_storage_operation("put")
    async def put(self, key: str, data: bytes, *, content_type: str) -> None:
        """Store an object."""
        try:
            await asyncio.to_thread(
                self._client.put_object,
                Bucket=self._bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            raise UploadFailure(str(e), key=key, cause=e) from e

    def _read_body(self, key: str) -> bytes:
        response = self._client.get_object(Bucket=self._bucket, Key=key)
        body = response.get("Body")
        if body is None:
            raise NotFound("Object has no body", key=key)
        chunks: list[bytes] = []
        try:
            for chunk in body.iter_chunks(chunk_size=_STREAM_CHUNK_SIZE):
                chunks.append(chunk)
        finally:
            body.close()
        return b"".join(chunks)

    @traced_storage_operation("get")
    async def get(self, key: str) -> bytes:
        """Fetch an object, concatenating the streamed body."""
        try:
            return await asyncio.to_thread(self._read_body, key)
        except (ClientError, BotoCoreError) as e:
            if _is_not_found(e):
                raise NotFound(str(e), key=key, cause=e) from e
            raise DownloadFailure(str(e), key=key, cause=e) from e

    @traced_storage_operation("head")
    async def head(self, key: str) -> ObjectInfo:
        """Fetch object metadata."""
        try:
            response = await asyncio.to_thread(
                self._client.head_object, Bucket=self._bucket, Key=key
            )
        except (ClientError, BotoCoreError) as e:
            if _is_not_found(e):
                raise NotFound(str(e), key=key, cause=e) from e
            raise DownloadFailure(str(e), key=key, cause=e) from e

        return ObjectInfo(
            key=key,
            size_bytes=int(response.get("ContentLength") or 0),
            content_type=response.get("ContentType") or "application/octet-stream",
            last_modified=response.get("LastModified"),
            etag=response.get("ETag"),
        )

    @traced_storage_operation("delete")
    async def delete(self, key: str) -> None:
        """Delete one object; S3 treats an absent key as success."""
        try:
            await asyncio.to_thread(self._client.delete_object, Bucket=self._bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            if _is_not_found(e):
                return
            raise DeleteFailure(str(e), key=key, cause=e) from e

    @traced_storage_operation("delete_many")
    async def delete_many(self, keys: Sequence[str]) -> list[str]:
        """Delete a batch of objects with a single DeleteObjects call."""
        if not keys:
            return []
        if len(keys) > MAX_DELETE_BATCH:
            raise ValueError(f"At most {MAX_DELETE_BATCH} keys per batch, got {len(keys)}")

        try:
            response = await asyncio.to_thread(
                self._client.delete_objects,
                Bucket=self._bucket,
                Delete={"Objects": [{"Key": k} for k in keys], "Quiet": False},
            )
        except (ClientError, BotoCoreError) as e:
            raise DeleteFailure(str(e), key=keys[0], cause=e) from e

        deleted = {item.get("Key") for item in response.get("Deleted", [])}
        errors = response.get("Errors", [])
        processed = [k for k in keys if k in deleted]
        if errors:
            first = errors[0]
            raise DeleteFailure(
                f"{first.get('Code', 'Error')}: {first.get('Message', 'batch delete failed')}",
                key=first.get("Key"),
                processed_keys=processed,
            )
        return processed

    @traced_storage_operation("list_page")
    async def list_page(
        self,
        prefix: str,
        *,
        continuation_token: str | None = None,
    ) -> ListPage:
        """List one page of keys under a prefix."""
        params: dict[str, Any] = {
            "Bucket": self._bucket,
            "Prefix": prefix,
            "MaxKeys": self.page_size,
        }
        if continuation_token:
            params["ContinuationToken"] = continuation_token

        try:
            response = await asyncio.to_thread(self._client.list_objects_v2, **params)
        except (ClientError, BotoCoreError) as e:
            raise ListFailure(str(e), key=prefix, cause=e) from e

        keys = tuple(obj["Key"] for obj in response.get("Contents", []) if obj.get("Key"))
        next_token = response.get("NextContinuationToken") if response.get("IsTruncated") else None
        return ListPage(keys=keys, next_token=next_token)

    @traced_storage_operation("copy")
    async def copy(self, source_key: str, dest_key: str) -> None:
        """Server-side copy within the bucket."""
        try:
            await asyncio.to_thread(
                self._client.copy_object,
                Bucket=self._bucket,
                CopySource={"Bucket": self._bucket, "Key": source_key},
                Key=dest_key,
            )
        except (ClientError, BotoCoreError) as e:
            raise CopyFailure(str(e), key=source_key, cause=e) from e

    @traced_storage_operation("presign")
    async def presign(
        self,
        key: str,
        ttl_seconds: int,
        *,
        response_content_disposition: str | None = None,
    ) -> str:
        """Issue a presigned GET URL."""
        params: dict[str, Any] = {"Bucket": self._bucket, "Key": key}
        if response_content_disposition:
            params["ResponseContentDisposition"] = response_content_disposition

        try:
            url: str = await asyncio.to_thread(
                self._client.generate_presigned_url,
                ClientMethod="get_object",
                Params=params,
                ExpiresIn=ttl_seconds,
                HttpMethod="GET",
            )
        except (ClientError, BotoCoreError, ValueError) as e:
            raise PresignFailure(str(e), key=key, cause=e) from e
        return url
