"""Object store gateway interface.

Provides the ObjectStoreGateway base class that all storage backends must
implement: a thin, stateless client to an S3-compatible store with no
business logic of its own.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence

from brokerdocs.storage.models import ListPage, ObjectInfo

MAX_DELETE_BATCH = 1000


class ObjectStoreGateway(ABC):
    """Abstract base class for object store backends.

    Every primitive is a coroutine and a suspension point. Implementations
    hold only immutable configuration and are safe for concurrent use by
    multiple in-flight requests.

    Implementations:
    - S3ObjectStoreGateway: S3-compatible stores (R2, MinIO, AWS S3)
    - FilesystemObjectStoreGateway: Local filesystem (dev)
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the backend identifier for observability."""
        ...

    @property
    @abstractmethod
    def page_size(self) -> int:
        """Return the maximum number of keys a single list call returns."""
        ...

    @abstractmethod
    async def put(self, key: str, data: bytes, *, content_type: str) -> None:
        """Store an object, overwriting any object under the same key.

        Raises:
            UploadFailure: If the backend cannot complete the write.
        """
        ...

    @abstractmethod
    async def get(self, key: str) -> bytes:
        """Fetch an object body, byte-identical to what was stored.

        Raises:
            NotFound: If no object exists under the key.
            DownloadFailure: On any other backend error.
        """
        ...

    @abstractmethod
    async def head(self, key: str) -> ObjectInfo:
        """Fetch object metadata without the body.

        Raises:
            NotFound: If no object exists under the key.
            DownloadFailure: On any other backend error.
        """
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete one object. Deleting an absent key is not an error.

        Raises:
            DeleteFailure: On transport or authorization errors.
        """
        ...

    @abstractmethod
    async def delete_many(self, keys: Sequence[str]) -> list[str]:
        """Delete up to MAX_DELETE_BATCH objects in one call.

        Returns:
            The keys deleted, in request order.

        Raises:
            DeleteFailure: If the call fails or any key could not be deleted;
                ``processed_keys`` lists the keys that were deleted.
        """
        ...

    @abstractmethod
    async def list_page(
        self,
        prefix: str,
        *,
        continuation_token: str | None = None,
    ) -> ListPage:
        """List one page of keys under a prefix.

        Raises:
            ListFailure: If the backend cannot complete the listing.
        """
        ...

    @abstractmethod
    async def copy(self, source_key: str, dest_key: str) -> None:
        """Server-side copy of one object within the bucket.

        Raises:
            CopyFailure: If the copy fails, including an absent source.
        """
        ...

    @abstractmethod
    async def presign(
        self,
        key: str,
        ttl_seconds: int,
        *,
        response_content_disposition: str | None = None,
    ) -> str:
        """Issue a time-boxed URL granting read access to one object.

        There is no revocation: the URL stays valid until it expires.

        Raises:
            PresignFailure: If signing fails.
        """
        ...

    async def iter_keys(self, prefix: str) -> AsyncIterator[str]:
        """Yield every key under a prefix, following continuation tokens.

        A single list response is capped (commonly at 1000 keys); this keeps
        requesting pages until the store stops returning a token.
        """
        token: str | None = None
        while True:
            page = await self.list_page(prefix, continuation_token=token)
            for key in page.keys:
                yield key
            if page.next_token is None:
                return
            token = page.next_token
