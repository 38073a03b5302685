"""Document storage error types.

Every failure of an object-store primitive is surfaced as one of the kinds
below. The underlying transport message is preserved verbatim in ``message``
and the original exception is chained as ``cause``. Nothing here retries.
"""

from __future__ import annotations

from collections.abc import Iterable


class DocumentStorageError(Exception):
    """Base exception for document storage operations.

    Attributes:
        message: Human-readable error message (transport message preserved).
        key: Object key associated with the operation (if applicable).
        cause: Underlying exception raised by the object store client.
    """

    kind = "STORAGE_ERROR"

    def __init__(
        self,
        message: str,
        *,
        key: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.key = key
        self.cause = cause

    def __str__(self) -> str:
        parts = [self.message]
        if self.key:
            parts.append(f"key={self.key}")
        return " ".join(parts)


class NotFound(DocumentStorageError):
    """Raised when an object is absent on read."""

    kind = "NOT_FOUND"

    def __init__(
        self,
        message: str = "Object not found",
        *,
        key: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, key=key, cause=cause)


class UploadFailure(DocumentStorageError):
    """Raised when a put to the object store fails."""

    kind = "STORAGE_UPLOAD_FAILED"


class DownloadFailure(DocumentStorageError):
    """Raised when a get or head fails for a reason other than absence."""

    kind = "STORAGE_DOWNLOAD_FAILED"


class PresignFailure(DocumentStorageError):
    """Raised when a presigned URL cannot be produced."""

    kind = "STORAGE_PRESIGN_FAILED"


class FolderOperationError(DocumentStorageError):
    """Failure inside a prefix-scoped, multi-object workflow.

    Multi-object workflows are fail-fast and never roll back, so the error
    records which keys had already been processed when the failure happened.

    Attributes:
        processed_keys: Keys completed before the failing call, in order.
    """

    def __init__(
        self,
        message: str,
        *,
        key: str | None = None,
        cause: BaseException | None = None,
        processed_keys: Iterable[str] = (),
    ) -> None:
        super().__init__(message, key=key, cause=cause)
        self.processed_keys: tuple[str, ...] = tuple(processed_keys)

    def with_progress(self, processed_keys: Iterable[str]) -> FolderOperationError:
        """Return a copy of this error carrying the given progress."""
        err = type(self)(
            self.message,
            key=self.key,
            cause=self.cause,
            processed_keys=processed_keys,
        )
        err.__cause__ = self.__cause__
        return err


class DeleteFailure(FolderOperationError):
    """Raised when a delete (single or batch) fails on transport/auth errors."""

    kind = "STORAGE_DELETE_FAILED"


class ListFailure(FolderOperationError):
    """Raised when listing a prefix fails."""

    kind = "STORAGE_LIST_FAILED"


class CopyFailure(FolderOperationError):
    """Raised when a server-side copy fails."""

    kind = "STORAGE_COPY_FAILED"


class InvalidKeyError(DocumentStorageError, ValueError):
    """Raised when a key segment would break the naming convention.

    Detects empty segments, path separators, NUL bytes and dot segments
    before any request reaches the object store.
    """

    kind = "INVALID_KEY"

    def __init__(
        self,
        message: str = "Invalid key segment",
        *,
        key: str | None = None,
    ) -> None:
        super().__init__(message, key=key)


class StorageConfigError(DocumentStorageError):
    """Raised when the storage configuration is incomplete or invalid."""

    kind = "STORAGE_CONFIG_ERROR"
