"""Folder lifecycle service.

Prefix-scoped, multi-object workflows over one owner's folder:

    backup:  LIST -> (COPY)* -> DONE
    delete:  LIST -> (BATCH DELETE)* -> DONE

Listing follows continuation tokens until the store stops returning one, so
owners with more documents than a single list page are handled in full.

Both workflows are best-effort and fail-fast: the first failing call aborts
the loop, nothing is rolled back, and the raised FolderOperationError carries
the keys processed before the failure.

Ordering between backup and delete is the caller's obligation. The service
keeps no "already backed up" state; ``backup_and_delete_folder`` runs the two
in order for callers that want the whole record-removal sequence.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from brokerdocs.storage.errors import FolderOperationError
from brokerdocs.storage.gateway import MAX_DELETE_BATCH, ObjectStoreGateway
from brokerdocs.storage.keys import backup_prefix, owner_prefix, relative_key, validate_segment
from brokerdocs.storage.models import FolderBackupOperation, FolderDeleteOperation

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class FolderLifecycleService:
    """Backup and deletion of whole owner folders for one category."""

    def __init__(
        self,
        gateway: ObjectStoreGateway,
        *,
        category: str,
        clock: Callable[[], datetime] | None = None,
        delete_batch_size: int = MAX_DELETE_BATCH,
        category_scoped_backups: bool = True,
    ) -> None:
        """Initialize the service.

        Args:
            gateway: Object store gateway.
            category: Key namespace of the folders, e.g. "licenses".
            clock: Returns the current time; used for backup timestamps.
            delete_batch_size: Keys per batch delete call (1..1000).
            category_scoped_backups: Put backups under ``backups/<category>/``.
                False keeps the unscoped ``backups/<timestamp>/`` layout.
        """
        if not 1 <= delete_batch_size <= MAX_DELETE_BATCH:
            raise ValueError(f"delete_batch_size must be between 1 and {MAX_DELETE_BATCH}")
        self._gateway = gateway
        self.category = validate_segment(category, label="category")
        self._clock = clock or _utcnow
        self._delete_batch_size = delete_batch_size
        self._backup_namespace = self.category if category_scoped_backups else None

    async def list_folder(self, owner_id: str) -> list[str]:
        """Return every key under the owner's folder, in list order.

        Raises:
            ListFailure: If any list page cannot be fetched.
        """
        prefix = owner_prefix(self.category, owner_id)
        return [key async for key in self._gateway.iter_keys(prefix)]

    async def run_backup(self, owner_id: str) -> FolderBackupOperation:
        """Copy the owner's folder to a timestamped backup prefix.

        Returns:
            The operation record with every copied source key.

        Raises:
            ListFailure: If the folder cannot be enumerated.
            CopyFailure: On the first failing copy; ``processed_keys`` holds
                the keys already copied, which stay in the backup location.
        """
        source_prefix = owner_prefix(self.category, owner_id)
        operation = FolderBackupOperation(
            source_prefix=source_prefix,
            dest_prefix=backup_prefix(self._backup_namespace, owner_id, self._clock()),
        )

        keys = await self.list_folder(owner_id)
        if not keys:
            logger.warning(
                "No files to backup in %s",
                source_prefix,
                extra={"category": self.category, "owner_id": owner_id},
            )
            return operation

        for key in keys:
            dest_key = operation.dest_prefix + relative_key(key, source_prefix)
            try:
                await self._gateway.copy(key, dest_key)
            except FolderOperationError as e:
                logger.error(
                    "Folder backup aborted at %s after %d of %d copies: %s",
                    key,
                    len(operation.copied_keys),
                    len(keys),
                    e.message,
                )
                raise e.with_progress(operation.copied_keys) from e
            operation.copied_keys.append(key)
            logger.debug("Copied: %s -> %s", key, dest_key)

        logger.info(
            "Folder backup complete: %s (%d objects)",
            operation.dest_prefix,
            len(operation.copied_keys),
            extra={"category": self.category, "owner_id": owner_id},
        )
        return operation

    async def backup_folder(self, owner_id: str) -> str:
        """Back up the owner's folder and return the destination prefix.

        An owner with no documents is valid: the computed prefix is returned
        without any copy being issued.
        """
        operation = await self.run_backup(owner_id)
        return operation.dest_prefix

    async def run_delete(self, owner_id: str) -> FolderDeleteOperation:
        """Delete every object under the owner's folder.

        Keys are removed with batch deletes of at most ``delete_batch_size``
        keys, in list order.

        Raises:
            ListFailure: If the folder cannot be enumerated.
            DeleteFailure: On the first failing batch; ``processed_keys`` holds
                the keys already deleted, which are not re-created.
        """
        source_prefix = owner_prefix(self.category, owner_id)
        operation = FolderDeleteOperation(source_prefix=source_prefix)

        keys = await self.list_folder(owner_id)
        if not keys:
            logger.warning(
                "No files to delete in %s",
                source_prefix,
                extra={"category": self.category, "owner_id": owner_id},
            )
            return operation

        for start in range(0, len(keys), self._delete_batch_size):
            batch = keys[start : start + self._delete_batch_size]
            try:
                deleted = await self._gateway.delete_many(batch)
            except FolderOperationError as e:
                progress = operation.deleted_keys + list(e.processed_keys)
                logger.error(
                    "Folder delete aborted after %d of %d deletes: %s",
                    len(progress),
                    len(keys),
                    e.message,
                )
                raise e.with_progress(progress) from e
            operation.deleted_keys.extend(deleted)
            logger.debug("Deleted batch of %d keys under %s", len(deleted), source_prefix)

        logger.info(
            "Folder deleted: %s (%d objects)",
            source_prefix,
            len(operation.deleted_keys),
            extra={"category": self.category, "owner_id": owner_id},
        )
        return operation

    async def delete_folder(self, owner_id: str) -> None:
        """Delete the owner's folder; an empty folder is a no-op."""
        await self.run_delete(owner_id)

    async def backup_and_delete_folder(self, owner_id: str) -> str:
        """Back up the owner's folder, then delete it.

        Deletion is only attempted once the backup has completed; any backup
        failure propagates and leaves the folder untouched.

        Returns:
            The backup destination prefix.
        """
        dest_prefix = await self.backup_folder(owner_id)
        await self.delete_folder(owner_id)
        return dest_prefix
