"""Folder administration routes.

Used by record-deletion workflows that run over HTTP:
- POST   /api/v1/folders/{category}/{owner_id}/backup  (copy folder to backups/)
- DELETE /api/v1/folders/{category}/{owner_id}         (delete folder contents)

Backup must be called before delete for the same owner; neither route checks
that it was. A failure partway returns 500 with ``processed_keys`` in the
error details.
"""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel

from brokerdocs.api.dependencies import RequireStorageServices
from brokerdocs.api.errors import ApiHttpError
from brokerdocs.services.folders import FolderLifecycleService
from brokerdocs.services.registry import StorageServices

router = APIRouter(prefix="/api/v1/folders", tags=["Folders"])


class FolderBackupResponse(BaseModel):
    source_prefix: str
    dest_prefix: str
    copied_keys: list[str]


class FolderDeleteResponse(BaseModel):
    source_prefix: str
    deleted_keys: list[str]


def _folders(services: StorageServices, category: str) -> FolderLifecycleService:
    entry = services.get(category)
    if entry is None:
        raise ApiHttpError(
            status_code=404,
            code="NOT_FOUND",
            message=f"Unknown document category: {category}",
        )
    return entry.folders


@router.post("/{category}/{owner_id}/backup", response_model=FolderBackupResponse)
async def backup_folder(
    category: str, owner_id: str, services: RequireStorageServices
) -> FolderBackupResponse:
    """Copy every file of the owner to a timestamped backup prefix."""
    operation = await _folders(services, category).run_backup(owner_id)
    return FolderBackupResponse.model_validate(operation.to_dict())


@router.delete("/{category}/{owner_id}", response_model=FolderDeleteResponse)
async def delete_folder(
    category: str, owner_id: str, services: RequireStorageServices
) -> FolderDeleteResponse:
    """Delete every file of the owner."""
    operation = await _folders(services, category).run_delete(owner_id)
    return FolderDeleteResponse.model_validate(operation.to_dict())
