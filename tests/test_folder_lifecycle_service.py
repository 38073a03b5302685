"""Tests for FolderLifecycleService.

Covers:
- Backup completeness and byte identity
- Folder deletion completeness
- Empty folders are no-ops
- Pagination beyond a single list page (1500 objects, 1000 cap)
- Partial failure: fail-fast, no rollback, processed keys reported
- The full upload -> backup -> delete scenario for one license
"""

from __future__ import annotations

from typing import Any

import pytest

from brokerdocs.services.folders import FolderLifecycleService
from brokerdocs.services.registry import StorageServices
from brokerdocs.storage.errors import CopyFailure, DeleteFailure, ListFailure, NotFound

BACKUP_PREFIX = "backups/licenses/2024-05-01T09-30-00-000Z/LIC-100/"


@pytest.fixture
def folders(services: StorageServices) -> FolderLifecycleService:
    return services.folders("licenses")


def _seed_owner(gateway: Any, owner_id: str, count: int) -> list[str]:
    keys = [f"licenses/{owner_id}/doc-{i:04d}.pdf" for i in range(count)]
    for i, key in enumerate(keys):
        gateway.seed(key, f"content-{i}".encode())
    return keys


class TestBackup:
    async def test_backup_copies_every_object(
        self, folders: FolderLifecycleService, gateway: Any
    ) -> None:
        keys = _seed_owner(gateway, "LIC-100", 3)

        operation = await folders.run_backup("LIC-100")

        assert operation.source_prefix == "licenses/LIC-100/"
        assert operation.dest_prefix == BACKUP_PREFIX
        assert operation.copied_keys == keys
        backups = gateway.keys_under(BACKUP_PREFIX)
        assert len(backups) == 3
        for key in keys:
            backup_key = BACKUP_PREFIX + key.rsplit("/", 1)[-1]
            assert gateway.objects[backup_key] == gateway.objects[key]

    async def test_backup_leaves_source_untouched(
        self, folders: FolderLifecycleService, gateway: Any
    ) -> None:
        keys = _seed_owner(gateway, "LIC-100", 2)
        await folders.backup_folder("LIC-100")
        assert gateway.keys_under("licenses/LIC-100/") == keys

    async def test_backup_folder_returns_dest_prefix(self, folders: FolderLifecycleService) -> None:
        assert await folders.backup_folder("LIC-100") == BACKUP_PREFIX

    async def test_empty_folder_issues_no_copy(
        self, folders: FolderLifecycleService, gateway: Any
    ) -> None:
        operation = await folders.run_backup("LIC-100")

        assert operation.copied_keys == []
        assert gateway.count("copy") == 0

    async def test_prefix_does_not_match_longer_owner_ids(
        self, folders: FolderLifecycleService, gateway: Any
    ) -> None:
        _seed_owner(gateway, "LIC-100", 1)
        _seed_owner(gateway, "LIC-1000", 2)

        operation = await folders.run_backup("LIC-100")
        assert operation.copied_keys == ["licenses/LIC-100/doc-0000.pdf"]

    async def test_copy_failure_stops_and_reports_progress(
        self, folders: FolderLifecycleService, gateway: Any
    ) -> None:
        keys = _seed_owner(gateway, "LIC-100", 5)
        gateway.fail_copy.add(keys[2])

        with pytest.raises(CopyFailure) as exc_info:
            await folders.run_backup("LIC-100")

        err = exc_info.value
        assert err.key == keys[2]
        assert err.processed_keys == tuple(keys[:2])
        assert isinstance(err.__cause__, CopyFailure)
        # fail-fast: nothing after the failing key is attempted
        assert gateway.count("copy") == 3
        # no rollback: completed copies remain
        assert len(gateway.keys_under(BACKUP_PREFIX)) == 2

    async def test_list_failure_propagates(
        self, folders: FolderLifecycleService, gateway: Any
    ) -> None:
        _seed_owner(gateway, "LIC-100", 2)
        gateway.fail_list_after = 0

        with pytest.raises(ListFailure):
            await folders.run_backup("LIC-100")
        assert gateway.count("copy") == 0


class TestDelete:
    async def test_delete_removes_every_object(
        self, folders: FolderLifecycleService, gateway: Any
    ) -> None:
        keys = _seed_owner(gateway, "LIC-100", 4)

        operation = await folders.run_delete("LIC-100")

        assert operation.deleted_keys == keys
        assert await folders.list_folder("LIC-100") == []

    async def test_delete_only_touches_owner(
        self, folders: FolderLifecycleService, gateway: Any
    ) -> None:
        _seed_owner(gateway, "LIC-100", 2)
        other = _seed_owner(gateway, "LIC-200", 2)

        await folders.delete_folder("LIC-100")

        assert gateway.keys_under("licenses/LIC-200/") == other

    async def test_empty_folder_is_noop(
        self, folders: FolderLifecycleService, gateway: Any
    ) -> None:
        await folders.delete_folder("LIC-100")
        assert gateway.count("delete_many") == 0

    async def test_repeated_delete_is_safe(
        self, folders: FolderLifecycleService, gateway: Any
    ) -> None:
        _seed_owner(gateway, "LIC-100", 2)
        await folders.delete_folder("LIC-100")
        await folders.delete_folder("LIC-100")
        assert gateway.keys_under("licenses/LIC-100/") == []

    async def test_batch_failure_reports_all_deleted_keys(self, gateway: Any) -> None:
        folders = FolderLifecycleService(gateway, category="licenses", delete_batch_size=2)
        keys = _seed_owner(gateway, "LIC-100", 5)
        gateway.fail_delete.add(keys[3])

        with pytest.raises(DeleteFailure) as exc_info:
            await folders.run_delete("LIC-100")

        # first batch of 2 plus keys[2] from the failing batch
        assert exc_info.value.processed_keys == tuple(keys[:3])
        assert exc_info.value.key == keys[3]
        assert gateway.keys_under("licenses/LIC-100/") == keys[3:]

    def test_batch_size_bounds(self, gateway: Any) -> None:
        with pytest.raises(ValueError):
            FolderLifecycleService(gateway, category="licenses", delete_batch_size=1001)
        with pytest.raises(ValueError):
            FolderLifecycleService(gateway, category="licenses", delete_batch_size=0)


class TestPagination:
    async def test_list_folder_follows_continuation_tokens(
        self, folders: FolderLifecycleService, gateway: Any
    ) -> None:
        keys = _seed_owner(gateway, "LIC-100", 1500)

        assert await folders.list_folder("LIC-100") == keys
        assert gateway.count("list_page") == 2

    async def test_backup_covers_all_pages(
        self, folders: FolderLifecycleService, gateway: Any
    ) -> None:
        _seed_owner(gateway, "LIC-100", 1500)

        operation = await folders.run_backup("LIC-100")

        assert len(operation.copied_keys) == 1500
        assert len(gateway.keys_under(BACKUP_PREFIX)) == 1500

    async def test_delete_covers_all_pages(
        self, folders: FolderLifecycleService, gateway: Any
    ) -> None:
        _seed_owner(gateway, "LIC-100", 1500)

        operation = await folders.run_delete("LIC-100")

        assert len(operation.deleted_keys) == 1500
        assert gateway.keys_under("licenses/LIC-100/") == []
        # batches of at most 1000 keys
        assert gateway.count("delete_many") == 2

    async def test_list_failure_on_second_page(
        self, folders: FolderLifecycleService, gateway: Any
    ) -> None:
        _seed_owner(gateway, "LIC-100", 1500)
        gateway.fail_list_after = 1

        with pytest.raises(ListFailure):
            await folders.run_delete("LIC-100")
        # enumeration failed before any delete was issued
        assert gateway.count("delete_many") == 0
        assert len(gateway.keys_under("licenses/LIC-100/")) == 1500


class TestLicenseRetirementScenario:
    async def test_upload_backup_delete(self, services: StorageServices, gateway: Any) -> None:
        documents = services.documents("licenses")
        folders = services.folders("licenses")

        stored = await documents.upload(b"%PDF license", "A.pdf", "application/pdf", "LIC-100")
        assert stored.key == "licenses/LIC-100/A.pdf"

        dest_prefix = await folders.backup_folder("LIC-100")
        assert dest_prefix == BACKUP_PREFIX
        assert await documents.download(BACKUP_PREFIX + "A.pdf") == b"%PDF license"

        await folders.delete_folder("LIC-100")

        with pytest.raises(NotFound):
            await documents.download("licenses/LIC-100/A.pdf")
        assert await documents.download(BACKUP_PREFIX + "A.pdf") == b"%PDF license"

    async def test_backup_and_delete_folder(self, services: StorageServices, gateway: Any) -> None:
        _seed_owner(gateway, "LIC-100", 3)
        folders = services.folders("licenses")

        dest_prefix = await folders.backup_and_delete_folder("LIC-100")

        assert len(gateway.keys_under(dest_prefix)) == 3
        assert gateway.keys_under("licenses/LIC-100/") == []

    async def test_failed_backup_skips_delete(self, services: StorageServices, gateway: Any) -> None:
        keys = _seed_owner(gateway, "LIC-100", 3)
        gateway.fail_copy.add(keys[1])

        with pytest.raises(CopyFailure):
            await services.folders("licenses").backup_and_delete_folder("LIC-100")

        assert gateway.count("delete_many") == 0
        assert gateway.keys_under("licenses/LIC-100/") == keys

    async def test_backups_are_not_listed_as_live_files(
        self, services: StorageServices, gateway: Any
    ) -> None:
        _seed_owner(gateway, "LIC-100", 2)
        await services.folders("licenses").backup_folder("LIC-100")

        assert len(await services.documents("licenses").list_files("LIC-100")) == 2


class TestPolicyBackupLayout:
    async def test_policy_backups_are_not_category_scoped(
        self, services: StorageServices, gateway: Any
    ) -> None:
        gateway.seed("policies/POL-1/A.pdf", b"%PDF policy")

        operation = await services.folders("policies").run_backup("POL-1")

        assert operation.source_prefix == "policies/POL-1/"
        assert operation.dest_prefix == "backups/2024-05-01T09-30-00-000Z/POL-1/"
        assert gateway.objects["backups/2024-05-01T09-30-00-000Z/POL-1/A.pdf"][0] == b"%PDF policy"

    async def test_unscoped_layout_on_direct_construction(
        self, gateway: Any, fixed_clock: Any
    ) -> None:
        folders = FolderLifecycleService(
            gateway, category="licenses", clock=fixed_clock, category_scoped_backups=False
        )

        assert await folders.backup_folder("LIC-100") == "backups/2024-05-01T09-30-00-000Z/LIC-100/"
