"""Pytest configuration and fixtures for brokerdocs tests.

Provides an in-memory object store gateway with a configurable list page cap
and per-key failure injection, plus services wired to it with a fixed clock.
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

import pytest

from brokerdocs.services.registry import StorageServices
from brokerdocs.storage.errors import (
    CopyFailure,
    DeleteFailure,
    ListFailure,
    NotFound,
    UploadFailure,
)
from brokerdocs.storage.gateway import MAX_DELETE_BATCH, ObjectStoreGateway
from brokerdocs.storage.models import ListPage, ObjectInfo

FIXED_NOW = datetime(2024, 5, 1, 9, 30, 0, tzinfo=UTC)


class InMemoryGateway(ObjectStoreGateway):
    """Dict-backed gateway that behaves like an S3 bucket.

    Failure injection:
        fail_put / fail_copy / fail_delete: keys whose operation raises.
        fail_list_after: number of successful list calls before ListFailure.
    """

    def __init__(self, page_size: int = 1000) -> None:
        self.objects: dict[str, tuple[bytes, str]] = {}
        self._page_size = page_size
        self.fail_put: set[str] = set()
        self.fail_copy: set[str] = set()
        self.fail_delete: set[str] = set()
        self.fail_list_after: int | None = None
        self.calls: list[tuple[Any, ...]] = []

    @property
    def backend_name(self) -> str:
        return "memory"

    @property
    def page_size(self) -> int:
        return self._page_size

    def seed(self, key: str, data: bytes, content_type: str = "application/pdf") -> None:
        self.objects[key] = (data, content_type)

    def keys_under(self, prefix: str) -> list[str]:
        return sorted(k for k in self.objects if k.startswith(prefix))

    def count(self, operation: str) -> int:
        return sum(1 for call in self.calls if call[0] == operation)

    async def put(self, key: str, data: bytes, *, content_type: str) -> None:
        self.calls.append(("put", key))
        if key in self.fail_put:
            raise UploadFailure("injected put failure", key=key)
        self.objects[key] = (bytes(data), content_type)

    async def get(self, key: str) -> bytes:
        self.calls.append(("get", key))
        if key not in self.objects:
            raise NotFound(key=key)
        return self.objects[key][0]

    async def head(self, key: str) -> ObjectInfo:
        self.calls.append(("head", key))
        if key not in self.objects:
            raise NotFound(key=key)
        data, content_type = self.objects[key]
        return ObjectInfo(key=key, size_bytes=len(data), content_type=content_type)

    async def delete(self, key: str) -> None:
        self.calls.append(("delete", key))
        if key in self.fail_delete:
            raise DeleteFailure("injected delete failure", key=key)
        self.objects.pop(key, None)

    async def delete_many(self, keys: Sequence[str]) -> list[str]:
        self.calls.append(("delete_many", len(keys)))
        assert len(keys) <= MAX_DELETE_BATCH
        deleted: list[str] = []
        for key in keys:
            if key in self.fail_delete:
                raise DeleteFailure(
                    "AccessDenied: injected delete failure",
                    key=key,
                    processed_keys=deleted,
                )
            self.objects.pop(key, None)
            deleted.append(key)
        return deleted

    async def list_page(
        self,
        prefix: str,
        *,
        continuation_token: str | None = None,
    ) -> ListPage:
        if self.fail_list_after is not None and self.count("list_page") >= self.fail_list_after:
            raise ListFailure("injected list failure", key=prefix)
        self.calls.append(("list_page", prefix, continuation_token))
        keys = self.keys_under(prefix)
        start = int(continuation_token) if continuation_token else 0
        page = keys[start : start + self._page_size]
        end = start + len(page)
        return ListPage(keys=tuple(page), next_token=str(end) if end < len(keys) else None)

    async def copy(self, source_key: str, dest_key: str) -> None:
        self.calls.append(("copy", source_key, dest_key))
        if source_key in self.fail_copy or source_key not in self.objects:
            raise CopyFailure("injected copy failure", key=source_key)
        self.objects[dest_key] = self.objects[source_key]

    async def presign(
        self,
        key: str,
        ttl_seconds: int,
        *,
        response_content_disposition: str | None = None,
    ) -> str:
        self.calls.append(("presign", key, ttl_seconds, response_content_disposition))
        url = f"https://store.test/{key}?X-Amz-Expires={ttl_seconds}"
        if response_content_disposition:
            url += "&response-content-disposition=attachment"
        return url


@pytest.fixture
def gateway() -> InMemoryGateway:
    """Empty in-memory gateway with the standard 1000-key page cap."""
    return InMemoryGateway()


@pytest.fixture
def fixed_clock() -> Any:
    return lambda: FIXED_NOW


@pytest.fixture
def services(gateway: InMemoryGateway, fixed_clock: Any) -> StorageServices:
    """StorageServices for both categories on the in-memory gateway."""
    return StorageServices(gateway, clock=fixed_clock)


@pytest.fixture(autouse=True)
def clear_storage_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host BROKERDOCS_* settings out of every test."""
    for name in list(os.environ):
        if name.startswith("BROKERDOCS_"):
            monkeypatch.delenv(name, raising=False)
