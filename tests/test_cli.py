"""Tests for the brokerdocs CLI against the filesystem backend."""

from __future__ import annotations

import asyncio
import json
import time
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlsplit

import pytest

from brokerdocs.cli import main
from brokerdocs.config import BACKEND_FILESYSTEM, StorageConfig
from brokerdocs.storage.filesystem_gateway import FilesystemObjectStoreGateway


@pytest.fixture
def fs_gateway(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> FilesystemObjectStoreGateway:
    """Point the CLI at a filesystem store and return a gateway on the same store."""
    monkeypatch.setenv("BROKERDOCS_STORAGE_BACKEND", "filesystem")
    monkeypatch.setenv("BROKERDOCS_STORAGE_BASE_DIR", str(tmp_path))
    config = StorageConfig(backend=BACKEND_FILESYSTEM, base_dir=tmp_path)
    return FilesystemObjectStoreGateway(config)


def _seed(gateway: FilesystemObjectStoreGateway, *keys: str) -> None:
    async def put_all() -> None:
        for key in keys:
            await gateway.put(key, key.encode(), content_type="application/pdf")

    asyncio.run(put_all())


def _keys(gateway: FilesystemObjectStoreGateway, prefix: str) -> list[str]:
    async def collect() -> list[str]:
        return [k async for k in gateway.iter_keys(prefix)]

    return asyncio.run(collect())


def _run(capsys: pytest.CaptureFixture[str], *argv: str) -> tuple[int, dict[str, Any]]:
    code = main(list(argv))
    return code, json.loads(capsys.readouterr().out)


def test_list(fs_gateway: Any, capsys: pytest.CaptureFixture[str]) -> None:
    _seed(fs_gateway, "licenses/LIC-100/A.pdf", "licenses/LIC-100/B.pdf")

    code, out = _run(capsys, "list", "--owner", "LIC-100")

    assert code == 0
    assert out["files"] == ["A.pdf", "B.pdf"]


def test_presign_download(fs_gateway: Any, capsys: pytest.CaptureFixture[str]) -> None:
    code, out = _run(
        capsys,
        "presign",
        "--category",
        "policies",
        "--owner",
        "POL-1",
        "--file",
        "p.pdf",
        "--ttl",
        "60",
        "--download",
    )

    assert code == 0
    assert out["key"] == "policies/POL-1/p.pdf"
    assert "response-content-disposition" in out["url"]


def test_presign_uses_configured_ttl(
    fs_gateway: Any, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("BROKERDOCS_PRESIGN_TTL_SECONDS", "60")
    before = int(time.time())

    code, out = _run(capsys, "presign", "--owner", "LIC-100", "--file", "A.pdf")

    assert code == 0
    assert out["expires_in"] == 60
    expires = int(parse_qs(urlsplit(out["url"]).query)["expires"][0])
    assert before + 60 <= expires <= int(time.time()) + 60


def test_presign_ttl_flag_overrides_configured_ttl(
    fs_gateway: Any, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("BROKERDOCS_PRESIGN_TTL_SECONDS", "60")

    code, out = _run(capsys, "presign", "--owner", "LIC-100", "--file", "A.pdf", "--ttl", "120")

    assert code == 0
    assert out["expires_in"] == 120


def test_out_of_range_configured_ttl_is_config_error(
    fs_gateway: Any, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("BROKERDOCS_PRESIGN_TTL_SECONDS", "604801")

    code, out = _run(capsys, "presign", "--owner", "LIC-100", "--file", "A.pdf")

    assert code == 2
    assert out["error"]["code"] == "STORAGE_CONFIG_ERROR"


def test_backup(fs_gateway: Any, capsys: pytest.CaptureFixture[str]) -> None:
    _seed(fs_gateway, "licenses/LIC-100/A.pdf")

    code, out = _run(capsys, "backup", "--owner", "LIC-100")

    assert code == 0
    assert out["dest_prefix"].startswith("backups/licenses/")
    assert out["dest_prefix"].endswith("/LIC-100/")
    assert _keys(fs_gateway, out["dest_prefix"]) == [out["dest_prefix"] + "A.pdf"]


def test_delete_folder_requires_yes(fs_gateway: Any, capsys: pytest.CaptureFixture[str]) -> None:
    _seed(fs_gateway, "licenses/LIC-100/A.pdf")

    code, out = _run(capsys, "delete-folder", "--owner", "LIC-100")

    assert code == 2
    assert out["error"]["code"] == "CONFIRMATION_REQUIRED"
    assert _keys(fs_gateway, "licenses/LIC-100/") == ["licenses/LIC-100/A.pdf"]


def test_delete_folder(fs_gateway: Any, capsys: pytest.CaptureFixture[str]) -> None:
    _seed(fs_gateway, "licenses/LIC-100/A.pdf")

    code, out = _run(capsys, "delete-folder", "--owner", "LIC-100", "--yes")

    assert code == 0
    assert out["deleted_keys"] == ["licenses/LIC-100/A.pdf"]
    assert _keys(fs_gateway, "licenses/LIC-100/") == []


def test_retire_backs_up_then_deletes(fs_gateway: Any, capsys: pytest.CaptureFixture[str]) -> None:
    _seed(fs_gateway, "licenses/LIC-100/A.pdf", "licenses/LIC-100/B.pdf")

    code, out = _run(capsys, "retire", "--owner", "LIC-100", "--yes")

    assert code == 0
    assert len(out["copied_keys"]) == 2
    assert len(out["deleted_keys"]) == 2
    assert _keys(fs_gateway, "licenses/LIC-100/") == []
    assert len(_keys(fs_gateway, out["dest_prefix"])) == 2


def test_invalid_owner_is_usage_error(fs_gateway: Any, capsys: pytest.CaptureFixture[str]) -> None:
    code, out = _run(capsys, "list", "--owner", "..")

    assert code == 2
    assert out["error"]["code"] == "INVALID_KEY"


def test_missing_credentials_is_config_error(capsys: pytest.CaptureFixture[str]) -> None:
    code, out = _run(capsys, "list", "--owner", "LIC-100")

    assert code == 2
    assert out["error"]["code"] == "STORAGE_CONFIG_ERROR"


def test_unknown_category_rejected_by_parser() -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["list", "--category", "claims", "--owner", "C-1"])
    assert exc_info.value.code == 2
