"""Storage configuration.

Configuration is resolved once into an immutable StorageConfig and passed
explicitly to gateway constructors, so several configurations (e.g. per
tenant buckets) can coexist and tests can inject their own.

Environment Variables:
    BROKERDOCS_STORAGE_BACKEND: "s3" or "filesystem" (default: "s3")
    BROKERDOCS_S3_BUCKET: Bucket name (default: "autosecure-files")
    BROKERDOCS_S3_ENDPOINT_URL: S3-compatible endpoint URL (optional)
    BROKERDOCS_R2_ACCOUNT_ID: Cloudflare R2 account; used to derive the
        endpoint when BROKERDOCS_S3_ENDPOINT_URL is unset
    BROKERDOCS_S3_REGION: Signing region (default: "auto")
    BROKERDOCS_S3_ACCESS_KEY_ID / BROKERDOCS_S3_SECRET_ACCESS_KEY: Credentials
    BROKERDOCS_STORAGE_BASE_DIR: Base directory for the filesystem backend
        (default: OS temp dir / brokerdocs_objects)
    BROKERDOCS_CONNECT_TIMEOUT / BROKERDOCS_READ_TIMEOUT: Per-call timeouts
        in seconds (default: 10 / 60)
    BROKERDOCS_LIST_PAGE_SIZE: Keys per list request (default: 1000)
    BROKERDOCS_PRESIGN_TTL_SECONDS: Default signed URL lifetime (default: 3600)
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from brokerdocs.storage.errors import StorageConfigError

BACKEND_S3 = "s3"
BACKEND_FILESYSTEM = "filesystem"
VALID_BACKENDS = frozenset({BACKEND_S3, BACKEND_FILESYSTEM})

DEFAULT_BUCKET = "autosecure-files"
DEFAULT_REGION = "auto"
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_READ_TIMEOUT = 60.0
DEFAULT_LIST_PAGE_SIZE = 1000
DEFAULT_PRESIGN_TTL_SECONDS = 3600
MAX_PRESIGN_TTL_SECONDS = 7 * 24 * 3600  # SigV4 upper bound

R2_ENDPOINT_TEMPLATE = "https://{account_id}.r2.cloudflarestorage.com"


@dataclass(frozen=True)
class StorageConfig:
    """Immutable object store configuration.

    Attributes:
        backend: Backend identifier ("s3" or "filesystem").
        bucket: Bucket holding every document.
        region: Signing region.
        endpoint_url: Custom endpoint for S3-compatible stores, None for AWS.
        access_key_id: Access key; None falls back to the boto3 chain.
        secret_access_key: Secret key paired with access_key_id.
        base_dir: Root directory of the filesystem backend.
        connect_timeout: Connect timeout per store call, seconds.
        read_timeout: Read timeout per store call, seconds.
        list_page_size: Maximum keys per list request.
        presign_ttl_seconds: Default lifetime of signed URLs.
    """

    backend: str = BACKEND_S3
    bucket: str = DEFAULT_BUCKET
    region: str = DEFAULT_REGION
    endpoint_url: str | None = None
    access_key_id: str | None = None
    secret_access_key: str | None = None
    base_dir: Path | None = None
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    read_timeout: float = DEFAULT_READ_TIMEOUT
    list_page_size: int = DEFAULT_LIST_PAGE_SIZE
    presign_ttl_seconds: int = DEFAULT_PRESIGN_TTL_SECONDS

    def __post_init__(self) -> None:
        if self.backend not in VALID_BACKENDS:
            raise StorageConfigError(
                f"Unknown storage backend '{self.backend}'. Valid options: {sorted(VALID_BACKENDS)}"
            )
        if not 1 <= self.list_page_size <= DEFAULT_LIST_PAGE_SIZE:
            raise StorageConfigError(
                f"list_page_size must be between 1 and {DEFAULT_LIST_PAGE_SIZE}"
            )
        if not 1 <= self.presign_ttl_seconds <= MAX_PRESIGN_TTL_SECONDS:
            raise StorageConfigError(
                f"presign_ttl_seconds must be between 1 and {MAX_PRESIGN_TTL_SECONDS}"
            )

    def is_configured(self) -> bool:
        """Return True when the configured backend can be used as is."""
        if self.backend == BACKEND_FILESYSTEM:
            return True
        return bool(self.bucket and self.access_key_id and self.secret_access_key)

    def resolved_base_dir(self) -> Path:
        """Return the filesystem backend root, defaulting to the temp dir."""
        if self.base_dir is not None:
            return Path(self.base_dir)
        return Path(tempfile.gettempdir()) / "brokerdocs_objects"


def _get_env_str(environ: Mapping[str, str], key: str, default: str = "") -> str:
    """Get string from environment mapping."""
    return environ.get(key, default).strip()


def _get_env_optional(environ: Mapping[str, str], key: str) -> str | None:
    value = _get_env_str(environ, key)
    return value or None


def _get_env_number(environ: Mapping[str, str], key: str, default: float) -> float:
    raw = _get_env_str(environ, key)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise StorageConfigError(f"{key} must be a number, got '{raw}'") from e


def load_storage_config(environ: Mapping[str, str] | None = None) -> StorageConfig:
    """Build a StorageConfig from environment variables.

    Args:
        environ: Mapping to read from; defaults to ``os.environ``.

    Returns:
        The resolved configuration.

    Raises:
        StorageConfigError: If a value is malformed or unknown.
    """
    env = os.environ if environ is None else environ

    endpoint_url = _get_env_optional(env, "BROKERDOCS_S3_ENDPOINT_URL")
    account_id = _get_env_optional(env, "BROKERDOCS_R2_ACCOUNT_ID")
    if endpoint_url is None and account_id is not None:
        endpoint_url = R2_ENDPOINT_TEMPLATE.format(account_id=account_id)

    base_dir_raw = _get_env_optional(env, "BROKERDOCS_STORAGE_BASE_DIR")

    return StorageConfig(
        backend=_get_env_str(env, "BROKERDOCS_STORAGE_BACKEND", BACKEND_S3).lower(),
        bucket=_get_env_str(env, "BROKERDOCS_S3_BUCKET") or DEFAULT_BUCKET,
        region=_get_env_str(env, "BROKERDOCS_S3_REGION") or DEFAULT_REGION,
        endpoint_url=endpoint_url,
        access_key_id=_get_env_optional(env, "BROKERDOCS_S3_ACCESS_KEY_ID"),
        secret_access_key=_get_env_optional(env, "BROKERDOCS_S3_SECRET_ACCESS_KEY"),
        base_dir=Path(base_dir_raw) if base_dir_raw else None,
        connect_timeout=_get_env_number(env, "BROKERDOCS_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT),
        read_timeout=_get_env_number(env, "BROKERDOCS_READ_TIMEOUT", DEFAULT_READ_TIMEOUT),
        list_page_size=int(
            _get_env_number(env, "BROKERDOCS_LIST_PAGE_SIZE", DEFAULT_LIST_PAGE_SIZE)
        ),
        presign_ttl_seconds=int(
            _get_env_number(env, "BROKERDOCS_PRESIGN_TTL_SECONDS", DEFAULT_PRESIGN_TTL_SECONDS)
        ),
    )
