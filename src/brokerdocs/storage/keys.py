"""Key naming convention for stored documents.

Live documents:  ``<category>/<owner_id>/<file_name>``
Backups:         ``backups/<category>/<timestamp>/<owner_id>/<file_name>``
Policy backups:  ``backups/<timestamp>/<owner_id>/<file_name>``

The timestamp is an ISO-8601 UTC string with millisecond precision where
``:`` and ``.`` are replaced by ``-`` so that it stays a valid path segment,
e.g. ``2024-05-01T09-30-00-000Z``. The layout must not change: existing
buckets already hold data under it.
"""

from __future__ import annotations

from datetime import UTC, datetime

from brokerdocs.storage.errors import InvalidKeyError

BACKUP_ROOT = "backups"

_FORBIDDEN_CHARS = ("/", "\\", "\x00")


def _is_unsafe_segment(segment: str) -> bool:
    """Check whether a single path segment would escape its folder.

    Detects:
    - empty or whitespace-only segments
    - path separators (forward or back slash)
    - null bytes
    - dot segments ("." and "..")
    """
    if not segment or not segment.strip():
        return True

    if any(ch in segment for ch in _FORBIDDEN_CHARS):
        return True

    return segment in (".", "..")


def validate_segment(segment: str, *, label: str) -> str:
    """Validate one key segment and return it unchanged."""
    if _is_unsafe_segment(segment):
        raise InvalidKeyError(
            message=f"Invalid {label}: must be a single non-empty path segment",
            key=segment,
        )
    return segment


def owner_prefix(category: str, owner_id: str) -> str:
    """Return the folder prefix holding every document of one owner."""
    validate_segment(category, label="category")
    validate_segment(owner_id, label="owner_id")
    return f"{category}/{owner_id}/"


def document_key(category: str, owner_id: str, file_name: str) -> str:
    """Return the live key of one document."""
    validate_segment(file_name, label="file_name")
    return owner_prefix(category, owner_id) + file_name


def format_backup_timestamp(moment: datetime) -> str:
    """Render a moment as a path-safe ISO-8601 UTC timestamp.

    Naive datetimes are taken to be UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    moment = moment.astimezone(UTC)
    iso = moment.strftime("%Y-%m-%dT%H:%M:%S") + f".{moment.microsecond // 1000:03d}Z"
    return iso.replace(":", "-").replace(".", "-")


def backup_prefix(category: str | None, owner_id: str, moment: datetime) -> str:
    """Return the backup destination prefix for one owner at one moment.

    With ``category`` None the timestamp sits directly under ``backups/``,
    the layout policy backups have always used.
    """
    validate_segment(owner_id, label="owner_id")
    timestamp = format_backup_timestamp(moment)
    if category is None:
        return f"{BACKUP_ROOT}/{timestamp}/{owner_id}/"
    validate_segment(category, label="category")
    return f"{BACKUP_ROOT}/{category}/{timestamp}/{owner_id}/"


def relative_key(key: str, prefix: str) -> str:
    """Strip ``prefix`` from ``key``; the key must live under the prefix."""
    if not key.startswith(prefix):
        raise InvalidKeyError(message=f"Key is outside prefix {prefix}", key=key)
    return key[len(prefix) :]
