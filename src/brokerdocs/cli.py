"""brokerdocs CLI - operator commands for stored brokerage documents.

Usage:
    python -m brokerdocs list --owner <id> [--category licenses]
    python -m brokerdocs presign --owner <id> --file <name> [--ttl SECONDS] [--download]
    python -m brokerdocs backup --owner <id> [--category licenses]
    python -m brokerdocs delete-folder --owner <id> --yes
    python -m brokerdocs retire --owner <id> --yes

Storage settings are read from BROKERDOCS_* environment variables.

Exit codes:
    0: Success
    1: Storage failure (partial progress is reported in the JSON output)
    2: Usage or configuration error
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Any

from brokerdocs.config import load_storage_config
from brokerdocs.services.registry import DEFAULT_CATEGORIES, StorageServices
from brokerdocs.storage.errors import (
    DocumentStorageError,
    FolderOperationError,
    InvalidKeyError,
    StorageConfigError,
)
from brokerdocs.storage.factory import build_gateway

CATEGORY_NAMES = [category.name for category in DEFAULT_CATEGORIES]
DESTRUCTIVE_COMMANDS = frozenset({"delete-folder", "retire"})


def _output_json(data: dict[str, Any]) -> None:
    """Output JSON to stdout with deterministic ordering."""
    print(json.dumps(data, sort_keys=True, indent=2))


def _error_result(code: str, message: str, **details: Any) -> dict[str, Any]:
    return {"ok": False, "error": {"code": code, "message": message, **details}}


def _configure_logging() -> None:
    level = os.environ.get("BROKERDOCS_LOG_LEVEL", "WARNING").strip().upper() or "WARNING"
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


async def cmd_list(services: StorageServices, args: argparse.Namespace) -> dict[str, Any]:
    files = await services.documents(args.category).list_files(args.owner)
    return {"ok": True, "category": args.category, "owner_id": args.owner, "files": files}


async def cmd_presign(services: StorageServices, args: argparse.Namespace) -> dict[str, Any]:
    documents = services.documents(args.category)
    key = documents.key_for(args.owner, args.file)
    if args.download:
        url = await documents.download_url(key, args.file, args.ttl)
    else:
        url = await documents.presign(key, args.ttl)
    expires_in = args.ttl if args.ttl is not None else documents.default_ttl_seconds
    return {"ok": True, "key": key, "url": url, "expires_in": expires_in}


async def cmd_backup(services: StorageServices, args: argparse.Namespace) -> dict[str, Any]:
    operation = await services.folders(args.category).run_backup(args.owner)
    return {"ok": True, **operation.to_dict()}


async def cmd_delete_folder(services: StorageServices, args: argparse.Namespace) -> dict[str, Any]:
    operation = await services.folders(args.category).run_delete(args.owner)
    return {"ok": True, **operation.to_dict()}


async def cmd_retire(services: StorageServices, args: argparse.Namespace) -> dict[str, Any]:
    """Back up the owner's folder, then delete it.

    Deletion only starts after every copy succeeded.
    """
    folders = services.folders(args.category)
    backup = await folders.run_backup(args.owner)
    deletion = await folders.run_delete(args.owner)
    return {
        "ok": True,
        "source_prefix": backup.source_prefix,
        "dest_prefix": backup.dest_prefix,
        "copied_keys": backup.copied_keys,
        "deleted_keys": deletion.deleted_keys,
    }


COMMAND_DISPATCH: dict[str, Any] = {
    "list": cmd_list,
    "presign": cmd_presign,
    "backup": cmd_backup,
    "delete-folder": cmd_delete_folder,
    "retire": cmd_retire,
}


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="brokerdocs",
        description="brokerdocs - document storage and folder lifecycle CLI",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    def add_command(name: str, help_text: str) -> argparse.ArgumentParser:
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument(
            "--category",
            choices=CATEGORY_NAMES,
            default="licenses",
            help="Document category (default: licenses)",
        )
        sub.add_argument(
            "--owner",
            required=True,
            metavar="ID",
            help="Business identifier of the owning record, e.g. LIC-100",
        )
        return sub

    add_command("list", "List the files stored for one owner")

    presign_parser = add_command("presign", "Issue a temporary signed URL for one file")
    presign_parser.add_argument("--file", required=True, metavar="NAME", help="Stored file name")
    presign_parser.add_argument(
        "--ttl",
        type=int,
        default=None,
        metavar="SECONDS",
        help="URL lifetime (default: BROKERDOCS_PRESIGN_TTL_SECONDS)",
    )
    presign_parser.add_argument(
        "--download",
        action="store_true",
        default=False,
        help="Make the URL download the file as an attachment",
    )

    add_command("backup", "Copy the owner's folder to a timestamped backup prefix")

    for name, help_text in [
        ("delete-folder", "Delete every file of the owner (no backup)"),
        ("retire", "Back up the owner's folder, then delete it"),
    ]:
        destructive = add_command(name, help_text)
        destructive.add_argument(
            "--yes",
            action="store_true",
            default=False,
            help="Confirm the irreversible deletion",
        )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Exit codes:
        0: Success
        1: Storage failure
        2: Usage or configuration error
    """
    _configure_logging()
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command in DESTRUCTIVE_COMMANDS and not args.yes:
        _output_json(
            _error_result("CONFIRMATION_REQUIRED", f"'{args.command}' deletes files; pass --yes")
        )
        return 2

    try:
        config = load_storage_config()
        services = StorageServices(
            build_gateway(config), default_ttl_seconds=config.presign_ttl_seconds
        )
    except StorageConfigError as e:
        _output_json(_error_result(e.kind, e.message))
        return 2

    try:
        result = asyncio.run(COMMAND_DISPATCH[args.command](services, args))
    except InvalidKeyError as e:
        _output_json(_error_result(e.kind, e.message, key=e.key))
        return 2
    except FolderOperationError as e:
        _output_json(
            _error_result(
                e.kind,
                e.message,
                key=e.key,
                processed_keys=list(e.processed_keys),
            )
        )
        return 1
    except DocumentStorageError as e:
        _output_json(_error_result(e.kind, e.message, key=e.key))
        return 1

    _output_json(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
