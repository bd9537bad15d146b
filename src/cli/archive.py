# =============================================================================
# src/cli/archive.py — Local Store Maintenance CLI
# =============================================================================
#
# Operator tool for the SQLite mirror of the Ganjoor archive. It always
# opens the Local Store with the privileged (read/write) connection, so it
# must run with credentials/filesystem access the web process does not have.
#
# Supported subcommands:
#
#   import — Mirror poets from the Remote Archive into the Local Store.
#            Without --poet-id, imports the curated full tier plus the next
#            N preview-tier poets (config/config.yaml `import` section).
#            With --poet-id, imports exactly those poets in full.
#            Idempotent: every write is an upsert keyed by archive ids.
#   audit  — Print row counts, overall and per mirrored poet.
#   clear  — Delete every poet, category and poem. Destructive; refuses to
#            run without --yes.
#
# Exit codes: 0 success, 1 configuration or store error, 2 import finished
# with per-poet/per-category failures.
#
# Usage examples:
#   python -m src.cli.archive import
#   python -m src.cli.archive import --poet-id 2 --poet-id 7
#   python -m src.cli.archive import --preview-count 0
#   python -m src.cli.archive audit
#   python -m src.cli.archive clear --yes
# =============================================================================

"""Standalone CLI for populating and maintaining the Ganjeh Local Store.

Usage::

    python -m src.cli.archive import [--poet-id ID ...] [--preview-count N]
    python -m src.cli.archive audit
    python -m src.cli.archive clear --yes
"""

from __future__ import annotations

import argparse
import asyncio
import sys

import httpx

from src.config.loader import load_config
from src.config.settings import Settings
from src.interfaces.local_store_provider import ILocalStoreProvider
from src.models.poetry import StoreStats
from src.providers.local.sqlite_local_store import SQLiteLocalStore
from src.providers.remote.ganjoor_api_provider import GanjoorAPIProvider
from src.services.import_service import ImportService
from src.utils.errors import ConfigurationError, LocalStoreError
from src.utils.logging import configure_logging


def _print_stats(title: str, stats: StoreStats) -> None:
    print(title)
    print("=" * 40)
    print(f"  Poets:       {stats.poets}")
    print(f"  Categories:  {stats.categories}")
    print(f"  Poems:       {stats.poems}")

    if stats.per_poet:
        print("\n  Per poet:")
        for row in stats.per_poet:
            print(f"    {row.poet_id:>5}  {row.name:<24} {row.categories:>5} cats {row.poems:>7} poems")


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


async def _handle_import(args: argparse.Namespace, service: ImportService) -> int:
    """Run an import and print its summary."""
    if args.poet_ids:
        print(f"Importing poets (full tier): {', '.join(str(p) for p in args.poet_ids)}")
    else:
        print("Importing full tier + preview tier")

    try:
        summary = await service.run(poet_ids=args.poet_ids, preview_count=args.preview_count)
    except ConfigurationError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1

    print("\nImport complete:")
    print("=" * 40)
    print(f"  Poets:              {summary.poets}")
    print(f"  Categories:         {summary.categories}")
    print(f"  Poems:              {summary.poems}")
    print(f"    with full verses: {summary.poems_full_verses}")
    print(f"    from preview:     {summary.poems_preview}")
    print(f"  Failures:           {summary.failures}")
    print(f"  Time:               {summary.duration_seconds:.2f}s")
    return 2 if summary.failures else 0


async def _handle_audit(store: ILocalStoreProvider) -> int:
    try:
        stats = await store.get_stats()
    except LocalStoreError as exc:
        print(f"Error: could not read local store: {exc.message}", file=sys.stderr)
        return 1
    _print_stats("Local Store Statistics", stats)
    return 0


async def _handle_clear(args: argparse.Namespace, store: ILocalStoreProvider) -> int:
    """Delete all mirrored data, but only when ``--yes`` was given."""
    if not args.yes:
        print(
            "Refusing to clear the local store without --yes "
            "(this deletes every poet, category and poem).",
            file=sys.stderr,
        )
        return 1

    try:
        await store.initialize()
        stats = await store.clear()
    except LocalStoreError as exc:
        print(f"Error: could not clear local store: {exc.message}", file=sys.stderr)
        return 1
    _print_stats("Deleted", stats)
    return 0


async def _run(args: argparse.Namespace, app_settings: Settings, app_config: dict) -> int:
    if not app_settings.local_store_configured:
        print("Error: LOCAL_STORE_PATH is not set; no local store to work on.", file=sys.stderr)
        return 1

    # Operator tools always use the privileged connection.
    store = SQLiteLocalStore(db_path=app_settings.local_store_path, read_only=False)

    if args.command == "audit":
        return await _handle_audit(store)
    if args.command == "clear":
        return await _handle_clear(args, store)

    async with httpx.AsyncClient(timeout=app_settings.remote_archive_timeout) as client:
        remote = GanjoorAPIProvider(
            http_client=client,
            base_url=app_settings.remote_archive_base_url,
            timeout=app_settings.remote_archive_timeout,
        )
        service = ImportService.from_config(remote, store, app_config.get("import", {}))
        return await _handle_import(args, service)


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the archive CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m src.cli.archive",
        description="Populate and maintain the Ganjeh local store.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Archive commands")

    # -- import --
    import_parser = subparsers.add_parser(
        "import", help="Mirror poets from the remote archive"
    )
    import_parser.add_argument(
        "--poet-id",
        dest="poet_ids",
        type=int,
        action="append",
        metavar="ID",
        help="Import only this poet (repeatable); implies full tier",
    )
    import_parser.add_argument(
        "--preview-count",
        dest="preview_count",
        type=int,
        default=None,
        help="Number of preview-tier poets (default: from config)",
    )

    # -- audit --
    subparsers.add_parser("audit", help="Show local store statistics")

    # -- clear --
    clear_parser = subparsers.add_parser("clear", help="Delete all local store data")
    clear_parser.add_argument(
        "--yes", "-y", action="store_true", help="Confirm the deletion"
    )

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the archive tool."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    app_config = load_config(settings=app_settings)
    configure_logging(
        log_level=app_settings.log_level,
        json_output=(app_settings.app_env == "production"),
        component="archive",
    )

    sys.exit(asyncio.run(_run(args, app_settings, app_config)))


if __name__ == "__main__":
    main()
