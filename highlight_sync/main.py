"""highlight-sync command line entry point.

Configuration comes from the environment (see Settings.from_env); the flags
below override it for a single run.
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sqlite3
import sys
from collections.abc import Sequence

from highlight_sync.core.content_fetcher import ContentFetcher
from highlight_sync.core.settings import Settings
from highlight_sync.core.storage import init_db
from highlight_sync.core.sync_job import SyncEventType, SyncJob, run_sync
from highlight_sync.providers.content_types import SaveType
from highlight_sync.providers.devonthink import DevonthinkStore
from highlight_sync.providers.document_store import DocumentStore
from highlight_sync.providers.local_store import LocalStore
from highlight_sync.providers.readwise import ReadwiseClient

logger = logging.getLogger("highlight_sync")

EXIT_OK = 0
EXIT_ITEM_FAILURES = 1
EXIT_ABORTED = 2

BACKENDS = ("devonthink", "local")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="highlight-sync",
        description="Save Readwise highlights as annotated, highlighted records.",
    )
    parser.add_argument("--token", help="Readwise API token (READWISE_TOKEN)")
    parser.add_argument("--type", dest="save_type", help="markdown, bookmark, archive or pdf (SAVE_TYPE)")
    parser.add_argument("--database", help="DEVONthink database name, 'global' for the inbox (DT_DATABASE)")
    parser.add_argument("--group", help="DEVONthink group path, 'inbox' for the inbox (DT_GROUP)")
    parser.add_argument("--backend", choices=BACKENDS, help="Document store to use (STORE_BACKEND)")
    parser.add_argument("--db-path", help="State database path (DB_PATH)")
    parser.add_argument("--pause", type=float, help="Seconds to wait before highlighting (INDEX_PAUSE_SECONDS)")
    parser.add_argument("--full", action="store_true", help="Ignore the last sync time and fetch everything")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output (VERBOSE)")
    return parser


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Settings with every flag given on the command line applied."""
    overrides: dict[str, object] = {}
    if args.token:
        overrides["readwise_token"] = args.token
    if args.save_type:
        overrides["save_type"] = SaveType.parse(args.save_type)
    if args.database:
        overrides["database"] = args.database
    if args.group:
        overrides["group"] = args.group
    if args.backend:
        overrides["store_backend"] = args.backend
    if args.db_path:
        overrides["db_path"] = args.db_path
    if args.pause is not None:
        overrides["index_pause_seconds"] = args.pause
    if args.verbose:
        overrides["verbose"] = True
    return dataclasses.replace(settings, **overrides)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = apply_overrides(Settings.from_env(), args)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_ABORTED
    if settings.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if not settings.readwise_token:
        logger.error("No Readwise API token given (set READWISE_TOKEN or pass --token)")
        return EXIT_ABORTED
    if settings.store_backend not in BACKENDS:
        logger.error(f"Unknown store backend: {settings.store_backend}")
        return EXIT_ABORTED

    try:
        db = init_db(settings.db_path)
    except (sqlite3.Error, OSError) as e:
        logger.error(f"Cannot open state database {settings.db_path}: {e}")
        return EXIT_ABORTED

    fetcher: ContentFetcher | None = None
    try:
        store: DocumentStore
        if settings.store_backend == "local":
            fetcher = ContentFetcher()
            store = LocalStore(db, fetcher)
        else:
            store = DevonthinkStore(settings.database, settings.group)

        job = SyncJob()
        with ReadwiseClient(token=settings.readwise_token) as client:
            for event in run_sync(client, store, db, settings, full=args.full, job=job):
                if event.type == SyncEventType.FAILED:
                    logger.error(f"Sync aborted: {event.data.get('error')}")
                    return EXIT_ABORTED
                if event.type == SyncEventType.WATERMARK_FAILED:
                    logger.warning("Last sync time not saved")

        logger.info(
            f"Done: {job.items_saved}/{job.items_total} saved, {job.items_highlighted} highlighted, "
            f"{job.items_skipped} skipped, {job.items_failed} failed"
        )
        return EXIT_ITEM_FAILURES if job.items_failed else EXIT_OK
    finally:
        if fetcher is not None:
            fetcher.close()
        db.close()


if __name__ == "__main__":
    sys.exit(main())
