#!/usr/bin/env python3
"""CLI for syncing highlights into the database."""

import argparse
import sys

from rich.markup import escape

from common.config import add_config_arguments, config_from_args
from common.errors import ConfigError, InvalidRangeError
from common.logger import error, get_logger, progress, setup_logging, success, warning

from .db import DatabaseConfig, StorageError, create_database
from .highlight_store import HighlightStore
from .pipeline import prepare_database, run_sync

logger = get_logger(__name__)


def cmd_sync(args):
    """Sync highlights in the date window into the database.

    Returns:
        Exit code: 0 when the run completed (even with per-file failures),
        1 on configuration errors
    """
    try:
        config = config_from_args(args)
    except (ConfigError, InvalidRangeError) as e:
        error(escape(str(e)))
        return 1

    if not config.books_path.is_dir():
        error(escape(f"{config.books_path} is not a directory"))
        return 1

    report = run_sync(config)

    logger.info("\nSync summary:")
    logger.info(f"  Books: {len(report.results)}")
    logger.info(f"  Inserted: [bold]{report.inserted}[/bold]")
    logger.info(f"  Already stored: {report.duplicate}")
    logger.info(f"  Failed: {report.failed}")
    logger.info(f"  Unreadable files: {len(report.file_failures)}")

    for reason in report.failures:
        warning(escape(reason))

    if report.failures:
        warning(f"Sync finished with {len(report.failures)} problem(s)")
    else:
        success(f"Synced {report.inserted} new highlight(s)")
    return 0


def cmd_show(args):
    """List stored highlights in the date window."""
    try:
        config = config_from_args(args)
    except (ConfigError, InvalidRangeError) as e:
        error(escape(str(e)))
        return 1

    adapter = create_database(DatabaseConfig(db_path=config.database_path))
    if not adapter.exists():
        error(escape(f"Database not found: {config.database_path}"))
        error("Run 'koreader-sync sync' first.")
        return 1

    try:
        with adapter:
            store = HighlightStore(adapter)
            rows = store.highlights_between(config.from_date, config.to_date)
            last_run = store.last_run()
    except StorageError as e:
        error(escape(str(e)))
        return 1

    if not rows:
        warning(f"No highlights between {config.from_date} and {config.to_date}")
        return 0

    current_title = None
    for row in rows:
        if row["title"] != current_title:
            current_title = row["title"]
            author = f" [dim]by {escape(row['author'])}[/dim]" if row["author"] else ""
            progress(f"\n[bold]{escape(current_title)}[/bold]{author}")
        position = f"p.{escape(row['page_or_location'])}" if row["page_or_location"] else ""
        progress(f"  [cyan]{row['created_at']}[/cyan] {position}")
        progress(f"  {escape(row['text'])}")
        if row["note"]:
            progress(f"  [italic]Note: {escape(row['note'])}[/italic]")

    progress("")
    success(f"{len(rows)} highlight(s) between {config.from_date} and {config.to_date}")
    if last_run:
        logger.debug(
            f"Last sync {last_run.get('last_sync_at')} covered "
            f"{last_run.get('last_sync_from')} to {last_run.get('last_sync_to')}"
        )
    return 0


def cmd_migrate(args):
    """Create the schema and apply pending migrations."""
    try:
        config = config_from_args(args)
    except (ConfigError, InvalidRangeError) as e:
        error(escape(str(e)))
        return 1

    adapter = create_database(DatabaseConfig(db_path=config.database_path))
    try:
        applied = prepare_database(adapter)
    except StorageError as e:
        error(escape(str(e)))
        return 1
    finally:
        adapter.close()

    if applied:
        success(escape(f"Applied {applied} migration(s) to {config.database_path}"))
    else:
        success(escape(f"Database is up to date: {config.database_path}"))
    return 0


def main():
    """Main entry point for the sync CLI."""
    parser = argparse.ArgumentParser(
        description="Sync KOReader highlights into a SQLite database",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    sync_parser = subparsers.add_parser(
        "sync",
        help="Sync highlights from the books directory",
        description=(
            "Read every metadata.*.lua file under the books directory and store\n"
            "highlights created in the date window. Re-running is safe: stored\n"
            "highlights are reported as already stored.\n\n"
            "Examples:\n"
            "  koreader-sync sync                     # last Sunday to yesterday\n"
            "  koreader-sync sync --last 30\n"
            "  koreader-sync sync --from 2024-01-01 --to 2024-01-31\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    add_config_arguments(sync_parser)
    sync_parser.set_defaults(func=cmd_sync)

    show_parser = subparsers.add_parser("show", help="List stored highlights in a date window")
    add_config_arguments(show_parser)
    show_parser.set_defaults(func=cmd_show)

    migrate_parser = subparsers.add_parser(
        "migrate", help="Create the schema and apply pending migrations"
    )
    add_config_arguments(migrate_parser)
    migrate_parser.set_defaults(func=cmd_migrate)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logging()
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
