"""Sync run: discover metadata files, extract, filter and write.

Extraction may run on a worker pool; outcomes are consumed in discovery order
by one SyncEngine, so only the calling thread writes to the database.
"""

from rich.markup import escape

from common.config import RunConfig
from common.logger import get_logger
from extract.date_filter import DateRange
from extract.file_utils import find_metadata_files
from extract.main import extract_files

from .db import DatabaseAdapter, DatabaseConfig, StorageError, create_database
from .highlight_store import HighlightStore
from .sync import FileFailure, SyncEngine, SyncReport, SyncResult

logger = get_logger(__name__)


def prepare_database(adapter: DatabaseAdapter) -> int:
    """Connect, create missing tables and apply pending migrations.

    Returns:
        Number of migrations applied
    """
    adapter.connect()
    adapter.create_schema()
    return adapter.run_migrations()


def run_sync(
    config: RunConfig,
    adapter: DatabaseAdapter | None = None,
) -> SyncReport:
    """Sync every metadata file under ``config.books_path``.

    Args:
        config: Resolved run configuration
        adapter: Database adapter (default: SQLite at ``config.database_path``)

    Returns:
        SyncReport with one SyncResult per book that had highlights in the
        window, plus a FileFailure per file that could not be extracted.
        When the database cannot be opened every book is reported as failed.
    """
    if adapter is None:
        adapter = create_database(DatabaseConfig(db_path=config.database_path))

    storage_error: StorageError | None = None
    try:
        applied = prepare_database(adapter)
        if applied:
            logger.info(f"Applied {applied} migration(s)")
    except StorageError as e:
        storage_error = e
        logger.error(f"[red]✗[/red] Database unavailable: {escape(str(e))}")

    store = HighlightStore(adapter)
    engine = SyncEngine(store)
    report = SyncReport()

    paths = find_metadata_files(config.books_path)
    logger.info(
        f"Found [bold]{len(paths)}[/bold] metadata file(s) in {escape(str(config.books_path))}, "
        f"syncing {config.from_date} to {config.to_date}"
    )

    window = DateRange(config.from_date, config.to_date)
    try:
        for outcome in extract_files(paths, window, config.max_depth, config.workers):
            if not outcome.ok:
                logger.warning(escape(f"Skipped {outcome.path}: {outcome.error}"))
                report.file_failures.append(FileFailure(path=outcome.path, error=outcome.error))
                continue

            extraction = outcome.extraction
            if extraction.skipped:
                logger.debug(
                    f"{escape(extraction.book.title)}: ignored {extraction.skipped} empty entries"
                )
            if not extraction.highlights:
                logger.debug(
                    f"{escape(extraction.book.title)}: none of "
                    f"{outcome.total_highlights} highlight(s) in window"
                )
                continue

            if storage_error is not None:
                report.results.append(
                    SyncResult(
                        book_path=extraction.book.file_path,
                        failed=len(extraction.highlights),
                        failures=[f"database unavailable: {storage_error}"],
                    )
                )
                continue

            result = engine.sync(extraction.book, extraction.highlights)
            logger.info(
                f"[bold]{escape(extraction.book.title)}[/bold]: {result.inserted} new, "
                f"{result.duplicate} already stored, "
                f"{outcome.total_highlights - len(extraction.highlights)} outside window"
                + (f", [red]{result.failed} failed[/red]" if result.failed else "")
            )
            report.results.append(result)

        if storage_error is None:
            try:
                store.record_run(config.from_date, config.to_date, report.inserted)
            except StorageError as e:
                logger.warning(escape(f"Could not record sync run: {e}"))
    finally:
        adapter.close()

    return report
