"""Merge extracted highlights into the database.

``SyncEngine.sync`` is idempotent: syncing the same book again, or syncing
an overlapping date window, only adds highlights whose natural key is not
yet stored. Storage errors are contained per highlight (or per book when the
book row itself cannot be written) and reported in the SyncResult.
"""

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TypeVar

from rich.markup import escape

from common.logger import get_logger
from extract.models import Book, Highlight

from .db import StorageError, TransientStorageError
from .highlight_store import HighlightStore

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class SyncResult:
    """Outcome of syncing one book."""

    book_path: str
    inserted: int = 0
    duplicate: int = 0
    failed: int = 0
    failures: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.inserted + self.duplicate + self.failed


@dataclass
class FileFailure:
    """A metadata file that could not be decoded or extracted."""

    path: Path
    error: Exception

    def __str__(self) -> str:
        return f"{self.path}: {self.error}"


@dataclass
class SyncReport:
    """Everything that happened during one run."""

    results: list[SyncResult] = field(default_factory=list)
    file_failures: list[FileFailure] = field(default_factory=list)

    @property
    def inserted(self) -> int:
        return sum(r.inserted for r in self.results)

    @property
    def duplicate(self) -> int:
        return sum(r.duplicate for r in self.results)

    @property
    def failed(self) -> int:
        return sum(r.failed for r in self.results)

    @property
    def failures(self) -> list[str]:
        """Every failure reason, highlight-level and file-level."""
        reasons = [f"{r.book_path}: {reason}" for r in self.results for reason in r.failures]
        return reasons + [str(f) for f in self.file_failures]


class SyncEngine:
    """Single writer that reconciles highlights with the store."""

    # Configuration constants
    MAX_RETRIES = 3
    RETRY_BASE_DELAY = 0.2  # seconds, doubled after each attempt

    def __init__(
        self,
        store: HighlightStore,
        max_retries: int = MAX_RETRIES,
        retry_base_delay: float = RETRY_BASE_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the engine.

        Args:
            store: Storage to write to
            max_retries: Attempts per operation when the database is locked
            retry_base_delay: Delay before the second attempt
            sleep: Called with the delay between attempts (tests pass a stub)
        """
        self.store = store
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.sleep = sleep

    def _with_retry(self, operation: Callable[[], T], description: str) -> T:
        """Run ``operation``, retrying on TransientStorageError with backoff."""
        for attempt in range(self.max_retries):
            try:
                return operation()
            except TransientStorageError as e:
                if attempt < self.max_retries - 1:
                    wait_time = self.retry_base_delay * (2**attempt)
                    logger.warning(
                        f"{description}: {e}, retrying in {wait_time:.1f}s "
                        f"(attempt {attempt + 1}/{self.max_retries})"
                    )
                    self.sleep(wait_time)
                    continue
                raise StorageError(
                    f"{description} still failing after {self.max_retries} attempts: {e}"
                ) from e
        raise StorageError(f"{description}: no attempts made")

    def sync(self, book: Book, highlights: Iterable[Highlight]) -> SyncResult:
        """Write a book and its highlights.

        Args:
            book: The book, upserted by file path
            highlights: Highlights for that book (already date-filtered)

        Returns:
            Counts of inserted, duplicate and failed highlights
        """
        highlights = list(highlights)
        result = SyncResult(book_path=book.file_path)

        try:
            book_id = self._with_retry(lambda: self.store.upsert_book(book), "Saving book")
        except StorageError as e:
            self._safe_rollback()
            result.failed = len(highlights)
            result.failures.append(f"book not saved: {e}")
            logger.error("[red]✗[/red] " + escape(f"Could not save book {book.file_path}: {e}"))
            return result

        for highlight in highlights:
            try:
                if self._with_retry(
                    lambda: self.store.highlight_exists(book_id, highlight), "Checking highlight"
                ):
                    result.duplicate += 1
                    continue
                if self._with_retry(
                    lambda: self.store.insert_highlight(book_id, highlight), "Saving highlight"
                ):
                    result.inserted += 1
                else:
                    # Another writer stored the same natural key first
                    result.duplicate += 1
            except StorageError as e:
                result.failed += 1
                result.failures.append(f"highlight at {highlight.timestamp}: {e}")
                logger.warning(escape(f"Failed to save highlight from {book.title}: {e}"))

        try:
            self._with_retry(self.store.commit, "Committing book")
        except StorageError as e:
            self._safe_rollback()
            result.failed += result.inserted
            result.failures.append(f"commit failed, {result.inserted} insert(s) lost: {e}")
            result.inserted = 0
            logger.error("[red]✗[/red] " + escape(f"Could not commit {book.file_path}: {e}"))

        return result

    def _safe_rollback(self) -> None:
        try:
            self.store.rollback()
        except StorageError as e:
            logger.debug(f"Rollback failed: {e}")
