"""Book and highlight persistence on top of a DatabaseAdapter.

Books are keyed by their file path. Highlights are keyed by
(book_id, text, created_at, page_or_location); the UNIQUE constraint on
those columns makes a repeated insert a no-op even when two writers race.
"""

from datetime import date, datetime, timedelta

from common.constants import DATE_FORMAT
from extract.models import Book, Highlight

from .db import DatabaseAdapter, Row


class HighlightStore:
    """Storage operations needed by the sync engine and the query commands."""

    def __init__(self, adapter: DatabaseAdapter):
        self.adapter = adapter

    def commit(self) -> None:
        self.adapter.commit()

    def rollback(self) -> None:
        self.adapter.rollback()

    def find_book(self, file_path: str) -> Book | None:
        """Look up a stored book by its file path."""
        row = self.adapter.fetchone(
            "SELECT title, author, file_path FROM books WHERE file_path = ?", (file_path,)
        )
        if row is None:
            return None
        return Book(title=row["title"], authors=row["author"], file_path=row["file_path"])

    def upsert_book(self, book: Book) -> int:
        """Insert a book or refresh its title and author.

        A stored author is kept when the new extraction has none.

        Returns:
            The book's row id
        """
        self.adapter.execute(
            """
            INSERT INTO books (file_path, title, author)
            VALUES (?, ?, ?)
            ON CONFLICT(file_path) DO UPDATE SET
                title = excluded.title,
                author = COALESCE(excluded.author, books.author),
                updated_at = CURRENT_TIMESTAMP
            """,
            (book.file_path, book.title, book.authors),
        )
        return self.adapter.fetchscalar("SELECT id FROM books WHERE file_path = ?", (book.file_path,))

    def highlight_exists(self, book_id: int, highlight: Highlight) -> bool:
        """Check for a stored highlight with the same natural key."""
        found = self.adapter.fetchscalar(
            """
            SELECT 1 FROM highlights
            WHERE book_id = ? AND text = ? AND created_at = ? AND page_or_location = ?
            """,
            (book_id, highlight.text, highlight.timestamp, highlight.position),
        )
        return found is not None

    def insert_highlight(self, book_id: int, highlight: Highlight) -> bool:
        """Insert a highlight unless its natural key is already stored.

        Returns:
            True if a row was written, False if an identical one existed
        """
        cursor = self.adapter.execute(
            """
            INSERT INTO highlights (book_id, text, note, page_or_location, created_at, chapter)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT (book_id, text, created_at, page_or_location) DO NOTHING
            """,
            (
                book_id,
                highlight.text,
                highlight.note,
                highlight.position,
                highlight.timestamp,
                highlight.chapter,
            ),
        )
        return cursor.rowcount > 0

    def count_highlights(self, file_path: str | None = None) -> int:
        """Count stored highlights, optionally for one book."""
        if file_path is None:
            return self.adapter.fetchscalar("SELECT COUNT(*) FROM highlights")
        return self.adapter.fetchscalar(
            """
            SELECT COUNT(*) FROM highlights h
            JOIN books b ON b.id = h.book_id
            WHERE b.file_path = ?
            """,
            (file_path,),
        )

    def highlights_between(self, from_date: date, to_date: date) -> list[Row]:
        """Stored highlights created in ``[from_date, to_date]``, oldest first."""
        return self.adapter.fetchall(
            """
            SELECT b.title, b.author, b.file_path, h.text, h.note, h.chapter,
                   h.page_or_location, h.created_at
            FROM highlights h
            JOIN books b ON b.id = h.book_id
            WHERE h.created_at >= ? AND h.created_at < ?
            ORDER BY h.created_at, h.id
            """,
            (
                from_date.strftime(DATE_FORMAT),
                (to_date + timedelta(days=1)).strftime(DATE_FORMAT),
            ),
        )

    def record_run(self, from_date: date, to_date: date, inserted: int) -> None:
        """Remember the window and outcome of the latest sync run."""
        values = {
            "last_sync_at": datetime.now().isoformat(timespec="seconds"),
            "last_sync_from": from_date.strftime(DATE_FORMAT),
            "last_sync_to": to_date.strftime(DATE_FORMAT),
            "last_sync_inserted": str(inserted),
        }
        for key, value in values.items():
            self.adapter.execute(
                """
                INSERT INTO metadata (key, value)
                VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (key, value),
            )
        self.adapter.commit()

    def last_run(self) -> dict[str, str]:
        """Values written by the latest ``record_run``, empty if none."""
        rows = self.adapter.fetchall("SELECT key, value FROM metadata WHERE key LIKE 'last_sync_%'")
        return {row["key"]: row["value"] for row in rows}
