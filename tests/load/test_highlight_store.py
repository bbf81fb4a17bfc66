"""Tests for book and highlight persistence."""

from datetime import date, datetime

import pytest

from extract.models import Book, Highlight
from load.db.sqlite_adapter import SQLiteAdapter
from load.highlight_store import HighlightStore

DUNE = Book(title="Dune", authors="Frank Herbert", file_path="/books/Dune.epub")


def highlight(text="Fear is the mind-killer.", created_at=datetime(2024, 1, 16, 8, 30), page=13):
    return Highlight(book_path=DUNE.file_path, text=text, created_at=created_at, page_or_location=page)


@pytest.fixture
def store(tmp_path):
    adapter = SQLiteAdapter(tmp_path / "highlights.db")
    adapter.connect()
    adapter.create_schema()
    yield HighlightStore(adapter)
    adapter.close()


class TestBooks:
    """Tests for book rows."""

    def test_upsert_and_find(self, store):
        book_id = store.upsert_book(DUNE)

        assert isinstance(book_id, int)
        assert store.find_book(DUNE.file_path) == DUNE
        assert store.find_book("/books/missing.epub") is None

    def test_upsert_is_keyed_by_path(self, store):
        """Test that a second upsert refines the row instead of adding one."""
        first = store.upsert_book(DUNE)
        second = store.upsert_book(Book(title="Dune (Deluxe)", authors=None, file_path=DUNE.file_path))

        assert first == second
        stored = store.find_book(DUNE.file_path)
        assert stored.title == "Dune (Deluxe)"
        assert stored.authors == "Frank Herbert"
        assert store.adapter.fetchscalar("SELECT COUNT(*) FROM books") == 1


class TestHighlights:
    """Tests for highlight rows."""

    def test_insert_then_exists(self, store):
        book_id = store.upsert_book(DUNE)

        assert not store.highlight_exists(book_id, highlight())
        assert store.insert_highlight(book_id, highlight())
        assert store.highlight_exists(book_id, highlight())

    def test_duplicate_insert_is_ignored(self, store):
        """Test that the natural key makes a repeated insert a no-op."""
        book_id = store.upsert_book(DUNE)

        assert store.insert_highlight(book_id, highlight())
        assert not store.insert_highlight(book_id, highlight())
        assert store.count_highlights() == 1

    def test_natural_key_fields(self, store):
        """Test that changing any key field makes a new highlight."""
        book_id = store.upsert_book(DUNE)
        store.insert_highlight(book_id, highlight())

        assert store.insert_highlight(book_id, highlight(text="Fear is the little-death."))
        assert store.insert_highlight(book_id, highlight(created_at=datetime(2024, 1, 16, 8, 31)))
        assert store.insert_highlight(book_id, highlight(page=14))
        assert store.count_highlights(DUNE.file_path) == 4

    def test_missing_position_is_part_of_key(self, store):
        book_id = store.upsert_book(DUNE)

        assert store.insert_highlight(book_id, highlight(page=""))
        assert not store.insert_highlight(book_id, highlight(page=""))
        assert store.highlight_exists(book_id, highlight(page=""))

    def test_stored_columns(self, store):
        book_id = store.upsert_book(DUNE)
        store.insert_highlight(
            book_id,
            Highlight(
                book_path=DUNE.file_path,
                text="I must not fear.",
                created_at=datetime(2024, 1, 14, 21, 5),
                page_or_location=12,
                note="Litany",
                chapter="Book One",
            ),
        )

        row = store.adapter.fetchone("SELECT * FROM highlights")
        assert row["created_at"] == "2024-01-14 21:05:00"
        assert row["page_or_location"] == "12"
        assert row["note"] == "Litany"
        assert row["chapter"] == "Book One"
        assert row["processed"] == 0


class TestQueries:
    """Tests for read queries and run bookkeeping."""

    def test_highlights_between(self, store):
        """Test that whole days are selected, oldest first."""
        book_id = store.upsert_book(DUNE)
        store.insert_highlight(book_id, highlight("late", datetime(2024, 1, 20, 23, 59, 59)))
        store.insert_highlight(book_id, highlight("early", datetime(2024, 1, 14, 0, 0)))
        store.insert_highlight(book_id, highlight("outside", datetime(2024, 1, 21, 0, 0)))
        store.commit()

        rows = store.highlights_between(date(2024, 1, 14), date(2024, 1, 20))

        assert [row["text"] for row in rows] == ["early", "late"]
        assert rows[0]["title"] == "Dune"
        assert rows[0]["author"] == "Frank Herbert"

    def test_record_run(self, store):
        assert store.last_run() == {}

        store.record_run(date(2024, 1, 14), date(2024, 1, 20), 5)
        store.record_run(date(2024, 1, 21), date(2024, 1, 27), 2)

        last = store.last_run()
        assert last["last_sync_from"] == "2024-01-21"
        assert last["last_sync_to"] == "2024-01-27"
        assert last["last_sync_inserted"] == "2"
        assert "last_sync_at" in last
