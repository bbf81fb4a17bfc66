"""Tests for per-file extraction and failure isolation."""

from datetime import date

import pytest

from common.errors import BadTimestampError, ParseError
from extract.date_filter import DateRange
from extract.file_utils import find_metadata_files
from extract.main import extract_file, extract_files

JANUARY = DateRange(date(2024, 1, 1), date(2024, 1, 31))
WEEK = DateRange(date(2024, 1, 14), date(2024, 1, 20))


@pytest.fixture
def three_books(tmp_path, make_metadata, dune_metadata):
    """Three metadata files where the second is cut off mid-table."""
    books = tmp_path / "books"
    make_metadata(books, "A", dune_metadata.replace("Dune", "Book A"))
    make_metadata(books, "B", dune_metadata[: len(dune_metadata) // 2])
    make_metadata(books, "C", dune_metadata.replace("Dune", "Book C"))
    return books


class TestExtractFile:
    """Tests for extract_file."""

    def test_filters_to_window(self, books_dir):
        path = books_dir / "Dune.sdr" / "metadata.epub.lua"

        outcome = extract_file(path, WEEK)

        assert outcome.ok
        assert outcome.total_highlights == 3
        assert [h.text for h in outcome.extraction.highlights] == [
            "I must not fear.",
            "Fear is the mind-killer.",
        ]

    def test_parse_error_is_captured(self, tmp_path, make_metadata):
        path = make_metadata(tmp_path, "Broken", "return { [")

        outcome = extract_file(path, WEEK)

        assert not outcome.ok
        assert isinstance(outcome.error, ParseError)
        assert outcome.error.source == str(path)

    def test_bad_timestamp_is_captured(self, tmp_path, make_metadata):
        path = make_metadata(tmp_path, "NoDate", 'return { ["annotations"] = { { ["text"] = "x" } } }')

        outcome = extract_file(path, WEEK)

        assert isinstance(outcome.error, BadTimestampError)

    def test_unreadable_file_is_captured(self, tmp_path, make_metadata):
        path = make_metadata(tmp_path, "Binary", "")
        path.write_bytes(b"\xff\xfe\x00")

        outcome = extract_file(path, WEEK)

        assert isinstance(outcome.error, UnicodeDecodeError)

    def test_oversized_number_does_not_escape(self, tmp_path, make_metadata):
        path = make_metadata(tmp_path, "Huge", 'return { ["x"] = ' + "9" * 5000 + " }")

        outcome = extract_file(path, WEEK)

        assert outcome.ok
        assert outcome.extraction.highlights == []

    def test_max_depth(self, tmp_path, make_metadata):
        path = make_metadata(tmp_path, "Deep", "return { a = { b = { c = {} } } }")

        assert extract_file(path, WEEK, max_depth=4).ok
        assert isinstance(extract_file(path, WEEK, max_depth=3).error, ParseError)


class TestExtractFiles:
    """Tests for extract_files."""

    @pytest.mark.parametrize("workers", [1, 3])
    def test_truncated_file_does_not_stop_others(self, three_books, workers):
        """Test that a malformed file is reported while its neighbours succeed."""
        paths = find_metadata_files(three_books)

        outcomes = list(extract_files(paths, JANUARY, workers=workers))

        assert [o.path for o in outcomes] == paths
        assert [o.ok for o in outcomes] == [True, False, True]
        assert isinstance(outcomes[1].error, ParseError)
        assert outcomes[0].extraction.book.title == "Book A"
        assert outcomes[2].extraction.book.title == "Book C"
        assert len(outcomes[2].extraction.highlights) == 3

    def test_empty_input(self):
        assert list(extract_files([], WEEK, workers=2)) == []
