"""Tests for building books and highlights from decoded metadata."""

from datetime import datetime

import pytest

from common.errors import BadTimestampError, InvalidStructureError
from extract.highlight_extraction import extract, parse_timestamp, title_from_path
from extract.lua_table import decode
from extract.lua_values import Number, String

SOURCE = "/books/Dune.sdr/metadata.epub.lua"


def extract_text(text, source=SOURCE):
    return extract(decode(text), source)


class TestExtractBook:
    """Tests for book identity and properties."""

    def test_current_format(self, dune_metadata):
        extraction = extract_text(dune_metadata)

        assert extraction.book.title == "Dune"
        assert extraction.book.authors == "Frank Herbert"
        assert extraction.book.file_path == "/mnt/us/books/Dune.epub"

    def test_path_from_sidecar_when_doc_path_missing(self):
        extraction = extract_text('return { ["doc_props"] = { ["title"] = "Dune" } }')
        assert extraction.book.file_path == "/books/Dune.epub"

    def test_title_falls_back_to_file_name(self):
        """Test that a missing or blank title uses the book's file name."""
        extraction = extract_text(
            'return { ["doc_path"] = "/b/Le_Guin-Earthsea.epub", ["doc_props"] = { ["title"] = "  " } }'
        )
        assert extraction.book.title == "Le Guin-Earthsea"
        assert extraction.book.authors is None

    def test_legacy_stats_and_author_keys(self):
        extraction = extract_text(
            'return { ["stats"] = { ["title"] = "Old", ["author"] = "Someone" } }'
        )
        assert extraction.book.title == "Old"
        assert extraction.book.authors == "Someone"

    def test_multiple_authors_joined(self):
        extraction = extract_text(
            'return { ["doc_props"] = { ["title"] = "T", ["authors"] = "A One\\nB Two\\n" } }'
        )
        assert extraction.book.authors == "A One, B Two"

    def test_non_table_root(self):
        with pytest.raises(InvalidStructureError):
            extract(decode('{ "a", "b" }'), SOURCE)


class TestExtractHighlights:
    """Tests for highlight entries."""

    def test_current_format(self, dune_metadata):
        extraction = extract_text(dune_metadata)

        assert [h.text for h in extraction.highlights] == [
            "I must not fear.",
            "Fear is the mind-killer.",
            "The spice must flow.",
        ]
        first, second = extraction.highlights[:2]
        assert first.created_at == datetime(2024, 1, 14, 21, 5)
        assert first.page_or_location == 12
        assert first.chapter == "Book One"
        assert first.note is None
        assert second.note == "Litany"
        assert all(h.book_path == "/mnt/us/books/Dune.epub" for h in extraction.highlights)

    def test_legacy_page_groups(self):
        """Test that page-grouped highlights are flattened with the page as position."""
        extraction = extract_text(
            """
            return {
                ["highlight"] = {
                    [7] = {
                        [1] = { ["datetime"] = "2024-01-15 12:00:00", ["text"] = "first" },
                        [2] = { ["datetime"] = "2024-01-15 12:01:00", ["text"] = "second" },
                    },
                    [9] = {
                        [1] = { ["date"] = "2024-01-16 09:00:00", ["text"] = "third", ["page"] = 10 },
                    },
                },
            }
            """
        )

        assert [(h.text, h.page_or_location) for h in extraction.highlights] == [
            ("first", "7"),
            ("second", "7"),
            ("third", 10),
        ]

    def test_location_string(self):
        extraction = extract_text(
            'return { ["annotations"] = { { ["text"] = "x", ["datetime"] = "2024-01-01 00:00:00",'
            ' ["pos0"] = "/body/DocFragment[3]/p[2]/text().0" } } }'
        )
        assert extraction.highlights[0].page_or_location == "/body/DocFragment[3]/p[2]/text().0"

    def test_missing_position_is_empty(self):
        extraction = extract_text(
            'return { ["annotations"] = { { ["text"] = "x", ["datetime"] = "2024-01-01 00:00:00" } } }'
        )
        assert extraction.highlights[0].page_or_location == ""
        assert extraction.highlights[0].position == ""

    def test_text_is_trimmed(self):
        extraction = extract_text(
            'return { ["annotations"] = { { ["text"] = "  padded \\n", ["datetime"] = "2024-01-01" } } }'
        )
        assert extraction.highlights[0].text == "padded"

    def test_entries_without_text_are_skipped(self):
        """Test that bookmarks and blank highlights are counted, not extracted."""
        extraction = extract_text(
            """
            return {
                ["annotations"] = {
                    { ["datetime"] = "2024-01-01 10:00:00", ["pageno"] = 3 },
                    { ["datetime"] = "2024-01-01 10:01:00", ["text"] = "   " },
                    { ["datetime"] = "2024-01-01 10:02:00", ["text"] = "kept" },
                },
            }
            """
        )
        assert [h.text for h in extraction.highlights] == ["kept"]
        assert extraction.skipped == 2

    def test_no_highlight_collection(self):
        extraction = extract_text('return { ["doc_props"] = { ["title"] = "Unread" } }')
        assert extraction.highlights == []
        assert extraction.skipped == 0

    def test_missing_timestamp(self):
        """Test that a highlight with no timestamp fails the file."""
        with pytest.raises(BadTimestampError) as exc_info:
            extract_text('return { ["annotations"] = { [1] = { ["text"] = "x" } } }')

        error = exc_info.value
        assert error.entry == "1"
        assert error.field is None
        assert error.source == SOURCE

    def test_unparseable_timestamp(self):
        with pytest.raises(BadTimestampError) as exc_info:
            extract_text(
                'return { ["annotations"] = { [4] = { ["text"] = "x", ["datetime"] = "last week" } } }'
            )

        error = exc_info.value
        assert error.entry == "4"
        assert error.field == "datetime"
        assert error.value == "last week"
        assert "last week" in str(error)

    def test_natural_key(self, dune_metadata):
        highlight = extract_text(dune_metadata).highlights[0]
        assert highlight.natural_key == (
            "/mnt/us/books/Dune.epub",
            "I must not fear.",
            "2024-01-14 21:05:00",
            "12",
        )


class TestParseTimestamp:
    """Tests for parse_timestamp."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("2024-01-14 21:05:00", datetime(2024, 1, 14, 21, 5)),
            ("2024-01-14T21:05:00", datetime(2024, 1, 14, 21, 5)),
            ("2024-01-14 21:05", datetime(2024, 1, 14, 21, 5)),
            ("2024-01-14", datetime(2024, 1, 14)),
        ],
    )
    def test_string_formats(self, text, expected):
        assert parse_timestamp(String(text)) == expected

    def test_epoch_seconds(self):
        assert parse_timestamp(Number(1705266300)) == datetime.fromtimestamp(1705266300)
        assert parse_timestamp(String("1705266300")) == datetime.fromtimestamp(1705266300)

    def test_unparseable(self):
        assert parse_timestamp(String("tomorrow")) is None
        assert parse_timestamp(Number(float("inf"))) is None


class TestTitleFromPath:
    """Tests for title_from_path."""

    def test_underscores_become_spaces(self):
        assert title_from_path("/books/The_Left_Hand_of_Darkness.epub") == "The Left Hand of Darkness"
