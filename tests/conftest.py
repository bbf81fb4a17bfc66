"""Shared fixtures: sample KOReader metadata files."""

import pytest

DUNE_METADATA = """\
-- we can read Lua syntax here!
return {
    ["annotations"] = {
        [1] = {
            ["chapter"] = "Book One",
            ["datetime"] = "2024-01-14 21:05:00",
            ["pageno"] = 12,
            ["text"] = "I must not fear.",
        },
        [2] = {
            ["datetime"] = "2024-01-16 08:30:12",
            ["note"] = "Litany",
            ["pageno"] = 13,
            ["text"] = "Fear is the mind-killer.",
        },
        [3] = {
            ["datetime"] = "2024-01-21 10:00:00",
            ["pageno"] = 40,
            ["text"] = "The spice must flow.",
        },
    },
    ["doc_props"] = {
        ["authors"] = "Frank Herbert",
        ["title"] = "Dune",
    },
    ["doc_path"] = "/mnt/us/books/Dune.epub",
}
"""

EARTHSEA_METADATA = """\
return {
    ["highlight"] = {
        [7] = {
            [1] = {
                ["datetime"] = "2024-01-15 12:00:00",
                ["text"] = "To light a candle is to cast a shadow.",
            },
        },
    },
    ["stats"] = {
        ["author"] = "Ursula K. Le Guin",
        ["title"] = "A Wizard of Earthsea",
    },
}
"""


def write_metadata(books_dir, book_name, text, extension="epub"):
    """Write ``text`` as the sidecar metadata file of ``book_name``."""
    sidecar = books_dir / f"{book_name}.sdr"
    sidecar.mkdir(parents=True, exist_ok=True)
    path = sidecar / f"metadata.{extension}.lua"
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def books_dir(tmp_path):
    """A books directory with two well-formed metadata files."""
    books = tmp_path / "books"
    write_metadata(books, "Dune", DUNE_METADATA)
    write_metadata(books, "Earthsea", EARTHSEA_METADATA)
    return books


@pytest.fixture
def make_metadata():
    """Return the ``write_metadata`` helper."""
    return write_metadata


@pytest.fixture
def dune_metadata():
    return DUNE_METADATA
