"""Utilities for metadata file discovery and naming."""

from datetime import datetime
from pathlib import Path

from common.constants import METADATA_GLOB, SIDECAR_SUFFIX


def find_metadata_files(books_path: Path) -> list[Path]:
    """
    Find every KOReader metadata file below a books directory.

    KOReader writes ``metadata.<ext>.lua`` inside a ``<book>.sdr`` folder next
    to each book. Backups such as ``metadata.epub.lua.old`` are ignored.

    Args:
        books_path: Directory to search recursively

    Returns:
        Sorted list of metadata file paths (empty if the directory is missing)
    """
    books_path = Path(books_path)
    if not books_path.is_dir():
        return []

    return sorted(
        path
        for path in books_path.rglob(METADATA_GLOB)
        if path.is_file() and path.parent.name.endswith(SIDECAR_SUFFIX)
    )


def book_path_for_metadata(metadata_path: str | Path) -> str:
    """
    Derive the book file a metadata file belongs to.

    e.g., '/books/Dune.sdr/metadata.epub.lua' -> '/books/Dune.epub'

    Falls back to the metadata path itself when it does not sit in a
    ``.sdr`` folder.

    Args:
        metadata_path: Path of the metadata file

    Returns:
        Book path as a string
    """
    metadata_path = Path(metadata_path)
    sidecar = metadata_path.parent

    if not sidecar.name.endswith(SIDECAR_SUFFIX):
        return str(metadata_path)

    stem = sidecar.name[: -len(SIDECAR_SUFFIX)]

    # metadata.<ext>.lua
    parts = metadata_path.name.split(".")
    extension = parts[1] if len(parts) == 3 else ""

    name = f"{stem}.{extension}" if extension else stem
    return str(sidecar.parent / name)


def generate_export_filename(timestamp: datetime, from_date, to_date) -> str:
    """
    Generate the file name for a JSON highlights export.

    Format: highlights_<from>_<to>_YYYYMMDD_HHMMSS.json
    """
    ts_str = timestamp.strftime("%Y%m%d_%H%M%S")
    return f"highlights_{from_date:%Y%m%d}_{to_date:%Y%m%d}_{ts_str}.json"
