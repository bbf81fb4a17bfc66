"""Build a Book and its Highlights from a decoded metadata table.

Extraction is a pure transform: nothing here logs or touches storage. A
highlight without text is skipped and counted; a highlight without a usable
timestamp fails the whole file with BadTimestampError, because the date
filter cannot place it.
"""

from collections.abc import Iterator
from datetime import datetime
from pathlib import Path

from common.errors import BadTimestampError, InvalidStructureError

from .file_utils import book_path_for_metadata
from .lua_values import Mapping, Nil, Number, RawValue, String, table_entries
from .models import Book, Extraction, Highlight
from .schema import (
    AUTHOR_KEYS,
    BOOK_PROPS_KEYS,
    CHAPTER_KEYS,
    DOC_PATH_KEYS,
    HIGHLIGHT_COLLECTION_KEYS,
    NOTE_KEYS,
    POSITION_KEYS,
    TEXT_KEYS,
    TIMESTAMP_FORMATS,
    TIMESTAMP_KEYS,
    TITLE_KEYS,
)

_ENTRY_KEYS = set(TEXT_KEYS) | set(TIMESTAMP_KEYS) | set(POSITION_KEYS)


def first_present(table: Mapping, keys: tuple[str, ...]) -> tuple[str, RawValue] | None:
    """Return (key, value) for the first of ``keys`` present and not nil."""
    for key in keys:
        value = table.get(key)
        if value is not None and not isinstance(value, Nil):
            return key, value
    return None


def _string(field: tuple[str, RawValue] | None) -> str | None:
    """Trimmed string value of a field, None when missing, blank or not a string."""
    if field is None or not isinstance(field[1], String):
        return None
    return field[1].value.strip() or None


def _position(value: RawValue) -> str | int | None:
    if isinstance(value, Number):
        if isinstance(value.value, float) and value.value.is_integer():
            return int(value.value)
        return value.value
    if isinstance(value, String):
        return value.value.strip() or None
    return None


def _plain(value: RawValue) -> object:
    return getattr(value, "value", None)


def parse_timestamp(value: RawValue) -> datetime | None:
    """Parse a timestamp stored either as a formatted string or epoch seconds.

    Epoch values are converted with the local clock, matching how the device
    writes its formatted timestamps.
    """
    if isinstance(value, Number):
        epoch = value.value
    elif isinstance(value, String):
        text = value.value.strip()
        for fmt in TIMESTAMP_FORMATS:
            try:
                return datetime.strptime(text, fmt)
            except ValueError:
                continue
        try:
            epoch = float(text)
        except ValueError:
            return None
    else:
        return None

    try:
        return datetime.fromtimestamp(epoch)
    except (OverflowError, OSError, ValueError):
        return None


def title_from_path(book_path: str) -> str:
    """Readable title from a book file name: ``Le_Guin-Earthsea.epub`` -> ``Le Guin-Earthsea``."""
    return Path(book_path).stem.replace("_", " ").strip() or book_path


def _authors(field: tuple[str, RawValue] | None) -> str | None:
    authors = _string(field)
    if authors is None:
        return None
    # KOReader separates multiple authors with newlines
    return ", ".join(line.strip() for line in authors.splitlines() if line.strip())


def extract_book(root: Mapping, source_path: str) -> Book:
    """Read the book's identity and properties from the top-level table."""
    file_path = _string(first_present(root, DOC_PATH_KEYS)) or book_path_for_metadata(source_path)

    props_field = first_present(root, BOOK_PROPS_KEYS)
    props = props_field[1] if props_field and isinstance(props_field[1], Mapping) else Mapping()

    return Book(
        title=_string(first_present(props, TITLE_KEYS)) or title_from_path(file_path),
        authors=_authors(first_present(props, AUTHOR_KEYS)),
        file_path=file_path,
    )


def _is_highlight_table(value: RawValue) -> bool:
    return isinstance(value, Mapping) and any(key in value for key in _ENTRY_KEYS)


def _is_page_group(value: RawValue) -> bool:
    entries = table_entries(value)
    return bool(entries) and all(isinstance(item, Mapping) for _, item in entries)


def iter_entries(collection: RawValue) -> Iterator[tuple[str, RawValue, str | None]]:
    """Yield (label, entry, page) for every candidate highlight in source order.

    Current files keep a flat list of annotation tables. Older files group
    highlight tables by page (``highlight[12][1] = {...}``); those groups are
    flattened and the page key is passed along as a fallback position.
    """
    for key, value in table_entries(collection):
        if _is_highlight_table(value):
            yield key, value, None
        elif _is_page_group(value):
            for sub_key, sub_value in table_entries(value):
                yield f"{key}.{sub_key}", sub_value, key
        else:
            yield key, value, None


def extract_highlight(
    entry: RawValue, label: str, page: str | None, book: Book, source_path: str
) -> Highlight | None:
    """Build one Highlight, or return None when the entry has no text.

    Raises:
        BadTimestampError: If the entry has text but no usable timestamp
    """
    if not isinstance(entry, Mapping):
        return None

    text = _string(first_present(entry, TEXT_KEYS))
    if text is None:
        return None

    timestamp_field = first_present(entry, TIMESTAMP_KEYS)
    if timestamp_field is None:
        raise BadTimestampError(source_path, label, None)
    key, raw = timestamp_field
    created_at = parse_timestamp(raw)
    if created_at is None:
        raise BadTimestampError(source_path, label, key, _plain(raw))

    position_field = first_present(entry, POSITION_KEYS)
    position = _position(position_field[1]) if position_field else None
    if position is None:
        position = page if page is not None else ""

    return Highlight(
        book_path=book.file_path,
        text=text,
        created_at=created_at,
        page_or_location=position,
        note=_string(first_present(entry, NOTE_KEYS)),
        chapter=_string(first_present(entry, CHAPTER_KEYS)),
    )


def extract(root: RawValue, source_path: str | Path) -> Extraction:
    """Extract the book and its highlights from one decoded metadata file.

    Args:
        root: Decoded top-level table
        source_path: Path of the metadata file, used for the book's identity
            when the table has no ``doc_path`` and for error messages

    Returns:
        Extraction with highlights in source order

    Raises:
        InvalidStructureError: If the top-level value is not a keyed table
        BadTimestampError: If any highlight with text lacks a usable timestamp
    """
    source_path = str(source_path)
    if not isinstance(root, Mapping):
        raise InvalidStructureError(source_path, "top-level value is not a table of book data")

    book = extract_book(root, source_path)
    extraction = Extraction(book=book)

    collection = first_present(root, HIGHLIGHT_COLLECTION_KEYS)
    if collection is None:
        return extraction

    for label, entry, page in iter_entries(collection[1]):
        highlight = extract_highlight(entry, label, page, book, source_path)
        if highlight is None:
            extraction.skipped += 1
        else:
            extraction.highlights.append(highlight)

    return extraction
