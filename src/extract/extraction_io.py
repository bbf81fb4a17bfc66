"""JSON export of extracted highlights."""

import json
from datetime import date, datetime
from pathlib import Path

from common.constants import DATE_FORMAT

from .models import Extraction, Highlight


def highlight_to_dict(highlight: Highlight) -> dict:
    return {
        "text": highlight.text,
        "note": highlight.note,
        "chapter": highlight.chapter,
        "page_or_location": highlight.page_or_location,
        "created_at": highlight.timestamp,
    }


def extraction_to_dict(extraction: Extraction) -> dict:
    return {
        "title": extraction.book.title,
        "authors": extraction.book.authors,
        "file_path": extraction.book.file_path,
        "highlights": [highlight_to_dict(h) for h in extraction.highlights],
    }


def write_export_file(
    file_path: Path,
    from_date: date,
    to_date: date,
    extractions: list[Extraction],
) -> None:
    """
    Write extracted highlights to a JSON file.

    Books with no highlights in the window are left out.

    Args:
        file_path: Path to write the file
        from_date: First day of the exported window
        to_date: Last day of the exported window
        extractions: Extractions, already date-filtered
    """
    books = [extraction_to_dict(e) for e in extractions if e.highlights]
    data = {
        "export_metadata": {
            "timestamp": datetime.now().isoformat(),
            "from_date": from_date.strftime(DATE_FORMAT),
            "to_date": to_date.strftime(DATE_FORMAT),
            "total_books": len(books),
            "total_highlights": sum(len(book["highlights"]) for book in books),
        },
        "books": books,
    }

    file_path.parent.mkdir(parents=True, exist_ok=True)

    with open(file_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
