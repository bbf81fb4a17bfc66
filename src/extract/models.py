"""Data models for extracted books and highlights."""

from dataclasses import dataclass, field
from datetime import datetime

from common.constants import DATETIME_FORMAT


@dataclass(frozen=True)
class Book:
    """A book as identified by its file on the reader."""

    title: str
    authors: str | None
    file_path: str


@dataclass(frozen=True)
class Highlight:
    """A highlighted passage.

    ``book_path`` refers to the owning ``Book.file_path``. A highlight has no
    stable id in the metadata files, so it is identified by ``natural_key``.
    """

    book_path: str
    text: str
    created_at: datetime
    page_or_location: str | int = ""
    note: str | None = None
    chapter: str | None = None

    @property
    def position(self) -> str:
        """Position as stored: numbers and locations alike become text."""
        return str(self.page_or_location)

    @property
    def timestamp(self) -> str:
        return self.created_at.strftime(DATETIME_FORMAT)

    @property
    def natural_key(self) -> tuple[str, str, str, str]:
        return (self.book_path, self.text, self.timestamp, self.position)


@dataclass
class Extraction:
    """Result of extracting one metadata file."""

    book: Book
    highlights: list[Highlight] = field(default_factory=list)
    skipped: int = 0  # entries dropped for having no text
