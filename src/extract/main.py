"""
Extract highlights from KOReader metadata files.

Each file goes through decode -> extract -> date filter on its own. A file
that fails produces a FileOutcome carrying the error instead of raising, so
one malformed sidecar never stops the rest of the batch.
"""

from collections.abc import Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from common.constants import DEFAULT_MAX_DEPTH
from common.errors import ExtractError, ParseError

from .date_filter import DateRange, FilteredHighlights
from .highlight_extraction import extract
from .lua_table import decode_file
from .models import Extraction


@dataclass
class FileOutcome:
    """What happened to one metadata file."""

    path: Path
    extraction: Extraction | None = None
    error: Exception | None = None
    total_highlights: int = 0  # before date filtering

    @property
    def ok(self) -> bool:
        return self.error is None


def extract_file(
    path: Path,
    window: DateRange,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> FileOutcome:
    """
    Decode, extract and date-filter a single metadata file.

    Args:
        path: Metadata file
        window: Dates to keep
        max_depth: Nesting limit for the decoder

    Returns:
        FileOutcome with the filtered extraction, or with the error when the
        file is unreadable (OSError, UnicodeDecodeError), malformed
        (ParseError) or lacks required data (ExtractError)
    """
    try:
        root = decode_file(path, max_depth=max_depth)
        extraction = extract(root, path)
    except (ParseError, ExtractError, OSError, UnicodeDecodeError) as e:
        return FileOutcome(path=path, error=e)

    total = len(extraction.highlights)
    extraction.highlights = list(FilteredHighlights(extraction.highlights, window))
    return FileOutcome(path=path, extraction=extraction, total_highlights=total)


def extract_files(
    paths: Iterable[Path],
    window: DateRange,
    max_depth: int = DEFAULT_MAX_DEPTH,
    workers: int = 1,
) -> Iterator[FileOutcome]:
    """
    Run ``extract_file`` over many files, yielding outcomes in input order.

    With ``workers > 1`` files are decoded on a thread pool; results are still
    yielded in input order so a single consumer can write them.
    """
    paths = list(paths)
    if workers <= 1:
        for path in paths:
            yield extract_file(path, window, max_depth)
        return

    with ThreadPoolExecutor(max_workers=workers) as pool:
        yield from pool.map(lambda p: extract_file(p, window, max_depth), paths)
