"""Restrict highlights to a date window."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import date

from common.errors import InvalidRangeError

from .models import Highlight


@dataclass(frozen=True)
class DateRange:
    """A window of calendar days; ``from_date`` must not be after ``to_date``."""

    from_date: date
    to_date: date
    inclusive: bool = True

    def __post_init__(self):
        if self.from_date > self.to_date:
            raise InvalidRangeError(self.from_date, self.to_date)

    def __contains__(self, day: date) -> bool:
        if self.inclusive:
            return self.from_date <= day <= self.to_date
        return self.from_date < day < self.to_date


class FilteredHighlights:
    """Lazy view of the highlights created inside a DateRange.

    Nothing is evaluated until iteration, and each iteration starts over
    from the source, so the view can be walked more than once as long as
    the source can.
    """

    def __init__(self, highlights: Iterable[Highlight], window: DateRange):
        self.highlights = highlights
        self.window = window

    def __iter__(self) -> Iterator[Highlight]:
        # The device clock is trusted as-is: only the calendar day counts
        return (h for h in self.highlights if h.created_at.date() in self.window)

    def __repr__(self) -> str:
        return f"FilteredHighlights({self.window.from_date} .. {self.window.to_date})"


def filter_by_date(
    highlights: Iterable[Highlight],
    from_date: date,
    to_date: date,
    inclusive: bool = True,
) -> FilteredHighlights:
    """Select highlights whose creation day falls in ``[from_date, to_date]``.

    Args:
        highlights: Highlights in source order
        from_date: First day of the window
        to_date: Last day of the window
        inclusive: Include both end days (default); False excludes both

    Returns:
        Lazy, re-iterable view preserving input order

    Raises:
        InvalidRangeError: If from_date is after to_date
    """
    return FilteredHighlights(highlights, DateRange(from_date, to_date, inclusive))
