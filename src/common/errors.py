"""Exceptions raised while reading metadata files and resolving a run.

Storage failures live with the database layer in ``load.db.types``.
"""


class HighlightsError(Exception):
    """Base exception for koreader-highlights."""

    pass


class ParseError(HighlightsError):
    """Malformed serialized-table text.

    Attributes:
        reason: What went wrong, without position information
        offset: Character offset into the decoded text
        line: 1-based line number
        column: 1-based column number
        source: Path of the file being decoded, when known
    """

    def __init__(
        self,
        reason: str,
        offset: int,
        line: int,
        column: int,
        source: str | None = None,
    ):
        self.reason = reason
        self.offset = offset
        self.line = line
        self.column = column
        self.source = source
        super().__init__(str(self))

    def with_source(self, source: str) -> "ParseError":
        """Return a copy of this error that names the file it came from."""
        return ParseError(self.reason, self.offset, self.line, self.column, source)

    def __str__(self) -> str:
        location = f"line {self.line}, column {self.column} (offset {self.offset})"
        if self.source:
            return f"{self.source}: {self.reason} at {location}"
        return f"{self.reason} at {location}"


class ExtractError(HighlightsError):
    """The decoded tree lacks structure needed to build a book's highlights."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"{source}: {reason}")


class InvalidStructureError(ExtractError):
    """The top-level value is not a table of book data."""

    pass


class BadTimestampError(ExtractError):
    """A highlight carries no parseable creation timestamp."""

    def __init__(self, source: str, entry: str, field: str | None, value: object = None):
        self.entry = entry
        self.field = field
        self.value = value
        if field is None:
            reason = f"highlight {entry} has no timestamp field"
        else:
            reason = f"highlight {entry} has unparseable timestamp in '{field}': {value!r}"
        super().__init__(source, reason)


class InvalidRangeError(HighlightsError, ValueError):
    """A date window whose start lies after its end."""

    def __init__(self, from_date, to_date):
        self.from_date = from_date
        self.to_date = to_date
        super().__init__(
            f"Invalid date range: from {from_date} is after to {to_date}"
        )


class ConfigError(HighlightsError):
    """Conflicting or malformed run options."""

    pass
