"""Value tree produced by the metadata decoder.

Each Lua value kind has its own small immutable class, so consumers check
the kind explicitly instead of guessing from Python types. ``Mapping`` keys
are the source keys rendered as strings: ``[1]`` becomes ``"1"`` and
``["title"]`` and ``title`` both become ``"title"``.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class Nil:
    """Lua ``nil``."""


@dataclass(frozen=True)
class Bool:
    value: bool


@dataclass(frozen=True)
class Number:
    value: int | float


@dataclass(frozen=True)
class String:
    value: str


@dataclass(frozen=True)
class Sequence:
    """A table written with positional fields only: ``{ "a", "b" }``."""

    items: tuple["RawValue", ...] = ()

    def __iter__(self) -> Iterator["RawValue"]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class Mapping:
    """A table with at least one keyed field, in source order.

    Positional fields mixed into a keyed table get the keys ``"1"``, ``"2"``
    and so on, as Lua would assign them.
    """

    entries: dict[str, "RawValue"] = field(default_factory=dict)

    def get(self, key: str) -> "RawValue | None":
        """Return the value under ``key``, or None when the key is absent."""
        return self.entries.get(key)

    def require(self, key: str) -> "RawValue":
        """Return the value under ``key``.

        Raises:
            KeyError: If the key is absent
        """
        try:
            return self.entries[key]
        except KeyError:
            raise KeyError(f"table has no key {key!r}") from None

    def items(self):
        return self.entries.items()

    def keys(self):
        return self.entries.keys()

    def __contains__(self, key: object) -> bool:
        return key in self.entries

    def __len__(self) -> int:
        return len(self.entries)


RawValue = Union[Nil, Bool, Number, String, Sequence, Mapping]

NIL = Nil()


def table_entries(value: "RawValue") -> list[tuple[str, "RawValue"]]:
    """List the fields of a table value as (key, value) pairs.

    Sequences yield ``"1"``, ``"2"``, ... keys so both table shapes can be
    walked the same way. Non-table values have no entries.
    """
    if isinstance(value, Mapping):
        return list(value.items())
    if isinstance(value, Sequence):
        return [(str(i), item) for i, item in enumerate(value, start=1)]
    return []
