"""Immutable character grid parsed from raw text."""

from __future__ import annotations

import re

_LINE_BREAKS = re.compile(r"[\r\n]+")


class EmptySourceError(ValueError):
    """Raised when raw text contains no non-empty rows."""


def split_rows(text: str) -> tuple[str, ...]:
    """Split on any run of CR/LF characters and drop empty entries."""
    return tuple(row for row in _LINE_BREAKS.split(text) if row)


class Grid:
    """Rows of symbols. Rows may have different lengths.

    A grid is never edited in place; reloading builds a new one.
    Coordinates passed to :meth:`cell_at` must already be wrapped.
    """

    __slots__ = ("_rows",)

    def __init__(self, raw_text: str) -> None:
        rows = split_rows(raw_text)
        if not rows:
            raise EmptySourceError("source text has no non-empty rows")
        self._rows: tuple[str, ...] = rows

    @property
    def rows(self) -> tuple[str, ...]:
        return self._rows

    def row_count(self) -> int:
        return len(self._rows)

    def row_length(self, row: int) -> int:
        return len(self._rows[row])

    def cell_at(self, row: int, col: int) -> str:
        return self._rows[row][col]

    def __repr__(self) -> str:
        return f"Grid(rows={self.row_count()})"
