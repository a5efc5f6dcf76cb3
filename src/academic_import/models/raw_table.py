from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any

from ..rules.coercion import is_blank

"""RawTable: the spreadsheet-parsing collaborator's output.

Headers and data rows exactly as they sit in the first worksheet. Row numbers
are derived from position: header = row 1, first data row = row 2.
"""

__all__ = [
    "HEADER_ROW_NUMBER",
    "RawTable",
]

HEADER_ROW_NUMBER = 1


@dataclass(frozen=True)
class RawTable:
    headers: tuple[str, ...]
    rows: tuple[tuple[Any, ...], ...]  # untyped scalars, None for blank cells

    @staticmethod
    def from_sequences(headers: Sequence[Any], rows: Sequence[Sequence[Any]]) -> RawTable:
        return RawTable(
            headers=tuple("" if h is None else str(h).strip() for h in headers),
            rows=tuple(tuple(r) for r in rows),
        )

    @staticmethod
    def row_is_blank(row: Sequence[Any]) -> bool:
        return all(is_blank(cell) for cell in row)

    def numbered_rows(self) -> Iterator[tuple[int, tuple[Any, ...]]]:
        """Yield ``(source_row_number, row)`` for every data row, blank ones included."""
        for index, row in enumerate(self.rows):
            yield index + HEADER_ROW_NUMBER + 1, row

    @property
    def data_row_count(self) -> int:
        """Number of data rows that hold at least one non-blank cell."""
        return sum(1 for row in self.rows if not self.row_is_blank(row))

    @property
    def has_data(self) -> bool:
        return any(not self.row_is_blank(row) for row in self.rows)
