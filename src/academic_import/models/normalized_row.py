from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from .error_record import ErrorKind

"""NormalizedRow: one data row after column mapping and cell coercion.

``source_row_number`` is the spreadsheet's own numbering (header = row 1) so
operator-facing errors point straight back at the file.
"""

__all__ = [
    "NormalizedRow",
]


@dataclass(frozen=True)
class NormalizedRow:
    source_row_number: int  # 1-based, header-inclusive
    fields: dict[str, Any]  # field name -> coerced value (None when blank / invalid)
    errors: tuple[str, ...] = ()  # "Row N: ..." messages
    extras: dict[str, Any] = field(default_factory=dict)  # unmapped header -> raw value
    duplicate_of: int | None = None  # row number of the first occurrence of this identifier
    error_kinds: tuple[ErrorKind, ...] = ()  # parallel to errors

    @property
    def valid(self) -> bool:
        return not self.errors

    def with_error(
        self,
        message: str,
        *,
        kind: ErrorKind = ErrorKind.ROW_VALIDATION_ERROR,
        duplicate_of: int | None = None,
    ) -> NormalizedRow:
        """Return a copy with one more error (rows are never mutated in place)."""
        return replace(
            self,
            errors=self.errors + (message,),
            error_kinds=self._kinds() + (kind,),
            duplicate_of=duplicate_of if duplicate_of is not None else self.duplicate_of,
        )

    def _kinds(self) -> tuple[ErrorKind, ...]:
        # rows built with errors but no kinds hold plain validation errors
        missing = len(self.errors) - len(self.error_kinds)
        return self.error_kinds + (ErrorKind.ROW_VALIDATION_ERROR,) * max(missing, 0)

    def classified_errors(self) -> list[tuple[ErrorKind, str]]:
        return list(zip(self._kinds(), self.errors))

    def record(self) -> dict[str, Any]:
        """Submission payload for this row: mapped fields that hold a value."""
        return {k: v for k, v in self.fields.items() if v is not None}
