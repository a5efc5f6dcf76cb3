from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from .column_mapping import ColumnMapping
from .error_record import ErrorKind
from .normalized_row import NormalizedRow

"""BatchValidationResult: partition of one spreadsheet's data rows.

``accepted`` and ``rejected`` together hold every non-blank data row that was
considered, exactly once and in input order. Rows beyond the batch limit are
not considered; they are only counted in ``truncated_rows``.
"""

__all__ = [
    "BatchValidationResult",
    "summarize_errors",
]


def summarize_errors(messages: Sequence[str], cap: int) -> list[str]:
    """Cap an error list, appending an ``...and N more`` line when truncated.

    ``cap <= 0`` disables capping.
    """
    if cap <= 0 or len(messages) <= cap:
        return list(messages)
    return list(messages[:cap]) + [f"...and {len(messages) - cap} more"]


@dataclass(frozen=True)
class BatchValidationResult:
    accepted: tuple[NormalizedRow, ...]
    rejected: tuple[NormalizedRow, ...]
    batch_errors: tuple[str, ...]  # batch level: missing columns, warnings, truncation
    mapping: ColumnMapping | None = None
    truncated_rows: int = 0  # non-blank rows beyond max_rows, never processed
    error_display_cap: int = 10
    batch_error_kinds: tuple[ErrorKind | None, ...] = ()  # parallel to batch_errors, None = warning

    @property
    def fatal(self) -> bool:
        """True when a batch error stopped the file before any row was validated."""
        if self.mapping is None:
            return True
        return any(kind is not None and kind.fatal for kind in self.batch_error_kinds)

    def classified_batch_errors(self) -> list[tuple[ErrorKind, str]]:
        """Batch errors that carry an ErrorKind; column warnings are left out."""
        return [
            (kind, message)
            for kind, message in zip(self.batch_error_kinds, self.batch_errors)
            if kind is not None
        ]

    @property
    def considered_rows(self) -> int:
        return len(self.accepted) + len(self.rejected)

    @property
    def row_errors(self) -> list[str]:
        return [message for row in self.rejected for message in row.errors]

    @property
    def all_errors(self) -> list[str]:
        return list(self.batch_errors) + self.row_errors

    def display_errors(self, cap: int | None = None) -> list[str]:
        """Operator-facing error list, capped (default: the schema's display cap)."""
        return summarize_errors(self.all_errors, self.error_display_cap if cap is None else cap)

    @property
    def ignored_headers(self) -> tuple[str, ...]:
        if self.mapping is None:
            return ()
        return tuple(self.mapping.extra_label(i) for i in self.mapping.unmapped_columns)

    def preview(self) -> list[dict[str, Any]]:
        """Accepted rows for operator review, unmapped columns shown as ``ignored``."""
        return [
            {"row": r.source_row_number, "fields": dict(r.fields), "ignored": dict(r.extras)}
            for r in self.accepted
        ]
