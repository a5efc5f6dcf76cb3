from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

"""ColumnMapping: which spreadsheet column feeds which schema field.

Built once per RawTable by services.column_classifier and immutable afterwards.
Columns without a confident match stay unmapped; they are carried through to
the preview as extras, never silently dropped.
"""

__all__ = [
    "ColumnMapping",
]


@dataclass(frozen=True)
class ColumnMapping:
    headers: tuple[str, ...]
    columns: Mapping[int, str]  # column index -> field name (at most one column per field)
    missing_fields: tuple[str, ...] = ()  # required fields (or OR-groups) without a column
    warnings: tuple[str, ...] = ()  # ambiguous / fallback notices, non-fatal
    fallback_identifier: bool = False  # identifier taken from column 1 by position
    _by_field: Mapping[str, int] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_by_field", {name: idx for idx, name in self.columns.items()})

    def column_for(self, field_name: str) -> int | None:
        return self._by_field.get(field_name)

    def header_for(self, field_name: str) -> str | None:
        idx = self.column_for(field_name)
        return None if idx is None else self.headers[idx]

    @property
    def unmapped_columns(self) -> tuple[int, ...]:
        return tuple(i for i in range(len(self.headers)) if i not in self.columns)

    def extra_label(self, index: int) -> str:
        """Preview key for an unmapped column.

        Blank headers become ``Column N``; a header shared with another unmapped
        column gets `` (column N)`` so neither value is lost.
        """
        header = self.headers[index] if index < len(self.headers) else ""
        if not header:
            return f"Column {index + 1}"
        repeated = sum(1 for i in self.unmapped_columns if self.headers[i] == header) > 1
        return f"{header} (column {index + 1})" if repeated else header

    @property
    def usable(self) -> bool:
        """False when a required field has no column (nothing can be trusted)."""
        return not self.missing_fields

    def detected_columns(self) -> dict[str, str]:
        """field name -> original header, for operator display."""
        return {name: self.headers[idx] for idx, name in sorted(self.columns.items())}
