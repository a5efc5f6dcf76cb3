from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from ..models.column_mapping import ColumnMapping
from ..models.error_record import ErrorKind
from ..models.normalized_row import NormalizedRow
from ..models.target_schema import TargetSchema
from ..rules.coercion import CoercionError, cell_text, coerce, is_blank

"""Row normalisation: one raw data row -> NormalizedRow.

Order of evaluation:
1. per-field coercion (unmapped required field -> ``Missing <label>``)
2. defaults for blank optional cells
3. inter-field OR constraints, skipped when one of their fields already failed
4. derived fields (e.g. gradePoint from grade)

Every error is prefixed with ``Row N: `` using the spreadsheet row number.
"""

__all__ = [
    "normalize_row",
]


def _cell(row: Sequence[Any], index: int) -> Any:
    return row[index] if index < len(row) else None


def normalize_row(
    row: Sequence[Any],
    mapping: ColumnMapping,
    schema: TargetSchema,
    row_number: int,
) -> NormalizedRow:
    fields: dict[str, Any] = {}
    errors: list[str] = []
    failed: set[str] = set()

    for spec in schema.fields:
        column = mapping.column_for(spec.name)
        if column is None:
            if spec.required:
                errors.append(f"Row {row_number}: Missing {spec.display_name}")
                failed.add(spec.name)
            fields[spec.name] = spec.default
            continue
        try:
            value = coerce(_cell(row, column), spec.rule, spec.display_name)
        except CoercionError as e:
            errors.append(f"Row {row_number}: {e}")
            failed.add(spec.name)
            value = None
        else:
            if value is None:
                value = spec.default
        fields[spec.name] = value

    for constraint in schema.constraints:
        if failed.intersection(constraint.fields):
            continue
        if constraint.violated(fields):
            message = constraint.message or "At least one of {} is required".format(
                " or ".join(schema.get_field(n).display_name for n in constraint.fields)
            )
            errors.append(f"Row {row_number}: {message}")

    for derived in schema.derived:
        source = fields.get(derived.source)
        fields[derived.name] = None if source is None else derived.compute(source)

    extras = {}
    for index in mapping.unmapped_columns:
        raw = _cell(row, index)
        extras[mapping.extra_label(index)] = None if is_blank(raw) else cell_text(raw)

    return NormalizedRow(
        source_row_number=row_number,
        fields=fields,
        errors=tuple(errors),
        extras=extras,
        error_kinds=(ErrorKind.ROW_VALIDATION_ERROR,) * len(errors),
    )
