from __future__ import annotations

import logging

from ..excel.reader import EmptyFileError
from ..models.error_record import ErrorKind
from ..models.normalized_row import NormalizedRow
from ..models.raw_table import RawTable
from ..models.target_schema import TargetSchema
from ..models.validation_result import BatchValidationResult
from .column_classifier import classify
from .row_normalizer import normalize_row

"""Batch validation: RawTable -> BatchValidationResult.

Sequence:
1. classify headers once; a missing required column returns immediately with
   only batch errors (no row is validated against an unusable mapping)
2. drop entirely blank rows, cap the rest at ``max_rows`` (one batch error for
   the overflow, overflow rows are never normalised)
3. normalise each remaining row
4. reject later occurrences of an identifier (trimmed, case-insensitive)
5. partition into accepted / rejected, input order preserved
"""

__all__ = [
    "identifier_key",
    "validate",
]

logger = logging.getLogger(__name__)


def identifier_key(value: object) -> str:
    return str(value).strip().casefold()


def _missing_columns_message(missing: tuple[str, ...]) -> str:
    label = "column" if len(missing) == 1 else "columns"
    return f"Missing required {label}: {', '.join(missing)}"


def validate(
    table: RawTable,
    schema: TargetSchema,
    *,
    max_rows: int | None = None,
    error_cap: int | None = None,
) -> BatchValidationResult:
    """Validate every data row of ``table`` against ``schema``.

    Raises:
        EmptyFileError: the table has no non-blank data row
    """
    limit = schema.max_rows if max_rows is None else max_rows
    cap = schema.error_display_cap if error_cap is None else error_cap

    if not table.has_data:
        raise EmptyFileError("spreadsheet has a header row but no data rows")

    mapping = classify(table.headers, schema)
    if not mapping.usable:
        logger.warning(
            "event=missing_columns kind=%s missing=%s headers=%s",
            schema.kind,
            list(mapping.missing_fields),
            list(table.headers),
        )
        return BatchValidationResult(
            accepted=(),
            rejected=(),
            batch_errors=(_missing_columns_message(mapping.missing_fields),) + mapping.warnings,
            mapping=mapping,
            error_display_cap=cap,
            batch_error_kinds=(ErrorKind.MISSING_REQUIRED_COLUMN,)
            + (None,) * len(mapping.warnings),
        )

    batch_errors = list(mapping.warnings)
    batch_error_kinds: list[ErrorKind | None] = [None] * len(batch_errors)
    candidates = [(n, row) for n, row in table.numbered_rows() if not table.row_is_blank(row)]
    truncated = 0
    if len(candidates) > limit:
        truncated = len(candidates) - limit
        batch_errors.append(
            f"Too many rows: {len(candidates)} data rows found, maximum is {limit}. "
            f"Only the first {limit} were processed; {truncated} ignored "
            f"(from row {candidates[limit][0]})"
        )
        batch_error_kinds.append(ErrorKind.BATCH_TOO_LARGE)
        candidates = candidates[:limit]

    rows: list[NormalizedRow] = []
    first_seen: dict[str, int] = {}
    id_spec = schema.identifier_spec
    for row_number, raw in candidates:
        normalized = normalize_row(raw, mapping, schema, row_number)
        value = normalized.fields.get(id_spec.name)
        if value is not None:
            key = identifier_key(value)
            if key in first_seen:
                first = first_seen[key]
                normalized = normalized.with_error(
                    f'Row {row_number}: Duplicate {id_spec.display_name} "{value}" '
                    f"also appears in row {first}",
                    kind=ErrorKind.DUPLICATE_IDENTIFIER,
                    duplicate_of=first,
                )
            else:
                first_seen[key] = row_number
        rows.append(normalized)

    accepted = tuple(r for r in rows if r.valid)
    rejected = tuple(r for r in rows if not r.valid)
    logger.info(
        "event=validate kind=%s rows=%d accepted=%d rejected=%d truncated=%d",
        schema.kind,
        len(rows),
        len(accepted),
        len(rejected),
        truncated,
    )
    return BatchValidationResult(
        accepted=accepted,
        rejected=rejected,
        batch_errors=tuple(batch_errors),
        mapping=mapping,
        truncated_rows=truncated,
        error_display_cap=cap,
        batch_error_kinds=tuple(batch_error_kinds),
    )
