from __future__ import annotations

import logging
from collections.abc import Sequence

from ..models.column_mapping import ColumnMapping
from ..models.target_schema import FieldSpec, TargetSchema, normalize_token

"""Column classification: map arbitrary spreadsheet headers onto schema fields.

Headers are normalised (lower-case, alphanumerics only) and compared against
each field's alias tokens by substring. When one header matches several
fields, the winner is decided by, in order:

1. an exact token match beats a substring match
2. the longer matching alias
3. field declaration order

A field is fed by at most one column: the lowest-index header wins and any
later header resolving to the same field stays unmapped with a warning.

When no header resolves to the identifier field, column 1 is used for it,
provided that column is not already mapped (reported as a warning). Required
fields, and OR-groups none of whose fields has a column, are reported in
``ColumnMapping.missing_fields``.
"""

__all__ = [
    "classify",
    "match_strength",
]

logger = logging.getLogger(__name__)


def match_strength(token: str, spec: FieldSpec) -> tuple[int, int] | None:
    """Return ``(exact, alias_length)`` for the best alias of ``spec`` in ``token``.

    ``None`` when no alias occurs in the normalised header.
    """
    if not token:
        return None
    best: tuple[int, int] | None = None
    for alias in spec.match_tokens:
        if alias not in token:
            continue
        score = (1 if alias == token else 0, len(alias))
        if best is None or score > best:
            best = score
    return best


def _best_field(token: str, schema: TargetSchema) -> str | None:
    best_name: str | None = None
    best_score: tuple[int, int] | None = None
    for spec in schema.fields:
        score = match_strength(token, spec)
        # strict '>' keeps the earlier declared field on ties
        if score is not None and (best_score is None or score > best_score):
            best_name, best_score = spec.name, score
    return best_name


def classify(headers: Sequence[str], schema: TargetSchema) -> ColumnMapping:
    """Build the ColumnMapping for one header row."""
    headers = tuple("" if h is None else str(h).strip() for h in headers)
    columns: dict[int, str] = {}
    claimed: dict[str, int] = {}
    warnings: list[str] = []

    for index, header in enumerate(headers):
        name = _best_field(normalize_token(header), schema)
        if name is None:
            continue
        if name in claimed:
            first = claimed[name]
            warnings.append(
                f'Ambiguous column "{header}" (column {index + 1}) also matches '
                f'{schema.get_field(name).display_name}; using "{headers[first]}" '
                f"(column {first + 1}) and ignoring this one"
            )
            continue
        columns[index] = name
        claimed[name] = index

    fallback = False
    identifier = schema.identifier_spec
    if identifier.name not in claimed and headers and 0 not in columns:
        columns[0] = identifier.name
        claimed[identifier.name] = 0
        fallback = True
        warnings.append(
            f"No {identifier.display_name} column recognised; using column 1 "
            f'("{headers[0]}") as {identifier.display_name}'
        )

    missing = [spec.display_name for spec in schema.required_fields if spec.name not in claimed]
    for constraint in schema.constraints:
        if not any(name in claimed for name in constraint.fields):
            missing.append(" or ".join(schema.get_field(n).display_name for n in constraint.fields))

    mapping = ColumnMapping(
        headers=headers,
        columns=columns,
        missing_fields=tuple(missing),
        warnings=tuple(warnings),
        fallback_identifier=fallback,
    )
    logger.debug(
        "event=classify kind=%s mapped=%s missing=%s fallback=%s",
        schema.kind,
        mapping.detected_columns(),
        list(mapping.missing_fields),
        fallback,
    )
    return mapping
