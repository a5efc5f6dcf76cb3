from __future__ import annotations

import logging
from collections.abc import Sequence

from ..models.normalized_row import NormalizedRow
from ..models.submission import (
    BatchCreateResponse,
    FailureByIndex,
    FailureByKey,
    ItemError,
    SubmissionOutcome,
)
from .batch_validator import identifier_key

"""Map a batch-create response back onto the submitted spreadsheet rows.

The API has no row-number concept: index failures resolve through submission
order, key failures through the identifier value. Failures that resolve to no
submitted row keep ``source_row_number=None``; repeated failures of one row keep
its row number but count once. Rows the server reports neither
as created nor as failed are counted as failed so that
``created_count + failed_count == len(submitted_rows)`` always holds.
"""

__all__ = [
    "NOT_REPORTED_MESSAGE",
    "reconcile",
]

logger = logging.getLogger(__name__)

NOT_REPORTED_MESSAGE = "No result reported by server"




def reconcile(
    submitted_rows: Sequence[NormalizedRow],
    response: BatchCreateResponse,
    identifier: str,
) -> SubmissionOutcome:
    by_key: dict[str, int] = {}
    for idx, row in enumerate(submitted_rows):
        value = row.fields.get(identifier)
        if value is not None:
            by_key.setdefault(identifier_key(value), idx)

    errors: list[ItemError] = []
    failed_positions: set[int] = set()
    unmatched = 0
    for failure in response.failures:
        position: int | None = None
        if isinstance(failure, FailureByIndex):
            if 0 <= failure.index < len(submitted_rows):
                position = failure.index
        elif isinstance(failure, FailureByKey):
            position = by_key.get(identifier_key(failure.key))

        if position is None:
            unmatched += 1
            key = failure.key if isinstance(failure, FailureByKey) else None
            errors.append(ItemError(None, failure.message, key))
            continue
        # a second failure for the same row is reported, but the row counts once
        failed_positions.add(position)
        row = submitted_rows[position]
        errors.append(ItemError(row.source_row_number, failure.message, _ident(row, identifier)))

    submitted = len(submitted_rows)
    # the server's count wins only when it stays within the submitted batch
    created = min(response.created_count, submitted - len(failed_positions))
    # unmatched failures already stand for some of the rows not reported as created
    unreported = submitted - created - len(failed_positions) - unmatched
    if unreported > 0:
        for position in _silent_positions(
            submitted_rows, response, identifier, by_key, failed_positions, unreported
        ):
            row = submitted_rows[position]
            errors.append(
                ItemError(row.source_row_number, NOT_REPORTED_MESSAGE, _ident(row, identifier))
            )

    errors.sort(key=lambda e: (e.source_row_number is None, e.source_row_number or 0))
    outcome = SubmissionOutcome(
        created_count=created,
        failed_count=submitted - created,
        per_item_errors=tuple(errors),
        created=response.created,
    )
    logger.info(
        "event=reconcile submitted=%d created=%d failed=%d unmatched=%d",
        submitted, outcome.created_count, outcome.failed_count, unmatched,
    )
    return outcome


def _silent_positions(
    submitted_rows: Sequence[NormalizedRow],
    response: BatchCreateResponse,
    identifier: str,
    by_key: dict[str, int],
    failed_positions: set[int],
    count: int,
) -> list[int]:
    """Pick ``count`` rows to report as unreported.

    Rows whose identifier appears in ``response.created`` are blamed last; among
    the rest, the latest in submission order are chosen.
    """
    created_positions: set[int] = set()
    for item in response.created:
        if isinstance(item, dict) and item.get(identifier) is not None:
            position = by_key.get(identifier_key(item[identifier]))
            if position is not None:
                created_positions.add(position)

    open_positions = [p for p in range(len(submitted_rows)) if p not in failed_positions]
    unknown = [p for p in open_positions if p not in created_positions]
    known = [p for p in open_positions if p in created_positions]
    if len(unknown) >= count:
        return unknown[-count:]
    return unknown + known[len(known) - (count - len(unknown)):]


def _ident(row: NormalizedRow, identifier: str) -> str | None:
    value = row.fields.get(identifier)
    return None if value is None else str(value)
