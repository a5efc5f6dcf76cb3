from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

"""Submission models: the batch-create request, its normalised response and the
reconciled outcome presented to the operator.

The batch-create endpoint reports failures either by submission index or by the
record's identifying field; api.client.normalize_batch_response turns every
payload shape into BatchCreateResponse so nothing downstream re-sniffs shapes.
"""

__all__ = [
    "BatchCreateRequest",
    "BatchCreateResponse",
    "FailureByIndex",
    "FailureByKey",
    "ItemError",
    "ReportedFailure",
    "SubmissionOutcome",
    "SubmissionStatus",
    "UnidentifiedFailure",
]


class SubmissionStatus(Enum):
    """Outcome classification. PARTIAL is a normal outcome, not an exception."""
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass(frozen=True)
class BatchCreateRequest:
    endpoint: str
    payload_key: str
    records: tuple[dict[str, Any], ...]
    context: dict[str, Any] = field(default_factory=dict)  # operator-supplied batch fields
    context_in_records: bool = False

    def to_payload(self) -> dict[str, Any]:
        if self.context_in_records:
            records = [{**r, **self.context} for r in self.records]
        else:
            records = [dict(r) for r in self.records]
        return {self.payload_key: records, **self.context}


@dataclass(frozen=True)
class FailureByIndex:
    index: int  # 0-based submission order
    message: str


@dataclass(frozen=True)
class FailureByKey:
    key: str  # identifier field value of the failed record
    message: str


@dataclass(frozen=True)
class UnidentifiedFailure:
    message: str


ReportedFailure = FailureByIndex | FailureByKey | UnidentifiedFailure


@dataclass(frozen=True)
class BatchCreateResponse:
    """Canonical batch-create response, whatever envelope the backend used."""
    created: tuple[dict[str, Any], ...]
    created_count: int
    failures: tuple[ReportedFailure, ...] = ()


@dataclass(frozen=True)
class ItemError:
    source_row_number: int | None  # None when the server's report matches no submitted row
    message: str
    identifier: str | None = None


@dataclass(frozen=True)
class SubmissionOutcome:
    """Reconciled result of one batch-create call.

    Invariant: created_count + failed_count == number of submitted records.
    """
    created_count: int
    failed_count: int
    per_item_errors: tuple[ItemError, ...]
    created: tuple[dict[str, Any], ...] = ()

    @property
    def submitted_count(self) -> int:
        return self.created_count + self.failed_count

    @property
    def status(self) -> SubmissionStatus:
        if self.failed_count == 0:
            return SubmissionStatus.SUCCESS
        if self.created_count == 0:
            return SubmissionStatus.FAILED
        return SubmissionStatus.PARTIAL

    def error_messages(self) -> list[str]:
        messages = []
        for err in self.per_item_errors:
            if err.source_row_number is None:
                messages.append(err.message)
            else:
                messages.append(f"Row {err.source_row_number}: {err.message}")
        return messages
