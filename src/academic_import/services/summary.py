from __future__ import annotations

from ..models.submission import SubmissionOutcome
from ..models.validation_result import BatchValidationResult

"""SUMMARY line rendering for validation and submission results.

Formats (one line each, key=value pairs separated by single spaces):
    SUMMARY file={name} rows={n} accepted={a} rejected={r} truncated={t}
    SUMMARY status={success|partial|failed} created={c} failed={f}

File names containing whitespace are rendered with the whitespace replaced by
``_`` so the line stays splittable.
"""

__all__ = [
    "render_submission_summary",
    "render_validation_summary",
]


def _token(value: str) -> str:
    return "_".join(value.split()) or "-"


def render_validation_summary(file_name: str, result: BatchValidationResult) -> str:
    """Render the SUMMARY line of one validated file.

    ``rows`` counts the rows that were considered (accepted + rejected);
    ``truncated`` counts non-blank rows beyond the batch limit.

    Examples:
        >>> from academic_import.models.validation_result import BatchValidationResult
        >>> render_validation_summary("marks.xlsx", BatchValidationResult((), (), ()))
        'SUMMARY file=marks.xlsx rows=0 accepted=0 rejected=0 truncated=0'
    """
    return (
        f"SUMMARY file={_token(file_name)} "
        f"rows={result.considered_rows} "
        f"accepted={len(result.accepted)} "
        f"rejected={len(result.rejected)} "
        f"truncated={result.truncated_rows}"
    )


def render_submission_summary(outcome: SubmissionOutcome) -> str:
    return (
        f"SUMMARY status={outcome.status.value} "
        f"created={outcome.created_count} "
        f"failed={outcome.failed_count}"
    )
