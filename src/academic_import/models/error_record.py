from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from enum import Enum

"""ErrorRecord model and error kind classification.

ErrorRecord is the structured line written to the JSON Lines error log. It
supports row=-1 as a sentinel value for file-level or batch-level errors where
no spreadsheet row applies.

The record adheres to the JSON schema contract in
src/academic_import/contracts/error_log_schema.json.
"""

__all__ = [
    "ErrorKind",
    "ErrorRecord",
]

UNKNOWN_ROW = -1


class ErrorKind(Enum):
    """Classification of everything that can go wrong during one import attempt.

    - FILE_UNREADABLE: bytes are not a spreadsheet (fatal)
    - EMPTY_FILE: parsed, but zero data rows (fatal)
    - MISSING_REQUIRED_COLUMN: no column for a required field (fatal)
    - ROW_VALIDATION_ERROR: one row failed coercion / constraints (row excluded)
    - DUPLICATE_IDENTIFIER: identifier already used by an earlier row (row excluded)
    - BATCH_TOO_LARGE: rows beyond the limit were not processed (truncates)
    - SUBMISSION_TRANSPORT_ERROR: batch-create call failed, nothing created
    - SUBMISSION_PARTIAL_FAILURE: outcome shape, some items failed server-side
    """
    FILE_UNREADABLE = "FILE_UNREADABLE"
    EMPTY_FILE = "EMPTY_FILE"
    MISSING_REQUIRED_COLUMN = "MISSING_REQUIRED_COLUMN"
    ROW_VALIDATION_ERROR = "ROW_VALIDATION_ERROR"
    DUPLICATE_IDENTIFIER = "DUPLICATE_IDENTIFIER"
    BATCH_TOO_LARGE = "BATCH_TOO_LARGE"
    SUBMISSION_TRANSPORT_ERROR = "SUBMISSION_TRANSPORT_ERROR"
    SUBMISSION_PARTIAL_FAILURE = "SUBMISSION_PARTIAL_FAILURE"

    @property
    def fatal(self) -> bool:
        return self in _FATAL_KINDS


_FATAL_KINDS = frozenset({
    ErrorKind.FILE_UNREADABLE,
    ErrorKind.EMPTY_FILE,
    ErrorKind.MISSING_REQUIRED_COLUMN,
    ErrorKind.SUBMISSION_TRANSPORT_ERROR,
})


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Spreadsheet file name the error belongs to
        import_kind: Target schema kind (lecturers, results, ...)
        row: Spreadsheet row number (1-based, header = 1). -1 when no row applies
        error_type: ErrorKind value in UPPER_SNAKE_CASE
        message: Operator-facing message
    """
    timestamp: str  # ISO8601 UTC
    file: str
    import_kind: str
    row: int  # -1 for file / batch level
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(
        file: str,
        import_kind: str,
        row: int | None,
        error_type: ErrorKind | str,
        message: str,
    ) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time.

        ``row=None`` is stored as -1.
        """
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        kind = error_type.value if isinstance(error_type, ErrorKind) else error_type
        return ErrorRecord(
            timestamp=ts,
            file=file,
            import_kind=import_kind,
            row=UNKNOWN_ROW if row is None else row,
            error_type=kind,
            message=message,
        )

    def to_json_line(self) -> str:
        """Serialize to one JSON line, without extra keys."""
        return json.dumps(asdict(self), ensure_ascii=False)
