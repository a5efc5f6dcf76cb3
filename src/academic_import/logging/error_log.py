from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ErrorKind, ErrorRecord
from ..models.submission import SubmissionOutcome
from ..models.validation_result import BatchValidationResult

"""Error log buffering and JSON Lines output.

- fixed JSON Lines schema (contracts/error_log_schema.json, no extra keys)
- one ``errors-YYYYMMDD-HHMMSS.log`` (UTC) per run, created on first flush
- records are buffered and appended on flush()
"""

__all__ = [
    "ErrorLogBuffer",
    "ErrorRecord",
    "LOGS_DIR",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer for error records. flush() appends JSON Lines.

    - the file path is fixed on first access
    - no thread safety needed (serial execution)
    """

    def __init__(self, logs_dir: Path | None = None) -> None:
        self.logs_dir = logs_dir if logs_dir is not None else LOGS_DIR
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self.logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self.logs_dir / f"errors-{stamp}.log"
        return self._file_path

    @property
    def records(self) -> tuple[ErrorRecord, ...]:
        return tuple(self._records)

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def record(
        self, file: str, import_kind: str, row: int | None, kind: ErrorKind, message: str
    ) -> None:
        self.append(ErrorRecord.create(file, import_kind, row, kind, message))

    def record_validation(self, file: str, import_kind: str, result: BatchValidationResult) -> int:
        """Buffer every batch and row error of one validation. Returns the count added."""
        before = len(self._records)
        for kind, message in result.classified_batch_errors():
            self.record(file, import_kind, None, kind, message)
        for row in result.rejected:
            for kind, message in row.classified_errors():
                self.record(file, import_kind, row.source_row_number, kind, message)
        return len(self._records) - before

    def record_outcome(self, file: str, import_kind: str, outcome: SubmissionOutcome) -> int:
        """Buffer one record per failed item of a submission."""
        for err in outcome.per_item_errors:
            self.record(
                file,
                import_kind,
                err.source_row_number,
                ErrorKind.SUBMISSION_PARTIAL_FAILURE,
                err.message,
            )
        return len(outcome.per_item_errors)

    def record_failure(self, file: str, import_kind: str, kind: ErrorKind, message: str) -> None:
        """Buffer a fatal file or transport failure (no row applies)."""
        self.record(file, import_kind, None, kind, message)

    def __len__(self) -> int:
        return len(self._records)

    def flush(self) -> Path | None:
        """Append buffered records to the log file; ``None`` when nothing was buffered."""
        if not self._records:
            return None
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
