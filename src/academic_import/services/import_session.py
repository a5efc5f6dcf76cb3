from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from ..api.client import ApiClient, SubmissionTransportError, normalize_batch_response
from ..excel.reader import read_workbook
from ..logging.error_log import ErrorLogBuffer
from ..models.error_record import ErrorKind
from ..models.errors import ImportFailure
from ..models.normalized_row import NormalizedRow
from ..models.raw_table import RawTable
from ..models.session_state import SessionState
from ..models.submission import BatchCreateRequest, SubmissionOutcome
from ..models.target_schema import TargetSchema
from ..models.validation_result import BatchValidationResult
from .batch_validator import validate
from .reconcile import reconcile

"""ImportSession: one operator attempt at importing one spreadsheet.

The session owns everything scoped to the attempt (raw table, validation
result, batch context, outcome). Each begin()/reset() bumps an attempt
counter; results that arrive for an older attempt are discarded instead of
overwriting newer state. A submission already sent still commits server-side,
only its result application is skipped.

Typical flow::

    session = ImportSession(RESULTS, client=client)
    result = session.load(content, "marks.xlsx")
    session.set_context(courseOfferingId=12)
    outcome = session.submit()
"""

__all__ = [
    "ImportSession",
    "MissingContextError",
    "MissingRequiredColumnError",
    "SessionStateError",
]

logger = logging.getLogger(__name__)

Parser = Callable[..., RawTable]


class MissingRequiredColumnError(ImportFailure):
    """No column was found for a required field; no row can be validated."""

    kind = ErrorKind.MISSING_REQUIRED_COLUMN

    def __init__(self, result: BatchValidationResult) -> None:
        super().__init__("; ".join(result.batch_errors) or "missing required column")
        self.result = result


class SessionStateError(RuntimeError):
    """Operation not allowed in the session's current state."""


class MissingContextError(ValueError):
    """Required batch context (e.g. departmentId) has not been supplied."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"Missing batch context: {', '.join(missing)}")
        self.missing = missing


class ImportSession:
    def __init__(
        self,
        schema: TargetSchema,
        client: ApiClient | None = None,
        parser: Parser = read_workbook,
        error_log: ErrorLogBuffer | None = None,
    ) -> None:
        self.schema = schema
        self.client = client
        self.parser = parser
        self.error_log = error_log
        self.state = SessionState.IDLE
        self.attempt = 0
        self.file_name: str | None = None
        self.result: BatchValidationResult | None = None
        self.context: dict[str, Any] = {}
        self.outcome: SubmissionOutcome | None = None
        self.error: ImportFailure | None = None
        self._submitted: tuple[NormalizedRow, ...] = ()
        self._submit_attempt: int | None = None

    def __repr__(self) -> str:
        return (
            f"ImportSession(kind={self.schema.kind!r}, state={self.state.value}, "
            f"attempt={self.attempt}, file={self.file_name!r})"
        )

    # -- lifecycle ---------------------------------------------------------

    def is_current(self, attempt: int) -> bool:
        return attempt == self.attempt

    def _next_attempt(self) -> int:
        self.attempt += 1
        self.result = None
        self.outcome = None
        self.error = None
        self._submitted = ()
        self._submit_attempt = None
        return self.attempt

    def reset(self) -> None:
        """Back to Idle from any state. Late results of older attempts are dropped."""
        self._next_attempt()
        self.file_name = None
        self.context = {}
        self.state = SessionState.IDLE
        logger.debug("event=session_reset kind=%s attempt=%d", self.schema.kind, self.attempt)

    def begin(self, file_name: str) -> int:
        """Start a new attempt for ``file_name`` (-> Parsing); returns its attempt id."""
        attempt = self._next_attempt()
        self.file_name = file_name
        self.state = SessionState.PARSING
        logger.info(
            "event=session_begin kind=%s file=%s attempt=%d", self.schema.kind, file_name, attempt
        )
        return attempt

    def _fail(self, error: ImportFailure, *, record: bool = True) -> None:
        self.error = error
        self.state = SessionState.FAILED
        if record and self.error_log is not None:
            self.error_log.record_failure(
                self.file_name or "", self.schema.kind, error.kind, error.message
            )
        logger.error(
            "event=session_failed kind=%s file=%s error_type=%s message=%s",
            self.schema.kind, self.file_name, error.kind.value, error.message,
        )

    def receive_file(self, attempt: int, content: bytes) -> BatchValidationResult | None:
        """Parse and validate ``content`` for ``attempt``.

        Returns None when ``attempt`` is stale.

        Raises:
            FileUnreadableError / EmptyFileError / MissingRequiredColumnError:
                the session is Failed afterwards
        """
        if not self.is_current(attempt):
            logger.debug("event=stale_result attempt=%d current=%d", attempt, self.attempt)
            return None
        if self.state is not SessionState.PARSING:
            raise SessionStateError(f"cannot receive a file in state {self.state.value}")

        try:
            table = self.parser(content, filename=self.file_name or "<upload>")
            result = validate(table, self.schema)
        except ImportFailure as e:
            self._fail(e)
            raise

        if self.error_log is not None:
            self.error_log.record_validation(self.file_name or "", self.schema.kind, result)
        self.result = result
        if result.fatal:
            error = MissingRequiredColumnError(result)
            # already in the error log through record_validation
            self._fail(error, record=False)
            raise error

        self.state = SessionState.VALIDATED
        return result

    def load(self, content: bytes, file_name: str) -> BatchValidationResult:
        """begin() + receive_file() for callers without concurrent uploads."""
        attempt = self.begin(file_name)
        result = self.receive_file(attempt, content)
        assert result is not None
        return result

    # -- submission --------------------------------------------------------

    def set_context(self, **fields: Any) -> None:
        """Store operator-supplied batch fields (e.g. departmentId)."""
        if self.state is SessionState.SUBMITTING:
            raise SessionStateError("cannot change batch context while submitting")
        self.context.update(fields)

    def missing_context(self) -> list[str]:
        return [
            name for name in self.schema.required_context
            if self.context.get(name) in (None, "")
        ]

    def build_request(self) -> BatchCreateRequest:
        if self.result is None:
            raise SessionStateError("no validated file")
        return BatchCreateRequest(
            endpoint=self.schema.endpoint,
            payload_key=self.schema.payload_key,
            records=tuple(row.record() for row in self.result.accepted),
            context=dict(self.context),
            context_in_records=self.schema.context_in_records,
        )

    def can_submit(self) -> bool:
        if self.result is None or not self.result.accepted:
            return False
        if self.state is SessionState.VALIDATED:
            return True
        if self.state is SessionState.FAILED:
            # transport failure: accepted set kept for retry
            return isinstance(self.error, SubmissionTransportError)
        if self.state is SessionState.COMPLETED:
            return self.outcome is not None and self.outcome.created_count == 0
        return False

    def begin_submit(self) -> tuple[int, BatchCreateRequest]:
        """Validated (or retryable) -> Submitting.

        Raises:
            SessionStateError: wrong state or nothing accepted
            MissingContextError: required batch context not set
        """
        if not self.can_submit():
            raise SessionStateError(f"cannot submit in state {self.state.value}")
        missing = self.missing_context()
        if missing:
            raise MissingContextError(missing)
        request = self.build_request()
        assert self.result is not None
        self._submitted = self.result.accepted
        self._submit_attempt = self.attempt
        self.error = None
        self.state = SessionState.SUBMITTING
        logger.info(
            "event=submit_begin kind=%s endpoint=%s records=%d",
            self.schema.kind, request.endpoint, len(request.records),
        )
        return self.attempt, request

    def _submission_is_current(self, attempt: int) -> bool:
        if not self.is_current(attempt) or self._submit_attempt != attempt:
            logger.info("event=stale_submission attempt=%d current=%d", attempt, self.attempt)
            return False
        if self.state is not SessionState.SUBMITTING:
            raise SessionStateError(f"no submission in flight (state {self.state.value})")
        return True

    def complete_submit(self, attempt: int, payload: Any) -> SubmissionOutcome | None:
        """Apply a batch-create response. Returns None when the attempt is stale."""
        if not self._submission_is_current(attempt):
            return None
        try:
            response = normalize_batch_response(payload, self.schema.identifier)
        except SubmissionTransportError as e:
            self.fail_submit(attempt, e)
            raise
        outcome = reconcile(self._submitted, response, self.schema.identifier)
        self.outcome = outcome
        self.state = SessionState.COMPLETED
        if self.error_log is not None:
            self.error_log.record_outcome(self.file_name or "", self.schema.kind, outcome)
        logger.info(
            "event=submit_complete kind=%s status=%s created=%d failed=%d",
            self.schema.kind, outcome.status.value, outcome.created_count, outcome.failed_count,
        )
        return outcome

    def fail_submit(self, attempt: int, error: SubmissionTransportError) -> None:
        """Record a transport failure; the accepted set stays available for retry."""
        if not self._submission_is_current(attempt):
            return
        self._fail(error)

    def submit(self) -> SubmissionOutcome:
        """begin_submit() + client call + complete_submit().

        Raises:
            SubmissionTransportError: the call failed (session Failed, retry allowed)
        """
        if self.client is None:
            raise SessionStateError("no API client configured")
        attempt, request = self.begin_submit()
        try:
            payload = self.client.create_many(request.endpoint, request.to_payload())
        except SubmissionTransportError as e:
            self.fail_submit(attempt, e)
            raise
        outcome = self.complete_submit(attempt, payload)
        assert outcome is not None
        return outcome
