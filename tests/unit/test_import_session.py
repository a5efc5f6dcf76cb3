from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from academic_import.api.client import SubmissionTransportError
from academic_import.excel.reader import EmptyFileError, FileUnreadableError
from academic_import.logging.error_log import ErrorLogBuffer
from academic_import.models.raw_table import RawTable
from academic_import.models.session_state import SessionState
from academic_import.models.submission import SubmissionStatus
from academic_import.schemas.catalog import LECTURERS, RESULTS
from academic_import.services.import_session import (
    ImportSession,
    MissingContextError,
    MissingRequiredColumnError,
    SessionStateError,
)


def _parser_for(table: RawTable):
    def _parse(content: bytes, *, filename: str) -> RawTable:
        return table
    return _parse


LECTURER_TABLE = RawTable.from_sequences(
    ["First Name", "Email", "Lecturer ID"],
    [["Ada", "ada@x.com", "L01"], ["Bob", "bob@x", "L02"], ["Cy", "cy@x.com", "L03"]],
)


def _session(client=None, table=LECTURER_TABLE, error_log=None) -> ImportSession:
    return ImportSession(LECTURERS, client=client, parser=_parser_for(table), error_log=error_log)


def test_load_moves_to_validated():
    """Test load moves to validated."""
    session = _session()
    assert session.state is SessionState.IDLE
    result = session.load(b"xlsx", "staff.xlsx")
    assert session.state is SessionState.VALIDATED
    assert [r.source_row_number for r in result.accepted] == [2, 4]
    assert session.file_name == "staff.xlsx"


def test_stale_parse_result_is_discarded():
    """Test stale parse result is discarded."""
    session = _session()
    first = session.begin("old.xlsx")
    second = session.begin("new.xlsx")
    assert session.receive_file(first, b"...") is None
    assert session.state is SessionState.PARSING
    assert session.receive_file(second, b"...") is not None
    assert not session.is_current(first)


def test_reset_returns_to_idle_and_drops_late_result():
    """Test reset returns to idle and drops late result."""
    session = _session()
    attempt = session.begin("a.xlsx")
    session.reset()
    assert session.receive_file(attempt, b"...") is None
    assert session.state is SessionState.IDLE
    assert session.result is None


def test_unreadable_file_fails_session():
    """Test unreadable file fails session."""
    def _broken(content, *, filename):
        raise FileUnreadableError(f"{filename}: not a readable spreadsheet")
    log = ErrorLogBuffer()
    session = ImportSession(RESULTS, parser=_broken, error_log=log)
    with pytest.raises(FileUnreadableError):
        session.load(b"junk", "junk.bin")
    assert session.state is SessionState.FAILED
    assert log.records[0].error_type == "FILE_UNREADABLE"
    assert log.records[0].row == -1


def test_empty_file_fails_session():
    """Test empty file fails session."""
    session = _session(table=RawTable.from_sequences(["Email", "Lecturer ID"], []))
    with pytest.raises(EmptyFileError):
        session.load(b"x", "empty.xlsx")
    assert session.state is SessionState.FAILED


def test_missing_column_fails_session_with_result():
    """Test missing column fails session with result."""
    table = RawTable.from_sequences(["First Name", "Lecturer ID"], [["Ada", "L01"]])
    session = _session(table=table)
    with pytest.raises(MissingRequiredColumnError) as e:
        session.load(b"x", "staff.xlsx")
    assert e.value.result.fatal
    assert "Missing required column: Email" in str(e.value)
    assert session.state is SessionState.FAILED
    with pytest.raises(SessionStateError):
        session.begin_submit()


def test_submit_requires_context():
    """Test submit requires context."""
    session = _session(client=MagicMock())
    session.load(b"x", "staff.xlsx")
    with pytest.raises(MissingContextError) as e:
        session.begin_submit()
    assert e.value.missing == ["departmentId"]
    assert session.state is SessionState.VALIDATED


def test_request_copies_department_into_records():
    """Test request copies department into records."""
    session = _session()
    session.load(b"x", "staff.xlsx")
    session.set_context(departmentId=3)
    attempt, request = session.begin_submit()
    payload = request.to_payload()
    assert request.endpoint == "/users/bulk/lecturers"
    assert payload["departmentId"] == 3
    assert [r["lecturerId"] for r in payload["lecturers"]] == ["L01", "L03"]
    assert all(r["departmentId"] == 3 for r in payload["lecturers"])
    assert session.state is SessionState.SUBMITTING
    with pytest.raises(SessionStateError):
        session.set_context(departmentId=4)


def test_submit_partial_outcome():
    """Test submit partial outcome."""
    client = MagicMock()
    client.create_many.return_value = {
        "created": [{"id": 1}],
        "failed": [{"data": {"lecturerId": "L03"}, "error": "Email already exists"}],
    }
    log = ErrorLogBuffer()
    session = _session(client=client, error_log=log)
    session.load(b"x", "staff.xlsx")
    session.set_context(departmentId=3)
    outcome = session.submit()
    assert outcome.status is SubmissionStatus.PARTIAL
    assert outcome.error_messages() == ["Row 4: Email already exists"]
    assert session.state is SessionState.COMPLETED
    assert [r.error_type for r in log.records][-1] == "SUBMISSION_PARTIAL_FAILURE"


def test_transport_failure_keeps_accepted_rows_for_retry():
    """Test transport failure keeps accepted rows for retry."""
    client = MagicMock()
    client.create_many.side_effect = [
        SubmissionTransportError("POST /users/bulk/lecturers failed: timeout"),
        {"created": [{}, {}], "failed": []},
    ]
    session = _session(client=client)
    session.load(b"x", "staff.xlsx")
    session.set_context(departmentId=3)
    with pytest.raises(SubmissionTransportError):
        session.submit()
    assert session.state is SessionState.FAILED
    assert len(session.result.accepted) == 2
    outcome = session.submit()
    assert outcome.status is SubmissionStatus.SUCCESS
    assert client.create_many.call_count == 2


def test_zero_successes_allow_retry_without_reparse():
    """Test zero successes allow retry without reparse."""
    client = MagicMock()
    client.create_many.return_value = {"created": [], "failed": [{"error": "Department not found"}] * 2}
    session = _session(client=client)
    session.load(b"x", "staff.xlsx")
    session.set_context(departmentId=99)
    outcome = session.submit()
    assert outcome.status is SubmissionStatus.FAILED
    assert len(outcome.per_item_errors) == 2
    assert len(session.result.accepted) == 2
    session.set_context(departmentId=3)
    assert session.can_submit()


def test_completed_success_cannot_resubmit():
    """Test completed success cannot resubmit."""
    client = MagicMock()
    client.create_many.return_value = [{"id": 1}, {"id": 2}]
    session = _session(client=client)
    session.load(b"x", "staff.xlsx")
    session.set_context(departmentId=3)
    session.submit()
    with pytest.raises(SessionStateError):
        session.begin_submit()


def test_late_submission_result_after_reset_is_ignored():
    """Test late submission result after reset is ignored."""
    session = _session()
    session.load(b"x", "staff.xlsx")
    session.set_context(departmentId=3)
    attempt, _ = session.begin_submit()
    session.reset()
    assert session.complete_submit(attempt, {"created": [{}, {}]}) is None
    assert session.state is SessionState.IDLE
    assert session.outcome is None


def test_unrecognised_response_fails_submission():
    """Test unrecognised response fails submission."""
    session = _session()
    session.load(b"x", "staff.xlsx")
    session.set_context(departmentId=3)
    attempt, _ = session.begin_submit()
    with pytest.raises(SubmissionTransportError):
        session.complete_submit(attempt, {"status": "ok"})
    assert session.state is SessionState.FAILED
    assert session.can_submit()


def test_submit_without_client():
    """Test submit without client."""
    session = _session()
    session.load(b"x", "staff.xlsx")
    with pytest.raises(SessionStateError):
        session.submit()
