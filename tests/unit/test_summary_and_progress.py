from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

from academic_import.models.submission import ItemError, SubmissionOutcome
from academic_import.models.validation_result import BatchValidationResult, summarize_errors
from academic_import.schemas.catalog import RESULTS
from academic_import.services.batch_validator import validate
from academic_import.services.progress import ProgressTracker
from academic_import.services.summary import render_submission_summary, render_validation_summary


def test_render_validation_summary(raw_table):
    """Test render validation summary."""
    table = raw_table(["Student No", "Marks"], ["S1", 10], ["S2", 500], ["S3", 30])
    result = validate(table, RESULTS, max_rows=2)
    assert render_validation_summary("marks sheet.xlsx", result) == (
        "SUMMARY file=marks_sheet.xlsx rows=2 accepted=1 rejected=1 truncated=1"
    )


def test_render_submission_summary():
    """Test render submission summary."""
    outcome = SubmissionOutcome(3, 2, (ItemError(2, "x"), ItemError(4, "y")))
    assert render_submission_summary(outcome) == "SUMMARY status=partial created=3 failed=2"
    assert render_submission_summary(SubmissionOutcome(5, 0, ())) == (
        "SUMMARY status=success created=5 failed=0"
    )


def test_summarize_errors_cap():
    """Test summarize errors cap."""
    messages = [f"Row {i}: bad" for i in range(2, 14)]
    assert summarize_errors(messages, 10)[-1] == "...and 2 more"
    assert summarize_errors(messages[:3], 10) == messages[:3]
    assert summarize_errors(messages, 0) == messages


def test_result_display_uses_result_cap():
    """Test result display uses result cap."""
    result = BatchValidationResult((), (), tuple(f"e{i}" for i in range(5)), error_display_cap=2)
    assert result.display_errors() == ["e0", "e1", "...and 3 more"]


def test_progress_disabled_without_tty():
    """Test progress disabled without TTY."""
    with patch("academic_import.services.progress.is_tty_enabled", return_value=False):
        with ProgressTracker(2) as progress:
            progress.start_file(Path("a.xlsx"))
            progress.finish_file(success=False)
            assert progress.pbar is None
    assert progress.current_file == 1
    assert progress.failed_files == 1


def test_progress_drives_tqdm_on_tty():
    """Test progress drives tqdm on TTY."""
    bar = MagicMock()
    with patch("academic_import.services.progress.is_tty_enabled", return_value=True), \
            patch("academic_import.services.progress.tqdm", return_value=bar) as tqdm_cls:
        progress = ProgressTracker(3, description="Checking")
        progress.start_file(Path("b.xlsx"))
        progress.finish_file()
        progress.close()
    tqdm_cls.assert_called_once()
    bar.set_description.assert_any_call("Checking (b.xlsx)")
    bar.update.assert_called_once_with(1)
    bar.close.assert_called_once()
    assert progress.pbar is None
