from __future__ import annotations

import pytest

from academic_import.excel.reader import EmptyFileError
from academic_import.models.error_record import ErrorKind
from academic_import.models.raw_table import RawTable
from academic_import.schemas.catalog import LECTURERS, RESULTS
from academic_import.services.batch_validator import validate


def test_partition_preserves_order_and_row_numbers(raw_table):
    """Test partition preserves order and row numbers."""
    table = raw_table(
        ["Student No", "Marks", "Grade"],
        ["S1", 80, None],
        ["S2", 101, None],
        [None, None, None],
        ["S3", None, "C"],
    )
    result = validate(table, RESULTS)
    assert [r.source_row_number for r in result.accepted] == [2, 5]
    assert [r.source_row_number for r in result.rejected] == [3]
    assert result.considered_rows == 3
    assert result.batch_errors == ()
    assert not result.fatal


def test_accepted_plus_rejected_equals_non_blank_rows(raw_table):
    """Test accepted plus rejected equals non blank rows."""
    rows = [[f"S{i}", i * 7 % 130, None] for i in range(1, 41)]
    rows.insert(10, ["", None, "   "])
    table = raw_table(["Student No", "Marks", "Grade"], *rows)
    result = validate(table, RESULTS)
    assert len(result.accepted) + len(result.rejected) == table.data_row_count == 40


def test_duplicate_identifier_rejects_later_occurrence(raw_table):
    """Test duplicate identifier rejects later occurrence."""
    table = raw_table(
        ["Email", "Lecturer ID"],
        ["a@x.com", "L01"],
        ["b@x.com", "L02"],
        ["c@x.com", "l01 "],
    )
    result = validate(table, LECTURERS)
    assert [r.fields["lecturerId"] for r in result.accepted] == ["L01", "L02"]
    (dup,) = result.rejected
    assert dup.source_row_number == 4
    assert dup.duplicate_of == 2
    assert dup.errors == ('Row 4: Duplicate Lecturer ID "l01" also appears in row 2',)
    assert dup.classified_errors()[0][0] is ErrorKind.DUPLICATE_IDENTIFIER


def test_missing_required_column_fails_fast(raw_table):
    """Test missing required column fails fast."""
    table = raw_table(["First Name", "Lecturer ID"], ["Ada", "L01"])
    result = validate(table, LECTURERS)
    assert result.fatal
    assert result.accepted == () and result.rejected == ()
    assert result.batch_errors[0] == "Missing required column: Email"
    assert result.classified_batch_errors()[0][0] is ErrorKind.MISSING_REQUIRED_COLUMN


def test_rows_beyond_limit_are_truncated_with_one_error(raw_table):
    """Test rows beyond limit are truncated with one error."""
    rows = [[f"S{i}", 50, None] for i in range(1, 13)]
    result = validate(raw_table(["Student No", "Marks", "Grade"], *rows), RESULTS, max_rows=10)
    assert result.considered_rows == 10
    assert result.truncated_rows == 2
    assert len(result.batch_errors) == 1
    assert result.batch_errors[0].startswith("Too many rows: 12 data rows found, maximum is 10")
    assert "from row 12" in result.batch_errors[0]
    assert result.batch_error_kinds == (ErrorKind.BATCH_TOO_LARGE,)
    assert not result.fatal


def test_schema_limit_is_default(raw_table):
    """Test schema limit is default."""
    rows = [[f"S{i}", 50] for i in range(1, 503)]
    result = validate(raw_table(["Student No", "Marks"], *rows), RESULTS)
    assert result.considered_rows == 500
    assert result.truncated_rows == 2


def test_header_only_table_is_empty():
    """Test header only table is empty."""
    with pytest.raises(EmptyFileError):
        validate(RawTable.from_sequences(["Student No", "Marks"], []), RESULTS)
    with pytest.raises(EmptyFileError):
        validate(RawTable.from_sequences(["Student No"], [[None], ["  "]]), RESULTS)


def test_display_errors_are_capped(raw_table):
    """Test display errors are capped."""
    rows = [[f"S{i}", "bad", None] for i in range(1, 16)]
    result = validate(raw_table(["Student No", "Marks", "Grade"], *rows), RESULTS, error_cap=10)
    shown = result.display_errors()
    assert len(shown) == 11
    assert shown[-1] == "...and 5 more"
    assert len(result.display_errors(cap=0)) == 15


def test_ambiguous_column_warning_is_non_fatal(raw_table):
    """Test ambiguous column warning is non fatal."""
    table = raw_table(["Student No", "Marks", "Score"], ["S1", 10, 99])
    result = validate(table, RESULTS)
    assert not result.fatal
    assert len(result.accepted) == 1
    assert result.accepted[0].extras == {"Score": "99"}
    assert result.ignored_headers == ("Score",)
    assert result.preview() == [
        {
            "row": 2,
            "fields": {"studentNo": "S1", "marks": 10, "grade": None, "gradePoint": None},
            "ignored": {"Score": "99"},
        }
    ]


def test_preview_keeps_every_ignored_column(raw_table):
    """Test that repeated ignored headers stay distinct in the preview."""
    table = raw_table(["Student No", "Marks", "Note", "Note"], ["S1", 10, "a", "b"])
    result = validate(table, RESULTS)
    assert result.ignored_headers == ("Note (column 3)", "Note (column 4)")
    assert result.preview()[0]["ignored"] == {"Note (column 3)": "a", "Note (column 4)": "b"}
