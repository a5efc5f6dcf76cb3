from __future__ import annotations

import pytest

from academic_import.excel.reader import EmptyFileError, read_workbook
from academic_import.models.target_schema import FieldSpec, TargetSchema
from academic_import.rules import coercion as rules
from academic_import.schemas.catalog import RESULTS, STUDENT_NO_ALIASES
from academic_import.services.batch_validator import validate

"""Workbook bytes -> RawTable -> BatchValidationResult, end to end."""

ROSTER = TargetSchema(
    kind="roster",
    fields=(
        FieldSpec("studentNo", rules.identifier(), STUDENT_NO_ALIASES, "Student Number"),
        FieldSpec("email", rules.email(), frozenset({"email", "emailaddress"}), "Email"),
        FieldSpec(
            "lecturerId",
            rules.identifier(2, required=False),
            frozenset({"lecturer", "lecturerid"}),
            "Lecturer ID",
        ),
    ),
    identifier="studentNo",
)


def _load(make_workbook, rows, schema=RESULTS, **kwargs):
    table = read_workbook(make_workbook(rows), filename="upload.xlsx")
    return validate(table, schema, **kwargs)


def test_blank_required_identifier_is_rejected(make_workbook):
    """Test blank required identifier is rejected."""
    result = _load(
        make_workbook,
        [["Student Number", "Email Address", "Lecturer Id"], ["", "jane@x.com", "L01"]],
        ROSTER,
    )
    assert result.mapping.detected_columns() == {
        "studentNo": "Student Number",
        "email": "Email Address",
        "lecturerId": "Lecturer Id",
    }
    assert result.accepted == ()
    assert result.rejected[0].errors == ("Row 2: Missing Student Number",)


def test_fallback_identifier_and_out_of_range_marks(make_workbook):
    """Test fallback identifier and out of range marks."""
    result = _load(make_workbook, [["Name", "Marks"], ["A001", "150"]])
    assert result.mapping.fallback_identifier
    assert result.batch_errors == (
        'No Student No column recognised; using column 1 ("Name") as Student No',
    )
    (row,) = result.rejected
    assert row.fields["studentNo"] == "A001"
    assert row.errors == ("Row 2: Marks must be between 0 and 100, got 150",)


def test_grade_point_is_derived_and_invalid_grade_rejected(make_workbook):
    """Test grade point is derived and invalid grade rejected."""
    result = _load(make_workbook, [["Student No", "Grade"], ["S1", "A+"], ["S2", "Z"]])
    (ok,) = result.accepted
    assert ok.fields["studentNo"] == "S1"
    assert ok.fields["gradePoint"] == 4.0
    (bad,) = result.rejected
    assert bad.source_row_number == 3
    assert bad.errors[0].startswith('Row 3: Invalid grade "Z". Valid grades: A+, A, A-')


def test_rows_beyond_limit_are_never_processed(make_workbook):
    """Test rows beyond limit are never processed."""
    rows = [["Student No", "Marks"]] + [[f"S{i:03d}", 50] for i in range(1, 502)]
    result = _load(make_workbook, rows, max_rows=500)
    assert result.considered_rows == 500
    assert len(result.accepted) == 500
    assert result.truncated_rows == 1
    assert result.batch_errors == (
        "Too many rows: 501 data rows found, maximum is 500. "
        "Only the first 500 were processed; 1 ignored (from row 502)",
    )
    assert all(r.source_row_number <= 501 for r in result.accepted)


def test_header_only_workbook_is_empty(make_workbook):
    """Test header only workbook is empty."""
    with pytest.raises(EmptyFileError):
        read_workbook(make_workbook([["Student No", "Marks"]]), filename="empty.xlsx")


def test_duplicate_identifiers_keep_first_occurrence(make_workbook):
    """Test duplicate identifiers keep first occurrence."""
    result = _load(
        make_workbook,
        [["Student No", "Marks"], ["S1", 10], ["S2", 20], [" s1 ", 30], ["S2", 40]],
    )
    assert [r.fields["studentNo"] for r in result.accepted] == ["S1", "S2"]
    assert [(r.source_row_number, r.duplicate_of) for r in result.rejected] == [(4, 2), (5, 3)]
    assert result.rejected[0].errors == ('Row 4: Duplicate Student No "s1" also appears in row 2',)


def test_blank_rows_are_skipped_but_keep_numbering(make_workbook):
    """Test blank rows are skipped but keep numbering."""
    result = _load(
        make_workbook,
        [["Student No", "Marks", "Comment"], ["S1", 10, "ok"], [None, None, None], ["S3", 30, None]],
    )
    assert [r.source_row_number for r in result.accepted] == [2, 4]
    assert result.ignored_headers == ("Comment",)
    assert result.preview()[0] == {
        "row": 2, "fields": {"studentNo": "S1", "marks": 10, "grade": None, "gradePoint": None},
        "ignored": {"Comment": "ok"},
    }
