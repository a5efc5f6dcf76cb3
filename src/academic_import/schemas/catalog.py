from __future__ import annotations

from ..models.target_schema import AtLeastOneOf, DerivedField, FieldSpec, TargetSchema
from ..rules import coercion as rules
from ..rules.grades import grade_point

"""Built-in TargetSchema catalogue, one schema per import kind.

- lecturers: bulk admin (lecturer account) import
- results: bulk results upload for one course offering
- students: bulk student account import

Alias tokens are normalised substrings (see services.column_classifier for the
precedence rules). Longer, more specific aliases such as ``emailaddress`` or
``phonenumber`` exist so that they beat generic tokens of other fields
(``address``, ``number``).
"""

__all__ = [
    "LECTURERS",
    "RESULTS",
    "STUDENTS",
    "SCHEMAS",
    "get_schema",
]

STUDENT_NO_ALIASES = frozenset({
    "student", "regno", "registration", "rollno", "admission", "matric", "index", "id", "number",
})

_EMAIL = FieldSpec("email", rules.email(), frozenset({"email", "mail", "emailaddress"}), "Email")
_FIRST_NAME_ALIASES = frozenset({"first", "firstname", "givenname", "forename"})
_LAST_NAME_ALIASES = frozenset({"last", "lastname", "surname", "familyname"})
_PHONE_ALIASES = frozenset({
    "phone", "phonenumber", "mobile", "mobilenumber", "telephone", "contactnumber",
})


LECTURERS = TargetSchema(
    kind="lecturers",
    fields=(
        FieldSpec("firstName", rules.optional_text(100), _FIRST_NAME_ALIASES, "First Name"),
        FieldSpec("lastName", rules.optional_text(100), _LAST_NAME_ALIASES, "Last Name"),
        _EMAIL,
        FieldSpec("phone", rules.phone(required=False), _PHONE_ALIASES, "Phone"),
        FieldSpec(
            "lecturerId",
            rules.identifier(2),
            frozenset({"lecturer", "lecturerid", "staffid", "staffno", "employeeid"}),
            "Lecturer ID",
        ),
        FieldSpec("address", rules.optional_text(255), frozenset({"address"}), "Address"),
        FieldSpec(
            "dateOfBirth", rules.optional_text(), frozenset({"dateofbirth", "dob", "birth"}),
            "Date of Birth",
        ),
        FieldSpec(
            "emergencyContactName",
            rules.optional_text(100),
            frozenset({"emergencycontactname", "emergencycontact", "emergencyname"}),
            "Emergency Contact Name",
        ),
        FieldSpec(
            "emergencyContactPhone",
            rules.phone(required=False),
            frozenset({"emergencycontactphone", "emergencyphone", "emergencycontactnumber"}),
            "Emergency Contact Phone",
        ),
    ),
    identifier="lecturerId",
    endpoint="/users/bulk/lecturers",
    payload_key="lecturers",
    required_context=("departmentId",),
    context_in_records=True,
    sheet_title="Admins",
    sample_rows=(
        {
            "firstName": "Jane", "lastName": "Doe", "email": "jane.doe@example.com",
            "phone": "0779876543", "lecturerId": "L001", "address": "Faculty Office 1",
            "dateOfBirth": "1985-06-15", "emergencyContactName": "John Doe",
            "emergencyContactPhone": "0774455665",
        },
        {
            "firstName": "Michael", "lastName": "Smith", "email": "michael.smith@example.com",
            "phone": "0779876544", "lecturerId": "L002", "address": "Faculty Office 2",
            "dateOfBirth": "1982-09-22", "emergencyContactName": "Sarah Smith",
            "emergencyContactPhone": "0771122334",
        },
    ),
)


RESULTS = TargetSchema(
    kind="results",
    fields=(
        FieldSpec("studentNo", rules.identifier(), STUDENT_NO_ALIASES, "Student No"),
        FieldSpec(
            "marks", rules.number_in_range(0, 100), frozenset({"mark", "score", "point", "total"}),
            "Marks",
        ),
        FieldSpec("grade", rules.enumerated_grade(), frozenset({"grade", "letter"}), "Grade"),
    ),
    identifier="studentNo",
    constraints=(
        AtLeastOneOf(("marks", "grade"), "Either Marks or Grade is required"),
    ),
    derived=(DerivedField("gradePoint", "grade", grade_point),),
    endpoint="/results/bulk",
    payload_key="results",
    required_context=("courseOfferingId",),
    sheet_title="Results",
    sample_rows=(
        {"studentNo": "STU001", "marks": 85, "grade": None},
        {"studentNo": "STU002", "marks": None, "grade": "A-"},
        {"studentNo": "STU003", "marks": 78, "grade": "B+"},
    ),
)


STUDENTS = TargetSchema(
    kind="students",
    fields=(
        FieldSpec("firstName", rules.required_text(), _FIRST_NAME_ALIASES, "First Name"),
        FieldSpec("lastName", rules.required_text(), _LAST_NAME_ALIASES, "Last Name"),
        _EMAIL,
        FieldSpec("phone", rules.phone(), _PHONE_ALIASES, "Phone"),
        FieldSpec(
            "studentId", rules.identifier(2), STUDENT_NO_ALIASES | {"studentid"}, "Student ID",
        ),
        FieldSpec("program", rules.required_text(), frozenset({"program", "programme", "degree"}),
                  "Program"),
        FieldSpec("year", rules.optional_text(20), frozenset({"year", "level"}), "Year"),
        FieldSpec("dateOfBirth", rules.optional_text(), frozenset({"dateofbirth", "dob", "birth"}),
                  "Date of Birth"),
        FieldSpec("gender", rules.optional_text(20), frozenset({"gender", "sex"}), "Gender"),
        FieldSpec("address", rules.optional_text(255), frozenset({"address", "street"}), "Address"),
        FieldSpec("city", rules.optional_text(100), frozenset({"city", "town"}), "City"),
        FieldSpec("state", rules.optional_text(100), frozenset({"state", "province", "region"}),
                  "State"),
    ),
    identifier="studentId",
    endpoint="/users/bulk/students",
    payload_key="students",
    sheet_title="Students",
    sample_rows=(
        {
            "firstName": "John", "lastName": "Smith", "email": "john.smith@email.com",
            "phone": "123-456-7890", "studentId": "STU2024001", "program": "Computer Science",
            "year": "1st Year", "dateOfBirth": "2000-01-15", "gender": "Male",
            "address": "123 Main St", "city": "New York", "state": "NY",
        },
        {
            "firstName": "Emma", "lastName": "Johnson", "email": "emma.johnson@email.com",
            "phone": "123-456-7891", "studentId": "STU2024002",
            "program": "Business Administration", "year": "2nd Year",
            "dateOfBirth": "1999-05-20", "gender": "Female", "address": "456 Oak Ave",
            "city": "Los Angeles", "state": "CA",
        },
    ),
)


SCHEMAS: dict[str, TargetSchema] = {s.kind: s for s in (LECTURERS, RESULTS, STUDENTS)}


def get_schema(kind: str) -> TargetSchema:
    try:
        return SCHEMAS[kind]
    except KeyError:
        raise KeyError(f"unknown import kind '{kind}' (known: {sorted(SCHEMAS)})") from None
