from __future__ import annotations

"""Fixed letter grade -> grade point table used for GPA style computations."""

__all__ = [
    "GRADE_POINTS",
    "VALID_GRADES",
    "grade_point",
]

GRADE_POINTS: dict[str, float] = {
    "A+": 4.0,
    "A": 3.8,
    "A-": 3.5,
    "B+": 3.3,
    "B": 3.0,
    "B-": 2.7,
    "C+": 2.3,
    "C": 2.0,
    "C-": 1.7,
    "D": 1.0,
    "F": 0.0,
}

# 表示順 (A+ -> F)
VALID_GRADES: tuple[str, ...] = tuple(GRADE_POINTS)


def grade_point(grade: str) -> float:
    """Return the grade point for an already validated letter grade."""
    return GRADE_POINTS[grade.strip().upper()]
