from __future__ import annotations

import math
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any

from .grades import VALID_GRADES

"""Cell coercion: parse and validate one raw spreadsheet value against a typed rule.

Every rule trims surrounding whitespace first. A blank cell satisfies an
optional rule (value ``None``) and fails a required rule with
``Missing <label>``. Failures raise CoercionError whose message names the
field's display label and echoes the offending value; callers add the row
number. All functions here are pure.
"""

__all__ = [
    "CellRule",
    "CoercionError",
    "RuleKind",
    "cell_text",
    "coerce",
    "email",
    "enumerated_grade",
    "identifier",
    "integer_in_range",
    "is_blank",
    "number_in_range",
    "optional_text",
    "phone",
    "required_text",
]

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^[\d\s\-+()]+$")
IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9/_.\-]*$")


class CoercionError(ValueError):
    """Raised when a cell value does not satisfy its rule."""


class RuleKind(Enum):
    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    IDENTIFIER = "identifier"
    NUMBER = "number"
    GRADE = "grade"


@dataclass(frozen=True)
class CellRule:
    """Declarative validation rule for a single field.

    Built through the factory functions below rather than directly.
    """
    kind: RuleKind
    required: bool = True
    min_len: int = 0
    max_len: int | None = None
    minimum: float | None = None
    maximum: float | None = None
    integer: bool = False  # NUMBER only: reject fractional values
    choices: tuple[str, ...] = ()  # GRADE only, display order


def required_text(min_len: int = 1) -> CellRule:
    return CellRule(RuleKind.TEXT, required=True, min_len=min_len)


def optional_text(max_len: int | None = None) -> CellRule:
    return CellRule(RuleKind.TEXT, required=False, max_len=max_len)


def email(*, required: bool = True) -> CellRule:
    return CellRule(RuleKind.EMAIL, required=required)


def phone(*, required: bool = True) -> CellRule:
    """Digits plus spaces, dashes, plus sign and parentheses."""
    return CellRule(RuleKind.PHONE, required=required)


def identifier(min_len: int = 1, *, required: bool = True) -> CellRule:
    return CellRule(RuleKind.IDENTIFIER, required=required, min_len=min_len)


def number_in_range(minimum: float, maximum: float, *, required: bool = False) -> CellRule:
    return CellRule(RuleKind.NUMBER, required=required, minimum=minimum, maximum=maximum)


def integer_in_range(minimum: int, maximum: int, *, required: bool = False) -> CellRule:
    return CellRule(
        RuleKind.NUMBER, required=required, minimum=minimum, maximum=maximum, integer=True
    )


def enumerated_grade(
    choices: tuple[str, ...] = VALID_GRADES, *, required: bool = False
) -> CellRule:
    return CellRule(RuleKind.GRADE, required=required, choices=tuple(c.upper() for c in choices))


def is_blank(raw: Any) -> bool:
    """True for None, NaN and whitespace-only strings."""
    if raw is None:
        return True
    if isinstance(raw, float) and math.isnan(raw):
        return True
    if isinstance(raw, str) and raw.strip() == "":
        return True
    return False


def cell_text(raw: Any) -> str:
    """Render a raw cell as trimmed text.

    Integral floats lose their ``.0`` (Excel stores ``1001`` as ``1001.0``) and
    dates written as cells render as ISO dates.
    """
    if isinstance(raw, bool):
        return str(raw)
    if isinstance(raw, float) and raw.is_integer():
        return str(int(raw))
    if isinstance(raw, datetime):
        if (raw.hour, raw.minute, raw.second, raw.microsecond) == (0, 0, 0, 0):
            return raw.date().isoformat()
        return raw.isoformat()
    if isinstance(raw, date):
        return raw.isoformat()
    return str(raw).strip()


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def _check_text(text: str, rule: CellRule, label: str) -> str:
    if rule.min_len and len(text) < rule.min_len:
        raise CoercionError(f"{label} must be at least {rule.min_len} characters")
    if rule.max_len is not None and len(text) > rule.max_len:
        raise CoercionError(f"{label} must be at most {rule.max_len} characters")
    return text


def _check_email(text: str, rule: CellRule, label: str) -> str:
    if not EMAIL_PATTERN.match(text):
        raise CoercionError(f'Invalid {label} format "{text}"')
    return text


def _check_phone(text: str, rule: CellRule, label: str) -> str:
    if not PHONE_PATTERN.match(text) or not any(ch.isdigit() for ch in text):
        raise CoercionError(f'Invalid {label} format "{text}"')
    return text


def _check_identifier(text: str, rule: CellRule, label: str) -> str:
    if rule.min_len and len(text) < rule.min_len:
        raise CoercionError(f"{label} must be at least {rule.min_len} characters")
    if not IDENTIFIER_PATTERN.match(text):
        raise CoercionError(
            f'{label} "{text}" may only contain letters, digits and / _ . -'
        )
    return text


def _check_number(text: str, rule: CellRule, label: str) -> int | float:
    try:
        value = float(text)
    except ValueError:
        raise CoercionError(f'{label} must be a number, got "{text}"') from None
    if math.isnan(value) or math.isinf(value):
        raise CoercionError(f'{label} must be a number, got "{text}"')
    if rule.integer and not value.is_integer():
        raise CoercionError(f'{label} must be a whole number, got "{text}"')
    low, high = rule.minimum, rule.maximum
    if (low is not None and value < low) or (high is not None and value > high):
        raise CoercionError(
            f"{label} must be between {_format_number(low if low is not None else -math.inf)}"
            f" and {_format_number(high if high is not None else math.inf)}, got {text}"
        )
    return int(value) if value.is_integer() else value


def _check_grade(text: str, rule: CellRule, label: str) -> str:
    grade = text.upper()
    if grade not in rule.choices:
        raise CoercionError(
            f'Invalid {label.lower()} "{text}". Valid grades: {", ".join(rule.choices)}'
        )
    return grade


_CHECKS: dict[RuleKind, Callable[[str, CellRule, str], Any]] = {
    RuleKind.TEXT: _check_text,
    RuleKind.EMAIL: _check_email,
    RuleKind.PHONE: _check_phone,
    RuleKind.IDENTIFIER: _check_identifier,
    RuleKind.NUMBER: _check_number,
    RuleKind.GRADE: _check_grade,
}


def coerce(raw: Any, rule: CellRule, label: str) -> Any:
    """Coerce ``raw`` according to ``rule``.

    Returns the typed value (``None`` for a blank optional cell).

    Raises:
        CoercionError: blank required cell, or a value violating the rule
    """
    if is_blank(raw):
        if rule.required:
            raise CoercionError(f"Missing {label}")
        return None
    return _CHECKS[rule.kind](cell_text(raw), rule, label)
