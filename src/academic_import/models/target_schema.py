from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from ..rules.coercion import CellRule

"""TargetSchema domain model: the declarative, per-import-kind field configuration.

A TargetSchema is created once per import kind (see schemas.catalog) and never
mutated; configuration overrides produce new instances via dataclasses.replace.
"""

__all__ = [
    "AtLeastOneOf",
    "DerivedField",
    "FieldSpec",
    "TargetSchema",
    "normalize_token",
]

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize_token(text: Any) -> str:
    """Lower-case and strip every non-alphanumeric character."""
    if text is None:
        return ""
    return _NON_ALNUM.sub("", str(text).lower())


@dataclass(frozen=True)
class FieldSpec:
    """One expected field of an import kind.

    The canonical ``name`` (normalised) always counts as an alias, so a template
    generated from the schema maps back onto itself.
    """
    name: str  # canonical field name (camelCase, sent to the API)
    rule: CellRule
    aliases: frozenset[str] = frozenset()  # normalised substring tokens
    label: str | None = None  # operator-facing display name
    default: Any = None  # value used when an optional cell is blank

    @property
    def required(self) -> bool:
        return self.rule.required

    @property
    def display_name(self) -> str:
        return self.label or self.name

    @property
    def match_tokens(self) -> frozenset[str]:
        """Aliases plus the canonical name, all normalised."""
        tokens = {normalize_token(a) for a in self.aliases}
        tokens.add(normalize_token(self.name))
        tokens.discard("")
        return frozenset(tokens)


@dataclass(frozen=True)
class AtLeastOneOf:
    """Inter-field OR constraint: at least one of ``fields`` must hold a value."""
    fields: tuple[str, ...]
    message: str | None = None

    def violated(self, values: Mapping[str, Any]) -> bool:
        return all(values.get(name) is None for name in self.fields)


@dataclass(frozen=True)
class DerivedField:
    """Field computed from another field's coerced value (never user input)."""
    name: str
    source: str
    compute: Callable[[Any], Any]


@dataclass(frozen=True)
class TargetSchema:
    """Per-import-kind configuration of expected fields and batch limits."""
    kind: str  # import kind key (lecturers / results / students)
    fields: tuple[FieldSpec, ...]
    identifier: str  # field used as the batch key (duplicates, fallback column)
    constraints: tuple[AtLeastOneOf, ...] = ()
    derived: tuple[DerivedField, ...] = ()
    max_rows: int = 500
    error_display_cap: int = 10
    endpoint: str = ""  # batch-create endpoint path
    payload_key: str = "records"  # request key holding the record list
    required_context: tuple[str, ...] = ()  # operator-supplied batch fields
    context_in_records: bool = False  # copy batch context into every record
    sheet_title: str = "Sheet1"
    sample_rows: tuple[Mapping[str, Any], ...] = ()  # template example rows

    def __post_init__(self) -> None:
        names = [f.name for f in self.fields]
        if len(names) != len(set(names)):
            raise ValueError(f"schema '{self.kind}' declares duplicate field names")
        if self.identifier not in names:
            raise ValueError(
                f"schema '{self.kind}' identifier '{self.identifier}' is not a declared field"
            )
        for constraint in self.constraints:
            unknown = set(constraint.fields) - set(names)
            if unknown:
                raise ValueError(
                    f"schema '{self.kind}' constraint references unknown fields {sorted(unknown)}"
                )

    def get_field(self, name: str) -> FieldSpec:
        for spec in self.fields:
            if spec.name == name:
                return spec
        raise KeyError(name)

    @property
    def identifier_spec(self) -> FieldSpec:
        return self.get_field(self.identifier)

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    @property
    def required_fields(self) -> tuple[FieldSpec, ...]:
        return tuple(f for f in self.fields if f.required)
