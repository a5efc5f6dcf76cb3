from __future__ import annotations

from .error_record import ErrorKind

"""Base exception for failures that end or suspend an import attempt.

Concrete failures are declared next to the code that raises them
(excel.reader, services.import_session, api.client); they all carry the
ErrorKind so callers can branch without isinstance ladders.
"""

__all__ = [
    "ImportFailure",
]


class ImportFailure(Exception):
    """An import attempt could not continue."""

    kind: ErrorKind

    def __init__(self, message: str, *, kind: ErrorKind | None = None) -> None:
        super().__init__(message)
        if kind is not None:
            self.kind = kind

    @property
    def message(self) -> str:
        return str(self)
