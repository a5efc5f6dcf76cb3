from __future__ import annotations

import io
import logging
from pathlib import Path

import pandas as pd

from ..models.error_record import ErrorKind
from ..models.errors import ImportFailure
from ..models.raw_table import RawTable
from ..rules.coercion import is_blank

"""Spreadsheet reader: workbook bytes -> RawTable.

Only the first worksheet is read. Row 1 is the header row, every following row
is data. ``.xlsx`` is read through openpyxl and legacy ``.xls`` through xlrd;
pandas picks the engine from the file content, not the file name.

Two failures are kept apart:
- FileUnreadableError: the bytes are not a spreadsheet at all
- EmptyFileError: a spreadsheet with a header row (or nothing) but no data rows
"""

__all__ = [
    "EmptyFileError",
    "FileUnreadableError",
    "read_workbook",
    "read_workbook_path",
]

logger = logging.getLogger(__name__)


class FileUnreadableError(ImportFailure):
    """Raised when the bytes cannot be parsed as a spreadsheet."""

    kind = ErrorKind.FILE_UNREADABLE


class EmptyFileError(ImportFailure):
    """Raised when the spreadsheet parses but holds zero data rows."""

    kind = ErrorKind.EMPTY_FILE


def _to_raw_table(df: pd.DataFrame) -> RawTable:
    # NaN / NaT -> None so downstream code sees plain Python scalars
    df = df.astype(object).where(pd.notna(df), None)
    records = df.values.tolist()
    headers, rows = records[0], records[1:]

    # trailing columns with neither header nor data are formatting leftovers
    width = len(headers)
    while width > 0 and is_blank(headers[width - 1]) and all(
        len(r) < width or is_blank(r[width - 1]) for r in rows
    ):
        width -= 1
    while rows and RawTable.row_is_blank(rows[-1]):
        rows.pop()
    return RawTable.from_sequences(headers[:width], [r[:width] for r in rows])


def read_workbook(data: bytes, *, filename: str = "<upload>") -> RawTable:
    """Parse workbook bytes into a RawTable.

    Raises:
        FileUnreadableError: empty bytes, corrupt file or not a spreadsheet
        EmptyFileError: parsed but no non-blank data row
    """
    if not data:
        raise FileUnreadableError(f"{filename}: file is empty (0 bytes)")
    try:
        # keep_default_na=False: strings such as "NA" stay text
        df = pd.read_excel(
            io.BytesIO(data), sheet_name=0, header=None, dtype=object, keep_default_na=False
        )
    except Exception as e:  # pandas / openpyxl / xlrd raise unrelated types
        raise FileUnreadableError(f"{filename}: not a readable spreadsheet ({e})") from e

    if df.empty:
        raise EmptyFileError(f"{filename}: spreadsheet has no header row and no data")
    table = _to_raw_table(df)
    if not table.has_data:
        raise EmptyFileError(f"{filename}: spreadsheet has a header row but no data rows")
    logger.debug(
        "event=read file=%s columns=%d data_rows=%d", filename, len(table.headers), len(table.rows)
    )
    return table


def read_workbook_path(path: Path) -> RawTable:
    try:
        data = path.read_bytes()
    except OSError as e:
        raise FileUnreadableError(f"{path.name}: cannot read file ({e.strerror or e})") from e
    return read_workbook(data, filename=path.name)
