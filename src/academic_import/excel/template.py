from __future__ import annotations

import io
from collections.abc import Iterable

import pandas as pd
from openpyxl.utils import get_column_letter

from ..models.target_schema import TargetSchema

"""Template export: an .xlsx pre-populated with a schema's canonical headers.

Pure function of the TargetSchema (no network). Rows are either one row per
known identifier (identifier column filled, rest blank) or the schema's sample
rows.
"""

__all__ = [
    "generate_template",
]

MIN_COLUMN_WIDTH = 12


def generate_template(
    schema: TargetSchema, known_identifiers: Iterable[str] | None = None
) -> bytes:
    headers = list(schema.field_names)
    if known_identifiers is not None:
        rows = [{schema.identifier: str(ident)} for ident in known_identifiers]
    else:
        rows = [dict(sample) for sample in schema.sample_rows]
    df = pd.DataFrame(rows, columns=headers)

    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=schema.sheet_title, index=False)
        sheet = writer.sheets[schema.sheet_title]
        for idx, header in enumerate(headers, start=1):
            sheet.column_dimensions[get_column_letter(idx)].width = max(
                MIN_COLUMN_WIDTH, len(header) + 4
            )
    return buf.getvalue()
