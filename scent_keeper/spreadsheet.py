"""
Minimal xlsx codec: an array of rows in, an array of rows out.
The first row is always the header; only the first sheet is read.
"""

from io import BytesIO
from typing import Any, Optional, Sequence

import pandas as pd
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.utils import get_column_letter

from . import settings
from .utils import is_blank

Row = list[Any]


def clean_cell(value: Any) -> Any:
    """Drops control characters that xlsx cannot store (e.g. vertical tab)."""
    if isinstance(value, str):
        return ILLEGAL_CHARACTERS_RE.sub("", value)
    return value


def encode_rows(
    rows: Sequence[Sequence[Any]],
    column_widths: Optional[Sequence[float]] = None,
    sheet_name: str = settings.SHEET_NAME,
) -> bytes:
    """Writes rows (header first) to a single-sheet xlsx document."""
    if not rows:
        raise ValueError("Cannot encode a spreadsheet without a header row")

    header, *body = rows
    column_count = len(header)
    padded = [
        [clean_cell(cell) for cell in list(row)[:column_count]]
        + [None] * (column_count - len(row))
        for row in body
    ]
    df = pd.DataFrame(padded, columns=[clean_cell(name) for name in header], dtype=object)

    with BytesIO() as buffer:
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name=sheet_name, index=False)

            worksheet = writer.sheets[sheet_name]
            for index, width in enumerate(column_widths or [], start=1):
                worksheet.column_dimensions[get_column_letter(index)].width = width

        return buffer.getvalue()


def _trim(row: Row) -> Row:
    end = len(row)
    while end and is_blank(row[end - 1]):
        end -= 1
    return row[:end]


def decode_rows(data: bytes) -> list[Row]:
    """
    Reads the first sheet as a list of rows. Empty cells become None and
    trailing empty cells are dropped. Text such as 'NA' is kept as-is.
    """
    with BytesIO(data) as buffer:
        df = pd.read_excel(
            buffer,
            sheet_name=0,
            header=None,
            dtype=object,
            keep_default_na=False,
            engine="openpyxl",
        )

    rows = df.astype(object).where(df.notna(), None).values.tolist()
    return [
        _trim([None if is_blank(cell) else cell for cell in row]) for row in rows
    ]
