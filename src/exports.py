"""Spreadsheet / CSV export of the filtered incident records."""

from __future__ import annotations

from io import BytesIO

import pandas as pd

from config import EXPORT_FILENAMES
from records import RECORD_COLUMNS
from utils.exceptions import ExportFormatError

EXPORT_MIME = {
    'xlsx': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'csv': 'text/csv',
}
SHEET_NAME = 'Data'


def _export_frame(filtered: pd.DataFrame) -> pd.DataFrame:
    # record columns first, anything extra from the source file after them
    extra = [c for c in filtered.columns if c not in RECORD_COLUMNS]
    ordered = [c for c in RECORD_COLUMNS if c in filtered.columns] + extra
    return filtered[ordered]


def to_excel_bytes(filtered: pd.DataFrame) -> bytes:
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
        _export_frame(filtered).to_excel(writer, sheet_name=SHEET_NAME, index=False)
    return buffer.getvalue()


def to_csv_bytes(filtered: pd.DataFrame) -> bytes:
    return _export_frame(filtered).to_csv(index=False).encode('utf-8-sig')


def export_bytes(filtered: pd.DataFrame, fmt: str) -> bytes:
    """Serialise the filtered records, rows in filtered order, in the requested format."""
    fmt = (fmt or '').lower()
    if fmt == 'xlsx':
        return to_excel_bytes(filtered)
    if fmt == 'csv':
        return to_csv_bytes(filtered)
    raise ExportFormatError(f'Unsupported export format: {fmt!r}. Expected one of {sorted(EXPORT_FILENAMES)}')


def export_filename(fmt: str) -> str:
    try:
        return EXPORT_FILENAMES[fmt.lower()]
    except KeyError:
        raise ExportFormatError(f'Unsupported export format: {fmt!r}')
