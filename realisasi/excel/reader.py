from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pandas as pd

from realisasi.models.config_models import PeriodLabels
from realisasi.models.ledger import LedgerRow, RawRow

"""Spreadsheet I/O for ledger exports.

Reading: the first sheet only, without header interpretation (header
detection belongs to the cleaner), as ragged row-major lists with empty cells
as None. Writing: the final ledger with a fixed header row.
"""

EXPORT_SHEET_NAME = "Hasil Olahan"
EXPORT_COLUMN_WIDTHS = (20, 50, 15, 15, 15, 15, 15)


class WorkbookReadError(Exception):
    """Raised when a workbook cannot be decoded."""

class EmptyWorkbookError(WorkbookReadError):
    """Raised when the file has no content or no sheets."""


def _cell(value: Any) -> Any:
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        return value
    return value


def raw_rows_from_frame(df: pd.DataFrame) -> list[RawRow]:
    """Convert a header-less DataFrame to ragged Raw Rows.

    Trailing empty cells are trimmed and fully empty rows are skipped.
    """
    rows: list[RawRow] = []
    for values in df.astype(object).values.tolist():
        row = [_cell(v) for v in values]
        while row and (row[-1] is None or row[-1] == ""):
            row.pop()
        if not row:
            continue
        rows.append(row)
    return rows


def read_first_sheet(path: Path) -> list[RawRow]:
    """Read the first sheet of an Excel file as Raw Rows.

    Parameters
    ----------
    path: Excel file path

    Raises
    ------
    EmptyWorkbookError: file is empty or has no sheets
    WorkbookReadError: file cannot be decoded as a workbook
    """
    if not path.exists() or path.stat().st_size == 0:
        raise EmptyWorkbookError(f"file content is empty: {path.name}")
    try:
        xls = pd.ExcelFile(path)
    except Exception as e:
        raise WorkbookReadError(f"cannot read workbook {path.name}: {e}") from e
    if not xls.sheet_names:
        raise EmptyWorkbookError(f"workbook has no sheets: {path.name}")
    # keep_default_na=False: descriptions such as "NA" must stay text
    df = xls.parse(xls.sheet_names[0], header=None, keep_default_na=False, na_values=[""])
    return raw_rows_from_frame(df)


def export_header(labels: PeriodLabels | None = None) -> list[str]:
    labels = labels or PeriodLabels()
    return [
        "Kode",
        "Uraian",
        "Pagu Revisi",
        "Lock Pagu",
        labels.periode_lalu,
        labels.periode_ini,
        labels.sd_periode,
    ]


def write_ledger_file(
    rows: Sequence[LedgerRow], path: Path, labels: PeriodLabels | None = None
) -> Path:
    """Write ledger rows verbatim under the fixed header row."""
    header = export_header(labels)
    width = max([len(header), *(len(r) for r in rows)])
    columns = header + [f"Kolom {i + 1}" for i in range(len(header), width)]
    padded = [list(r) + [None] * (width - len(r)) for r in rows]
    df = pd.DataFrame(padded, columns=columns)

    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=EXPORT_SHEET_NAME, index=False)
        sheet = writer.sheets[EXPORT_SHEET_NAME]
        for idx, col_width in enumerate(EXPORT_COLUMN_WIDTHS):
            letter = sheet.cell(row=1, column=idx + 1).column_letter
            sheet.column_dimensions[letter].width = col_width
    return path
