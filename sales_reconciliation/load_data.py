# Docstring for sales_reconciliation/load_data module
"""
load_data.py

Input loader utilities for carrier sales reports and agency snapshots.

This module provides thin, predictable I/O functions that read Excel or CSV
files into pandas DataFrames with minimal transformation. Normalization and
row-level parsing live in `cleaning/clean_sales.py`.

Design goals
------------
- Separation of concerns: keep file I/O distinct from normalization and matching.
- Tolerance: carrier exports put a title block above the real header and may
  hold several worksheets; the loader finds the right sheet and header row.
- Traceability: every data row keeps its spreadsheet row number (`source_row`)
  so parse errors and upload errors point back at the file.

Inputs
------
- Sales report (.xlsx / .xls / .csv) exported from the carrier portal.
- Snapshots of the agency's staff roster, households and quotes (.csv / .xlsx)
  used to seed the in-memory store for dry runs.

Sheet and header detection
--------------------------
1) Sheet: the first worksheet whose name contains one of
   SALES_REPORT_SHEET_KEYWORDS ("sale", "sold", "issued"); otherwise the sheet
   with the most rows; otherwise the first sheet.
2) Header: the first of the first HEADER_SEARCH_ROWS (15) rows containing at
   least MIN_HEADER_PATTERN_HITS (2) of SALES_REPORT_HEADER_PATTERNS.
   No such row -> ValueError.

Public API
----------
- load_sales_report(path, sheet_name=None) -> pd.DataFrame
- load_staff_snapshot(path) -> pd.DataFrame
- load_households_snapshot(path) -> pd.DataFrame
- load_quotes_snapshot(path) -> pd.DataFrame

Privacy / compliance note
-------------------------
Never commit real exports to source control. Repository sample files must be
synthetic or masked.
"""


from pathlib import Path
from typing import Optional, Union

import pandas as pd

from .config import (
    HEADER_SEARCH_ROWS,
    MIN_HEADER_PATTERN_HITS,
    SALES_REPORT_HEADER_PATTERNS,
    SALES_REPORT_SHEET_KEYWORDS,
)
from .core.validators import validate_required_columns


EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}

STAFF_REQUIRED_COLUMNS = ["id", "name"]
HOUSEHOLDS_REQUIRED_COLUMNS = ["id", "first_name", "last_name"]
QUOTES_REQUIRED_COLUMNS = ["household_id", "product_type"]


def _existing_path(path: Union[str, Path], label: str) -> Path:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"{label} file not found at: {path}")
    return path


def _read_table(path: Path, **kwargs) -> pd.DataFrame:
    """Read a CSV or the first worksheet of an Excel file."""
    if path.suffix.lower() in EXCEL_SUFFIXES:
        return pd.read_excel(path, **kwargs)
    return pd.read_csv(path, **kwargs)


# --- Sales report ------------------------------------------------------------

def _pick_sheet(sheets: dict[str, pd.DataFrame]) -> str:
    names = list(sheets)
    for name in names:
        lowered = name.lower()
        if any(keyword in lowered for keyword in SALES_REPORT_SHEET_KEYWORDS):
            return name
    # max() keeps the first sheet on ties, and the first sheet when all are empty
    return max(names, key=lambda name: len(sheets[name]))


def find_header_row(grid: pd.DataFrame) -> Optional[int]:
    """Index of the header row within the first HEADER_SEARCH_ROWS rows, or None."""
    for idx in range(min(HEADER_SEARCH_ROWS, len(grid))):
        cells = [
            str(value).strip().lower()
            for value in grid.iloc[idx].tolist()
            if not pd.isna(value)
        ]
        hits = sum(
            1 for pattern in SALES_REPORT_HEADER_PATTERNS
            if any(pattern in cell for cell in cells)
        )
        if hits >= MIN_HEADER_PATTERN_HITS:
            return idx
    return None


def _frame_from_grid(grid: pd.DataFrame, header_idx: int) -> pd.DataFrame:
    headers = []
    for pos, value in enumerate(grid.iloc[header_idx].tolist()):
        label = "" if pd.isna(value) else str(value).strip()
        headers.append(label or f"column_{pos + 1}")

    body = grid.iloc[header_idx + 1:].copy()
    body.columns = headers
    # spreadsheet row number: 1-based, plus the header line itself
    body["source_row"] = [header_idx + 2 + offset for offset in range(len(body))]
    return body.reset_index(drop=True)


def load_sales_report(
        path: Union[str, Path],
        sheet_name: Optional[str] = None,
) -> pd.DataFrame:

    """

    Load a carrier sales report into a raw DataFrame.

    Args:
        path:
            .xlsx / .xls / .csv file.
        sheet_name:
            Worksheet to read. None picks the sheet automatically (see module docs).

    Returns:
        DataFrame with the report's own header labels as columns, plus
        `source_row`. Values are untouched (no cleaning yet).

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if no header row can be found.

    """

    path = _existing_path(path, "Sales report")

    if path.suffix.lower() in EXCEL_SUFFIXES:
        if sheet_name is None:
            sheets = pd.read_excel(path, sheet_name=None, header=None)
            if not sheets:
                raise ValueError(f"Sales report has no worksheets: {path}")
            sheet_name = _pick_sheet(sheets)
            grid = sheets[sheet_name]
        else:
            grid = pd.read_excel(path, sheet_name=sheet_name, header=None)
    else:
        grid = pd.read_csv(path, header=None, dtype=str, keep_default_na=False, na_values=[""])

    header_idx = find_header_row(grid)
    if header_idx is None:
        raise ValueError(
            f"Could not find a header row in the first {HEADER_SEARCH_ROWS} rows of {path.name}. "
            f"Expected columns like: {', '.join(SALES_REPORT_HEADER_PATTERNS[:6])}"
        )
    return _frame_from_grid(grid, header_idx)


# --- Snapshots ------------------------------------------------------------

def load_staff_snapshot(path: Union[str, Path]) -> pd.DataFrame:
    """Staff roster: id, name and an optional sub-producer code."""
    df = _read_table(_existing_path(path, "Staff snapshot"), dtype=str)
    validate_required_columns(df, STAFF_REQUIRED_COLUMNS, source_name="Staff snapshot")
    return df


def load_households_snapshot(path: Union[str, Path]) -> pd.DataFrame:
    """
    Households: id, first_name, last_name, plus optional zip_code, status,
    staff_id, lead_source_id and lead_source_name.
    """
    df = _read_table(_existing_path(path, "Households snapshot"), dtype=str)
    validate_required_columns(df, HOUSEHOLDS_REQUIRED_COLUMNS, source_name="Households snapshot")
    return df


def load_quotes_snapshot(path: Union[str, Path]) -> pd.DataFrame:
    """
    Quotes: household_id, product_type, plus optional id, premium (dollars),
    quote_date and issued_policy_number.
    """
    df = _read_table(_existing_path(path, "Quotes snapshot"), dtype=str)
    validate_required_columns(df, QUOTES_REQUIRED_COLUMNS, source_name="Quotes snapshot")
    return df
