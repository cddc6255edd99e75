# Docstring for sales_reconciliation/cleaning/clean_sales module
"""
clean_sales.py

Cleaning and normalization for carrier sales-report exports.

This module takes the raw DataFrame produced by `load_data.load_sales_report`
(report headers as columns, untouched cell values) and turns it into a list of
canonical `SaleRow` records used by the batch orchestrator.

Design goals
------------
- Canonical records: every SaleRow carries normalized names, a 5-digit ZIP,
  a real `date`, integer premium cents, and a canonical product type.
- Forgiving headers: carrier exports rename and reorder columns between
  releases; columns are resolved by case-insensitive header fragments.
- Row-level errors: one bad row never fails the report. It is skipped with a
  "Row <n>: ..." message and the rest are kept.

Core transformations
--------------------
1) Column resolution
   - SALES_REPORT_COLUMN_PATTERNS maps each canonical field to header
     fragments. Fields are resolved in order and every raw column is claimed
     by at most one field.
   - Either first + last name columns or a combined customer-name column is
     required (ValueError otherwise).

2) Row parsing
   - Blank rows are skipped silently.
   - Names: separate columns, falling back to the combined customer name
     ("LAST, FIRST M" or "FIRST M LAST").
   - ZIP: leading 5 digits, else "00000".
   - Sale date: date cells, Excel serials, MM/DD/YYYY, ISO.
   - Premium: "$1,234.56" -> 123456 cents; unparseable -> 0.
   - Items sold: default 1.
   - Product type: alias table (config.PRODUCT_TYPE_ALIASES).
   - Sub-producer: "723-ANTHONY MCDERMOTT" -> code "723", name "ANTHONY MCDERMOTT".

3) Deduplication
   By policy number when present; otherwise by household key + sale date +
   product type. The first occurrence wins.

Public API
----------
- resolve_sales_columns(columns) -> dict[str, str]
- clean_sales_report(raw_df) -> SalesParseResult

Privacy / compliance note
-------------------------
Sales reports carry customer names and policy numbers. Use synthetic data in
tests and samples.
"""


from __future__ import annotations

import warnings
from numbers import Real
from typing import Any, Iterable, Optional

import pandas as pd

from ..config import SALES_REPORT_COLUMN_PATTERNS
from ..core.models import SaleRow, SalesParseResult
from ..core.normalizers import (
    normalize_product_type,
    normalize_zip,
    parse_currency_to_cents,
    parse_customer_name,
    parse_items_sold,
    parse_sale_date,
    parse_sub_producer,
)


# --- Helper functions ------------------------------------------------------------

def resolve_sales_columns(columns: Iterable[Any]) -> dict[str, str]:

    """

    Map canonical field names to the raw report columns that hold them.

    Fields are resolved in SALES_REPORT_COLUMN_PATTERNS order. For each field
    the patterns are tried in order against every unclaimed column, so
    "policy number" beats the generic "policy" fragment.

    """

    available = [str(c) for c in columns if str(c) != "source_row"]
    claimed: set[str] = set()
    resolved: dict[str, str] = {}

    for field_name, patterns in SALES_REPORT_COLUMN_PATTERNS.items():
        for pattern in patterns:
            hit = next(
                (col for col in available if col not in claimed and pattern in col.lower()),
                None,
            )
            if hit is not None:
                resolved[field_name] = hit
                claimed.add(hit)
                break

    return resolved


def _cell_text(value: Any) -> Optional[str]:
    """Trimmed text of a cell; None for blanks. Whole floats lose their '.0'."""
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    if isinstance(value, Real) and not isinstance(value, bool) and float(value).is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def _is_blank_row(row: pd.Series) -> bool:
    return all(_cell_text(v) is None for k, v in row.items() if k != "source_row")


def _get(row: pd.Series, columns: dict[str, str], field_name: str) -> Any:
    col = columns.get(field_name)
    return row[col] if col is not None else None


# --- Main cleaning function ------------------------------------------------------------

def clean_sales_report(raw_df: pd.DataFrame) -> SalesParseResult:

    """

    Parse a raw sales report into SaleRow records.

    Args:
        raw_df:
            DataFrame as returned by `load_sales_report` (or any frame with
            report headers as columns). A `source_row` column, when present,
            supplies spreadsheet row numbers for messages.

    Returns:
        SalesParseResult with the parsed records, row-level errors, the number
        of duplicates removed and the (min, max) sale date of the records.

    Raises:
        ValueError: if the report has no usable name columns.

    """

    columns = resolve_sales_columns(raw_df.columns)
    has_split_names = "first_name" in columns and "last_name" in columns
    if not has_split_names and "customer_name" not in columns:
        raise ValueError(
            "Sales report: could not find customer name columns. "
            f"Expected 'First Name' + 'Last Name' or a 'Customer' column. "
            f"Present columns: {list(raw_df.columns)}"
        )

    records: list[SaleRow] = []
    errors: list[str] = []
    seen: set[Any] = set()
    duplicates_removed = 0

    for position, (_, row) in enumerate(raw_df.iterrows()):
        row_number = int(row["source_row"]) if "source_row" in row.index else position + 2
        if _is_blank_row(row):
            continue

        # Names
        first = _cell_text(_get(row, columns, "first_name"))
        last = _cell_text(_get(row, columns, "last_name"))
        if not (first and last):
            combined = _cell_text(_get(row, columns, "customer_name"))
            if combined:
                parsed_first, parsed_last = parse_customer_name(combined)
                first = first or parsed_first
                last = last or parsed_last
        if not first and not last:
            errors.append(f"Row {row_number}: missing customer name")
            continue

        # Sale date
        sale_date = parse_sale_date(_get(row, columns, "sale_date"))
        if sale_date is None:
            errors.append(f"Row {row_number}: missing or invalid sale date")
            continue

        raw_producer = _cell_text(_get(row, columns, "sub_producer"))
        producer_code, producer_name = parse_sub_producer(raw_producer)

        record = SaleRow(
            row_number=row_number,
            first_name=first or "UNKNOWN",
            last_name=last or "UNKNOWN",
            zip_code=normalize_zip(_get(row, columns, "zip_code")),
            sale_date=sale_date,
            product_type=normalize_product_type(_get(row, columns, "product_type")),
            premium_cents=parse_currency_to_cents(_get(row, columns, "premium")),
            items_sold=parse_items_sold(_get(row, columns, "items_sold")),
            policy_number=_cell_text(_get(row, columns, "policy_number")),
            sub_producer_raw=raw_producer,
            sub_producer_code=producer_code,
            sub_producer_name=producer_name,
        )

        # Deduplicate: policy number when present, else person + date + product
        dedupe_key = (
            ("policy", record.policy_number)
            if record.policy_number
            else ("row", record.household_key, record.sale_date, record.product_type)
        )
        if dedupe_key in seen:
            duplicates_removed += 1
            continue
        seen.add(dedupe_key)
        records.append(record)

    if errors:
        warnings.warn(
            f"Sales report: skipped {len(errors)} rows that could not be parsed.",
            stacklevel=2,
        )

    date_range = None
    if records:
        dates = [r.sale_date for r in records]
        date_range = (min(dates), max(dates))

    return SalesParseResult(
        records=records,
        errors=errors,
        duplicates_removed=duplicates_removed,
        date_range=date_range,
    )
