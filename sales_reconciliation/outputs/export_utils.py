# Docstring for sales_reconciliation/outputs/export_utils module
"""
export_utils.py

Excel export of sales-upload results.

Design goals
------------
- Low friction: one call turns an UploadResult into a reviewable workbook.
- Safe output: parent directories are created before writing files.
- Consistent engine: always the openpyxl engine for .xlsx output.
- Timestamped filenames when no explicit path is given.

Workbook layout
---------------
- summary            one row of run counters
- errors             one row per row-level error message
- pending_reviews    one row per (sale, candidate) pair awaiting a decision
- unmatched_producers raw sub-producer values that resolved to no staff member

Public API
----------
- upload_result_frames(result) -> dict[str, pd.DataFrame]
- pending_reviews_frame(reviews) -> pd.DataFrame
- write_df_excel(df, output_path=None, *, output_name="pending_reviews", ...) -> Path
- write_multi_sheet_excel(sheets, output_path, *, index=False) -> Path
- write_upload_report(result, output_path=None) -> Path
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Iterable

import pandas as pd

from ..config import get_outputs_dir
from ..core.models import PendingSaleReview, UploadResult


EXCEL_SHEETNAME_LIMIT = 31

PENDING_REVIEW_COLUMNS = [
    "row_number",
    "customer",
    "zip_code",
    "sale_date",
    "product_type",
    "premium",
    "policy_number",
    "placeholder_household_id",
    "candidate_rank",
    "candidate_household_id",
    "candidate_name",
    "candidate_zip",
    "candidate_lead_source",
    "candidate_score",
    "product_match",
    "premium_within_tolerance",
    "quote_date_before_sale",
    "sub_producer_match",
]


def _ensure_parent_dir(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _timestamped_filename(prefix: str) -> str:
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"{prefix}_{stamp}.xlsx"


def _truncate_sheet_name(name: str) -> str:
    return name[:EXCEL_SHEETNAME_LIMIT]


def _dedupe_sheet_names(names: list[str]) -> list[str]:
    """Ensure sheet names are unique after truncation by appending numeric suffixes."""
    seen: dict[str, int] = {}
    deduped: list[str] = []
    for raw_name in names:
        base = _truncate_sheet_name(raw_name)
        if base not in seen:
            seen[base] = 0
            deduped.append(base)
            continue
        seen[base] += 1
        suffix = f"_{seen[base]}"
        deduped.append(f"{base[: EXCEL_SHEETNAME_LIMIT - len(suffix)]}{suffix}")
    return deduped


# --- Frames ------------------------------------------------------------

def pending_reviews_frame(reviews: Iterable[PendingSaleReview]) -> pd.DataFrame:
    """Flatten pending reviews to one row per candidate, ranked best first."""
    rows = []
    for review in reviews:
        sale = review.sale
        for rank, candidate in enumerate(review.candidates, start=1):
            rows.append({
                "row_number": sale.row_number,
                "customer": f"{sale.first_name} {sale.last_name}",
                "zip_code": sale.zip_code,
                "sale_date": sale.sale_date,
                "product_type": sale.product_type,
                "premium": sale.premium_cents / 100,
                "policy_number": sale.policy_number,
                "placeholder_household_id": review.placeholder_household_id,
                "candidate_rank": rank,
                "candidate_household_id": candidate.household_id,
                "candidate_name": candidate.household_name,
                "candidate_zip": candidate.zip_code,
                "candidate_lead_source": candidate.lead_source_name,
                "candidate_score": candidate.score,
                "product_match": candidate.factors.product_match,
                "premium_within_tolerance": candidate.factors.premium_within_tolerance,
                "quote_date_before_sale": candidate.factors.quote_date_before_sale,
                "sub_producer_match": candidate.factors.sub_producer_match,
            })
    return pd.DataFrame(rows, columns=PENDING_REVIEW_COLUMNS)


def upload_result_frames(result: UploadResult) -> dict[str, pd.DataFrame]:
    summary = pd.DataFrame([{
        "success": result.success,
        "records_processed": result.records_processed,
        "sales_created": result.sales_created,
        "households_matched": result.households_matched,
        "households_created": result.households_created,
        "quotes_linked": result.quotes_linked,
        "staff_matched": result.staff_matched,
        "households_needing_attention": result.households_needing_attention,
        "auto_matched": result.auto_matched,
        "needs_review": result.needs_review,
        "errors": result.error_count,
    }])
    return {
        "summary": summary,
        "errors": pd.DataFrame({"error": list(result.errors)}, dtype="object"),
        "pending_reviews": pending_reviews_frame(result.pending_reviews),
        "unmatched_producers": pd.DataFrame(
            {"sub_producer": list(result.unmatched_producers)}, dtype="object"
        ),
    }


# --- Writers ------------------------------------------------------------

def write_df_excel(
    df: pd.DataFrame,
    output_path: Path | str | None = None,
    *,
    output_name: str = "pending_reviews",
    filename_prefix: str = "pending_reviews",
    sheet_name: str = "data",
    index: bool = False,
) -> Path:
    """
    Write a DataFrame to a single-sheet Excel file and return the output path.

    If output_path is None, a timestamped file is created under the outputs
    directory registered for output_name.
    """
    if output_path is None:
        output_path = get_outputs_dir(output_name) / _timestamped_filename(filename_prefix)
    path = Path(output_path)
    _ensure_parent_dir(path)
    df.to_excel(path, engine="openpyxl", sheet_name=_truncate_sheet_name(sheet_name), index=index)
    return path


def write_multi_sheet_excel(
    sheets: dict[str, pd.DataFrame],
    output_path: Path | str,
    *,
    index: bool = False,
) -> Path:
    """
    Write multiple DataFrames to a single Excel workbook and return the path.

    Each dict key becomes a sheet name (truncated to Excel's 31-character limit).
    """
    path = Path(output_path)
    _ensure_parent_dir(path)
    sheet_names = _dedupe_sheet_names(list(sheets.keys()))
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for name, sheet_name in zip(sheets.keys(), sheet_names):
            sheets[name].to_excel(writer, sheet_name=sheet_name, index=index)
    return path


def write_upload_report(
    result: UploadResult,
    output_path: Path | str | None = None,
) -> Path:
    """Write the full upload workbook; defaults to a timestamped file under reports/outputs/sales_upload."""
    if output_path is None:
        output_path = get_outputs_dir("sales_upload") / _timestamped_filename("sales_upload")
    return write_multi_sheet_excel(upload_result_frames(result), output_path)
