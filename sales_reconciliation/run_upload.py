"""
run_upload.py

Dry-run a sales upload from the command line.

Loads a sales report plus CSV/Excel snapshots of the agency's staff roster,
households and quotes into an InMemorySalesRepository, runs the batch
orchestrator, logs the summary and writes a multi-sheet workbook under
reports/outputs/sales_upload (or --output).

    sales-reconciliation --sales data/sample/sales.xlsx --agency agency-1 \\
        --staff data/sample/staff.csv --households data/sample/households.csv \\
        --quotes data/sample/quotes.csv
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd

from .cleaning.clean_sales import clean_sales_report
from .core.models import StaffMember, UploadContext, UploadResult
from .core.normalizers import parse_currency_to_cents, parse_sale_date
from .engines.batch_orchestrator import SalesUploadOrchestrator
from .load_data import (
    load_households_snapshot,
    load_quotes_snapshot,
    load_sales_report,
    load_staff_snapshot,
)
from .notifications import NotificationAdapter
from .outputs.export_utils import write_upload_report
from .storage.repository import InMemorySalesRepository

logger = logging.getLogger(__name__)


def _text(value) -> Optional[str]:
    if value is None or pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


def seed_repository(
    repository: InMemorySalesRepository,
    agency_id: str,
    *,
    staff: Optional[pd.DataFrame] = None,
    households: Optional[pd.DataFrame] = None,
    quotes: Optional[pd.DataFrame] = None,
) -> InMemorySalesRepository:
    """Load snapshot frames (see load_data) into the in-memory store."""
    if staff is not None:
        for record in staff.to_dict("records"):
            repository.add_staff(
                agency_id,
                StaffMember(
                    id=_text(record["id"]),
                    name=_text(record["name"]) or "",
                    code=_text(record.get("code")),
                ),
            )

    if households is not None:
        for record in households.to_dict("records"):
            repository.add_household(
                agency_id,
                _text(record["first_name"]) or "",
                _text(record["last_name"]) or "",
                _text(record.get("zip_code")),
                household_key=_text(record.get("household_key")),
                status=_text(record.get("status")) or "quoted",
                staff_id=_text(record.get("staff_id")),
                lead_source_id=_text(record.get("lead_source_id")),
                lead_source_name=_text(record.get("lead_source_name")),
                household_id=_text(record["id"]),
            )

    if quotes is not None:
        for record in quotes.to_dict("records"):
            repository.add_quote(
                _text(record["household_id"]),
                _text(record["product_type"]) or "",
                parse_currency_to_cents(record.get("premium")),
                parse_sale_date(_text(record.get("quote_date"))),
                issued_policy_number=_text(record.get("issued_policy_number")),
                quote_id=_text(record.get("id")),
            )

    return repository


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Reconcile a carrier sales report against an agency snapshot (dry run)."
    )
    parser.add_argument("--sales", type=Path, required=True, help="Sales report (.xlsx/.xls/.csv)")
    parser.add_argument("--agency", required=True, help="Agency id the upload belongs to")
    parser.add_argument("--sheet", default=None, help="Worksheet name (default: auto-detect)")
    parser.add_argument("--staff", type=Path, default=None, help="Staff roster snapshot")
    parser.add_argument("--households", type=Path, default=None, help="Households snapshot")
    parser.add_argument("--quotes", type=Path, default=None, help="Quotes snapshot")
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Workbook path (default: timestamped file under reports/outputs/sales_upload)",
    )
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level")
    return parser.parse_args(argv)


def run(args: argparse.Namespace) -> tuple[UploadResult, Path]:
    parsed = clean_sales_report(load_sales_report(args.sales, sheet_name=args.sheet))
    for message in parsed.errors:
        logger.warning("Parse error: %s", message)
    if not parsed.success:
        raise ValueError(f"No valid sales rows found in {args.sales}")
    logger.info(
        "Parsed %d sales (%d duplicates removed, %d rows skipped)",
        len(parsed.records), parsed.duplicates_removed, len(parsed.errors),
    )

    repository = seed_repository(
        InMemorySalesRepository(),
        args.agency,
        staff=load_staff_snapshot(args.staff) if args.staff else None,
        households=load_households_snapshot(args.households) if args.households else None,
        quotes=load_quotes_snapshot(args.quotes) if args.quotes else None,
    )
    orchestrator = SalesUploadOrchestrator(repository, handlers=[NotificationAdapter()])
    result = asyncio.run(orchestrator.run(parsed.records, UploadContext(agency_id=args.agency)))
    return result, write_upload_report(result, args.output)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    result, path = run(args)
    print(f"Wrote sales upload report to: {path}")
    if not result.success:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
