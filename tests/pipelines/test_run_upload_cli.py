from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from sales_reconciliation import run_upload
from sales_reconciliation.storage.repository import InMemorySalesRepository


def _write_inputs(tmp_path: Path) -> dict[str, Path]:
    paths = {name: tmp_path / f"{name}.csv" for name in ("sales", "staff", "households", "quotes")}
    pd.DataFrame({
        "Sub Producer": ["723-ANTHONY MCDERMOTT", "999-NOBODY HERE"],
        "First Name": ["John", "Ann"],
        "Last Name": ["Smith", "Lee"],
        "Zip": ["10001", "02134"],
        "Issue Date": ["03/15/2024", "03/16/2024"],
        "Product": ["Auto", "Renters"],
        "Premium": ["$1,200.00", "$150.00"],
        "Policy Number": ["P-1", "P-2"],
    }).to_csv(paths["sales"], index=False)
    pd.DataFrame({"id": ["s-1"], "name": ["Anthony McDermott"], "code": ["723"]}).to_csv(
        paths["staff"], index=False
    )
    pd.DataFrame({
        "id": ["hh-100"],
        "first_name": ["Jonathan"],
        "last_name": ["Smith"],
        "zip_code": ["10001"],
        "lead_source_id": ["ls-1"],
    }).to_csv(paths["households"], index=False)
    pd.DataFrame({
        "id": ["q-100"],
        "household_id": ["hh-100"],
        "product_type": ["Standard Auto"],
        "premium": ["1200.00"],
        "quote_date": ["2024-03-01"],
        "issued_policy_number": ["P-1"],
    }).to_csv(paths["quotes"], index=False)
    return paths


def test_seed_repository_from_snapshots(tmp_path: Path) -> None:
    paths = _write_inputs(tmp_path)

    repository = run_upload.seed_repository(
        InMemorySalesRepository(),
        "agency-1",
        staff=run_upload.load_staff_snapshot(paths["staff"]),
        households=run_upload.load_households_snapshot(paths["households"]),
        quotes=run_upload.load_quotes_snapshot(paths["quotes"]),
    )

    assert repository.staff["agency-1"][0].code == "723"
    household = repository.households["hh-100"]
    assert household.household_key == "jonathan-smith-10001"
    assert household.lead_source_id == "ls-1"
    assert household.staff_id is None
    quote = repository.quotes["q-100"]
    assert quote.premium_cents == 120000
    assert quote.issued_policy_number == "P-1"


def test_main_writes_report(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    paths = _write_inputs(tmp_path)
    output = tmp_path / "report.xlsx"

    run_upload.main([
        "--sales", str(paths["sales"]),
        "--agency", "agency-1",
        "--staff", str(paths["staff"]),
        "--households", str(paths["households"]),
        "--quotes", str(paths["quotes"]),
        "--output", str(output),
    ])

    assert "Wrote sales upload report to" in capsys.readouterr().out
    summary = pd.read_excel(output, sheet_name="summary")
    assert summary.loc[0, "sales_created"] == 2
    assert summary.loc[0, "households_matched"] == 1
    assert summary.loc[0, "households_created"] == 1
    assert summary.loc[0, "quotes_linked"] == 1
    unmatched = pd.read_excel(output, sheet_name="unmatched_producers")
    assert unmatched["sub_producer"].tolist() == ["999-NOBODY HERE"]


def test_main_rejects_report_without_valid_rows(tmp_path: Path) -> None:
    sales = tmp_path / "sales.csv"
    pd.DataFrame({"First Name": ["John"], "Last Name": ["Smith"], "Sale Date": ["soon"]}).to_csv(
        sales, index=False
    )
    with pytest.warns(UserWarning):
        with pytest.raises(ValueError, match="No valid sales rows"):
            run_upload.main(["--sales", str(sales), "--agency", "agency-1"])
