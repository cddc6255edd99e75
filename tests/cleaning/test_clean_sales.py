from datetime import date

import pandas as pd
import pytest

from sales_reconciliation.cleaning.clean_sales import clean_sales_report, resolve_sales_columns


def _report(rows, columns=None) -> pd.DataFrame:
    columns = columns or [
        "Sub Producer", "First Name", "Last Name", "Zip Code", "Issue Date",
        "Product", "Items", "Written Premium", "Policy Number",
    ]
    df = pd.DataFrame(rows, columns=columns)
    df["source_row"] = range(5, 5 + len(df))
    return df


def test_resolve_sales_columns_claims_each_column_once() -> None:
    columns = [
        "Sub Producer", "Customer Name", "Zip", "Sale Date", "Product Type",
        "Policy Number", "Premium", "source_row",
    ]
    resolved = resolve_sales_columns(columns)
    assert resolved == {
        "zip_code": "Zip",
        "sale_date": "Sale Date",
        "premium": "Premium",
        "product_type": "Product Type",
        "policy_number": "Policy Number",
        "sub_producer": "Sub Producer",
        "customer_name": "Customer Name",
    }


def test_clean_sales_report_parses_rows() -> None:
    df = _report([
        ["723-ANTHONY MCDERMOTT", "John", "Smith", "10001-1234", "03/15/2024",
         "HO3", 2, "$1,234.56", "P-100"],
    ])

    result = clean_sales_report(df)

    assert result.success
    assert result.errors == []
    row = result.records[0]
    assert row.row_number == 5
    assert (row.first_name, row.last_name, row.zip_code) == ("John", "Smith", "10001")
    assert row.sale_date == date(2024, 3, 15)
    assert row.product_type == "Homeowners"
    assert row.items_sold == 2
    assert row.premium_cents == 123456
    assert row.policy_number == "P-100"
    assert (row.sub_producer_code, row.sub_producer_name) == ("723", "ANTHONY MCDERMOTT")
    assert row.sub_producer_raw == "723-ANTHONY MCDERMOTT"
    assert result.date_range == (date(2024, 3, 15), date(2024, 3, 15))


def test_combined_customer_name_column() -> None:
    df = _report(
        [["SMITH, JOHN A", "02/01/2024", "Auto", "$900"],
         ["Jane Q Public", "02/03/2024", "Renters", "$150"]],
        columns=["Customer", "Sale Date", "Product", "Premium"],
    )

    result = clean_sales_report(df)

    assert [(r.first_name, r.last_name) for r in result.records] == [
        ("JOHN", "SMITH"),
        ("JANE", "PUBLIC"),
    ]
    assert all(r.zip_code == "00000" for r in result.records)
    assert result.date_range == (date(2024, 2, 1), date(2024, 2, 3))


def test_bad_rows_are_skipped_with_messages() -> None:
    df = _report([
        [None, None, None, None, None, None, None, None, None],             # blank
        [None, None, None, "10001", "03/15/2024", "Auto", 1, "$1", "P-1"],  # no name
        [None, "Ann", "Lee", "10001", "someday", "Auto", 1, "$1", "P-2"],   # bad date
        [None, "Bob", "Ray", "10001", "2024-03-15", "Auto", 1, "$1", "P-3"],
    ])

    with pytest.warns(UserWarning, match="skipped 2 rows"):
        result = clean_sales_report(df)

    assert [r.last_name for r in result.records] == ["Ray"]
    assert result.errors == [
        "Row 6: missing customer name",
        "Row 7: missing or invalid sale date",
    ]


def test_duplicates_removed_by_policy_then_by_person() -> None:
    df = _report([
        [None, "John", "Smith", "10001", "03/15/2024", "Auto", 1, "$1", "P-1"],
        [None, "John", "Smith", "10001", "03/16/2024", "Auto", 1, "$1", "P-1"],
        [None, "Ann", "Lee", "10001", "03/15/2024", "Auto", 1, "$1", None],
        [None, "ANN", "LEE", "10001", "03/15/2024", "auto", 1, "$2", None],
        [None, "Ann", "Lee", "10001", "03/15/2024", "Homeowners", 1, "$2", None],
    ])

    result = clean_sales_report(df)

    assert result.duplicates_removed == 2
    assert [r.row_number for r in result.records] == [5, 7, 9]


def test_numeric_policy_numbers_lose_float_suffix() -> None:
    df = _report([[None, "John", "Smith", 2134, "03/15/2024", "Auto", 1, 99.5, 123456.0]])
    row = clean_sales_report(df).records[0]
    assert row.policy_number == "123456"
    assert row.zip_code == "02134"
    assert row.premium_cents == 9950


def test_missing_name_columns_raises() -> None:
    df = pd.DataFrame({"Sale Date": ["03/15/2024"], "Premium": ["$1"]})
    with pytest.raises(ValueError, match="customer name columns"):
        clean_sales_report(df)


def test_row_numbers_default_to_position_without_source_row() -> None:
    df = pd.DataFrame({
        "First Name": ["John"],
        "Last Name": ["Smith"],
        "Sale Date": ["03/15/2024"],
    })
    assert clean_sales_report(df).records[0].row_number == 2


def test_out_of_range_values_do_not_abort_the_report() -> None:
    df = _report([
        [None, "John", "Smith", "10001", 45000, "Auto", 1, "$100", "P-1"],
        [None, "Ann", "Lee", "10001", 99999999, "Auto", 1, "$100", "P-2"],
        [None, "Bob", "Ray", "10001", "03/15/2024", "Auto", "inf", "Infinity", "P-3"],
    ])

    with pytest.warns(UserWarning, match="skipped 1 rows"):
        result = clean_sales_report(df)

    assert [r.last_name for r in result.records] == ["Smith", "Ray"]
    assert result.errors == ["Row 6: missing or invalid sale date"]
    assert result.records[1].premium_cents == 0
    assert result.records[1].items_sold == 1
