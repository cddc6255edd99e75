from __future__ import annotations

import sys
from datetime import date
from pathlib import Path

import pytest

# tests/ is one level under the repo root
PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from sales_reconciliation.core.models import SaleRow  # noqa: E402
from sales_reconciliation.storage.repository import InMemorySalesRepository  # noqa: E402


AGENCY_ID = "agency-1"


@pytest.fixture
def agency_id() -> str:
    return AGENCY_ID


@pytest.fixture
def make_sale_row():
    """Factory for SaleRow records with sensible defaults."""
    counter = {"row": 1}

    def _make(**overrides) -> SaleRow:
        counter["row"] += 1
        values = dict(
            row_number=counter["row"],
            first_name="John",
            last_name="Smith",
            zip_code="10001",
            sale_date=date(2024, 3, 15),
            product_type="Standard Auto",
            premium_cents=120000,
            items_sold=1,
            policy_number=None,
            sub_producer_raw=None,
            sub_producer_code=None,
            sub_producer_name=None,
        )
        values.update(overrides)
        return SaleRow(**values)

    return _make


@pytest.fixture
def repository() -> InMemorySalesRepository:
    return InMemorySalesRepository()
