# Docstring for sales_reconciliation/storage/repository module
"""
repository.py

Persistence interface consumed by the reconciliation engines, and an
in-memory implementation of it.

The engines never talk to a database directly. They depend on the narrow
`SalesRepository` protocol below, so any relational or document store that
can answer these calls can back the pipeline.

Contract notes
--------------
- Every method is a coroutine; the orchestrator awaits many of them at once.
- create_household() raises DuplicateHouseholdError when the (agency,
  household_key) pair already exists. Callers recover by re-fetching.
- insert_sale() returns InsertOutcome.CONFLICT for a duplicate sale (same
  agency + policy number) instead of raising.
- Any other failure surfaces as RepositoryError.

InMemorySalesRepository
-----------------------
A complete store kept in dictionaries. It enforces both uniqueness
constraints, yields to the event loop on every call so concurrent batches
interleave the way network calls would, and backs the dry-run CLI.
"""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, replace
from datetime import date
from typing import Optional, Protocol, runtime_checkable

from ..core.exceptions import DuplicateHouseholdError, RepositoryError
from ..core.models import (
    HouseholdCandidate,
    HouseholdRecord,
    InsertOutcome,
    NewHousehold,
    NewSale,
    Quote,
    StaffMember,
)
from ..core.normalizers import household_key as make_household_key
from ..core.normalizers import normalize_person_name, normalize_product_type


@runtime_checkable
class SalesRepository(Protocol):
    """Persistence operations the reconciliation pipeline needs."""

    async def find_staff_roster(self, agency_id: str) -> list[StaffMember]: ...

    async def find_quote_by_issued_policy_number(
        self, agency_id: str, policy_number: str
    ) -> Optional[str]:
        """Household id owning a quote issued under policy_number, if any."""
        ...

    async def find_household_by_natural_key(
        self, agency_id: str, household_key: str
    ) -> Optional[HouseholdRecord]: ...

    async def find_households_by_last_name(
        self, agency_id: str, last_name: str
    ) -> list[HouseholdCandidate]:
        """Case-insensitive last-name search, quotes included."""
        ...

    async def create_household(self, agency_id: str, attrs: NewHousehold) -> str: ...

    async def update_household_on_sale(
        self,
        household_id: str,
        *,
        status: str,
        sold_date: date,
        staff_id: Optional[str],
    ) -> None:
        """Mark sold. A None staff_id leaves the current assignment alone."""
        ...

    async def find_latest_quote_by_product_type(
        self, household_id: str, product_type: str
    ) -> Optional[str]: ...

    async def insert_sale(self, attrs: NewSale) -> InsertOutcome: ...

    async def find_or_create_unified_contact(
        self, agency_id: str, first_name: str, last_name: str, zip_code: str
    ) -> str: ...


# --- In-memory implementation ------------------------------------------------------------

@dataclass
class StoredHousehold:
    id: str
    agency_id: str
    household_key: str
    first_name: str
    last_name: str
    zip_code: Optional[str]
    status: str
    sold_date: Optional[date] = None
    staff_id: Optional[str] = None
    lead_source_id: Optional[str] = None
    lead_source_name: Optional[str] = None
    needs_attention: bool = False
    contact_id: Optional[str] = None


class InMemorySalesRepository:
    """Dictionary-backed SalesRepository."""

    def __init__(self) -> None:
        self.staff: dict[str, list[StaffMember]] = {}
        self.households: dict[str, StoredHousehold] = {}
        self.quotes: dict[str, Quote] = {}
        self.sales: list[NewSale] = []
        self.contacts: dict[tuple[str, str, str], str] = {}
        self._ids = itertools.count(1)

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    # --- seeding (synchronous; used by loaders and tests) ---

    def add_staff(self, agency_id: str, member: StaffMember) -> StaffMember:
        self.staff.setdefault(agency_id, []).append(member)
        return member

    def add_household(
        self,
        agency_id: str,
        first_name: str,
        last_name: str,
        zip_code: Optional[str] = None,
        *,
        household_key: Optional[str] = None,
        status: str = "quoted",
        staff_id: Optional[str] = None,
        lead_source_id: Optional[str] = None,
        lead_source_name: Optional[str] = None,
        household_id: Optional[str] = None,
    ) -> str:
        key = household_key or make_household_key(first_name, last_name, zip_code)
        if self._find_by_key(agency_id, key) is not None:
            raise DuplicateHouseholdError(agency_id, key)
        new_id = household_id or self._next_id("hh")
        self.households[new_id] = StoredHousehold(
            id=new_id,
            agency_id=agency_id,
            household_key=key,
            first_name=first_name,
            last_name=last_name,
            zip_code=zip_code,
            status=status,
            staff_id=staff_id,
            lead_source_id=lead_source_id,
            lead_source_name=lead_source_name,
        )
        return new_id

    def add_quote(
        self,
        household_id: str,
        product_type: str,
        premium_cents: int,
        quote_date: Optional[date] = None,
        *,
        issued_policy_number: Optional[str] = None,
        quote_id: Optional[str] = None,
    ) -> Quote:
        if household_id not in self.households:
            raise RepositoryError(f"Unknown household {household_id!r}")
        quote = Quote(
            id=quote_id or self._next_id("q"),
            household_id=household_id,
            product_type=product_type,
            premium_cents=premium_cents,
            quote_date=quote_date,
            issued_policy_number=issued_policy_number,
        )
        self.quotes[quote.id] = quote
        return quote

    def _find_by_key(self, agency_id: str, household_key: str) -> Optional[StoredHousehold]:
        for household in self.households.values():
            if household.agency_id == agency_id and household.household_key == household_key:
                return household
        return None

    def _quotes_for(self, household_id: str) -> tuple[Quote, ...]:
        return tuple(q for q in self.quotes.values() if q.household_id == household_id)

    def sales_for(self, household_id: str) -> list[NewSale]:
        return [sale for sale in self.sales if sale.household_id == household_id]

    # --- SalesRepository ---

    async def find_staff_roster(self, agency_id: str) -> list[StaffMember]:
        await asyncio.sleep(0)
        return list(self.staff.get(agency_id, []))

    async def find_quote_by_issued_policy_number(
        self, agency_id: str, policy_number: str
    ) -> Optional[str]:
        await asyncio.sleep(0)
        wanted = policy_number.strip()
        for quote in self.quotes.values():
            household = self.households[quote.household_id]
            if household.agency_id == agency_id and quote.issued_policy_number == wanted:
                return household.id
        return None

    async def find_household_by_natural_key(
        self, agency_id: str, household_key: str
    ) -> Optional[HouseholdRecord]:
        await asyncio.sleep(0)
        household = self._find_by_key(agency_id, household_key)
        if household is None:
            return None
        return HouseholdRecord(
            id=household.id,
            status=household.status,
            lead_source_id=household.lead_source_id,
        )

    async def find_households_by_last_name(
        self, agency_id: str, last_name: str
    ) -> list[HouseholdCandidate]:
        await asyncio.sleep(0)
        wanted = normalize_person_name(last_name)
        return [
            HouseholdCandidate(
                id=h.id,
                first_name=h.first_name,
                last_name=h.last_name,
                zip_code=h.zip_code,
                lead_source_id=h.lead_source_id,
                lead_source_name=h.lead_source_name,
                staff_id=h.staff_id,
                quotes=self._quotes_for(h.id),
            )
            for h in self.households.values()
            if h.agency_id == agency_id and normalize_person_name(h.last_name) == wanted
        ]

    async def create_household(self, agency_id: str, attrs: NewHousehold) -> str:
        await asyncio.sleep(0)
        if self._find_by_key(agency_id, attrs.household_key) is not None:
            raise DuplicateHouseholdError(agency_id, attrs.household_key)
        new_id = self._next_id("hh")
        self.households[new_id] = StoredHousehold(
            id=new_id,
            agency_id=agency_id,
            household_key=attrs.household_key,
            first_name=attrs.first_name,
            last_name=attrs.last_name,
            zip_code=attrs.zip_code,
            status=attrs.status,
            sold_date=attrs.sold_date,
            staff_id=attrs.staff_id,
            needs_attention=attrs.needs_attention,
            contact_id=attrs.contact_id,
        )
        return new_id

    async def update_household_on_sale(
        self,
        household_id: str,
        *,
        status: str,
        sold_date: date,
        staff_id: Optional[str],
    ) -> None:
        await asyncio.sleep(0)
        household = self.households.get(household_id)
        if household is None:
            raise RepositoryError(f"Unknown household {household_id!r}")
        household.status = status
        household.sold_date = sold_date
        if staff_id is not None:
            household.staff_id = staff_id

    async def find_latest_quote_by_product_type(
        self, household_id: str, product_type: str
    ) -> Optional[str]:
        await asyncio.sleep(0)
        wanted = normalize_product_type(product_type)
        matches = [
            q for q in self._quotes_for(household_id)
            if normalize_product_type(q.product_type) == wanted
        ]
        if not matches:
            return None
        # most recent first; undated quotes sort last
        matches.sort(key=lambda q: q.quote_date or date.min, reverse=True)
        return matches[0].id

    async def insert_sale(self, attrs: NewSale) -> InsertOutcome:
        await asyncio.sleep(0)
        if attrs.household_id not in self.households:
            raise RepositoryError(f"Unknown household {attrs.household_id!r}")
        if attrs.policy_number:
            for sale in self.sales:
                if sale.agency_id == attrs.agency_id and sale.policy_number == attrs.policy_number:
                    return InsertOutcome.CONFLICT
        self.sales.append(replace(attrs))
        return InsertOutcome.OK

    async def find_or_create_unified_contact(
        self, agency_id: str, first_name: str, last_name: str, zip_code: str
    ) -> str:
        await asyncio.sleep(0)
        key = (agency_id, normalize_person_name(last_name), zip_code)
        contact_id = self.contacts.get(key)
        if contact_id is None:
            contact_id = self._next_id("contact")
            self.contacts[key] = contact_id
        return contact_id
