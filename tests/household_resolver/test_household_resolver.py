from __future__ import annotations

from datetime import date

import pytest

from sales_reconciliation.core.exceptions import (
    DuplicateHouseholdError,
    HouseholdResolutionError,
    RepositoryError,
)
from sales_reconciliation.core.models import HouseholdCandidate, MatchTier, SaleGroup
from sales_reconciliation.engines.household_resolver import (
    HouseholdResolver,
    filter_same_first_name,
)
from sales_reconciliation.storage.repository import InMemorySalesRepository


AGENCY = "agency-1"


def _group(*rows) -> SaleGroup:
    return SaleGroup(household_key=rows[0].household_key, rows=tuple(rows))


class LostRaceRepository(InMemorySalesRepository):
    """Another writer creates the same natural key just before our insert."""

    def __init__(self, winner_exists: bool = True) -> None:
        super().__init__()
        self.winner_exists = winner_exists
        self.winner_id = None

    async def create_household(self, agency_id, attrs):
        if self.winner_exists:
            self.winner_id = self.add_household(
                agency_id, attrs.first_name, attrs.last_name, attrs.zip_code, status="quoted"
            )
        raise DuplicateHouseholdError(agency_id, attrs.household_key)


class BrokenContactsRepository(InMemorySalesRepository):
    async def find_or_create_unified_contact(self, agency_id, first_name, last_name, zip_code):
        raise RepositoryError("contacts service unavailable")


@pytest.mark.asyncio
async def test_policy_number_takes_precedence_over_natural_key(repository, make_sale_row) -> None:
    by_key = repository.add_household(AGENCY, "John", "Smith", "10001", lead_source_id="ls-1")
    by_policy = repository.add_household(AGENCY, "Jonathan", "Smythe", "99999")
    repository.add_quote(by_policy, "Standard Auto", 120000, issued_policy_number="P-100")

    row = make_sale_row(policy_number="P-100")
    resolution = await HouseholdResolver(repository).resolve(_group(row), AGENCY, "s-1")

    assert resolution.household_id == by_policy
    assert resolution.tier is MatchTier.POLICY_NUMBER
    assert resolution.auto_matched
    assert repository.households[by_policy].status == "sold"
    assert repository.households[by_policy].sold_date == row.sale_date
    assert repository.households[by_policy].staff_id == "s-1"
    assert repository.households[by_key].status == "quoted"


@pytest.mark.asyncio
async def test_natural_key_match_with_lead_source(repository, make_sale_row) -> None:
    existing = repository.add_household(AGENCY, "John", "Smith", "10001", lead_source_id="ls-1")

    resolution = await HouseholdResolver(repository).resolve(
        _group(make_sale_row()), AGENCY, None
    )

    assert resolution.household_id == existing
    assert resolution.tier is MatchTier.NATURAL_KEY
    assert resolution.created is False
    assert resolution.needs_attention is False
    assert repository.households[existing].status == "sold"


@pytest.mark.asyncio
async def test_natural_key_match_without_lead_source_needs_attention(repository, make_sale_row) -> None:
    repository.add_household(AGENCY, "JOHN", "SMITH", "10001", staff_id="s-9")

    resolution = await HouseholdResolver(repository).resolve(
        _group(make_sale_row()), AGENCY, None
    )

    assert resolution.needs_attention is True
    # a sale without a staff match keeps the existing assignment
    assert repository.households[resolution.household_id].staff_id == "s-9"


@pytest.mark.asyncio
async def test_different_first_name_never_binds(repository, make_sale_row) -> None:
    michelle = repository.add_household(AGENCY, "Michelle", "Smith", "20002")
    repository.add_quote(michelle, "Standard Auto", 120000, date(2024, 3, 1))

    row = make_sale_row(first_name="Melissa")
    resolution = await HouseholdResolver(repository).resolve(_group(row), AGENCY, None)

    assert resolution.household_id != michelle
    assert resolution.tier is MatchTier.CREATED
    assert resolution.created is True
    assert resolution.needs_attention is True
    created = repository.households[resolution.household_id]
    assert created.household_key == "melissa-smith-10001"
    assert created.status == "sold"
    assert created.needs_attention is True
    assert created.contact_id is not None


@pytest.mark.asyncio
async def test_unique_same_name_candidate_is_scored_match(repository, make_sale_row) -> None:
    other_zip = repository.add_household(
        AGENCY, "John", "Smith", "20002", lead_source_id="ls-1", lead_source_name="Referral"
    )

    resolution = await HouseholdResolver(repository).resolve(
        _group(make_sale_row()), AGENCY, None
    )

    assert resolution.household_id == other_zip
    assert resolution.tier is MatchTier.SCORED
    assert resolution.needs_attention is False


@pytest.mark.asyncio
async def test_ambiguous_candidates_create_placeholder_for_review(repository, make_sale_row) -> None:
    first = repository.add_household(AGENCY, "John", "Smith", "20002")
    second = repository.add_household(AGENCY, "John", "Smith", "30003")
    repository.add_quote(first, "Standard Auto", 120000, date(2024, 3, 1))
    repository.add_quote(second, "Standard Auto", 121000, date(2024, 2, 1))

    resolution = await HouseholdResolver(repository).resolve(
        _group(make_sale_row()), AGENCY, None
    )

    assert resolution.tier is MatchTier.REVIEW_PLACEHOLDER
    assert resolution.needs_review is True
    assert resolution.needs_attention is True
    assert resolution.created is True
    assert resolution.household_id not in (first, second)
    assert {c.household_id for c in resolution.candidates} == {first, second}
    assert [c.score for c in resolution.candidates] == [75, 75]


@pytest.mark.asyncio
async def test_lost_creation_race_binds_to_winner(make_sale_row) -> None:
    repository = LostRaceRepository()

    resolution = await HouseholdResolver(repository).resolve(
        _group(make_sale_row()), AGENCY, "s-1"
    )

    assert resolution.household_id == repository.winner_id
    assert resolution.created is False
    assert repository.households[repository.winner_id].status == "sold"
    assert len(repository.households) == 1


@pytest.mark.asyncio
async def test_lost_race_without_winner_raises(make_sale_row) -> None:
    repository = LostRaceRepository(winner_exists=False)

    with pytest.raises(HouseholdResolutionError, match="john-smith-10001"):
        await HouseholdResolver(repository).resolve(_group(make_sale_row()), AGENCY, None)


@pytest.mark.asyncio
async def test_contact_failure_does_not_block_creation(make_sale_row) -> None:
    repository = BrokenContactsRepository()

    resolution = await HouseholdResolver(repository).resolve(
        _group(make_sale_row()), AGENCY, None
    )

    assert resolution.created is True
    assert repository.households[resolution.household_id].contact_id is None


@pytest.mark.asyncio
async def test_group_resolves_on_primary_row(repository, make_sale_row) -> None:
    primary = make_sale_row(sale_date=date(2024, 3, 1))
    later = make_sale_row(sale_date=date(2024, 3, 20), product_type="Homeowners")

    resolution = await HouseholdResolver(repository).resolve(
        _group(primary, later), AGENCY, None
    )

    assert repository.households[resolution.household_id].sold_date == date(2024, 3, 1)


def test_filter_same_first_name_is_exact_after_normalization() -> None:
    candidates = [
        HouseholdCandidate(id="a", first_name="JOSÉ", last_name="Lopez"),
        HouseholdCandidate(id="b", first_name="Joseph", last_name="Lopez"),
        HouseholdCandidate(id="c", first_name="jose", last_name="Lopez"),
    ]
    assert [c.id for c in filter_same_first_name(candidates, "Jose")] == ["a", "c"]
    assert filter_same_first_name(candidates, "") == []
