from datetime import date

import pytest

from sales_reconciliation.core.models import HouseholdCandidate, Quote
from sales_reconciliation.engines.candidate_scorer import score_candidate, score_quote


SALE_DATE = date(2024, 3, 15)


def _quote(
    product_type: str = "Standard Auto",
    premium_cents: int = 120000,
    quote_date=date(2024, 3, 1),
    quote_id: str = "q-1",
) -> Quote:
    return Quote(
        id=quote_id,
        household_id="hh-1",
        product_type=product_type,
        premium_cents=premium_cents,
        quote_date=quote_date,
    )


def _candidate(quotes=(), staff_id=None) -> HouseholdCandidate:
    return HouseholdCandidate(
        id="hh-1",
        first_name="John",
        last_name="Smith",
        zip_code="10001",
        lead_source_name="Referral",
        staff_id=staff_id,
        quotes=tuple(quotes),
    )


@pytest.fixture
def sale(make_sale_row):
    return make_sale_row(sale_date=SALE_DATE, product_type="Standard Auto", premium_cents=120000)


def test_score_quote_all_factors(sale) -> None:
    score, factors = score_quote(sale, _quote())
    assert score == 75
    assert factors.product_match
    assert factors.premium_within_tolerance
    assert factors.quote_date_before_sale


def test_product_match_uses_aliases(make_sale_row) -> None:
    sale = make_sale_row(product_type="Homeowners", premium_cents=0)
    score, factors = score_quote(sale, _quote(product_type="HO3", quote_date=None))
    assert score == 40
    assert factors.product_match


def test_premium_tolerance_boundary(sale) -> None:
    # exactly 10% off counts; anything beyond does not
    assert score_quote(sale, _quote(premium_cents=132000))[1].premium_within_tolerance
    assert score_quote(sale, _quote(premium_cents=108000))[1].premium_within_tolerance
    assert not score_quote(sale, _quote(premium_cents=132001))[1].premium_within_tolerance


def test_zero_premium_sale_never_scores_premium(make_sale_row) -> None:
    sale = make_sale_row(premium_cents=0)
    _, factors = score_quote(sale, _quote(premium_cents=0))
    assert not factors.premium_within_tolerance


def test_quote_date_rules(sale) -> None:
    assert score_quote(sale, _quote(quote_date=SALE_DATE))[1].quote_date_before_sale
    assert not score_quote(sale, _quote(quote_date=date(2024, 3, 16)))[1].quote_date_before_sale
    assert not score_quote(sale, _quote(quote_date=None))[1].quote_date_before_sale


def test_full_composition_with_sub_producer(sale) -> None:
    result = score_candidate(sale, _candidate([_quote()], staff_id="s-1"), staff_id="s-1")
    assert result.score == 110
    assert result.factors.sub_producer_match
    assert result.best_quote.id == "q-1"


def test_product_only_score(sale) -> None:
    quote = _quote(premium_cents=500000, quote_date=date(2024, 4, 1))
    result = score_candidate(sale, _candidate([quote]), staff_id=None)
    assert result.score == 40


def test_sub_producer_bonus_added_once_without_quotes(sale) -> None:
    result = score_candidate(sale, _candidate([], staff_id="s-1"), staff_id="s-1")
    assert result.score == 35
    assert result.best_quote is None


def test_no_staff_id_never_matches_unassigned_household(sale) -> None:
    result = score_candidate(sale, _candidate([], staff_id=None), staff_id=None)
    assert result.score == 0
    assert not result.factors.sub_producer_match


def test_best_quote_is_highest_scoring_first_on_ties(sale) -> None:
    weak = _quote(product_type="Renters", quote_id="q-weak")
    strong_a = _quote(quote_id="q-a")
    strong_b = _quote(quote_id="q-b")
    result = score_candidate(sale, _candidate([weak, strong_a, strong_b]), staff_id=None)
    assert result.score == 75
    assert result.best_quote.id == "q-a"


def test_candidate_carries_display_fields(sale) -> None:
    result = score_candidate(sale, _candidate([_quote()]), staff_id=None)
    assert result.household_id == "hh-1"
    assert result.household_name == "John Smith"
    assert result.zip_code == "10001"
    assert result.lead_source_name == "Referral"
