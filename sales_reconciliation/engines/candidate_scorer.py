# Docstring for sales_reconciliation/engines/candidate_scorer module
"""
candidate_scorer.py

Confidence scoring of one candidate household against one sale row.

Scoring
-------
For every quote on the candidate household a per-quote score is the sum of:

- product_match_points  (40) quote product type == sale product type, after
                             `normalize_product_type` on both sides
- premium_match_points  (25) |sale premium - quote premium| / sale premium
                             <= premium_tolerance (10%); only evaluated when
                             the sale premium is positive
- quote_date_points     (10) quote_date <= sale_date (undated quotes never score)

The highest-scoring quote becomes the candidate's best quote (ties keep the
first quote seen). Separately, sub_producer_points (35) are added when the
household's assigned staff member is the staff member the sale resolved to.

    final score = best quote score + sub-producer bonus   (max 110)

The function is pure and total: a household with no quotes and no staff match
scores 0. The factors that fired are kept on the MatchCandidate for audit.

Public API
----------
- score_quote(sale, quote, cfg=MATCHING_CONFIG) -> tuple[int, MatchFactors]
- score_candidate(sale, candidate, staff_id, cfg=MATCHING_CONFIG) -> MatchCandidate
"""

from __future__ import annotations

from typing import Optional

from ..config import MATCHING_CONFIG, MatchingConfig
from ..core.models import HouseholdCandidate, MatchCandidate, MatchFactors, Quote, SaleRow
from ..core.normalizers import normalize_product_type


def _premium_within_tolerance(sale_cents: int, quote_cents: int, tolerance: float) -> bool:
    if sale_cents <= 0:
        return False
    return abs(sale_cents - quote_cents) / sale_cents <= tolerance


def score_quote(
    sale: SaleRow,
    quote: Quote,
    cfg: MatchingConfig = MATCHING_CONFIG,
) -> tuple[int, MatchFactors]:
    product_match = (
        normalize_product_type(quote.product_type) == normalize_product_type(sale.product_type)
    )
    premium_match = _premium_within_tolerance(
        sale.premium_cents, quote.premium_cents, cfg.premium_tolerance
    )
    date_match = quote.quote_date is not None and quote.quote_date <= sale.sale_date

    score = 0
    if product_match:
        score += cfg.product_match_points
    if premium_match:
        score += cfg.premium_match_points
    if date_match:
        score += cfg.quote_date_points

    return score, MatchFactors(
        product_match=product_match,
        premium_within_tolerance=premium_match,
        quote_date_before_sale=date_match,
    )


def score_candidate(
    sale: SaleRow,
    candidate: HouseholdCandidate,
    staff_id: Optional[str],
    cfg: MatchingConfig = MATCHING_CONFIG,
) -> MatchCandidate:
    """Score a candidate household; always returns a MatchCandidate."""
    best_quote: Optional[Quote] = None
    best_score = 0
    best_factors = MatchFactors()

    for quote in candidate.quotes:
        quote_score, factors = score_quote(sale, quote, cfg)
        if best_quote is None or quote_score > best_score:
            best_quote, best_score, best_factors = quote, quote_score, factors

    sub_producer_match = staff_id is not None and candidate.staff_id == staff_id
    total = best_score + (cfg.sub_producer_points if sub_producer_match else 0)

    return MatchCandidate(
        household_id=candidate.id,
        household_name=candidate.display_name,
        zip_code=candidate.zip_code,
        lead_source_name=candidate.lead_source_name,
        best_quote=best_quote,
        score=total,
        factors=MatchFactors(
            product_match=best_factors.product_match,
            premium_within_tolerance=best_factors.premium_within_tolerance,
            quote_date_before_sale=best_factors.quote_date_before_sale,
            sub_producer_match=sub_producer_match,
        ),
    )
