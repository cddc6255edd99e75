# Docstring for sales_reconciliation/engines/match_policy module
"""
match_policy.py

Decide whether a set of scored candidates is confident enough to bind a sale
to a household automatically.

Rules, evaluated in order
-------------------------
1) No candidates                -> no match (caller creates a household)
2) Exactly one candidate        -> auto-match, whatever its score
3) Top score < min_auto_match_score (75)        -> review
4) Top score - 2nd score >= min_score_gap (20)  -> auto-match to the top
5) Otherwise                    -> review

Candidates sent to review are carried best-first, capped at
max_review_candidates (5). Sorting is stable, so equal scores keep the order
the repository returned them in.

Public API
----------
- rank_candidates(candidates) -> list[MatchCandidate]
- decide(candidates, cfg=MATCHING_CONFIG) -> MatchDecision
"""

from __future__ import annotations

from typing import Iterable

from ..config import MATCHING_CONFIG, MatchingConfig
from ..core.models import MatchCandidate, MatchDecision, MatchReason


def rank_candidates(candidates: Iterable[MatchCandidate]) -> list[MatchCandidate]:
    return sorted(candidates, key=lambda c: c.score, reverse=True)


def decide(
    candidates: Iterable[MatchCandidate],
    cfg: MatchingConfig = MATCHING_CONFIG,
) -> MatchDecision:
    pool = list(candidates)

    if not pool:
        return MatchDecision(matched=None, reason=MatchReason.NO_CANDIDATES)

    if len(pool) == 1:
        return MatchDecision(matched=pool[0], reason=MatchReason.UNIQUE_CANDIDATE)

    ranked = rank_candidates(pool)
    top, runner_up = ranked[0], ranked[1]
    for_review = tuple(ranked[: cfg.max_review_candidates])

    if top.score < cfg.min_auto_match_score:
        return MatchDecision(
            matched=None,
            reason=MatchReason.BELOW_THRESHOLD,
            review_candidates=for_review,
        )

    if top.score - runner_up.score >= cfg.min_score_gap:
        return MatchDecision(matched=top, reason=MatchReason.SCORE_GAP)

    return MatchDecision(
        matched=None,
        reason=MatchReason.AMBIGUOUS,
        review_candidates=for_review,
    )
