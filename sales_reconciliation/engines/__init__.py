"""Matching engines: staff attribution, scoring, decision policy, household resolution and batching."""

from . import batch_orchestrator, candidate_scorer, household_resolver, match_policy, staff_matcher

__all__ = [
    "batch_orchestrator",
    "candidate_scorer",
    "household_resolver",
    "match_policy",
    "staff_matcher",
]
