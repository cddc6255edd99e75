# Docstring for sales_reconciliation/engines/household_resolver module
"""
household_resolver.py

Identity resolution: bind one group of sale rows (all sharing a household key)
to a household record, creating one when needed.

Tiers (each short-circuits on success)
--------------------------------------
1) Policy number: the primary row's policy number matches a quote's issued
   policy number in the agency. Full confidence.
2) Natural key: a household with the group's household key already exists in
   the agency. Counts as an auto-match.
3) Name search: households with the same last name (case-insensitive) AND the
   same first name (exact, after `normalize_person_name`) are scored with
   `candidate_scorer.score_candidate` and passed to `match_policy.decide`.
     - auto-match -> bind to the chosen household
     - review     -> create a placeholder household (needs_attention) and
                     return the ranked candidates for a PendingSaleReview
4) No candidates: create a new household. This is the expected outcome for a
   brand-new customer.

Side effects
------------
- Binding to an existing household (tiers 1-3) marks it sold, sets its sold
  date to the primary row's sale date and refreshes its staff assignment when
  the sale resolved to a staff member.
- A new household is created already sold, flagged needs_attention (no
  verified lead source yet), and linked to a unified contact found or created
  by last name + ZIP. Contact linking is best effort.
- A DuplicateHouseholdError on create means another writer won the race for
  the natural key: the resolver re-fetches and binds to the winner. If the
  re-fetch also fails, HouseholdResolutionError is raised for the group.

Public API
----------
- HouseholdResolver(repository, cfg=MATCHING_CONFIG, status_cfg=HOUSEHOLD_STATUS_CONFIG)
    .resolve(group, agency_id, staff_id) -> HouseholdResolution
- filter_same_first_name(candidates, first_name) -> list[HouseholdCandidate]
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from ..config import (
    HOUSEHOLD_STATUS_CONFIG,
    MATCHING_CONFIG,
    HouseholdStatusConfig,
    MatchingConfig,
)
from ..core.exceptions import DuplicateHouseholdError, HouseholdResolutionError, RepositoryError
from ..core.models import (
    HouseholdCandidate,
    HouseholdResolution,
    MatchTier,
    NewHousehold,
    SaleGroup,
)
from ..core.normalizers import normalize_person_name
from ..storage.repository import SalesRepository
from .candidate_scorer import score_candidate
from .match_policy import decide

logger = logging.getLogger(__name__)


def filter_same_first_name(
    candidates: Iterable[HouseholdCandidate],
    first_name: str,
) -> list[HouseholdCandidate]:
    """
    Keep candidates whose first name equals the sale's first name.

    Exact comparison (after accent/punctuation/case normalization) keeps
    "MELISSA SMITH" from binding to "MICHELLE SMITH".
    """
    wanted = normalize_person_name(first_name)
    if not wanted:
        return []
    return [c for c in candidates if normalize_person_name(c.first_name) == wanted]


class HouseholdResolver:

    def __init__(
        self,
        repository: SalesRepository,
        cfg: MatchingConfig = MATCHING_CONFIG,
        status_cfg: HouseholdStatusConfig = HOUSEHOLD_STATUS_CONFIG,
    ) -> None:
        self.repository = repository
        self.cfg = cfg
        self.status_cfg = status_cfg

    async def resolve(
        self,
        group: SaleGroup,
        agency_id: str,
        staff_id: Optional[str],
    ) -> HouseholdResolution:
        primary = group.primary

        # 1) policy number
        if primary.policy_number:
            household_id = await self.repository.find_quote_by_issued_policy_number(
                agency_id, primary.policy_number
            )
            if household_id:
                await self._mark_sold(household_id, group, staff_id)
                return HouseholdResolution(
                    household_id=household_id,
                    tier=MatchTier.POLICY_NUMBER,
                    created=False,
                )

        # 2) natural key
        existing = await self.repository.find_household_by_natural_key(
            agency_id, group.household_key
        )
        if existing is not None:
            await self._mark_sold(existing.id, group, staff_id)
            return HouseholdResolution(
                household_id=existing.id,
                tier=MatchTier.NATURAL_KEY,
                created=False,
                needs_attention=not existing.lead_source_id,
            )

        # 3) name search + scoring
        same_last = await self.repository.find_households_by_last_name(
            agency_id, primary.last_name
        )
        survivors = filter_same_first_name(same_last, primary.first_name)
        scored = [score_candidate(primary, c, staff_id, self.cfg) for c in survivors]
        decision = decide(scored, self.cfg)

        if decision.matched is not None:
            matched = decision.matched
            await self._mark_sold(matched.household_id, group, staff_id)
            source = next(c for c in survivors if c.id == matched.household_id)
            logger.debug(
                "Household %s matched by score %s (%s)",
                group.household_key, matched.score, decision.reason.value,
            )
            return HouseholdResolution(
                household_id=matched.household_id,
                tier=MatchTier.SCORED,
                created=False,
                needs_attention=not source.lead_source_id,
            )

        if decision.needs_review:
            household_id, created = await self._create_household(group, agency_id, staff_id)
            logger.info(
                "Household %s needs review: %d candidates, top score %d",
                group.household_key,
                len(decision.review_candidates),
                decision.review_candidates[0].score,
            )
            return HouseholdResolution(
                household_id=household_id,
                tier=MatchTier.REVIEW_PLACEHOLDER,
                created=created,
                needs_review=True,
                needs_attention=True,
                candidates=decision.review_candidates,
            )

        # 4) nobody by that name
        household_id, created = await self._create_household(group, agency_id, staff_id)
        return HouseholdResolution(
            household_id=household_id,
            tier=MatchTier.CREATED,
            created=created,
            needs_attention=True,
        )

    async def _mark_sold(
        self,
        household_id: str,
        group: SaleGroup,
        staff_id: Optional[str],
    ) -> None:
        await self.repository.update_household_on_sale(
            household_id,
            status=self.status_cfg.sold,
            sold_date=group.primary.sale_date,
            staff_id=staff_id,
        )

    async def _link_contact(self, group: SaleGroup, agency_id: str) -> Optional[str]:
        primary = group.primary
        try:
            return await self.repository.find_or_create_unified_contact(
                agency_id, primary.first_name, primary.last_name, primary.zip_code
            )
        except RepositoryError as exc:
            logger.warning("Contact linking failed for %s: %s", group.household_key, exc)
            return None

    async def _create_household(
        self,
        group: SaleGroup,
        agency_id: str,
        staff_id: Optional[str],
    ) -> tuple[str, bool]:
        """Create the group's household; returns (household_id, created)."""
        primary = group.primary
        contact_id = await self._link_contact(group, agency_id)
        attrs = NewHousehold(
            household_key=group.household_key,
            first_name=primary.first_name,
            last_name=primary.last_name,
            zip_code=primary.zip_code,
            status=self.status_cfg.sold,
            sold_date=primary.sale_date,
            staff_id=staff_id,
            needs_attention=True,
            contact_id=contact_id,
        )
        try:
            return await self.repository.create_household(agency_id, attrs), True
        except DuplicateHouseholdError as exc:
            # another upload created the same natural key first
            winner = await self.repository.find_household_by_natural_key(
                agency_id, group.household_key
            )
            if winner is None:
                raise HouseholdResolutionError(
                    f"Failed to create household {group.household_key}: {exc}"
                ) from exc
            logger.warning(
                "Household %s was created concurrently; binding to %s",
                group.household_key, winner.id,
            )
            await self._mark_sold(winner.id, group, staff_id)
            return winner.id, False
