# Docstring for sales_reconciliation/engines/staff_matcher module
"""
staff_matcher.py

Resolve a sale row's raw sub-producer value to an internal staff member.

Resolution order
----------------
1) Code lookup: the sub-producer code is compared case-insensitively with each
   roster member's assigned code. An exact hit wins immediately.
2) Fuzzy name match: the sub-producer name and each roster name are reduced to
   token lists (see `core.normalizers.normalize_name_tokens`). A sale token
   matches when it is a substring of a roster token or vice versa. The score
   is matched_tokens / sale_tokens; the best roster member is accepted when
   score >= STAFF_MATCH_CONFIG.min_token_ratio AND matched_tokens >=
   STAFF_MATCH_CONFIG.min_matched_tokens.
3) Otherwise the sale is unattributed and the raw value is reported back as an
   "unmatched producer".

No match is a normal outcome, never an exception.

Public API
----------
- StaffMatcher(roster, cfg=STAFF_MATCH_CONFIG)
    .match(code=None, name=None, raw=None) -> StaffMatch
    .match_row(row) -> StaffMatch
    .match_by_code(code) -> str | None
- resolve_staff(code, name, roster, cfg=STAFF_MATCH_CONFIG) -> str | None
"""

from __future__ import annotations

from typing import Iterable, Optional

from ..config import STAFF_MATCH_CONFIG, StaffMatchConfig
from ..core.models import SaleRow, StaffMatch, StaffMember
from ..core.normalizers import normalize_name_tokens


def _token_overlap(sale_tokens: list[str], member_tokens: list[str]) -> int:
    matched = 0
    for token in sale_tokens:
        if any(token in other or other in token for other in member_tokens):
            matched += 1
    return matched


class StaffMatcher:
    """Roster lookup built once per upload and shared read-only by all groups."""

    def __init__(
        self,
        roster: Iterable[StaffMember],
        cfg: StaffMatchConfig = STAFF_MATCH_CONFIG,
    ) -> None:
        self.roster = list(roster)
        self.cfg = cfg
        self._by_code = {
            member.code.strip().lower(): member
            for member in self.roster
            if member.code and member.code.strip()
        }
        # token lists are computed once; members without a usable name are skipped
        self._name_tokens = [
            (member, normalize_name_tokens(member.name)) for member in self.roster
        ]

    def match_by_code(self, code: Optional[str]) -> Optional[str]:
        if not code or not code.strip():
            return None
        member = self._by_code.get(code.strip().lower())
        return member.id if member else None

    def match_by_name(self, name: Optional[str]) -> Optional[str]:
        sale_tokens = normalize_name_tokens(name)
        if not sale_tokens:
            return None

        best: Optional[StaffMember] = None
        best_score = 0.0
        for member, member_tokens in self._name_tokens:
            if not member_tokens:
                continue
            matched = _token_overlap(sale_tokens, member_tokens)
            score = matched / len(sale_tokens)
            if (
                score >= self.cfg.min_token_ratio
                and matched >= self.cfg.min_matched_tokens
                and score > best_score
            ):
                best, best_score = member, score
        return best.id if best else None

    def match(
        self,
        code: Optional[str] = None,
        name: Optional[str] = None,
        raw: Optional[str] = None,
    ) -> StaffMatch:
        staff_id = self.match_by_code(code)
        if staff_id:
            return StaffMatch(staff_id=staff_id, method="code")

        staff_id = self.match_by_name(name)
        if staff_id:
            return StaffMatch(staff_id=staff_id, method="name")

        unmatched = raw.strip() if raw and raw.strip() else None
        return StaffMatch(staff_id=None, unmatched_raw=unmatched)

    def match_row(self, row: SaleRow) -> StaffMatch:
        return self.match(
            code=row.sub_producer_code,
            name=row.sub_producer_name,
            raw=row.sub_producer_raw,
        )


def resolve_staff(
    code: Optional[str],
    name: Optional[str],
    roster: Iterable[StaffMember],
    cfg: StaffMatchConfig = STAFF_MATCH_CONFIG,
) -> Optional[str]:
    """One-off resolution; build a StaffMatcher when resolving many rows."""
    return StaffMatcher(roster, cfg).match(code=code, name=name).staff_id
