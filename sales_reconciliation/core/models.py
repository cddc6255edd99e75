# Docstring for sales_reconciliation/core/models module
"""
models.py

Record types shared by the loaders, engines, repository and exporters.

Design goals
------------
- Immutable inputs: SaleRow and the scoring outputs are frozen dataclasses, so
  concurrently running group tasks can share them without copying.
- Plain data: no persistence logic lives here; the repository interface in
  `storage.repository` reads and writes these records.
- Audit-friendly: MatchCandidate keeps the individual scoring factors that
  fired, so a reviewer can see why a household was (or was not) chosen.

Public API
----------
- SaleRow, SalesParseResult
- StaffMember, StaffMatch
- Quote, HouseholdRecord, HouseholdCandidate, NewHousehold, NewSale
- MatchFactors, MatchCandidate, MatchReason, MatchDecision, PendingSaleReview
- MatchTier, HouseholdResolution
- SaleGroup, UploadContext, UploadResult, InsertOutcome
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional

from .normalizers import household_key as _household_key


# --- Input rows ------------------------------------------------------------

@dataclass(frozen=True)
class SaleRow:
    """One parsed line item from an uploaded sales report."""

    row_number: int
    first_name: str
    last_name: str
    zip_code: str
    sale_date: date
    product_type: str
    premium_cents: int
    items_sold: int = 1
    policy_number: Optional[str] = None
    sub_producer_raw: Optional[str] = None
    sub_producer_code: Optional[str] = None
    sub_producer_name: Optional[str] = None

    @property
    def household_key(self) -> str:
        return _household_key(self.first_name, self.last_name, self.zip_code)

    def describe(self) -> str:
        """Row label used in per-row error messages."""
        policy = self.policy_number or "none"
        return f"Row {self.row_number}: {self.first_name} {self.last_name} (policy {policy})"


@dataclass
class SalesParseResult:
    """Output of cleaning one sales report."""

    records: list[SaleRow]
    errors: list[str] = field(default_factory=list)
    duplicates_removed: int = 0
    date_range: Optional[tuple[date, date]] = None

    @property
    def success(self) -> bool:
        return bool(self.records)


# --- Staff ------------------------------------------------------------

@dataclass(frozen=True)
class StaffMember:
    id: str
    name: str
    code: Optional[str] = None


@dataclass(frozen=True)
class StaffMatch:
    """Result of resolving a sub-producer; staff_id is None when unmatched."""

    staff_id: Optional[str]
    method: Optional[str] = None      # "code" | "name" | None
    unmatched_raw: Optional[str] = None


# --- Households and quotes ------------------------------------------------------------

@dataclass(frozen=True)
class Quote:
    id: str
    household_id: str
    product_type: str
    premium_cents: int
    quote_date: Optional[date] = None
    issued_policy_number: Optional[str] = None


@dataclass(frozen=True)
class HouseholdRecord:
    """Natural-key lookup result."""

    id: str
    status: str
    lead_source_id: Optional[str] = None


@dataclass(frozen=True)
class HouseholdCandidate:
    """A same-last-name household considered during name-based matching."""

    id: str
    first_name: str
    last_name: str
    zip_code: Optional[str] = None
    lead_source_id: Optional[str] = None
    lead_source_name: Optional[str] = None
    staff_id: Optional[str] = None
    quotes: tuple[Quote, ...] = ()

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class NewHousehold:
    household_key: str
    first_name: str
    last_name: str
    zip_code: str
    status: str
    sold_date: Optional[date] = None
    staff_id: Optional[str] = None
    needs_attention: bool = True
    contact_id: Optional[str] = None


@dataclass(frozen=True)
class NewSale:
    agency_id: str
    household_id: str
    staff_id: Optional[str]
    sale_date: date
    product_type: str
    items_sold: int
    policies_sold: int
    premium_cents: int
    policy_number: Optional[str]
    source: str
    linked_quote_id: Optional[str] = None


class InsertOutcome(str, Enum):
    OK = "ok"
    CONFLICT = "conflict"


# --- Scoring and decisions ------------------------------------------------------------

@dataclass(frozen=True)
class MatchFactors:
    """Which scoring factors fired for a candidate's best quote."""

    product_match: bool = False
    premium_within_tolerance: bool = False
    quote_date_before_sale: bool = False
    sub_producer_match: bool = False


@dataclass(frozen=True)
class MatchCandidate:
    household_id: str
    household_name: str
    zip_code: Optional[str]
    lead_source_name: Optional[str]
    best_quote: Optional[Quote]
    score: int
    factors: MatchFactors


class MatchReason(str, Enum):
    NO_CANDIDATES = "no_candidates"
    UNIQUE_CANDIDATE = "unique_candidate"
    BELOW_THRESHOLD = "below_threshold"
    SCORE_GAP = "score_gap"
    AMBIGUOUS = "ambiguous"


@dataclass(frozen=True)
class MatchDecision:
    matched: Optional[MatchCandidate]
    reason: MatchReason
    # Top candidates, best first; populated when the sale goes to review
    review_candidates: tuple[MatchCandidate, ...] = ()

    @property
    def needs_review(self) -> bool:
        return self.reason in (MatchReason.BELOW_THRESHOLD, MatchReason.AMBIGUOUS)


@dataclass(frozen=True)
class PendingSaleReview:
    """A sale whose household binding needs a human decision."""

    sale: SaleRow
    candidates: tuple[MatchCandidate, ...]
    placeholder_household_id: Optional[str] = None


class MatchTier(str, Enum):
    POLICY_NUMBER = "policy_number"
    NATURAL_KEY = "natural_key"
    SCORED = "scored"
    REVIEW_PLACEHOLDER = "review_placeholder"
    CREATED = "created"


@dataclass(frozen=True)
class HouseholdResolution:
    household_id: str
    tier: MatchTier
    created: bool
    needs_review: bool = False
    needs_attention: bool = False
    candidates: tuple[MatchCandidate, ...] = ()

    @property
    def auto_matched(self) -> bool:
        return self.tier in (MatchTier.POLICY_NUMBER, MatchTier.NATURAL_KEY, MatchTier.SCORED)


# --- Upload run ------------------------------------------------------------

@dataclass(frozen=True)
class SaleGroup:
    """All rows of one upload sharing a household key; rows[0] is the primary row."""

    household_key: str
    rows: tuple[SaleRow, ...]

    @property
    def primary(self) -> SaleRow:
        return self.rows[0]


@dataclass(frozen=True)
class UploadContext:
    agency_id: str
    user_id: Optional[str] = None
    display_name: Optional[str] = None


@dataclass
class UploadResult:
    success: bool
    records_processed: int = 0
    sales_created: int = 0
    households_matched: int = 0
    households_created: int = 0
    quotes_linked: int = 0
    staff_matched: int = 0
    unmatched_producers: list[str] = field(default_factory=list)
    households_needing_attention: int = 0
    auto_matched: int = 0
    needs_review: int = 0
    pending_reviews: list[PendingSaleReview] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @classmethod
    def failed(cls, message: str) -> "UploadResult":
        """Zero-progress result for a run that aborted before processing."""
        return cls(success=False, errors=[message])
