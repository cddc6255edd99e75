#Docstring for sales_reconciliation/config module
"""
config.py

Central configuration for the sales-upload reconciliation pipeline.

This module defines the scoring weights, decision thresholds, batching limits,
product-type aliases, sales-report column patterns, and household statuses used
across the project.

It is intentionally the single source of truth for:
- Candidate scoring weights (product, premium, quote date, sub-producer)
- Match decision thresholds (minimum auto-match score, required score gap)
- Staff (sub-producer) fuzzy matching limits
- Batch sizing and progress-reporting cadence for the orchestrator
- Column detection patterns for raw sales-report exports

Design goals
------------
- Consistency: all engines rely on the same thresholds and canonical names.
- Tunability: every "magic number" is a named field on a frozen dataclass, so
  tests and callers can pass an alternate config instead of editing literals.
- Safety: defaults favor review over guessing (conservative auto-matching).

Contents
--------
1) Paths and project defaults
   - Report output folders and get_outputs_dir()

2) Matching configuration
   - MATCHING_CONFIG (MatchingConfig): scoring weights and decision thresholds
   - STAFF_MATCH_CONFIG (StaffMatchConfig): sub-producer fuzzy match limits
   - BATCH_CONFIG (BatchConfig): batch size and progress interval

3) Domain vocabularies
   - HOUSEHOLD_STATUS_CONFIG: lifecycle statuses (lead/quoted/sold)
   - PRODUCT_TYPE_ALIASES: raw product label -> canonical product type
   - SALE_SOURCE: provenance tag written on every inserted sale
   - CACHE_KEYS_TO_INVALIDATE: cached views refreshed after a run

4) Sales-report parsing
   - SALES_REPORT_HEADER_PATTERNS: used to locate the header row
   - SALES_REPORT_COLUMN_PATTERNS: canonical field -> header substrings
   - SALES_REPORT_SHEET_KEYWORDS: preferred worksheet name fragments

Usage
-----
All other modules import configuration from here. Example:

    from sales_reconciliation.config import MATCHING_CONFIG, BATCH_CONFIG

Privacy / compliance note
-------------------------
Sales reports carry customer names and policy numbers. Do not commit real
exports or embed real identifiers in configuration; use synthetic data.
"""


from dataclasses import dataclass #create simple classes for configuration
from pathlib import Path #object-oriented filesystem paths instead of strings



# --- Base paths ----------------------------------------------------------------

# sales_reconciliation/ -> project root
BASE_DIR = Path(__file__).resolve().parents[1]

DATA_DIR = BASE_DIR / "data"
SAMPLE_DIR = DATA_DIR / "sample"

REPORTS_DIR = BASE_DIR / "reports"
REPORTS_OUTPUTS_DIR = REPORTS_DIR / "outputs"

OUTPUT_SUBDIRS = {
    "sales_upload": "sales_upload",
    "pending_reviews": "pending_reviews",
}


def get_outputs_dir(name: str) -> Path:
    """Return the outputs directory for a known report type."""
    subdir = OUTPUT_SUBDIRS.get(name)
    if subdir is None:
        valid = ", ".join(sorted(OUTPUT_SUBDIRS))
        raise ValueError(f"Unknown output {name!r}. Expected one of: {valid}")
    return REPORTS_OUTPUTS_DIR / subdir



# --- Matching configuration ------------------------------------------------------------

@dataclass(frozen=True) #Decorator to create data class
class MatchingConfig:
#frozen=True makes instances immutable, once created cannot be changed

    """

    Configuration for candidate scoring and the match decision policy.

    product_match_points:
        Awarded when a quote's normalized product type equals the sale's.
    premium_match_points:
        Awarded when |sale premium - quote premium| / sale premium is within
        premium_tolerance.
    quote_date_points:
        Awarded when the quote was written on or before the sale date.
    sub_producer_points:
        Awarded once per candidate when the household's assigned staff member
        is the staff member the sale was attributed to.
    min_auto_match_score:
        Top score must reach this value before a score-gap auto-match is
        considered.
    min_score_gap:
        Required lead of 1st place over 2nd place for an auto-match.
    max_review_candidates:
        Number of top candidates carried into a pending review.

    """

    product_match_points: int = 40
    premium_match_points: int = 25
    quote_date_points: int = 10
    sub_producer_points: int = 35
    premium_tolerance: float = 0.10    # 10% of the sale premium
    min_auto_match_score: int = 75
    min_score_gap: int = 20
    max_review_candidates: int = 5

    @property
    def max_score(self) -> int:
        return (
            self.product_match_points
            + self.premium_match_points
            + self.quote_date_points
            + self.sub_producer_points
        )


MATCHING_CONFIG = MatchingConfig()
#Creates a singleton instance of MatchingConfig with default values
#For example:
    #from sales_reconciliation.config import MATCHING_CONFIG
    #threshold = MATCHING_CONFIG.min_auto_match_score



@dataclass(frozen=True)
class StaffMatchConfig:

    """

    Configuration for resolving a raw sub-producer name to a staff member.

    A roster member is accepted when matched_tokens / sale_tokens is at least
    min_token_ratio AND at least min_matched_tokens tokens matched.

    """

    min_token_ratio: float = 0.5
    min_matched_tokens: int = 2


STAFF_MATCH_CONFIG = StaffMatchConfig()



@dataclass(frozen=True)
class BatchConfig:

    """

    Configuration for the batch orchestrator.

    batch_size:
        Household groups resolved concurrently per batch. Batches run one
        after another.
    progress_interval:
        A progress event fires each time this many more groups have settled.
        Uploads with this many groups or fewer only get start/finish events.

    """

    batch_size: int = 50
    progress_interval: int = 100


BATCH_CONFIG = BatchConfig()



# --- Domain vocabularies ------------------------------------------------------------

@dataclass(frozen=True)
class HouseholdStatusConfig:

    """Lifecycle status labels stored on household records."""

    lead: str = "lead"
    quoted: str = "quoted"
    sold: str = "sold"


HOUSEHOLD_STATUS_CONFIG = HouseholdStatusConfig()


# Provenance tag written on every sale inserted by the upload pipeline
SALE_SOURCE = "lqs_upload"

# Cached views the caller refreshes once a run completes
CACHE_KEYS_TO_INVALIDATE = (
    "lqs-households",
    "lqs-data",
    "lqs-stats",
)

UNKNOWN_PRODUCT_TYPE = "Unknown"
DEFAULT_ZIP_CODE = "00000"

# IMPORTANT:
# Keys are UPPERCASE raw labels (after strip). Values are the canonical names
# stored on quotes and sales. Labels not listed here pass through unchanged.
PRODUCT_TYPE_ALIASES = {
    # Auto
    "AUTO":               "Standard Auto",
    "STANDARD AUTO":      "Standard Auto",
    "PERSONAL AUTO":      "Standard Auto",
    "SA":                 "Standard Auto",
    # Home
    "HOME":               "Homeowners",
    "HOMEOWNERS":         "Homeowners",
    "HOMEOWNER":          "Homeowners",
    "HO":                 "Homeowners",
    "HO3":                "Homeowners",
    "HO-3":               "Homeowners",
    "HO 3":               "Homeowners",
    # Renters
    "RENTER":             "Renters",
    "RENTERS":            "Renters",
    # Landlords
    "LANDLORD":           "Landlords",
    "LANDLORDS":          "Landlords",
    "LL":                 "Landlords",
    # Umbrella
    "UMBRELLA":           "Personal Umbrella",
    "PERSONAL UMBRELLA":  "Personal Umbrella",
    "PUP":                "Personal Umbrella",
    # Motor club
    "MOTOR CLUB":         "Motor Club",
    "MOTORCLUB":          "Motor Club",
    "MC":                 "Motor Club",
    # Condo
    "CONDO":              "Condo",
    "CONDOMINIUM":        "Condo",
    # Mobilehome
    "MOBILEHOME":         "Mobilehome",
    "MOBILE HOME":        "Mobilehome",
    "MH":                 "Mobilehome",
    # Non-standard auto
    "AUTO - SPECIAL":     "Auto - Special",
    "AUTO-SPECIAL":       "Auto - Special",
    "SPECIAL AUTO":       "Auto - Special",
    "NON-STANDARD AUTO":  "Auto - Special",
}



# --- Sales-report parsing ----------------------------------------------------

# The header row is the first row (within HEADER_SEARCH_ROWS) that contains at
# least MIN_HEADER_PATTERN_HITS of these fragments.
SALES_REPORT_HEADER_PATTERNS = (
    "sub producer",
    "producer",
    "sale date",
    "sold date",
    "issue date",
    "first name",
    "last name",
    "customer",
    "policy",
    "premium",
)
HEADER_SEARCH_ROWS = 15
MIN_HEADER_PATTERN_HITS = 2

# Worksheets whose name contains one of these are preferred
SALES_REPORT_SHEET_KEYWORDS = ("sale", "sold", "issued")

# Canonical field -> lowercase header fragments.
# Order matters: each raw column is claimed by the first field that matches it,
# so specific fields (names, dates, items) resolve before generic ones
# ("policy", "type", "name").
SALES_REPORT_COLUMN_PATTERNS = {
    "first_name":     ("first name", "firstname"),
    "last_name":      ("last name", "lastname"),
    "zip_code":       ("zip", "postal"),
    "sale_date":      ("sale date", "sold date", "issue date", "effective"),
    "premium":        ("premium",),
    "items_sold":     ("items", "item count", "policies"),
    "product_type":   ("product", "line", "type"),
    "policy_number":  ("policy number", "policy #", "policy"),
    "sub_producer":   ("sub producer", "producer", "agent"),
    "customer_name":  ("customer", "insured", "name"),
}
