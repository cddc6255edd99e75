"""
exceptions.py

Exception taxonomy for the sales reconciliation pipeline.

- RepositoryError: any persistence-layer failure (lookup, insert, update).
  Row-level handlers convert it into a per-row error string.
- DuplicateHouseholdError: the natural-key uniqueness constraint rejected a
  household insert. The resolver recovers by re-fetching the winning row.
- StaffRosterError: the staff roster could not be loaded. Run-level fatal.
- HouseholdResolutionError: every recovery path for a household group failed.
  Group-level; the group's rows are reported as unmatched.

Bad inputs and bad configuration raise ValueError, as elsewhere in the package.
"""

from __future__ import annotations


class SalesReconciliationError(Exception):
    """Base class for pipeline errors."""


class RepositoryError(SalesReconciliationError):
    """A persistence-layer call failed."""


class DuplicateHouseholdError(RepositoryError):
    """A household with the same natural key already exists in the agency."""

    def __init__(self, agency_id: str, household_key: str) -> None:
        super().__init__(
            f"Household key {household_key!r} already exists for agency {agency_id!r}"
        )
        self.agency_id = agency_id
        self.household_key = household_key


class StaffRosterError(RepositoryError):
    """The staff roster could not be fetched before processing started."""


class HouseholdResolutionError(SalesReconciliationError):
    """A household group could not be bound to any household record."""
