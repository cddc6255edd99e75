# Docstring for sales_reconciliation/engines/batch_orchestrator module
"""
batch_orchestrator.py

Batch driver for a sales upload: group, resolve, insert, fold, report.

Algorithm
---------
1) Group rows by household key (`group_sales`). All rows of one person in one
   upload resolve to the same household, and two concurrent tasks can never
   race to create the same natural key within a run.
2) Fetch the staff roster once. Any failure here aborts the run (a FAILED
   event and a zero-progress UploadResult); nothing has been written yet.
3) Partition the groups into batches of BATCH_CONFIG.batch_size (50).
4) Run every group of a batch concurrently (`process_group`) and wait for all
   of them to settle. A failing group never cancels its siblings.
5) Fold each settled GroupOutcome into the running totals, strictly after the
   batch has settled. Group tasks never touch shared counters.
6) Emit a PROGRESS event each time another progress_interval (100) groups
   have settled, for uploads larger than that interval.
7) Invalidate cached views and emit COMPLETED with the UploadResult.
   Any other unexpected error emits FAILED and propagates to the caller.

Batches run strictly one after another, so at most one batch of requests is
in flight and progress is monotonic. There is no rollback: a sale committed
before a later failure stays committed.

Row handling inside a group
---------------------------
For each row: pick the staff member (a row whose sub-producer code differs
from the primary row's and resolves by code gets its own attribution), look
up the most recent quote of the same product type on the household to link as
provenance, insert the sale. A duplicate-sale conflict or a RepositoryError is
recorded as "Row <n>: <first> <last> (policy <p|none>) <reason>" and the next
row continues.

Public API
----------
- group_sales(rows) -> list[SaleGroup]
- iter_batches(groups, batch_size) -> Iterator[list[SaleGroup]]
- process_group(group, *, repository, resolver, staff_matcher, agency_id) -> GroupOutcome
- failed_group_outcome(group, exc) -> GroupOutcome
- UploadTotals (fold accumulator)
- SalesUploadOrchestrator(repository, ...)
    .run(rows, context) -> UploadResult
    .start(rows, context, on_complete=None) -> asyncio.Task
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, Optional, Sequence

from ..config import (
    BATCH_CONFIG,
    CACHE_KEYS_TO_INVALIDATE,
    MATCHING_CONFIG,
    SALE_SOURCE,
    STAFF_MATCH_CONFIG,
    BatchConfig,
    MatchingConfig,
    StaffMatchConfig,
)
from ..core.exceptions import RepositoryError
from ..core.models import (
    InsertOutcome,
    NewSale,
    PendingSaleReview,
    SaleGroup,
    SaleRow,
    StaffMember,
    UploadContext,
    UploadResult,
)
from ..core.validators import (
    validate_batch_config,
    validate_matching_config,
    validate_staff_match_config,
    validate_upload_context,
)
from ..notifications import UploadEvent, UploadEventHandler, UploadEventType
from ..storage.repository import SalesRepository
from .household_resolver import HouseholdResolver
from .staff_matcher import StaffMatcher

logger = logging.getLogger(__name__)


# --- Grouping and batching ------------------------------------------------------------

def group_sales(rows: Iterable[SaleRow]) -> list[SaleGroup]:
    """Group rows by household key, keeping first-seen order of keys and rows."""
    grouped: dict[str, list[SaleRow]] = {}
    for row in rows:
        grouped.setdefault(row.household_key, []).append(row)
    return [SaleGroup(household_key=key, rows=tuple(members)) for key, members in grouped.items()]


def iter_batches(groups: Sequence[SaleGroup], batch_size: int) -> Iterator[list[SaleGroup]]:
    for start in range(0, len(groups), batch_size):
        yield list(groups[start:start + batch_size])


# --- Per-group work ------------------------------------------------------------

@dataclass(frozen=True)
class GroupOutcome:
    """Immutable result of one household group; folded after its batch settles."""

    household_key: str
    household_id: Optional[str] = None
    resolved: bool = False
    created: bool = False
    auto_matched: bool = False
    needs_attention: bool = False
    pending_review: Optional[PendingSaleReview] = None
    sales_created: int = 0
    quotes_linked: int = 0
    staff_ids: frozenset[str] = frozenset()
    unmatched_producers: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()


def _code_key(code: Optional[str]) -> str:
    # same folding StaffMatcher applies to roster codes
    return (code or "").strip().lower()


def _row_staff_id(
    row: SaleRow,
    primary: SaleRow,
    group_staff_id: Optional[str],
    staff_matcher: StaffMatcher,
) -> Optional[str]:
    own_code = _code_key(row.sub_producer_code)
    if own_code and own_code != _code_key(primary.sub_producer_code):
        own = staff_matcher.match_by_code(row.sub_producer_code)
        if own:
            return own
    return group_staff_id


async def process_group(
    group: SaleGroup,
    *,
    repository: SalesRepository,
    resolver: HouseholdResolver,
    staff_matcher: StaffMatcher,
    agency_id: str,
) -> GroupOutcome:
    """
    Resolve one household group and insert its sales.

    Resolution errors propagate (the orchestrator turns them into a failed
    group); per-row insert problems are returned as error strings.
    """
    primary = group.primary
    staff = staff_matcher.match_row(primary)
    resolution = await resolver.resolve(group, agency_id, staff.staff_id)
    household_id = resolution.household_id

    staff_ids: set[str] = {staff.staff_id} if staff.staff_id else set()
    errors: list[str] = []
    sales_created = 0
    quotes_linked = 0

    for row in group.rows:
        row_staff_id = _row_staff_id(row, primary, staff.staff_id, staff_matcher)
        try:
            quote_id = await repository.find_latest_quote_by_product_type(
                household_id, row.product_type
            )
            outcome = await repository.insert_sale(
                NewSale(
                    agency_id=agency_id,
                    household_id=household_id,
                    staff_id=row_staff_id,
                    sale_date=row.sale_date,
                    product_type=row.product_type,
                    items_sold=row.items_sold,
                    policies_sold=1,
                    premium_cents=row.premium_cents,
                    policy_number=row.policy_number,
                    source=SALE_SOURCE,
                    linked_quote_id=quote_id,
                )
            )
        except RepositoryError as exc:
            errors.append(f"{row.describe()} could not be saved: {exc}")
            continue

        if outcome is InsertOutcome.CONFLICT:
            errors.append(f"{row.describe()} already exists (duplicate sale), skipped")
            continue

        sales_created += 1
        if quote_id:
            quotes_linked += 1
        if row_staff_id:
            staff_ids.add(row_staff_id)

    pending_review = None
    if resolution.needs_review:
        pending_review = PendingSaleReview(
            sale=primary,
            candidates=resolution.candidates,
            placeholder_household_id=household_id,
        )

    return GroupOutcome(
        household_key=group.household_key,
        household_id=household_id,
        resolved=True,
        created=resolution.created,
        auto_matched=resolution.auto_matched,
        needs_attention=resolution.needs_attention,
        pending_review=pending_review,
        sales_created=sales_created,
        quotes_linked=quotes_linked,
        staff_ids=frozenset(staff_ids),
        unmatched_producers=(staff.unmatched_raw,) if staff.unmatched_raw else (),
        errors=tuple(errors),
    )


def failed_group_outcome(group: SaleGroup, exc: BaseException) -> GroupOutcome:
    """
    A group whose resolution failed becomes one error entry naming all of its
    rows, e.g. "Row 12, 13: Pat Broken (policy none) could not be matched ...".
    """
    reason = str(exc) or type(exc).__name__
    primary = group.primary
    row_numbers = ", ".join(str(row.row_number) for row in group.rows)
    label = (
        f"Row {row_numbers}: {primary.first_name} {primary.last_name} "
        f"(policy {primary.policy_number or 'none'})"
    )
    return GroupOutcome(
        household_key=group.household_key,
        errors=(f"{label} could not be matched to a customer record: {reason}",),
    )


# --- Fold ------------------------------------------------------------

@dataclass
class UploadTotals:
    """Running totals; only ever updated by the orchestrator between batches."""

    households_matched: int = 0
    households_created: int = 0
    sales_created: int = 0
    quotes_linked: int = 0
    auto_matched: int = 0
    households_needing_attention: int = 0
    staff_ids: set[str] = field(default_factory=set)
    unmatched_producers: dict[str, None] = field(default_factory=dict)   # ordered set
    pending_reviews: list[PendingSaleReview] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def add(self, outcome: GroupOutcome) -> None:
        if outcome.resolved:
            if outcome.created:
                self.households_created += 1
            else:
                self.households_matched += 1
            if outcome.auto_matched:
                self.auto_matched += 1
            if outcome.needs_attention:
                self.households_needing_attention += 1
        if outcome.pending_review is not None:
            self.pending_reviews.append(outcome.pending_review)
        self.sales_created += outcome.sales_created
        self.quotes_linked += outcome.quotes_linked
        self.staff_ids.update(outcome.staff_ids)
        for raw in outcome.unmatched_producers:
            self.unmatched_producers.setdefault(raw, None)
        self.errors.extend(outcome.errors)

    def to_result(self, records_processed: int) -> UploadResult:
        return UploadResult(
            success=not self.errors,
            records_processed=records_processed,
            sales_created=self.sales_created,
            households_matched=self.households_matched,
            households_created=self.households_created,
            quotes_linked=self.quotes_linked,
            staff_matched=len(self.staff_ids),
            unmatched_producers=list(self.unmatched_producers),
            households_needing_attention=self.households_needing_attention,
            auto_matched=self.auto_matched,
            needs_review=len(self.pending_reviews),
            pending_reviews=list(self.pending_reviews),
            errors=list(self.errors),
        )


# --- Orchestrator ------------------------------------------------------------

class SalesUploadOrchestrator:
    """
    Runs sales uploads against a repository.

    Args:
        repository:
            Persistence layer implementing SalesRepository.
        handlers:
            Event handlers notified of STARTED / PROGRESS / COMPLETED / FAILED.
        invalidate_cache:
            Called once with CACHE_KEYS_TO_INVALIDATE after a completed run.
    """

    def __init__(
        self,
        repository: SalesRepository,
        *,
        handlers: Sequence[UploadEventHandler] = (),
        invalidate_cache: Optional[Callable[[Sequence[str]], None]] = None,
        matching_cfg: MatchingConfig = MATCHING_CONFIG,
        staff_cfg: StaffMatchConfig = STAFF_MATCH_CONFIG,
        batch_cfg: BatchConfig = BATCH_CONFIG,
    ) -> None:
        self.repository = repository
        self.handlers = list(handlers)
        self.invalidate_cache = invalidate_cache
        self.matching_cfg = validate_matching_config(matching_cfg)
        self.staff_cfg = validate_staff_match_config(staff_cfg)
        self.batch_cfg = validate_batch_config(batch_cfg)
        self.resolver = HouseholdResolver(repository, self.matching_cfg)
        self._background: set[asyncio.Task] = set()

    def _emit(self, event: UploadEvent) -> None:
        for handler in self.handlers:
            handler.handle(event)

    def start(
        self,
        rows: Sequence[SaleRow],
        context: UploadContext,
        on_complete: Optional[Callable[[UploadResult], None]] = None,
    ) -> "asyncio.Task[UploadResult]":
        """Schedule run() on the running loop and return its task (fire-and-forget)."""
        task = asyncio.create_task(self.run(rows, context))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

        def _finish(done: "asyncio.Task[UploadResult]") -> None:
            if done.cancelled():
                return
            exc = done.exception()
            if exc is not None:
                # FAILED was already emitted by run(); nobody awaits this task
                logger.error("[Sales Upload] Background upload failed: %s", exc)
                return
            if on_complete is not None:
                on_complete(done.result())

        task.add_done_callback(_finish)
        return task

    async def run(self, rows: Sequence[SaleRow], context: UploadContext) -> UploadResult:
        """
        Process one upload end to end.

        A bad context raises ValueError and an unexpected error inside the
        batch loop is re-raised; both emit FAILED first. A roster failure of
        any kind returns UploadResult.failed(...) without writing anything.
        """
        try:
            validate_upload_context(context)
        except ValueError as exc:
            self._emit(UploadEvent(UploadEventType.FAILED, context.agency_id, error=str(exc)))
            raise

        agency_id = context.agency_id
        rows = list(rows)
        self._emit(UploadEvent(UploadEventType.STARTED, agency_id, total=len(rows)))

        try:
            roster = await self.repository.find_staff_roster(agency_id)
        except Exception as exc:
            message = f"Failed to fetch staff roster: {exc}"
            logger.error("[Sales Upload] %s", message)
            self._emit(UploadEvent(UploadEventType.FAILED, agency_id, error=message))
            return UploadResult.failed(message)

        try:
            result, total_groups = await self._process(rows, roster, agency_id)
        except Exception as exc:
            logger.exception("[Sales Upload] Upload aborted")
            self._emit(
                UploadEvent(UploadEventType.FAILED, agency_id, error=f"Sales upload failed: {exc}")
            )
            raise

        self._emit(
            UploadEvent(
                UploadEventType.COMPLETED, agency_id,
                processed=total_groups, total=total_groups, result=result,
            )
        )
        return result

    async def _process(
        self,
        rows: list[SaleRow],
        roster: Sequence[StaffMember],
        agency_id: str,
    ) -> tuple[UploadResult, int]:
        staff_matcher = StaffMatcher(roster, self.staff_cfg)
        groups = group_sales(rows)
        total_groups = len(groups)
        logger.info(
            "[Sales Upload] Grouped %d records into %d unique households",
            len(rows), total_groups,
        )

        totals = UploadTotals()
        processed = 0
        interval = self.batch_cfg.progress_interval

        for batch in iter_batches(groups, self.batch_cfg.batch_size):
            settled = await asyncio.gather(
                *(
                    process_group(
                        group,
                        repository=self.repository,
                        resolver=self.resolver,
                        staff_matcher=staff_matcher,
                        agency_id=agency_id,
                    )
                    for group in batch
                ),
                return_exceptions=True,
            )

            for group, outcome in zip(batch, settled):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                if isinstance(outcome, BaseException):
                    logger.error(
                        "[Sales Upload] Household group %s failed: %s",
                        group.household_key, outcome,
                        exc_info=(type(outcome), outcome, outcome.__traceback__),
                    )
                    outcome = failed_group_outcome(group, outcome)
                totals.add(outcome)

            previous, processed = processed, processed + len(batch)
            if (
                total_groups > interval
                and processed < total_groups
                and processed // interval > previous // interval
            ):
                self._emit(
                    UploadEvent(
                        UploadEventType.PROGRESS, agency_id,
                        processed=processed, total=total_groups,
                    )
                )

        if self.invalidate_cache is not None:
            self.invalidate_cache(CACHE_KEYS_TO_INVALIDATE)

        result = totals.to_result(records_processed=len(rows))
        logger.info(
            "[Sales Upload] Complete: %d sales created, %d matched, %d created, "
            "%d quotes linked, %d need review, %d errors",
            result.sales_created, result.households_matched, result.households_created,
            result.quotes_linked, result.needs_review, result.error_count,
        )
        return result, total_groups
