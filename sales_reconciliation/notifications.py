"""Typed upload events and the adapter that turns them into user notifications.

The orchestrator only emits UploadEvent objects. What a user sees (a toast,
a log line, a chat message) is decided by whichever UploadEventHandler the
caller plugs in; NotificationAdapter is the stock one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional, Protocol

from .core.models import UploadResult

logger = logging.getLogger(__name__)


class UploadEventType(str, Enum):
    STARTED = "started"
    PROGRESS = "progress"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class UploadEvent:
    """Immutable event emitted by the orchestrator."""

    event_type: UploadEventType
    agency_id: str
    processed: int = 0
    total: int = 0
    result: Optional[UploadResult] = None
    error: Optional[str] = None
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )


class UploadEventHandler(Protocol):
    """Anything that consumes upload events."""

    def handle(self, event: UploadEvent) -> None: ...


@dataclass(frozen=True)
class Notification:
    title: str
    description: str
    variant: str = "default"           # "default" | "destructive"


def notification_for(event: UploadEvent) -> Notification:
    """User-facing wording for an event."""
    if event.event_type is UploadEventType.STARTED:
        return Notification(
            title=f"Processing {event.total} sales...",
            description="You can navigate away. We'll notify you when complete.",
        )

    if event.event_type is UploadEventType.PROGRESS:
        return Notification(
            title="Processing sales...",
            description=f"{event.processed} of {event.total} households processed",
        )

    if event.event_type is UploadEventType.FAILED:
        return Notification(
            title="Sales Upload Failed",
            description=event.error or "An error occurred during processing",
            variant="destructive",
        )

    result = event.result
    if result is None:
        raise ValueError("Completed upload events must carry a result.")
    if result.error_count == 0:
        description = (
            f"{result.sales_created} sales processed "
            f"({result.households_matched} matched, {result.households_created} new households)"
        )
        if result.needs_review:
            description += f"; {result.needs_review} need review"
        return Notification(title="Sales Upload Complete!", description=description)
    return Notification(
        title="Upload completed with issues",
        description=f"{result.sales_created} succeeded, {result.error_count} failed",
        variant="destructive",
    )


class NotificationAdapter:
    """Maps upload events to notifications, logs them, and forwards them to publish."""

    def __init__(self, publish: Optional[Callable[[Notification], None]] = None) -> None:
        self.publish = publish

    def handle(self, event: UploadEvent) -> None:
        note = notification_for(event)
        level = logging.WARNING if note.variant == "destructive" else logging.INFO
        logger.log(level, "%s %s", note.title, note.description)
        if self.publish is not None:
            self.publish(note)
