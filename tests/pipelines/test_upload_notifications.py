import logging

import pytest

from sales_reconciliation.core.models import UploadResult
from sales_reconciliation.notifications import (
    NotificationAdapter,
    UploadEvent,
    UploadEventType,
    notification_for,
)


def _completed(**result_fields) -> UploadEvent:
    result = UploadResult(success=True, **result_fields)
    return UploadEvent(UploadEventType.COMPLETED, "agency-1", result=result)


def test_started_wording() -> None:
    note = notification_for(UploadEvent(UploadEventType.STARTED, "agency-1", total=42))
    assert note.title == "Processing 42 sales..."
    assert note.description == "You can navigate away. We'll notify you when complete."
    assert note.variant == "default"


def test_progress_wording() -> None:
    event = UploadEvent(UploadEventType.PROGRESS, "agency-1", processed=100, total=250)
    assert notification_for(event).description == "100 of 250 households processed"


def test_completed_without_errors() -> None:
    note = notification_for(_completed(sales_created=10, households_matched=7, households_created=3))
    assert note.title == "Sales Upload Complete!"
    assert note.description == "10 sales processed (7 matched, 3 new households)"


def test_completed_mentions_reviews() -> None:
    note = notification_for(
        _completed(sales_created=4, households_matched=2, households_created=2, needs_review=1)
    )
    assert note.description.endswith("; 1 need review")


def test_completed_with_errors_is_destructive() -> None:
    note = notification_for(_completed(sales_created=8, errors=["Row 2: x", "Row 3: y"]))
    assert note.title == "Upload completed with issues"
    assert note.description == "8 succeeded, 2 failed"
    assert note.variant == "destructive"


def test_failed_wording() -> None:
    event = UploadEvent(UploadEventType.FAILED, "agency-1", error="Failed to fetch staff roster: x")
    note = notification_for(event)
    assert note.title == "Sales Upload Failed"
    assert note.description == "Failed to fetch staff roster: x"


def test_completed_event_requires_result() -> None:
    with pytest.raises(ValueError, match="must carry a result"):
        notification_for(UploadEvent(UploadEventType.COMPLETED, "agency-1"))


def test_adapter_publishes_and_logs(caplog: pytest.LogCaptureFixture) -> None:
    published = []
    adapter = NotificationAdapter(publish=published.append)

    with caplog.at_level(logging.INFO, logger="sales_reconciliation.notifications"):
        adapter.handle(UploadEvent(UploadEventType.FAILED, "agency-1", error="boom"))

    assert [n.title for n in published] == ["Sales Upload Failed"]
    assert caplog.records[-1].levelno == logging.WARNING
