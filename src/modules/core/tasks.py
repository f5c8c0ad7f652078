"""Background tasks for the core module."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

import structlog
from celery import shared_task

from modules.core.models import EventStatus, OutboxEvent
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)

RELAY_BATCH_SIZE = 100


@shared_task(name="core.relay_outbox_events")
def relay_outbox_events(batch_size: int = RELAY_BATCH_SIZE) -> dict:
    """Publish pending outbox rows to the in-process event bus.

    Rows whose ``event_type`` has no subscriber are marked published so
    they do not block the queue.  A handler failure marks only that row as
    failed; the rest of the batch is still relayed.
    """
    published = failed = 0
    pending = OutboxEvent.objects.filter(status=EventStatus.PENDING).order_by(
        "created_at"
    )[:batch_size]

    for row in pending:
        event_class = event_bus.event_class_for(row.event_type)
        if event_class is None:
            row.mark_as_published()
            published += 1
            continue
        data = row.payload
        event = event_class(
            aggregate_id=UUID(data["aggregate_id"]),
            payload=data.get("payload", {}),
            event_id=UUID(data["event_id"]),
            occurred_on=datetime.fromisoformat(data["occurred_on"]),
        )
        try:
            event_bus.publish(event)
        except Exception as exc:  # noqa: BLE001 - recorded on the row for retry
            logger.warning(
                "outbox.relay_failed",
                event_id=str(row.id),
                event_type=row.event_type,
                error=str(exc),
            )
            row.mark_as_failed(str(exc))
            failed += 1
            continue
        row.mark_as_published()
        published += 1

    logger.info("outbox.relayed", published=published, failed=failed)
    return {"published": published, "failed": failed}
