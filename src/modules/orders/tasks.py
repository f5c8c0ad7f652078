"""Background tasks for the orders module."""

from __future__ import annotations

import structlog
from celery import shared_task

from modules.orders.services import build_order_service

logger = structlog.get_logger(__name__)


@shared_task(name="orders.auto_reject_stale_orders")
def auto_reject_stale_orders() -> dict:
    """Cancel pending orders the shop did not answer within the timeout."""
    rejected = build_order_service().auto_reject_stale_orders()
    return {"rejected": [str(order.id) for order in rejected]}
