"""Event handlers for Orders domain events (run by the outbox relay)."""

from __future__ import annotations

import structlog

from modules.orders.events import (
    OrderCancelled,
    OrderCompleted,
    OrderPlaced,
    OrderStatusChanged,
)
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OrderPlacedHandler(IEventHandler[OrderPlaced]):
    def handle(self, event: OrderPlaced) -> None:
        logger.info(
            "order.placed.relayed",
            order_id=str(event.aggregate_id),
            order_number=event.payload.get("order_number"),
            shop_id=event.payload.get("shop_id"),
        )


class OrderStatusChangedHandler(IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        logger.info(
            "order.status_changed.relayed",
            order_id=str(event.aggregate_id),
            from_status=event.payload.get("from_status"),
            to_status=event.payload.get("to_status"),
            actor=event.payload.get("actor"),
        )


class OrderCompletedHandler(IEventHandler[OrderCompleted]):
    def handle(self, event: OrderCompleted) -> None:
        logger.info(
            "order.completed.relayed",
            order_id=str(event.aggregate_id),
            customer_id=event.payload.get("customer_id"),
            points_earned=event.payload.get("points_earned"),
        )


class OrderCancelledHandler(IEventHandler[OrderCancelled]):
    def handle(self, event: OrderCancelled) -> None:
        logger.info(
            "order.cancelled.relayed",
            order_id=str(event.aggregate_id),
            actor=event.payload.get("actor"),
            reason=event.payload.get("reason"),
        )


order_placed_handler = OrderPlacedHandler()
order_status_changed_handler = OrderStatusChangedHandler()
order_completed_handler = OrderCompletedHandler()
order_cancelled_handler = OrderCancelledHandler()
