"""Event handlers for Settlements domain events."""

from __future__ import annotations

import structlog

from modules.settlements.events import (
    PeriodClosed,
    PeriodSettled,
    SettlementMarkedSettled,
)
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class PeriodClosedHandler(IEventHandler[PeriodClosed]):
    def handle(self, event: PeriodClosed) -> None:
        logger.info(
            "period.closed.relayed",
            period_id=str(event.aggregate_id),
            shop_settlements=event.payload.get("shop_settlements"),
            rider_settlements=event.payload.get("rider_settlements"),
        )


class SettlementMarkedSettledHandler(IEventHandler[SettlementMarkedSettled]):
    def handle(self, event: SettlementMarkedSettled) -> None:
        logger.info(
            "settlement.marked_settled.relayed",
            period_id=str(event.aggregate_id),
            settlement_id=event.payload.get("settlement_id"),
            party=event.payload.get("party"),
        )


class PeriodSettledHandler(IEventHandler[PeriodSettled]):
    def handle(self, event: PeriodSettled) -> None:
        logger.info("period.settled.relayed", period_id=str(event.aggregate_id))


period_closed_handler = PeriodClosedHandler()
settlement_marked_settled_handler = SettlementMarkedSettledHandler()
period_settled_handler = PeriodSettledHandler()
