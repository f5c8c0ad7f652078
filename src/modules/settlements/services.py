"""Settlement service layer (use cases).

Wraps ``WeekPeriodManager`` in transactions and row locks and builds the
admin settlement report.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Tuple

import structlog
from django.db import transaction

from modules.core.clock import Clock, SystemClock
from modules.core.money import money_sum
from modules.settlements import calculator
from modules.settlements.constants import PeriodStatus
from modules.settlements.exceptions import NotYetClosed, PeriodNotFound
from modules.settlements.periods import ClosedPeriod, WeekPeriodManager

if TYPE_CHECKING:
    from decimal import Decimal

    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.settlements.models import (
        RiderSettlement,
        ShopSettlement,
        WeeklyPeriod,
    )
    from modules.settlements.repositories.interfaces import (
        IPeriodRepository,
        ISettlementRepository,
    )
    from modules.shops.repositories.interfaces import IShopRepository

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SettlementReport:
    period: WeeklyPeriod
    summary: calculator.AdminSettlementSummary
    shop_settlements: List[ShopSettlement]
    rider_settlements: List[RiderSettlement]
    # Reporting-only overlay; not part of any conservation check.
    personal_commission_total: Decimal


class SettlementService:
    def __init__(
        self,
        period_repository: IPeriodRepository,
        settlement_repository: ISettlementRepository,
        order_repository: IOrderRepository,
        shop_repository: IShopRepository,
        clock: Optional[Clock] = None,
    ) -> None:
        self._periods = period_repository
        self._settlements = settlement_repository
        self._orders = order_repository
        self._shops = shop_repository
        self._clock = clock or SystemClock()
        self._manager = WeekPeriodManager(
            period_repository=period_repository,
            settlement_repository=settlement_repository,
            order_repository=order_repository,
            shop_repository=shop_repository,
            clock=self._clock,
        )

    @property
    def manager(self) -> WeekPeriodManager:
        return self._manager

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def close_current_week(self) -> ClosedPeriod:
        """Close the active period.

        Raises:
            PeriodNotFound: there is no active period.
            AlreadyClosed: lost a race with another close.
        """
        period = self._periods.get_active(for_update=True)
        if period is None:
            raise PeriodNotFound()
        return self._close(period)

    @transaction.atomic
    def close_period(self, period_id: str) -> ClosedPeriod:
        period = self._periods.get_for_update(period_id)
        if period is None:
            raise PeriodNotFound(period_id)
        return self._close(period)

    @transaction.atomic
    def generate_settlements(
        self, period_id: str
    ) -> Tuple[List[ShopSettlement], List[RiderSettlement]]:
        """Add any missing settlements to a closed period; existing ones are kept.

        Raises:
            PeriodNotFound, NotYetClosed, AlreadyClosed.
        """
        period = self._periods.get_for_update(period_id)
        if period is None:
            raise PeriodNotFound(period_id)
        shops, riders = self._manager.generate_settlements(period)
        logger.info(
            "settlement.generated",
            period_id=str(period.id),
            shop_settlements=len(shops),
            rider_settlements=len(riders),
        )
        return shops, riders

    @transaction.atomic
    def mark_settled(self, settlement_id: str):
        return self._manager.mark_settled(settlement_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_settlement_report(self, period_id: str) -> SettlementReport:
        """Platform-wide summary of a closed (or settled) period.

        Raises:
            PeriodNotFound: unknown period.
            NotYetClosed: the period is still active.
        """
        period = self._periods.get_by_id(period_id)
        if period is None:
            raise PeriodNotFound(period_id)
        if period.status == PeriodStatus.ACTIVE:
            raise NotYetClosed(
                "A settlement report is available once the period is closed.",
                period_id=str(period.id),
            )

        shop_settlements = self._settlements.list_shop(period.id)
        rider_settlements = self._settlements.list_rider(period.id)

        settled_shop_ids = {s.shop_id for s in shop_settlements}
        ad_costs = self._shops.ad_costs_between(period.start_date, period.end_date)
        unattributed_ads = money_sum(
            amount
            for shop_id, amount in ad_costs.items()
            if shop_id not in settled_shop_ids
        )
        points_redeemed = sum(
            o.points_used for o in self._orders.list_completed_in_period(period.id)
        )

        summary = calculator.admin_summary(
            shop_settlements,
            rider_settlements,
            ads_revenue=unattributed_ads,
            points_redeemed=points_redeemed,
        )
        report = SettlementReport(
            period=period,
            summary=summary,
            shop_settlements=shop_settlements,
            rider_settlements=rider_settlements,
            personal_commission_total=money_sum(
                s.personal_commission for s in shop_settlements
            ),
        )
        logger.info(
            "settlement.report_built",
            period_id=str(period.id),
            admin_net_revenue=str(summary.admin_net_revenue),
        )
        return report

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _close(self, period: WeeklyPeriod) -> ClosedPeriod:
        log = logger.bind(period_id=str(period.id), year=period.year, week=period.week_number)
        log.info("period.close_started")
        result = self._manager.close_period(period)
        log.info(
            "period.close_completed",
            next_period_id=str(result.next_period.id),
        )
        return result


def build_settlement_service(clock: Optional[Clock] = None) -> SettlementService:
    """Wire ``SettlementService`` with the Django repositories."""
    from modules.orders.repositories.django_repository import OrderDjangoRepository
    from modules.settlements.repositories.django_repository import (
        PeriodDjangoRepository,
        SettlementDjangoRepository,
    )
    from modules.shops.repositories.django_repository import ShopDjangoRepository

    return SettlementService(
        period_repository=PeriodDjangoRepository(),
        settlement_repository=SettlementDjangoRepository(),
        order_repository=OrderDjangoRepository(),
        shop_repository=ShopDjangoRepository(),
        clock=clock,
    )
