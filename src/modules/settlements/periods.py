"""Weekly period lifecycle: ``active -> closed -> settled``.

Weeks run Saturday 00:00:00 to Friday 23:59:59.999999 in a fixed UTC
offset (Cairo, +2, no daylight saving), never the host's local time.  A
period is identified by ``(year, week_number)``: the ISO year and week of
the Monday inside it.

Closing a period flips it to ``closed``, aggregates its orders into one
settlement per shop with at least one order and one per rider with at least
one completed delivery, and opens the next period.  A settlement is written
once per ``(party, period)`` and never rewritten afterwards; regenerating a
closed period only adds the records that are missing.  Orders completing
after their period closed are moved to the active period by
``OrderService`` and settle there.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from datetime import timezone as dt_timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

import structlog

from modules.core.clock import Clock, SystemClock
from modules.core.conf import baladi_setting
from modules.core.money import ZERO, money_sum, to_money, to_rate
from modules.orders.constants import OrderStatus
from modules.settlements import calculator
from modules.settlements.constants import (
    DEFAULT_UTC_OFFSET_HOURS,
    WEEK_START_WEEKDAY,
    PeriodStatus,
    SettlementParty,
    SettlementStatus,
)
from modules.settlements.events import (
    PeriodClosed,
    PeriodSettled,
    SettlementMarkedSettled,
)
from modules.settlements.exceptions import (
    AlreadyClosed,
    NotYetClosed,
    PeriodNotFound,
    SettlementNotFound,
)
from modules.settlements.personal_commission import orders_personal_commission

if TYPE_CHECKING:
    from modules.orders.models import Order
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

WEEK = timedelta(days=7)
TICK = timedelta(microseconds=1)


@dataclass(frozen=True)
class PeriodWindow:
    year: int
    week_number: int
    start: datetime
    end: datetime


@dataclass(frozen=True)
class ClosedPeriod:
    period: WeeklyPeriod
    next_period: WeeklyPeriod
    shop_settlements: List[ShopSettlement]
    rider_settlements: List[RiderSettlement]


def week_window(
    instant: datetime, utc_offset_hours: int = DEFAULT_UTC_OFFSET_HOURS
) -> PeriodWindow:
    """The Saturday-Friday window containing ``instant``.

    ``start``/``end`` are returned as aware UTC datetimes.
    """
    if instant.tzinfo is None:
        raise ValueError("week_window requires an aware datetime")
    local_tz = dt_timezone(timedelta(hours=utc_offset_hours))
    local = instant.astimezone(local_tz)
    days_since_start = (local.weekday() - WEEK_START_WEEKDAY) % 7
    start_local = (local - timedelta(days=days_since_start)).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    end_local = start_local + WEEK - TICK
    iso_year, iso_week, _ = (start_local + timedelta(days=2)).date().isocalendar()
    return PeriodWindow(
        year=iso_year,
        week_number=iso_week,
        start=start_local.astimezone(dt_timezone.utc),
        end=end_local.astimezone(dt_timezone.utc),
    )


class WeekPeriodManager:
    def __init__(
        self,
        period_repository: IPeriodRepository,
        settlement_repository: ISettlementRepository,
        order_repository: IOrderRepository,
        shop_repository: IShopRepository,
        clock: Optional[Clock] = None,
        utc_offset_hours: Optional[int] = None,
        rider_commission_rate: Optional[Decimal] = None,
    ) -> None:
        self._periods = period_repository
        self._settlements = settlement_repository
        self._orders = order_repository
        self._shops = shop_repository
        self._clock = clock or SystemClock()
        self._utc_offset = (
            utc_offset_hours
            if utc_offset_hours is not None
            else baladi_setting("SETTLEMENT_UTC_OFFSET_HOURS")
        )
        self._rider_rate = to_rate(
            rider_commission_rate
            if rider_commission_rate is not None
            else baladi_setting("RIDER_COMMISSION_RATE")
        )

    # ------------------------------------------------------------------
    # Boundaries
    # ------------------------------------------------------------------

    def window_for(self, instant: datetime) -> PeriodWindow:
        return week_window(instant, self._utc_offset)

    def current_period(self) -> PeriodWindow:
        return self.window_for(self._clock.now())

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def ensure_active_period(self) -> WeeklyPeriod:
        """The active period, opening one for the current week if none is."""
        active = self._periods.get_active()
        if active is not None:
            return active
        return self._open_period_from(self._clock.now())

    def lock_period(self, period_id) -> Optional[WeeklyPeriod]:
        """The period with this id, row-locked against a concurrent close."""
        return self._periods.get_for_update(str(period_id))

    def close_period(self, period: WeeklyPeriod) -> ClosedPeriod:
        """Generate settlements, close ``period`` and open the next one.

        Closing a period without orders is valid and yields no settlements.

        Raises:
            AlreadyClosed: the period is not ``active``.
        """
        if period.status != PeriodStatus.ACTIVE:
            raise AlreadyClosed(
                f"Period {period.year}-W{period.week_number:02d} is already "
                f"{period.status}.",
                period_id=str(period.id),
                status=period.status,
            )

        now = self._clock.now()
        period.status = PeriodStatus.CLOSED
        period.closed_at = now
        shop_settlements, rider_settlements = self._write_settlements(period)
        period.add_domain_event(
            PeriodClosed(
                aggregate_id=period.id,
                payload={
                    "year": period.year,
                    "week_number": period.week_number,
                    "shop_settlements": len(shop_settlements),
                    "rider_settlements": len(rider_settlements),
                },
            )
        )
        self._periods.save(period)

        next_period = self._open_period_from(max(now, period.end_date + TICK))
        logger.info(
            "period.closed",
            period_id=str(period.id),
            next_period_id=str(next_period.id),
            shop_settlements=len(shop_settlements),
            rider_settlements=len(rider_settlements),
        )
        return ClosedPeriod(
            period=period,
            next_period=next_period,
            shop_settlements=shop_settlements,
            rider_settlements=rider_settlements,
        )

    def generate_settlements(
        self, period: WeeklyPeriod
    ) -> Tuple[List[ShopSettlement], List[RiderSettlement]]:
        """Write the settlements of a closed period that do not exist yet.

        Existing records, pending or settled, are returned unchanged.

        Raises:
            NotYetClosed: the period is still ``active``.
            AlreadyClosed: the period is already ``settled``.
        """
        if period.status == PeriodStatus.ACTIVE:
            raise NotYetClosed(
                "Settlements are generated only for a closed period.",
                period_id=str(period.id),
            )
        if period.status == PeriodStatus.SETTLED:
            raise AlreadyClosed(
                "Settlements of a settled period cannot be regenerated.",
                period_id=str(period.id),
                status=period.status,
            )
        return self._write_settlements(period)

    def _write_settlements(
        self, period: WeeklyPeriod
    ) -> Tuple[List[ShopSettlement], List[RiderSettlement]]:
        orders = self._orders.list_in_period(period.id)

        by_shop: Dict = defaultdict(list)
        by_rider: Dict = defaultdict(list)
        for order in orders:
            by_shop[order.shop_id].append(order)
            if order.status == OrderStatus.COMPLETED and order.rider_id is not None:
                by_rider[order.rider_id].append(order)

        existing_shops = {s.shop_id: s for s in self._settlements.list_shop(period.id)}
        existing_riders = {s.rider_id: s for s in self._settlements.list_rider(period.id)}
        missing_shops = [shop_id for shop_id in by_shop if shop_id not in existing_shops]
        shops = self._shops.get_many(missing_shops)
        ad_costs = self._shops.ad_costs_between(period.start_date, period.end_date)

        shop_settlements = [
            existing_shops.pop(shop_id, None)
            or self._settle_shop(period, shops[shop_id], shop_orders, ad_costs)
            for shop_id, shop_orders in by_shop.items()
        ]
        rider_settlements = [
            existing_riders.pop(rider_id, None)
            or self._settle_rider(period, rider_id, rider_orders)
            for rider_id, rider_orders in by_rider.items()
        ]
        shop_settlements.extend(existing_shops.values())
        rider_settlements.extend(existing_riders.values())
        return shop_settlements, rider_settlements

    def mark_settled(self, settlement_id: str):
        """Mark one settlement paid; settles the period once none is pending.

        Marking an already settled record is a no-op.

        Raises:
            SettlementNotFound: unknown id.
            NotYetClosed: the settlement's period is still active.
        """
        settlement = self._settlements.get_for_update(settlement_id)
        if settlement is None:
            raise SettlementNotFound(settlement_id)
        period = self._periods.get_for_update(str(settlement.period_id))
        if period is None:
            raise PeriodNotFound(settlement.period_id)
        if period.status == PeriodStatus.ACTIVE:
            raise NotYetClosed(
                "Settlements can be paid only after their period is closed.",
                period_id=str(period.id),
                settlement_id=str(settlement.id),
            )
        if settlement.status == SettlementStatus.SETTLED:
            return settlement

        now = self._clock.now()
        settlement.status = SettlementStatus.SETTLED
        settlement.settled_at = now
        self._settlements.save(settlement)

        party = (
            SettlementParty.RIDER if hasattr(settlement, "rider_id") else SettlementParty.SHOP
        )
        period.add_domain_event(
            SettlementMarkedSettled(
                aggregate_id=period.id,
                payload={"settlement_id": str(settlement.id), "party": party.value},
            )
        )

        if period.status == PeriodStatus.CLOSED and not self._settlements.has_pending(
            period.id
        ):
            period.status = PeriodStatus.SETTLED
            period.settled_at = now
            period.add_domain_event(PeriodSettled(aggregate_id=period.id))
            self._periods.save(period)
            logger.info("period.settled", period_id=str(period.id))
        else:
            self._periods.record_events(period)

        logger.info(
            "settlement.marked_settled",
            settlement_id=str(settlement.id),
            period_id=str(period.id),
            party=party.value,
        )
        return settlement

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _open_period_from(self, instant: datetime) -> WeeklyPeriod:
        window = self.window_for(instant)
        while True:
            period = self._periods.get_or_create(
                window.year,
                window.week_number,
                defaults={
                    "start_date": window.start,
                    "end_date": window.end,
                    "status": PeriodStatus.ACTIVE,
                    "created_at": self._clock.now(),
                },
            )
            if period.status == PeriodStatus.ACTIVE:
                return period
            window = self.window_for(period.end_date + TICK)

    def _settle_shop(
        self,
        period: WeeklyPeriod,
        shop,
        orders: List[Order],
        ad_costs: Dict,
    ) -> ShopSettlement:
        completed = [o for o in orders if o.status == OrderStatus.COMPLETED]
        summary = calculator.shop_settlement(
            gross_sales=money_sum(o.subtotal for o in completed),
            commission_rate=shop.commission_rate,
            total_commission=money_sum(o.shop_commission for o in completed),
            points_discounts=money_sum(o.points_discount for o in completed),
            free_delivery_costs=money_sum(o.free_delivery_cost for o in completed),
            ads_cost=ad_costs.get(shop.id, ZERO),
            total_orders=len(orders),
            completed_orders=len(completed),
            cancelled_orders=sum(1 for o in orders if o.status == OrderStatus.CANCELLED),
        )
        values = asdict(summary)
        values["personal_commission"] = orders_personal_commission(completed)
        return self._settlements.add_shop(shop.id, period.id, values)

    def _settle_rider(
        self, period: WeeklyPeriod, rider_id, orders: List[Order]
    ) -> RiderSettlement:
        fees = money_sum(o.delivery_fee for o in orders)
        summary = calculator.rider_settlement(
            total_deliveries=len(orders),
            total_delivery_fees=fees,
            total_cash_handled=money_sum(o.total_amount for o in orders),
            commission_deducted=to_money(fees * self._rider_rate),
        )
        return self._settlements.add_rider(rider_id, period.id, asdict(summary))


def build_period_manager(clock: Optional[Clock] = None) -> WeekPeriodManager:
    """Wire ``WeekPeriodManager`` with the Django repositories."""
    from modules.orders.repositories.django_repository import OrderDjangoRepository
    from modules.settlements.repositories.django_repository import (
        PeriodDjangoRepository,
        SettlementDjangoRepository,
    )
    from modules.shops.repositories.django_repository import ShopDjangoRepository

    return WeekPeriodManager(
        period_repository=PeriodDjangoRepository(),
        settlement_repository=SettlementDjangoRepository(),
        order_repository=OrderDjangoRepository(),
        shop_repository=ShopDjangoRepository(),
        clock=clock,
    )
