"""Integration tests for weekly period closing and settlements.

Covers:
- Closing a period creates one settlement per shop with orders and one
  per rider with completed deliveries, then opens the next week.
- Shops without orders get no settlement record.
- Settlements are written once: regenerating only fills gaps, never
  rewrites a record, and is refused for an active period.
- Commission comes from the orders' snapshots, not the shop's current rate.
- Orders completing after their week closed settle in the active week.
- Closing twice fails.
- mark_settled flips the period to settled once nothing is pending.
- The admin report reconciles.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest

from modules.core.money import money_sum
from modules.orders.constants import ActorRole, OrderStatus
from modules.orders.dtos import CancelOrderDTO, TransitionOrderDTO
from modules.orders.models import Order
from modules.settlements.constants import PeriodStatus, SettlementStatus
from modules.settlements.exceptions import (
    AlreadyClosed,
    NotYetClosed,
    PeriodNotFound,
    SettlementNotFound,
)
from modules.settlements.models import RiderSettlement, ShopSettlement, WeeklyPeriod
from modules.shops.models import Shop, ShopAdCharge

pytestmark = pytest.mark.integration


@pytest.fixture()
def idle_shop():
    return Shop.objects.create(name="Quiet Bakery", commission_rate=Decimal("0.15"))


@pytest.fixture()
def busy_week(
    place_order, advance_order, order_service, points_service, customer_id, shop,
    idle_shop, clock,
):
    """Two completed orders (one with points), one cancelled, ads on both shops."""
    points_service.adjust(customer_id, 10, "Promo")
    first = advance_order(place_order(subtotal="200.00"))
    second = advance_order(place_order(subtotal="300.00", points=10))
    cancelled = place_order(subtotal="100.00")
    order_service.cancel_order(
        CancelOrderDTO(order_id=cancelled.id, reason="Duplicate", actor_role=ActorRole.CUSTOMER)
    )
    ShopAdCharge.objects.create(shop=shop, amount=Decimal("20.00"), charged_at=clock.now())
    ShopAdCharge.objects.create(
        shop=idle_shop, amount=Decimal("5.00"), charged_at=clock.now()
    )
    return first, second, cancelled


# ---------------------------------------------------------------------------
# Closing
# ---------------------------------------------------------------------------


class TestClosePeriod:
    def test_settlements_for_active_parties_only(
        self, busy_week, settlement_service, shop, idle_shop, rider_id
    ):
        result = settlement_service.close_current_week()

        assert result.period.status == PeriodStatus.CLOSED
        assert result.period.closed_at is not None
        assert [s.shop_id for s in result.shop_settlements] == [shop.id]
        assert not ShopSettlement.objects.filter(shop=idle_shop).exists()
        assert [r.rider_id for r in result.rider_settlements] == [rider_id]

    def test_shop_settlement_amounts(self, busy_week, settlement_service, shop):
        settlement_service.close_current_week()

        settlement = ShopSettlement.objects.get(shop=shop)
        assert settlement.total_orders == 3
        assert settlement.completed_orders == 2
        assert settlement.cancelled_orders == 1
        assert settlement.gross_sales == Decimal("500.00")
        assert settlement.total_commission == Decimal("50.00")
        assert settlement.points_discounts == Decimal("10.00")
        assert settlement.free_delivery_costs == Decimal("0.00")
        assert settlement.ads_cost == Decimal("20.00")
        assert settlement.admin_net_commission == Decimal("60.00")
        assert settlement.net_payable == Decimal("440.00")
        assert settlement.net_payable + settlement.admin_net_commission == settlement.gross_sales
        assert settlement.personal_commission == Decimal("29.50")
        assert settlement.status == SettlementStatus.PENDING

    def test_shop_settlement_matches_stored_order_amounts(
        self, busy_week, settlement_service, shop
    ):
        settlement_service.close_current_week()

        settlement = ShopSettlement.objects.get(shop=shop)
        completed = list(Order.objects.filter(shop=shop, status=OrderStatus.COMPLETED))
        assert settlement.gross_sales == money_sum(o.subtotal for o in completed)
        assert settlement.total_commission == money_sum(o.shop_commission for o in completed)
        assert settlement.points_discounts == money_sum(o.points_discount for o in completed)
        assert settlement.admin_net_commission - settlement.ads_cost == money_sum(
            o.platform_commission for o in completed
        )

    def test_rider_settlement_amounts(self, busy_week, settlement_service, rider_id):
        settlement_service.close_current_week()

        settlement = RiderSettlement.objects.get(rider_id=rider_id)
        assert settlement.total_deliveries == 2
        assert settlement.total_delivery_fees == Decimal("30.00")
        assert settlement.total_cash_handled == Decimal("520.00")
        assert settlement.commission_deducted == Decimal("0.00")
        assert settlement.net_earnings == Decimal("30.00")

    def test_rider_commission_rate(self, busy_week, clock, rider_id, settings):
        settings.BALADI = {"RIDER_COMMISSION_RATE": Decimal("0.10")}
        from modules.settlements.services import build_settlement_service

        build_settlement_service(clock=clock).close_current_week()

        settlement = RiderSettlement.objects.get(rider_id=rider_id)
        assert settlement.commission_deducted == Decimal("3.00")
        assert settlement.net_earnings == Decimal("27.00")

    def test_next_week_is_opened(self, busy_week, settlement_service, place_order):
        result = settlement_service.close_current_week()

        assert (result.next_period.year, result.next_period.week_number) == (2025, 3)
        assert result.next_period.status == PeriodStatus.ACTIVE
        assert result.next_period.start_date > result.period.end_date
        assert place_order().week_period_id == result.next_period.id

    def test_empty_period_closes_without_settlements(self, settlement_service):
        period = settlement_service.manager.ensure_active_period()

        result = settlement_service.close_period(str(period.id))

        assert result.shop_settlements == []
        assert result.rider_settlements == []
        assert ShopSettlement.objects.count() == 0

    def test_no_active_period(self, settlement_service):
        with pytest.raises(PeriodNotFound):
            settlement_service.close_current_week()

    def test_closing_twice_fails(self, busy_week, settlement_service):
        closed = settlement_service.close_current_week().period

        with pytest.raises(AlreadyClosed):
            settlement_service.close_period(str(closed.id))


class TestCommissionSnapshot:
    def test_rate_change_before_close_keeps_order_commission(
        self, place_order, advance_order, settlement_service, shop
    ):
        order = advance_order(place_order(subtotal="200.00"))
        Shop.objects.filter(pk=shop.pk).update(commission_rate=Decimal("0.20"))

        settlement_service.close_current_week()

        settlement = ShopSettlement.objects.get(shop=shop)
        assert order.shop_commission == Decimal("20.00")
        assert settlement.total_commission == order.shop_commission
        assert settlement.admin_net_commission == order.platform_commission
        assert settlement.net_payable == Decimal("180.00")
        assert settlement.commission_rate == Decimal("0.1000")

    def test_orders_at_different_rates_record_the_effective_rate(
        self, place_order, advance_order, settlement_service, shop
    ):
        advance_order(place_order(subtotal="200.00"))
        Shop.objects.filter(pk=shop.pk).update(commission_rate=Decimal("0.20"))
        advance_order(place_order(subtotal="300.00"))

        settlement_service.close_current_week()

        settlement = ShopSettlement.objects.get(shop=shop)
        assert settlement.gross_sales == Decimal("500.00")
        assert settlement.total_commission == Decimal("80.00")
        assert settlement.commission_rate == Decimal("0.1600")
        assert settlement.net_payable + settlement.admin_net_commission == settlement.gross_sales


class TestSettlementsAreWrittenOnce:
    def test_active_period_cannot_be_generated(self, busy_week, settlement_service):
        period = WeeklyPeriod.objects.get(status=PeriodStatus.ACTIVE)

        with pytest.raises(NotYetClosed):
            settlement_service.generate_settlements(str(period.id))

        assert ShopSettlement.objects.count() == 0
        assert RiderSettlement.objects.count() == 0

    def test_regenerating_returns_the_same_records(self, busy_week, settlement_service):
        closed = settlement_service.close_current_week()
        ids = {s.id for s in closed.shop_settlements}

        shops, riders = settlement_service.generate_settlements(str(closed.period.id))

        assert {s.id for s in shops} == ids
        assert [r.id for r in riders] == [r.id for r in closed.rider_settlements]
        assert ShopSettlement.objects.count() == 1
        assert RiderSettlement.objects.count() == 1

    def test_regenerating_fills_in_a_missing_record(
        self, busy_week, settlement_service, rider_id
    ):
        closed = settlement_service.close_current_week()
        shop_settlement_id = closed.shop_settlements[0].id
        RiderSettlement.objects.filter(rider_id=rider_id).delete()

        shops, riders = settlement_service.generate_settlements(str(closed.period.id))

        assert [s.id for s in shops] == [shop_settlement_id]
        assert [r.rider_id for r in riders] == [rider_id]
        assert riders[0].total_delivery_fees == Decimal("30.00")


class TestLateCompletion:
    """An order still on the road when its week closes."""

    @pytest.fixture()
    def closed_with_open_order(
        self, place_order, advance_order, settlement_service
    ):
        advance_order(place_order(subtotal="200.00"))
        in_flight = advance_order(
            place_order(subtotal="300.00"), target=OrderStatus.PICKED_UP
        )
        closed = settlement_service.close_current_week()
        return closed, in_flight

    @staticmethod
    def _finish(order_service, order, rider_id):
        order = order_service.transition_order(
            TransitionOrderDTO(
                order_id=order.id,
                new_status=OrderStatus.SHOP_PAID,
                actor_role=ActorRole.RIDER,
                rider_id=rider_id,
            )
        )
        return order_service.transition_order(
            TransitionOrderDTO(
                order_id=order.id,
                new_status=OrderStatus.COMPLETED,
                actor_role=ActorRole.SHOP,
            )
        )

    def test_order_moves_to_the_active_week(
        self, closed_with_open_order, order_service, rider_id
    ):
        closed, in_flight = closed_with_open_order

        completed = self._finish(order_service, in_flight, rider_id)

        assert completed.status == OrderStatus.COMPLETED
        assert completed.week_period_id == closed.next_period.id

    def test_paid_settlement_is_never_rewritten(
        self, closed_with_open_order, order_service, settlement_service, rider_id, shop
    ):
        closed, in_flight = closed_with_open_order
        paid = settlement_service.mark_settled(str(closed.shop_settlements[0].id))
        self._finish(order_service, in_flight, rider_id)

        shops, _ = settlement_service.generate_settlements(str(closed.period.id))

        settlement = ShopSettlement.objects.get(shop=shop, period=closed.period)
        assert [s.id for s in shops] == [paid.id]
        assert settlement.status == SettlementStatus.SETTLED
        assert settlement.gross_sales == Decimal("200.00")
        assert settlement.net_payable == Decimal("180.00")
        assert settlement.total_orders == 2
        assert settlement.completed_orders == 1

    def test_late_order_is_settled_in_the_following_week(
        self, closed_with_open_order, order_service, settlement_service, rider_id, shop
    ):
        closed, in_flight = closed_with_open_order
        self._finish(order_service, in_flight, rider_id)

        following = settlement_service.close_current_week()

        assert following.period.id == closed.next_period.id
        settlement = ShopSettlement.objects.get(shop=shop, period=following.period)
        assert settlement.gross_sales == Decimal("300.00")
        assert settlement.total_commission == Decimal("30.00")
        assert settlement.net_payable == Decimal("270.00")
        rider = RiderSettlement.objects.get(rider_id=rider_id, period=following.period)
        assert rider.total_deliveries == 1

    def test_cancellation_after_close_stays_in_its_week(
        self, place_order, settlement_service, order_service
    ):
        pending = place_order(subtotal="150.00")
        closed = settlement_service.close_current_week()

        cancelled = order_service.cancel_order(
            CancelOrderDTO(order_id=pending.id, reason="Shop closed", actor_role=ActorRole.SHOP)
        )

        assert cancelled.week_period_id == closed.period.id


# ---------------------------------------------------------------------------
# Paying out
# ---------------------------------------------------------------------------


class TestMarkSettled:
    def test_period_settles_when_nothing_is_pending(self, busy_week, settlement_service):
        result = settlement_service.close_current_week()
        shop_settlement = result.shop_settlements[0]
        rider_settlement = result.rider_settlements[0]

        settlement_service.mark_settled(str(shop_settlement.id))
        period = WeeklyPeriod.objects.get(pk=result.period.pk)
        assert period.status == PeriodStatus.CLOSED

        settlement_service.mark_settled(str(rider_settlement.id))
        period.refresh_from_db()
        assert period.status == PeriodStatus.SETTLED
        assert period.settled_at is not None

    def test_marking_twice_is_a_no_op(self, busy_week, settlement_service):
        result = settlement_service.close_current_week()
        settlement_id = str(result.shop_settlements[0].id)

        first = settlement_service.mark_settled(settlement_id)
        second = settlement_service.mark_settled(settlement_id)

        assert first.status == second.status == SettlementStatus.SETTLED
        assert first.settled_at == second.settled_at

    def test_active_period_cannot_be_paid(self, busy_week, settlement_service, shop):
        period = WeeklyPeriod.objects.get(status=PeriodStatus.ACTIVE)
        stray = ShopSettlement.objects.create(
            shop=shop, period=period, commission_rate=Decimal("0.10")
        )

        with pytest.raises(NotYetClosed):
            settlement_service.mark_settled(str(stray.id))

        stray.refresh_from_db()
        assert stray.status == SettlementStatus.PENDING

    def test_settled_period_cannot_be_regenerated(self, busy_week, settlement_service):
        result = settlement_service.close_current_week()
        for settlement in result.shop_settlements + result.rider_settlements:
            settlement_service.mark_settled(str(settlement.id))

        with pytest.raises(AlreadyClosed):
            settlement_service.generate_settlements(str(result.period.id))

    def test_unknown_settlement(self, settlement_service):
        with pytest.raises(SettlementNotFound):
            settlement_service.mark_settled(str(uuid4()))


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------


class TestSettlementReport:
    def test_report_reconciles(self, busy_week, settlement_service):
        closed = settlement_service.close_current_week()

        report = settlement_service.get_settlement_report(str(closed.period.id))

        summary = report.summary
        assert summary.shop_count == 1
        assert summary.rider_count == 1
        assert summary.total_gross_sales == Decimal("500.00")
        assert summary.total_shop_payouts == Decimal("440.00")
        assert summary.ads_revenue == Decimal("5.00")
        assert summary.points_redeemed == 10
        assert summary.admin_net_revenue == Decimal("65.00")
        assert summary.reconciles()
        assert report.personal_commission_total == Decimal("29.50")

    def test_active_period_has_no_report(self, busy_week, settlement_service):
        period = WeeklyPeriod.objects.get(status=PeriodStatus.ACTIVE)

        with pytest.raises(NotYetClosed):
            settlement_service.get_settlement_report(str(period.id))

    def test_unknown_period(self, settlement_service):
        with pytest.raises(PeriodNotFound):
            settlement_service.get_settlement_report(str(uuid4()))
