"""Weekly settlement arithmetic.

Pure aggregation over caller-supplied totals; nothing here reads or writes
the database.  Negative inputs raise ``InvalidAggregateInput`` instead of
being clamped, because they indicate an upstream integrity bug.

Shop settlements conserve money: ``net_payable + admin_net_commission ==
gross_sales``.  Point discounts and free-delivery costs are funded by the
platform, so they reduce the platform's share and are reimbursed to the
shop; ads cost is a debit the shop owes the platform.

Orders snapshot their commission at placement, so callers that hold the
orders pass ``total_commission`` (their summed ``shop_commission``) and the
recorded rate becomes the effective one.  Without it the commission is
``gross_sales * commission_rate``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Sequence

from modules.core.money import ZERO, money_sum, to_money, to_rate
from modules.settlements.exceptions import InvalidAggregateInput

RATE_STEP = Decimal("0.0001")


@dataclass(frozen=True)
class ShopSettlementSummary:
    gross_sales: Decimal
    commission_rate: Decimal
    total_commission: Decimal
    points_discounts: Decimal
    free_delivery_costs: Decimal
    ads_cost: Decimal
    net_payable: Decimal
    admin_net_commission: Decimal
    total_orders: int
    completed_orders: int
    cancelled_orders: int

    def is_conserved(self) -> bool:
        return self.net_payable + self.admin_net_commission == self.gross_sales


@dataclass(frozen=True)
class RiderSettlementSummary:
    total_deliveries: int
    total_delivery_fees: Decimal
    total_cash_handled: Decimal
    commission_deducted: Decimal
    net_earnings: Decimal


@dataclass(frozen=True)
class AdminSettlementSummary:
    shop_count: int
    rider_count: int
    total_gross_sales: Decimal
    total_commission: Decimal
    total_points_discounts: Decimal
    total_free_delivery_costs: Decimal
    total_ads_cost: Decimal
    total_shop_payouts: Decimal
    total_admin_net_commission: Decimal
    total_delivery_fees: Decimal
    total_rider_payouts: Decimal
    total_rider_commission: Decimal
    ads_revenue: Decimal
    points_redeemed: int
    admin_net_revenue: Decimal

    def reconciles(self) -> bool:
        return self.admin_net_revenue == (
            self.total_admin_net_commission
            + self.total_rider_commission
            + self.ads_revenue
        )


def _require_non_negative(**values) -> None:
    negative = {name: value for name, value in values.items() if value < 0}
    if negative:
        raise InvalidAggregateInput(
            "Settlement inputs must not be negative: "
            + ", ".join(sorted(negative)),
            **{name: str(value) for name, value in negative.items()},
        )


def shop_settlement(
    gross_sales: Decimal,
    commission_rate: Decimal,
    points_discounts: Decimal,
    free_delivery_costs: Decimal,
    ads_cost: Decimal,
    total_orders: int,
    completed_orders: int,
    cancelled_orders: int,
    total_commission: Optional[Decimal] = None,
) -> ShopSettlementSummary:
    rate = to_rate(commission_rate)
    _require_non_negative(
        gross_sales=gross_sales,
        commission_rate=rate,
        points_discounts=points_discounts,
        free_delivery_costs=free_delivery_costs,
        ads_cost=ads_cost,
        total_orders=total_orders,
        completed_orders=completed_orders,
        cancelled_orders=cancelled_orders,
        total_commission=total_commission if total_commission is not None else ZERO,
    )
    if completed_orders + cancelled_orders > total_orders:
        raise InvalidAggregateInput(
            "Completed plus cancelled orders exceed the total order count.",
            total_orders=total_orders,
            completed_orders=completed_orders,
            cancelled_orders=cancelled_orders,
        )
    if rate > 1:
        raise InvalidAggregateInput(
            "Commission rate must not exceed 1.", commission_rate=str(rate)
        )

    gross = to_money(gross_sales)
    if total_commission is None:
        commission = to_money(gross * rate)
    else:
        commission = to_money(total_commission)
        if commission > gross:
            raise InvalidAggregateInput(
                "Commission exceeds gross sales.",
                gross_sales=str(gross),
                total_commission=str(commission),
            )
        if gross > 0:
            rate = (commission / gross).quantize(RATE_STEP, rounding=ROUND_HALF_UP)
    points = to_money(points_discounts)
    free_delivery = to_money(free_delivery_costs)
    ads = to_money(ads_cost)

    admin_net = commission - points - free_delivery + ads
    return ShopSettlementSummary(
        gross_sales=gross,
        commission_rate=rate,
        total_commission=commission,
        points_discounts=points,
        free_delivery_costs=free_delivery,
        ads_cost=ads,
        net_payable=gross - admin_net,
        admin_net_commission=admin_net,
        total_orders=total_orders,
        completed_orders=completed_orders,
        cancelled_orders=cancelled_orders,
    )


def rider_settlement(
    total_deliveries: int,
    total_delivery_fees: Decimal,
    total_cash_handled: Decimal,
    commission_deducted: Decimal,
) -> RiderSettlementSummary:
    _require_non_negative(
        total_deliveries=total_deliveries,
        total_delivery_fees=total_delivery_fees,
        total_cash_handled=total_cash_handled,
        commission_deducted=commission_deducted,
    )
    fees = to_money(total_delivery_fees)
    deducted = to_money(commission_deducted)
    if deducted > fees:
        raise InvalidAggregateInput(
            "Rider commission exceeds the delivery fees collected.",
            total_delivery_fees=str(fees),
            commission_deducted=str(deducted),
        )
    return RiderSettlementSummary(
        total_deliveries=total_deliveries,
        total_delivery_fees=fees,
        total_cash_handled=to_money(total_cash_handled),
        commission_deducted=deducted,
        net_earnings=fees - deducted,
    )


def admin_summary(
    shop_settlements: Sequence[ShopSettlementSummary],
    rider_settlements: Sequence[RiderSettlementSummary],
    ads_revenue: Decimal = ZERO,
    points_redeemed: int = 0,
) -> AdminSettlementSummary:
    """Platform-wide totals for a period.

    ``ads_revenue`` is ad income not already netted in a shop settlement
    (shop ad charges appear in each shop's ``admin_net_commission``).
    """
    _require_non_negative(ads_revenue=ads_revenue, points_redeemed=points_redeemed)
    ads_revenue = to_money(ads_revenue)

    def total(items: Iterable, name: str) -> Decimal:
        return money_sum(getattr(item, name) for item in items)

    admin_net_commission = total(shop_settlements, "admin_net_commission")
    rider_commission = total(rider_settlements, "commission_deducted")

    return AdminSettlementSummary(
        shop_count=len(shop_settlements),
        rider_count=len(rider_settlements),
        total_gross_sales=total(shop_settlements, "gross_sales"),
        total_commission=total(shop_settlements, "total_commission"),
        total_points_discounts=total(shop_settlements, "points_discounts"),
        total_free_delivery_costs=total(shop_settlements, "free_delivery_costs"),
        total_ads_cost=total(shop_settlements, "ads_cost"),
        total_shop_payouts=total(shop_settlements, "net_payable"),
        total_admin_net_commission=admin_net_commission,
        total_delivery_fees=total(rider_settlements, "total_delivery_fees"),
        total_rider_payouts=total(rider_settlements, "net_earnings"),
        total_rider_commission=rider_commission,
        ads_revenue=ads_revenue,
        points_redeemed=points_redeemed,
        admin_net_revenue=admin_net_commission + rider_commission + ads_revenue,
    )
