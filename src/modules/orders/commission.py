"""Per-order commission arithmetic.

All discounts are funded exclusively from the platform's share of the shop
commission.  Shop earnings depend only on subtotal and rate, and the rider
always receives the full delivery fee, whatever the customer redeemed.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from modules.core.money import ZERO, to_money, to_rate


@dataclass(frozen=True)
class CommissionBreakdown:
    subtotal: Decimal
    commission_rate: Decimal
    shop_commission: Decimal
    shop_earnings: Decimal
    points_discount: Decimal
    free_delivery_cost: Decimal
    platform_commission: Decimal

    @property
    def platform_net(self) -> Decimal:
        """Unclamped platform share; negative when free delivery exceeds it."""
        return self.shop_commission - self.points_discount - self.free_delivery_cost


def shop_commission(subtotal: Decimal, rate: Decimal) -> Decimal:
    rate = to_rate(rate)
    if rate < 0 or rate > 1:
        raise ValueError(f"commission rate must be within [0, 1], got {rate}")
    return to_money(to_money(subtotal) * rate)


def shop_earnings(subtotal: Decimal, commission: Decimal) -> Decimal:
    return to_money(subtotal) - to_money(commission)


def platform_commission(
    commission: Decimal,
    points_discount: Decimal,
    free_delivery_cost: Decimal,
    minimum: Decimal = ZERO,
) -> Decimal:
    """Commission left to the platform after funding discounts, floored."""
    net = to_money(commission) - to_money(points_discount) - to_money(free_delivery_cost)
    return max(to_money(minimum), net)


def can_apply_discount(commission: Decimal, total_discount: Decimal) -> bool:
    return to_money(total_discount) <= to_money(commission)


def commission_breakdown(
    subtotal: Decimal,
    rate: Decimal,
    points_discount: Decimal = ZERO,
    free_delivery_cost: Decimal = ZERO,
    minimum: Decimal = ZERO,
) -> CommissionBreakdown:
    commission = shop_commission(subtotal, rate)
    return CommissionBreakdown(
        subtotal=to_money(subtotal),
        commission_rate=to_rate(rate),
        shop_commission=commission,
        shop_earnings=shop_earnings(subtotal, commission),
        points_discount=to_money(points_discount),
        free_delivery_cost=to_money(free_delivery_cost),
        platform_commission=platform_commission(
            commission, points_discount, free_delivery_cost, minimum
        ),
    )
