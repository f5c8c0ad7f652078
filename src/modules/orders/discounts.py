"""Applies points redemption and free delivery against the commission cap.

Free delivery is applied first and consumes commission headroom; points are
then capped by what remains (and by the customer's balance).  The result is
an ``OrderBreakdown`` carrying every amount persisted on the order.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from modules.core.money import ZERO, to_money, to_rate
from modules.orders.commission import (
    CommissionBreakdown,
    commission_breakdown,
    shop_commission,
)
from modules.points import ledger
from modules.points.constants import POINT_VALUE
from modules.points.exceptions import NoCommissionHeadroom, RedemptionError


@dataclass(frozen=True)
class DiscountResult:
    shop_commission: Decimal
    free_delivery_cost: Decimal
    remaining_commission: Decimal
    requested_points: int
    points_used: int
    points_discount: Decimal
    total_platform_discount: Decimal
    customer_payable: Decimal


@dataclass(frozen=True)
class OrderBreakdown:
    """Full financial picture of one order at placement time."""

    subtotal: Decimal
    delivery_fee: Decimal
    is_free_delivery: bool
    discount: DiscountResult
    commission: CommissionBreakdown
    points_earned: int

    @property
    def rider_earnings(self) -> Decimal:
        return self.delivery_fee

    @property
    def distributed(self) -> Decimal:
        """Shop earnings + rider fee + platform net share."""
        return (
            self.commission.shop_earnings
            + self.rider_earnings
            + self.commission.platform_net
        )

    def is_balanced(self) -> bool:
        return self.distributed == self.discount.customer_payable


def remaining_commission(
    commission: Decimal, free_delivery_cost: Decimal, minimum: Decimal = ZERO
) -> Decimal:
    return max(ZERO, to_money(commission) - to_money(free_delivery_cost) - to_money(minimum))


def apply_discounts(
    subtotal: Decimal,
    delivery_fee: Decimal,
    commission_rate: Decimal,
    requested_points: int,
    customer_balance: int,
    is_free_delivery: bool,
    point_value: Decimal = POINT_VALUE,
    minimum_platform_commission: Decimal = ZERO,
) -> DiscountResult:
    """Resolve how many points are redeemed and what the customer pays.

    Raises:
        NoCommissionHeadroom: points were requested but free delivery (and
            the platform minimum) left no commission to fund them.
    """
    if requested_points < 0:
        raise ValueError("requested points must not be negative")
    subtotal = to_money(subtotal)
    delivery_fee = to_money(delivery_fee)

    commission = shop_commission(subtotal, commission_rate)
    free_delivery_cost = delivery_fee if is_free_delivery else ZERO
    headroom = remaining_commission(
        commission, free_delivery_cost, minimum_platform_commission
    )

    if headroom <= ZERO and requested_points > 0:
        raise NoCommissionHeadroom(
            "Free delivery already uses the whole commission on this order; "
            "points cannot be redeemed.",
            requested_points=requested_points,
            shop_commission=commission,
            free_delivery_cost=free_delivery_cost,
        )

    points_used = min(
        requested_points,
        ledger.max_redeemable_points(customer_balance, headroom, point_value),
    )
    points_discount = ledger.discount_value(points_used, point_value)
    charged_delivery = ZERO if is_free_delivery else delivery_fee

    return DiscountResult(
        shop_commission=commission,
        free_delivery_cost=free_delivery_cost,
        remaining_commission=headroom,
        requested_points=requested_points,
        points_used=points_used,
        points_discount=points_discount,
        total_platform_discount=points_discount + free_delivery_cost,
        customer_payable=max(ZERO, subtotal + charged_delivery - points_discount),
    )


def validate_redemption(
    subtotal: Decimal,
    delivery_fee: Decimal,
    commission_rate: Decimal,
    requested_points: int,
    customer_balance: int,
    is_free_delivery: bool,
    point_value: Decimal = POINT_VALUE,
    minimum_platform_commission: Decimal = ZERO,
) -> Optional[RedemptionError]:
    """Pre-flight check mirroring ``apply_discounts`` without the soft cap.

    Returns the error the exact request would hit, or ``None``.
    """
    commission = shop_commission(subtotal, commission_rate)
    free_delivery_cost = to_money(delivery_fee) if is_free_delivery else ZERO
    headroom = remaining_commission(
        commission, free_delivery_cost, minimum_platform_commission
    )
    if headroom <= ZERO and requested_points > 0:
        return NoCommissionHeadroom(
            "Free delivery already uses the whole commission on this order; "
            "points cannot be redeemed.",
            requested_points=requested_points,
            shop_commission=commission,
            free_delivery_cost=free_delivery_cost,
        )
    return ledger.validate_redemption(
        requested_points, customer_balance, headroom, point_value
    )


def build_order_breakdown(
    subtotal: Decimal,
    delivery_fee: Decimal,
    commission_rate: Decimal,
    requested_points: int,
    customer_balance: int,
    is_free_delivery: bool,
    point_value: Decimal = POINT_VALUE,
    minimum_platform_commission: Decimal = ZERO,
    currency_per_earned_point: Optional[Decimal] = None,
) -> OrderBreakdown:
    discount = apply_discounts(
        subtotal,
        delivery_fee,
        commission_rate,
        requested_points,
        customer_balance,
        is_free_delivery,
        point_value=point_value,
        minimum_platform_commission=minimum_platform_commission,
    )
    commission = commission_breakdown(
        subtotal,
        to_rate(commission_rate),
        points_discount=discount.points_discount,
        free_delivery_cost=discount.free_delivery_cost,
        minimum=minimum_platform_commission,
    )
    if currency_per_earned_point is None:
        earned = ledger.points_earned(to_money(subtotal))
    else:
        earned = ledger.points_earned(to_money(subtotal), currency_per_earned_point)
    return OrderBreakdown(
        subtotal=to_money(subtotal),
        delivery_fee=to_money(delivery_fee),
        is_free_delivery=is_free_delivery,
        discount=discount,
        commission=commission,
        points_earned=earned,
    )
