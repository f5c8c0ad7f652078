"""Loyalty points arithmetic.

Pure functions; nothing here touches the database.  Amounts are
``Decimal``, point counts are ``int``.

The load-bearing rule is the redemption cap: a customer can never redeem
more points than the platform's own commission on the order can absorb,
so shop and rider payouts are untouched by point discounts.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from modules.core.money import ZERO, floor_div, to_money
from modules.points.constants import CURRENCY_PER_EARNED_POINT, POINT_VALUE
from modules.points.exceptions import (
    ExceedsCommissionCap,
    InsufficientBalance,
    RedemptionError,
)


def points_earned(
    subtotal: Decimal, currency_per_point: Decimal = CURRENCY_PER_EARNED_POINT
) -> int:
    """``floor(subtotal / 100)``; zero for non-positive subtotals."""
    if subtotal <= ZERO:
        return 0
    return floor_div(subtotal, currency_per_point)


def discount_value(points: int, point_value: Decimal = POINT_VALUE) -> Decimal:
    if points < 0:
        raise ValueError("points must not be negative")
    return to_money(point_value * points)


def currency_to_points(amount: Decimal, point_value: Decimal = POINT_VALUE) -> int:
    if amount <= ZERO:
        return 0
    return floor_div(amount, point_value)


def max_redeemable_points(
    available_balance: int,
    platform_commission_cap: Decimal,
    point_value: Decimal = POINT_VALUE,
) -> int:
    """Largest redemption both the balance and the commission cap allow."""
    cap = currency_to_points(platform_commission_cap, point_value)
    return max(0, min(available_balance, cap))


def validate_redemption(
    requested: int,
    available: int,
    commission_cap: Decimal,
    point_value: Decimal = POINT_VALUE,
) -> Optional[RedemptionError]:
    """Pre-flight redemption check.

    Returns the error that redeeming ``requested`` points would raise, or
    ``None`` when the redemption is acceptable.  Balance is checked before
    the commission cap.
    """
    if requested < 0:
        raise ValueError("requested points must not be negative")
    if requested > available:
        return InsufficientBalance(
            f"Requested {requested} points but only {available} are available.",
            requested_points=requested,
            available_points=available,
        )
    maximum = max_redeemable_points(available, commission_cap, point_value)
    if requested > maximum:
        return ExceedsCommissionCap(
            f"Requested {requested} points but the order commission allows "
            f"at most {maximum}.",
            requested_points=requested,
            max_redeemable_points=maximum,
            commission_cap=to_money(commission_cap),
        )
    return None
