"""Personal commission overlay.

A reporting-only stream: 5% of each completed order's subtotal plus 15% of
its delivery fee (nothing when delivery was free).  It is tracked next to
the settlements and never changes shop, rider or platform amounts.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from modules.core.money import ZERO, money_sum, to_money
from modules.settlements.constants import (
    PERSONAL_DELIVERY_RATE,
    PERSONAL_SUBTOTAL_RATE,
)


@dataclass(frozen=True)
class PersonalCommission:
    from_shop: Decimal
    from_delivery: Decimal

    @property
    def total(self) -> Decimal:
        return self.from_shop + self.from_delivery


def personal_commission(
    subtotal: Decimal, delivery_fee: Decimal, is_free_delivery: bool = False
) -> PersonalCommission:
    from_shop = to_money(subtotal * PERSONAL_SUBTOTAL_RATE) if subtotal > 0 else ZERO
    from_delivery = ZERO
    if not is_free_delivery and delivery_fee > 0:
        from_delivery = to_money(delivery_fee * PERSONAL_DELIVERY_RATE)
    return PersonalCommission(from_shop=from_shop, from_delivery=from_delivery)


def orders_personal_commission(orders: Iterable) -> Decimal:
    """Sum of the overlay over orders exposing subtotal/delivery_fee/is_free_delivery."""
    return money_sum(
        personal_commission(o.subtotal, o.delivery_fee, o.is_free_delivery).total
        for o in orders
    )
