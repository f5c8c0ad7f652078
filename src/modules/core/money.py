"""Decimal helpers for currency amounts.

All money is ``Decimal`` quantized to two places with ``ROUND_HALF_UP``.
Floats are rejected outright: a float reaching this layer is a bug.
"""

from __future__ import annotations

from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import Iterable, Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

MoneyLike = Union[Decimal, int, str]


def to_money(value: MoneyLike) -> Decimal:
    """Coerce ``value`` to a 2-place ``Decimal``."""
    if isinstance(value, float):
        raise TypeError("Currency amounts must not be floats.")
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_rate(value: MoneyLike) -> Decimal:
    """Coerce a commission rate without quantizing it."""
    if isinstance(value, float):
        raise TypeError("Rates must not be floats; pass a Decimal or string.")
    return Decimal(value)


def floor_div(amount: Decimal, divisor: Decimal) -> int:
    """``floor(amount / divisor)`` as an int, exact for Decimals."""
    if divisor <= 0:
        raise ValueError("divisor must be positive")
    return int((amount / divisor).to_integral_value(rounding=ROUND_FLOOR))


def money_sum(values: Iterable[Decimal]) -> Decimal:
    return to_money(sum(values, ZERO))
