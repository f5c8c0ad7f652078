"""Access to the ``BALADI`` business settings with typed defaults."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict

from django.conf import settings

DEFAULTS: Dict[str, Any] = {
    "DEFAULT_COMMISSION_RATE": Decimal("0.10"),
    "MIN_COMMISSION_RATE": Decimal("0.05"),
    "MAX_COMMISSION_RATE": Decimal("0.30"),
    "DEFAULT_DELIVERY_FEE": Decimal("10.00"),
    "POINT_VALUE": Decimal("1.00"),
    "CURRENCY_PER_EARNED_POINT": Decimal("100"),
    "REFERRAL_BONUS_POINTS": 2,
    "MINIMUM_PLATFORM_COMMISSION": Decimal("0.00"),
    "ORDER_AUTO_REJECT_MINUTES": 10,
    "SETTLEMENT_UTC_OFFSET_HOURS": 2,
    "RIDER_COMMISSION_RATE": Decimal("0.00"),
    "MAX_ITEMS_PER_ORDER": 50,
}


def baladi_setting(name: str) -> Any:
    """Return ``settings.BALADI[name]``, falling back to the built-in default."""
    if name not in DEFAULTS:
        raise KeyError(f"Unknown BALADI setting: {name}")
    overrides = getattr(settings, "BALADI", {}) or {}
    return overrides.get(name, DEFAULTS[name])
