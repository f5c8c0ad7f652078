"""Settlement domain constants."""

from decimal import Decimal

from django.db import models


class PeriodStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    CLOSED = "closed", "Closed"
    SETTLED = "settled", "Settled"


class SettlementStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    SETTLED = "settled", "Settled"


class SettlementParty(models.TextChoices):
    SHOP = "shop", "Shop"
    RIDER = "rider", "Rider"


# Weeks run Saturday 00:00:00 through Friday 23:59:59 local time.
WEEK_START_WEEKDAY = 5  # datetime.weekday(): Monday=0 ... Saturday=5

# Cairo, without daylight saving.
DEFAULT_UTC_OFFSET_HOURS = 2

PERIOD_FORWARD: dict[str, str] = {
    PeriodStatus.ACTIVE: PeriodStatus.CLOSED,
    PeriodStatus.CLOSED: PeriodStatus.SETTLED,
}

# Personal commission overlay rates.
PERSONAL_SUBTOTAL_RATE = Decimal("0.05")
PERSONAL_DELIVERY_RATE = Decimal("0.15")
