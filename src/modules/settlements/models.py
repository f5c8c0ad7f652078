"""WeeklyPeriod, ShopSettlement and RiderSettlement models.

- A period is a fixed Saturday-Friday window identified by
  ``(year, week_number)``; at most one period is ``active`` at a time.
- ``start_date`` / ``end_date`` are aware instants (stored in UTC) of the
  local-time window boundaries.
- One settlement per ``(shop, period)`` and per ``(rider_id, period)``.
  Records are immutable after creation except for ``status`` and
  ``settled_at``; regeneration overwrites them through ``update_or_create``.
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models

from modules.core.models import BaseModel, VersionedModel
from modules.settlements.constants import PeriodStatus, SettlementStatus
from shared.domain.events import DomainEventMixin


def _money_field() -> models.DecimalField:
    return models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))


class WeeklyPeriod(DomainEventMixin, VersionedModel):
    year: models.PositiveIntegerField = models.PositiveIntegerField()
    week_number: models.PositiveSmallIntegerField = models.PositiveSmallIntegerField()
    start_date: models.DateTimeField = models.DateTimeField()
    end_date: models.DateTimeField = models.DateTimeField()
    status: models.CharField = models.CharField(
        max_length=10,
        choices=PeriodStatus.choices,
        default=PeriodStatus.ACTIVE,
    )
    closed_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    settled_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "weekly_periods"
        ordering = ["-start_date"]
        constraints = [
            models.UniqueConstraint(
                fields=["year", "week_number"],
                name="weekly_periods_year_week_unique",
            ),
            models.UniqueConstraint(
                fields=["status"],
                condition=models.Q(status=PeriodStatus.ACTIVE),
                name="weekly_periods_single_active",
            ),
        ]

    def contains(self, instant) -> bool:
        return self.start_date <= instant <= self.end_date

    def __str__(self) -> str:
        return f"{self.year}-W{self.week_number:02d} ({self.status})"


class ShopSettlement(BaseModel):
    shop: models.ForeignKey = models.ForeignKey(
        "shops.Shop",
        on_delete=models.PROTECT,
        related_name="settlements",
    )
    period: models.ForeignKey = models.ForeignKey(
        "settlements.WeeklyPeriod",
        on_delete=models.PROTECT,
        related_name="shop_settlements",
    )
    total_orders: models.PositiveIntegerField = models.PositiveIntegerField(default=0)
    completed_orders: models.PositiveIntegerField = models.PositiveIntegerField(default=0)
    cancelled_orders: models.PositiveIntegerField = models.PositiveIntegerField(default=0)
    gross_sales = _money_field()
    commission_rate: models.DecimalField = models.DecimalField(
        max_digits=5, decimal_places=4
    )
    total_commission = _money_field()
    points_discounts = _money_field()
    free_delivery_costs = _money_field()
    ads_cost = _money_field()
    net_payable = _money_field()
    admin_net_commission = _money_field()
    personal_commission = _money_field()
    status: models.CharField = models.CharField(
        max_length=10,
        choices=SettlementStatus.choices,
        default=SettlementStatus.PENDING,
    )
    settled_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "shop_settlements"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["shop", "period"], name="shop_settlements_shop_period_unique"
            ),
        ]

    def __str__(self) -> str:
        return f"shop {self.shop_id} / {self.period_id}: {self.net_payable}"


class RiderSettlement(BaseModel):
    rider_id: models.UUIDField = models.UUIDField(db_index=True)
    period: models.ForeignKey = models.ForeignKey(
        "settlements.WeeklyPeriod",
        on_delete=models.PROTECT,
        related_name="rider_settlements",
    )
    total_deliveries: models.PositiveIntegerField = models.PositiveIntegerField(
        default=0
    )
    total_delivery_fees = _money_field()
    total_cash_handled = _money_field()
    commission_deducted = _money_field()
    net_earnings = _money_field()
    status: models.CharField = models.CharField(
        max_length=10,
        choices=SettlementStatus.choices,
        default=SettlementStatus.PENDING,
    )
    settled_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "rider_settlements"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["rider_id", "period"],
                name="rider_settlements_rider_period_unique",
            ),
        ]

    def __str__(self) -> str:
        return f"rider {self.rider_id} / {self.period_id}: {self.net_earnings}"
