"""Order, OrderItem and OrderStatusHistory models.

- The financial breakdown is computed once at placement and stored on the
  order; later transitions never recompute it.
- ``commission_rate`` is a snapshot of the shop's rate at placement.
- ``total_amount == subtotal + (0 if is_free_delivery else delivery_fee)
  - points_discount``, clamped at 0.
- ``version`` guards every status change (see ``OrderDjangoRepository.save``).
- Orders are never deleted; cancelled orders remain as history.
- OrderItem snapshots the product name and unit price; ``subtotal`` is
  always ``quantity * unit_price``.
"""

from __future__ import annotations

import secrets
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel, VersionedModel
from modules.core.money import ZERO
from modules.orders.constants import (
    ORDER_NUMBER_MAX_RETRIES,
    TERMINAL_STATES,
    ActorRole,
    OrderStatus,
)
from shared.domain.events import DomainEventMixin


def _money_field(**kwargs: Any) -> models.DecimalField:
    kwargs.setdefault("default", Decimal("0.00"))
    return models.DecimalField(max_digits=12, decimal_places=2, **kwargs)


class Order(DomainEventMixin, VersionedModel):
    """Order aggregate root.

    ``order_number`` is a human-readable identifier generated on first save
    (``ORD-YYYYMMDD-XXXXXX``).  The UUIDv7 ``id`` is used everywhere else.
    """

    order_number: models.CharField = models.CharField(
        max_length=20, unique=True, editable=False
    )

    # Parties
    customer_id: models.UUIDField = models.UUIDField(db_index=True)
    shop: models.ForeignKey = models.ForeignKey(
        "shops.Shop",
        on_delete=models.PROTECT,
        related_name="orders",
    )
    rider_id: models.UUIDField = models.UUIDField(null=True, blank=True, db_index=True)
    week_period: models.ForeignKey = models.ForeignKey(
        "settlements.WeeklyPeriod",
        on_delete=models.PROTECT,
        related_name="orders",
        null=True,
        blank=True,
    )

    status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )

    # Financials
    subtotal = _money_field()
    delivery_fee = _money_field()
    is_free_delivery: models.BooleanField = models.BooleanField(default=False)
    points_used: models.PositiveIntegerField = models.PositiveIntegerField(default=0)
    points_discount = _money_field()
    total_amount = _money_field()
    commission_rate: models.DecimalField = models.DecimalField(
        max_digits=5, decimal_places=4, default=Decimal("0.10")
    )
    shop_commission = _money_field()
    platform_commission = _money_field()
    points_earned: models.PositiveIntegerField = models.PositiveIntegerField(default=0)

    # Cash handover (cash-only system)
    cash_collected: models.BooleanField = models.BooleanField(default=False)
    cash_to_shop: models.BooleanField = models.BooleanField(default=False)
    shop_confirmed_cash: models.BooleanField = models.BooleanField(default=False)

    # Lifecycle timestamps
    accepted_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    preparing_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    picked_up_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    shop_paid_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    completed_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    cancelled_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    cancellation_reason: models.TextField = models.TextField(blank=True, default="")
    cancelled_by: models.CharField = models.CharField(
        max_length=20, choices=ActorRole.choices, blank=True, default=""
    )

    notes: models.TextField = models.TextField(blank=True, default="")
    idempotency_key: models.CharField = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
            models.Index(
                fields=["week_period", "status"], name="orders_period_status_idx"
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_amount__gte=0),
                name="orders_total_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(platform_commission__gte=0),
                name="orders_platform_commission_non_negative",
            ),
        ]

    # ------------------------------------------------------------------
    # Derived amounts
    # ------------------------------------------------------------------

    @property
    def free_delivery_cost(self) -> Decimal:
        return self.delivery_fee if self.is_free_delivery else ZERO

    @property
    def shop_earnings(self) -> Decimal:
        return self.subtotal - self.shop_commission

    @property
    def rider_earnings(self) -> Decimal:
        return self.delivery_fee

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    # ------------------------------------------------------------------
    # Order number generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_number(placed_at: Optional[datetime] = None) -> str:
        """``ORD-YYYYMMDD-XXXXXX`` dated by ``placed_at`` in the service time zone."""
        day = timezone.localtime(placed_at or timezone.now())
        suffix = secrets.token_hex(3).upper()
        return f"ORD-{day:%Y%m%d}-{suffix}"

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            for _ in range(ORDER_NUMBER_MAX_RETRIES):
                candidate = self.generate_order_number(self.created_at)
                if not Order.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class OrderItem(BaseModel):
    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product_id: models.UUIDField = models.UUIDField()
    product_name: models.CharField = models.CharField(max_length=200)
    quantity: models.PositiveIntegerField = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )
    unit_price = _money_field(validators=[MinValueValidator(Decimal("0"))])
    subtotal = _money_field(editable=False)

    class Meta:
        db_table = "order_items"
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
        ]

    def save(self, *args: Any, **kwargs: Any) -> None:
        self.subtotal = self.quantity * self.unit_price
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.product_name} x{self.quantity} ({self.subtotal})"


class OrderStatusHistory(BaseModel):
    """Append-only audit trail of status changes, with the acting role."""

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    old_status: models.CharField = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    new_status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
    )
    actor_role: models.CharField = models.CharField(
        max_length=20, choices=ActorRole.choices
    )
    notes: models.TextField = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_status_history"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["order", "-created_at"],
                name="osh_order_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order_id} : {self.old_status} -> {self.new_status}"
