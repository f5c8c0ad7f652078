"""Shop and ShopAdCharge models.

A shop's ``commission_rate`` is the fraction of every order subtotal it owes
the platform; ``delivery_fee`` is what its customers pay the rider.  Ad
charges are debits the shop owes the platform, netted in the weekly
settlement of the period they fall in.
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from modules.core.conf import baladi_setting
from modules.core.models import BaseModel


def default_commission_rate() -> Decimal:
    return baladi_setting("DEFAULT_COMMISSION_RATE")


def default_delivery_fee() -> Decimal:
    return baladi_setting("DEFAULT_DELIVERY_FEE")


class Shop(BaseModel):
    name: models.CharField = models.CharField(max_length=200)
    owner_id: models.UUIDField = models.UUIDField(null=True, blank=True)
    commission_rate: models.DecimalField = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        default=default_commission_rate,
        validators=[
            MinValueValidator(Decimal("0")),
            MaxValueValidator(Decimal("1")),
        ],
    )
    delivery_fee: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=default_delivery_fee,
        validators=[MinValueValidator(Decimal("0"))],
    )
    minimum_order: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0"))],
    )
    is_active: models.BooleanField = models.BooleanField(default=True)

    class Meta:
        db_table = "shops"
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(commission_rate__gte=0)
                & models.Q(commission_rate__lte=1),
                name="shops_commission_rate_fraction",
            ),
        ]

    def clean(self) -> None:
        super().clean()
        low = baladi_setting("MIN_COMMISSION_RATE")
        high = baladi_setting("MAX_COMMISSION_RATE")
        if self.commission_rate is not None and not low <= self.commission_rate <= high:
            raise ValidationError(
                {"commission_rate": f"Commission rate must be between {low} and {high}."}
            )

    def __str__(self) -> str:
        return self.name


class ShopAdCharge(BaseModel):
    """A promotional placement billed to a shop at ``charged_at``."""

    shop: models.ForeignKey = models.ForeignKey(
        "shops.Shop",
        on_delete=models.PROTECT,
        related_name="ad_charges",
    )
    amount: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0"))],
    )
    description: models.CharField = models.CharField(max_length=255, blank=True)
    charged_at: models.DateTimeField = models.DateTimeField(db_index=True)

    class Meta:
        db_table = "shop_ad_charges"
        ordering = ["-charged_at"]
        indexes = [
            models.Index(fields=["shop", "charged_at"], name="ad_charge_shop_at_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.shop_id} ad {self.amount} @ {self.charged_at:%Y-%m-%d}"
