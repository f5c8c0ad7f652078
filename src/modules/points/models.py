"""Customer points accounts, the append-only points ledger and referrals.

``CustomerPointsAccount.balance`` is the running total; every change to it
is mirrored by exactly one ``PointsTransaction`` row whose ``points`` is the
signed delta and whose ``balance_after`` is the resulting balance.
"""

from __future__ import annotations

from django.db import models

from modules.core.models import BaseModel
from modules.points.constants import PointsTransactionType


class CustomerPointsAccount(BaseModel):
    customer_id: models.UUIDField = models.UUIDField(unique=True)
    balance: models.PositiveIntegerField = models.PositiveIntegerField(default=0)
    lifetime_earned: models.PositiveIntegerField = models.PositiveIntegerField(
        default=0
    )
    lifetime_redeemed: models.PositiveIntegerField = models.PositiveIntegerField(
        default=0
    )

    class Meta:
        db_table = "points_accounts"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(balance__gte=0),
                name="points_accounts_balance_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.customer_id}: {self.balance} pts"


class PointsTransaction(BaseModel):
    """One immutable movement on a points account."""

    account: models.ForeignKey = models.ForeignKey(
        "points.CustomerPointsAccount",
        on_delete=models.PROTECT,
        related_name="transactions",
    )
    transaction_type: models.CharField = models.CharField(
        max_length=20,
        choices=PointsTransactionType.choices,
    )
    points: models.IntegerField = models.IntegerField()
    balance_after: models.PositiveIntegerField = models.PositiveIntegerField()
    order_id: models.UUIDField = models.UUIDField(null=True, blank=True, db_index=True)
    description: models.CharField = models.CharField(max_length=255, blank=True)

    class Meta:
        db_table = "points_transactions"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["account", "-created_at"],
                name="points_tx_account_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.transaction_type} {self.points:+d} -> {self.balance_after}"


class Referral(BaseModel):
    """``referrer_id`` invited ``referred_id``.

    ``points_awarded`` flips once, when the referred customer completes their
    first order, and guards the bonus against being paid twice.
    """

    referrer_id: models.UUIDField = models.UUIDField(db_index=True)
    referred_id: models.UUIDField = models.UUIDField(unique=True)
    points_awarded: models.BooleanField = models.BooleanField(default=False)
    awarded_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    awarded_for_order_id: models.UUIDField = models.UUIDField(null=True, blank=True)

    class Meta:
        db_table = "referrals"
        constraints = [
            models.CheckConstraint(
                condition=~models.Q(referrer_id=models.F("referred_id")),
                name="referrals_no_self_referral",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.referrer_id} -> {self.referred_id}"
