"""Points domain constants."""

from decimal import Decimal

from django.db import models


class PointsTransactionType(models.TextChoices):
    EARNED = "earned", "Earned"
    REDEEMED = "redeemed", "Redeemed"
    REFUNDED = "refunded", "Refunded"
    REFERRAL_BONUS = "referral_bonus", "Referral bonus"
    ADJUSTED = "adjusted", "Adjusted"


# 1 point is worth 1 currency unit when redeemed.
POINT_VALUE = Decimal("1.00")

# 1 point is earned per 100 currency units of subtotal.
CURRENCY_PER_EARNED_POINT = Decimal("100")

REFERRAL_BONUS_POINTS = 2
