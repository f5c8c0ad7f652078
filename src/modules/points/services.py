"""Points service layer.

Keeps each customer's balance and the ``PointsTransaction`` ledger in step.
Every mutating method locks the account row and writes one ledger row in
the same transaction, so the balance always equals the sum of the ledger.

Points are debited when an order is placed with a redemption, refunded if
that order is cancelled, and earned when it completes.  Order-scoped
credits and refunds are idempotent per ``(type, order_id)``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

import structlog
from django.db import transaction

from modules.core.clock import Clock, SystemClock
from modules.core.conf import baladi_setting
from modules.points.constants import PointsTransactionType
from modules.points.exceptions import InsufficientBalance

if TYPE_CHECKING:
    from modules.points.models import PointsTransaction, Referral
    from modules.points.repositories.interfaces import IPointsRepository

logger = structlog.get_logger(__name__)


class PointsService:
    def __init__(
        self,
        points_repository: IPointsRepository,
        clock: Optional[Clock] = None,
        referral_bonus_points: Optional[int] = None,
    ) -> None:
        self._repo = points_repository
        self._clock = clock or SystemClock()
        self._referral_bonus = (
            referral_bonus_points
            if referral_bonus_points is not None
            else baladi_setting("REFERRAL_BONUS_POINTS")
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def balance(self, customer_id: UUID) -> int:
        account = self._repo.get_account(customer_id)
        return account.balance if account else 0

    def history(self, customer_id: UUID) -> List[PointsTransaction]:
        return self._repo.list_transactions(customer_id)

    # ------------------------------------------------------------------
    # Order-driven movements
    # ------------------------------------------------------------------

    @transaction.atomic
    def redeem(self, customer_id: UUID, points: int, order_id: UUID) -> PointsTransaction:
        """Debit ``points`` for a redemption on ``order_id``.

        Raises:
            InsufficientBalance: the locked balance is lower than ``points``.
        """
        if points <= 0:
            raise ValueError("points to redeem must be positive")
        account = self._repo.get_account_for_update(customer_id)
        if account.balance < points:
            raise InsufficientBalance(
                f"Requested {points} points but only {account.balance} are available.",
                requested_points=points,
                available_points=account.balance,
            )
        account.balance -= points
        account.lifetime_redeemed += points
        self._repo.save_account(account)
        tx = self._repo.add_transaction(
            account,
            PointsTransactionType.REDEEMED,
            -points,
            order_id=order_id,
            description="Redeemed at checkout",
        )
        logger.info(
            "points.redeemed",
            customer_id=str(customer_id),
            order_id=str(order_id),
            points=points,
            balance=account.balance,
        )
        return tx

    @transaction.atomic
    def refund_redemption(
        self, customer_id: UUID, points: int, order_id: UUID
    ) -> Optional[PointsTransaction]:
        """Give back points redeemed on a cancelled order (once per order)."""
        if points <= 0:
            return None
        account = self._repo.get_account_for_update(customer_id)
        if self._repo.has_transaction(
            customer_id, PointsTransactionType.REFUNDED, order_id
        ):
            logger.info("points.refund_skipped", order_id=str(order_id))
            return None
        account.balance += points
        account.lifetime_redeemed = max(0, account.lifetime_redeemed - points)
        self._repo.save_account(account)
        tx = self._repo.add_transaction(
            account,
            PointsTransactionType.REFUNDED,
            points,
            order_id=order_id,
            description="Order cancelled",
        )
        logger.info(
            "points.refunded",
            customer_id=str(customer_id),
            order_id=str(order_id),
            points=points,
        )
        return tx

    @transaction.atomic
    def credit_earned(
        self, customer_id: UUID, points: int, order_id: UUID
    ) -> Optional[PointsTransaction]:
        """Credit the points a completed order earned (once per order)."""
        if points <= 0:
            return None
        account = self._repo.get_account_for_update(customer_id)
        if self._repo.has_transaction(
            customer_id, PointsTransactionType.EARNED, order_id
        ):
            logger.info("points.credit_skipped", order_id=str(order_id))
            return None
        account.balance += points
        account.lifetime_earned += points
        self._repo.save_account(account)
        tx = self._repo.add_transaction(
            account,
            PointsTransactionType.EARNED,
            points,
            order_id=order_id,
            description="Order completed",
        )
        logger.info(
            "points.earned",
            customer_id=str(customer_id),
            order_id=str(order_id),
            points=points,
            balance=account.balance,
        )
        return tx

    # ------------------------------------------------------------------
    # Referrals
    # ------------------------------------------------------------------

    def register_referral(self, referrer_id: UUID, referred_id: UUID) -> Referral:
        if referrer_id == referred_id:
            raise ValueError("A customer cannot refer themselves.")
        referral = self._repo.create_referral(referrer_id, referred_id)
        logger.info(
            "points.referral_registered",
            referrer_id=str(referral.referrer_id),
            referred_id=str(referred_id),
        )
        return referral

    @transaction.atomic
    def award_referral_bonus(
        self, referred_id: UUID, order_id: UUID
    ) -> Optional[PointsTransaction]:
        """Pay the referrer's bonus on the referred customer's first completion.

        Returns ``None`` when there is no referral or it was already paid.
        """
        referral = self._repo.get_referral_for_update(referred_id)
        if referral is None or referral.points_awarded:
            return None

        account = self._repo.get_account_for_update(referral.referrer_id)
        account.balance += self._referral_bonus
        account.lifetime_earned += self._referral_bonus
        self._repo.save_account(account)
        tx = self._repo.add_transaction(
            account,
            PointsTransactionType.REFERRAL_BONUS,
            self._referral_bonus,
            order_id=order_id,
            description=f"Referral bonus for {referred_id}",
        )

        referral.points_awarded = True
        referral.awarded_at = self._clock.now()
        referral.awarded_for_order_id = order_id
        self._repo.save_referral(referral)

        logger.info(
            "points.referral_bonus_awarded",
            referrer_id=str(referral.referrer_id),
            referred_id=str(referred_id),
            order_id=str(order_id),
            points=self._referral_bonus,
        )
        return tx

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    @transaction.atomic
    def adjust(self, customer_id: UUID, delta: int, reason: str) -> PointsTransaction:
        """Manual correction by an admin.

        Raises:
            InsufficientBalance: the adjustment would leave a negative balance.
        """
        if delta == 0:
            raise ValueError("adjustment must be non-zero")
        if not reason or not reason.strip():
            raise ValueError("adjustment reason is required")
        account = self._repo.get_account_for_update(customer_id)
        if account.balance + delta < 0:
            raise InsufficientBalance(
                f"Cannot deduct {-delta} points from a balance of {account.balance}.",
                requested_points=-delta,
                available_points=account.balance,
            )
        account.balance += delta
        if delta > 0:
            account.lifetime_earned += delta
        self._repo.save_account(account)
        tx = self._repo.add_transaction(
            account,
            PointsTransactionType.ADJUSTED,
            delta,
            description=reason.strip(),
        )
        logger.info(
            "points.adjusted",
            customer_id=str(customer_id),
            delta=delta,
            balance=account.balance,
        )
        return tx
