"""Django ORM implementation of the points repository."""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

import structlog

from modules.points.models import CustomerPointsAccount, PointsTransaction, Referral
from modules.points.repositories.interfaces import IPointsRepository

logger = structlog.get_logger(__name__)


class PointsDjangoRepository(IPointsRepository):
    def get_account(self, customer_id: UUID) -> Optional[CustomerPointsAccount]:
        return CustomerPointsAccount.objects.filter(customer_id=customer_id).first()

    def get_account_for_update(self, customer_id: UUID) -> CustomerPointsAccount:
        account, created = CustomerPointsAccount.objects.select_for_update().get_or_create(
            customer_id=customer_id
        )
        if created:
            logger.info("points.account_opened", customer_id=str(customer_id))
        return account

    def save_account(self, account: CustomerPointsAccount) -> CustomerPointsAccount:
        account.save(
            update_fields=["balance", "lifetime_earned", "lifetime_redeemed"]
        )
        return account

    def add_transaction(
        self,
        account: CustomerPointsAccount,
        transaction_type: str,
        points: int,
        order_id: Optional[UUID] = None,
        description: str = "",
    ) -> PointsTransaction:
        return PointsTransaction.objects.create(
            account=account,
            transaction_type=transaction_type,
            points=points,
            balance_after=account.balance,
            order_id=order_id,
            description=description,
        )

    def list_transactions(self, customer_id: UUID) -> List[PointsTransaction]:
        return list(
            PointsTransaction.objects.filter(account__customer_id=customer_id)
            .select_related("account")
            .order_by("-created_at")
        )

    def has_transaction(
        self, customer_id: UUID, transaction_type: str, order_id: UUID
    ) -> bool:
        return PointsTransaction.objects.filter(
            account__customer_id=customer_id,
            transaction_type=transaction_type,
            order_id=order_id,
        ).exists()

    def get_referral_for_update(self, referred_id: UUID) -> Optional[Referral]:
        return (
            Referral.objects.select_for_update().filter(referred_id=referred_id).first()
        )

    def create_referral(self, referrer_id: UUID, referred_id: UUID) -> Referral:
        referral, _ = Referral.objects.get_or_create(
            referred_id=referred_id,
            defaults={"referrer_id": referrer_id},
        )
        return referral

    def save_referral(self, referral: Referral) -> Referral:
        referral.save(
            update_fields=["points_awarded", "awarded_at", "awarded_for_order_id"]
        )
        return referral
