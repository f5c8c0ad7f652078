"""Points repository interface.

Mutating callers lock the account row (``get_account_for_update``) before
changing the balance, inside the caller's transaction.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

if TYPE_CHECKING:
    from modules.points.models import (
        CustomerPointsAccount,
        PointsTransaction,
        Referral,
    )


class IPointsRepository(ABC):
    @abstractmethod
    def get_account(self, customer_id: UUID) -> Optional[CustomerPointsAccount]:
        """Return the customer's account without locking, or ``None``."""

    @abstractmethod
    def get_account_for_update(self, customer_id: UUID) -> CustomerPointsAccount:
        """Return the customer's account row locked, creating it if missing."""

    @abstractmethod
    def save_account(self, account: CustomerPointsAccount) -> CustomerPointsAccount:
        """Persist balance changes."""

    @abstractmethod
    def add_transaction(
        self,
        account: CustomerPointsAccount,
        transaction_type: str,
        points: int,
        order_id: Optional[UUID] = None,
        description: str = "",
    ) -> PointsTransaction:
        """Append a ledger row reflecting the account's current balance."""

    @abstractmethod
    def list_transactions(self, customer_id: UUID) -> List[PointsTransaction]:
        """Ledger rows for a customer, newest first."""

    @abstractmethod
    def has_transaction(
        self, customer_id: UUID, transaction_type: str, order_id: UUID
    ) -> bool:
        """Whether a ledger row of this type already exists for the order."""

    @abstractmethod
    def get_referral_for_update(self, referred_id: UUID) -> Optional[Referral]:
        """Lock and return the referral naming ``referred_id``, if any."""

    @abstractmethod
    def create_referral(self, referrer_id: UUID, referred_id: UUID) -> Referral:
        """Record a referral; ``referred_id`` can be referred only once."""

    @abstractmethod
    def save_referral(self, referral: Referral) -> Referral:
        """Persist the awarded flag."""
