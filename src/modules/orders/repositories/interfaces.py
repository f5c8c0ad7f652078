"""Order repository interface (the order store).

Extends ``IRepository[Order]`` with what the Order aggregate needs:
atomic creation with items, locked and version-checked writes, status
history, idempotency-key look-up and the period queries settlements use.

The service layer depends exclusively on this contract.
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` holds the order fields plus ``items``: a list of dicts with
        ``product_id``, ``product_name``, ``unit_price`` and ``quantity``.
        """

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock."""

    @abstractmethod
    def save(self, entity: Order, expected_version: Optional[int] = None) -> Order:
        """Persist ``entity`` if its stored version is still ``expected_version``.

        ``expected_version`` defaults to ``entity.version``.  On success the
        version is incremented.

        Raises:
            StaleState: the stored version differs.
        """

    @abstractmethod
    def record_events(self, entity: Order) -> int:
        """Write the aggregate's pending domain events to the outbox."""

    @abstractmethod
    def add_history(
        self,
        order_id: UUID,
        new_status: str,
        actor_role: str,
        old_status: Optional[str] = None,
        notes: str = "",
    ) -> OrderStatusHistory:
        """Append a status change to the order's audit trail."""

    @abstractmethod
    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        """Retrieve an order by its idempotency key."""

    @abstractmethod
    def list_in_period(self, period_id: UUID) -> List[Order]:
        """All orders assigned to the period, any status."""

    @abstractmethod
    def list_completed_in_period(self, period_id: UUID) -> List[Order]:
        """Completed orders assigned to the period."""

    @abstractmethod
    def list_pending_created_before(self, cutoff: datetime) -> List[Order]:
        """Pending orders created strictly before ``cutoff``, oldest first."""
