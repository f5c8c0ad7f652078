"""Period store and settlement store contracts."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.settlements.models import (
        RiderSettlement,
        ShopSettlement,
        WeeklyPeriod,
    )

    Settlement = Union[ShopSettlement, RiderSettlement]


class IPeriodRepository(IRepository["WeeklyPeriod"]):
    @abstractmethod
    def get_active(self, for_update: bool = False) -> Optional[WeeklyPeriod]:
        """The single ``active`` period, optionally row-locked."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[WeeklyPeriod]:
        """Retrieve a period with a row-level lock."""

    @abstractmethod
    def get_or_create(self, year: int, week_number: int, defaults: Dict[str, Any]) -> WeeklyPeriod:
        """Period keyed by ``(year, week_number)``, created from ``defaults``."""

    @abstractmethod
    def save(self, entity: WeeklyPeriod, expected_version: Optional[int] = None) -> WeeklyPeriod:
        """Version-checked save; raises ``StalePeriod`` on a lost race."""

    @abstractmethod
    def record_events(self, entity: WeeklyPeriod) -> int:
        """Write the period's pending domain events to the outbox."""


class ISettlementRepository(ABC):
    @abstractmethod
    def add_shop(self, shop_id: UUID, period_id: UUID, values: Dict[str, Any]) -> ShopSettlement:
        """Settlement keyed by ``(shop_id, period_id)``, created from ``values`` if absent.

        An existing record is returned as stored.
        """

    @abstractmethod
    def add_rider(self, rider_id: UUID, period_id: UUID, values: Dict[str, Any]) -> RiderSettlement:
        """Settlement keyed by ``(rider_id, period_id)``, created from ``values`` if absent."""

    @abstractmethod
    def get_for_update(self, settlement_id: str) -> Optional[Settlement]:
        """Shop or rider settlement with this id, row-locked."""

    @abstractmethod
    def get(self, settlement_id: str) -> Optional[Settlement]:
        """Shop or rider settlement with this id."""

    @abstractmethod
    def save(self, settlement: Settlement) -> Settlement:
        """Persist a status change."""

    @abstractmethod
    def list_shop(self, period_id: UUID) -> List[ShopSettlement]:
        pass

    @abstractmethod
    def list_rider(self, period_id: UUID) -> List[RiderSettlement]:
        pass

    @abstractmethod
    def has_pending(self, period_id: UUID) -> bool:
        """Whether any settlement of the period is still pending."""
