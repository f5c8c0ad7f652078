"""Shop repository interface."""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Dict, Iterable, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.shops.models import Shop


class IShopRepository(IRepository["Shop"]):
    @abstractmethod
    def get_many(self, ids: Iterable[UUID]) -> Dict[UUID, Shop]:
        """Return the shops with the given ids keyed by id."""

    @abstractmethod
    def ad_costs_between(self, start: datetime, end: datetime) -> Dict[UUID, Decimal]:
        """Sum of ad charges per shop with ``start <= charged_at <= end``."""
