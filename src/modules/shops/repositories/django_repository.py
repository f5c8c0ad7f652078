"""Django ORM implementation of the Shop repository."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db.models import Sum

from modules.core.money import to_money
from modules.shops.models import Shop, ShopAdCharge
from modules.shops.repositories.interfaces import IShopRepository

logger = structlog.get_logger(__name__)


class ShopDjangoRepository(IShopRepository):
    def get_by_id(self, id: str) -> Optional[Shop]:
        try:
            return Shop.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Shop]:
        queryset = Shop.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def save(self, entity: Shop) -> Shop:
        entity.save()
        logger.info("shop.saved", shop_id=str(entity.id))
        return entity

    def get_many(self, ids: Iterable[UUID]) -> Dict[UUID, Shop]:
        return {shop.id: shop for shop in Shop.objects.filter(id__in=list(ids))}

    def ad_costs_between(self, start: datetime, end: datetime) -> Dict[UUID, Decimal]:
        rows = (
            ShopAdCharge.objects.filter(charged_at__gte=start, charged_at__lte=end)
            .values("shop_id")
            .annotate(total=Sum("amount"))
        )
        return {row["shop_id"]: to_money(row["total"]) for row in rows}
