"""Django ORM implementations of the period and settlement stores."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from modules.core.outbox import flush_domain_events
from modules.settlements.constants import PeriodStatus, SettlementStatus
from modules.settlements.exceptions import StalePeriod
from modules.settlements.models import RiderSettlement, ShopSettlement, WeeklyPeriod
from modules.settlements.repositories.interfaces import (
    IPeriodRepository,
    ISettlementRepository,
)

logger = structlog.get_logger(__name__)

OUTBOX_TOPIC = "settlements"

Settlement = Union[ShopSettlement, RiderSettlement]


class PeriodDjangoRepository(IPeriodRepository):
    def get_by_id(self, id: str) -> Optional[WeeklyPeriod]:
        try:
            return WeeklyPeriod.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[WeeklyPeriod]:
        try:
            return WeeklyPeriod.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_active(self, for_update: bool = False) -> Optional[WeeklyPeriod]:
        queryset = WeeklyPeriod.objects.filter(status=PeriodStatus.ACTIVE)
        if for_update:
            queryset = queryset.select_for_update()
        return queryset.first()

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[WeeklyPeriod]:
        queryset = WeeklyPeriod.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def get_or_create(
        self, year: int, week_number: int, defaults: Dict[str, Any]
    ) -> WeeklyPeriod:
        period, created = WeeklyPeriod.objects.get_or_create(
            year=year, week_number=week_number, defaults=defaults
        )
        if created:
            logger.info(
                "period.opened",
                period_id=str(period.id),
                year=year,
                week_number=week_number,
            )
        return period

    @transaction.atomic
    def save(
        self, entity: WeeklyPeriod, expected_version: Optional[int] = None
    ) -> WeeklyPeriod:
        if entity._state.adding:
            entity.save()
            flush_domain_events(entity, OUTBOX_TOPIC)
            return entity

        expected = entity.version if expected_version is None else expected_version
        updated = WeeklyPeriod.objects.filter(pk=entity.pk, version=expected).update(
            version=expected + 1,
            status=entity.status,
            closed_at=entity.closed_at,
            settled_at=entity.settled_at,
            updated_at=timezone.now(),
        )
        if not updated:
            raise StalePeriod(
                "The period was modified concurrently; reload and retry.",
                period_id=str(entity.id),
                expected_version=expected,
            )
        entity.version = expected + 1
        flush_domain_events(entity, OUTBOX_TOPIC)
        return entity

    def record_events(self, entity: WeeklyPeriod) -> int:
        return flush_domain_events(entity, OUTBOX_TOPIC)


class SettlementDjangoRepository(ISettlementRepository):
    def add_shop(
        self, shop_id: UUID, period_id: UUID, values: Dict[str, Any]
    ) -> ShopSettlement:
        settlement, created = ShopSettlement.objects.get_or_create(
            shop_id=shop_id, period_id=period_id, defaults=values
        )
        logger.info(
            "settlement.shop_added",
            settlement_id=str(settlement.id),
            shop_id=str(shop_id),
            created=created,
        )
        return settlement

    def add_rider(
        self, rider_id: UUID, period_id: UUID, values: Dict[str, Any]
    ) -> RiderSettlement:
        settlement, created = RiderSettlement.objects.get_or_create(
            rider_id=rider_id, period_id=period_id, defaults=values
        )
        logger.info(
            "settlement.rider_added",
            settlement_id=str(settlement.id),
            rider_id=str(rider_id),
            created=created,
        )
        return settlement

    def _find(self, settlement_id: str, lock: bool) -> Optional[Settlement]:
        for model in (ShopSettlement, RiderSettlement):
            queryset = model.objects.select_related("period")
            if lock:
                queryset = queryset.select_for_update()
            try:
                found = queryset.filter(id=settlement_id).first()
            except (ValueError, ValidationError):
                return None
            if found is not None:
                return found
        return None

    def get(self, settlement_id: str) -> Optional[Settlement]:
        return self._find(settlement_id, lock=False)

    def get_for_update(self, settlement_id: str) -> Optional[Settlement]:
        return self._find(settlement_id, lock=True)

    def save(self, settlement: Settlement) -> Settlement:
        settlement.save(update_fields=["status", "settled_at"])
        return settlement

    def list_shop(self, period_id: UUID) -> List[ShopSettlement]:
        return list(
            ShopSettlement.objects.filter(period_id=period_id)
            .select_related("shop")
            .order_by("shop__name")
        )

    def list_rider(self, period_id: UUID) -> List[RiderSettlement]:
        return list(
            RiderSettlement.objects.filter(period_id=period_id).order_by("rider_id")
        )

    def has_pending(self, period_id: UUID) -> bool:
        return (
            ShopSettlement.objects.filter(
                period_id=period_id, status=SettlementStatus.PENDING
            ).exists()
            or RiderSettlement.objects.filter(
                period_id=period_id, status=SettlementStatus.PENDING
            ).exists()
        )
