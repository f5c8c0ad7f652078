"""Django ORM implementation of the Order repository.

Status changes are persisted with an optimistic version check: a single
``UPDATE ... WHERE id = ? AND version = ?`` that also bumps ``version``.
Zero matched rows means another writer got there first, reported as
``StaleState``.  Domain events collected on the aggregate are written to
the outbox in the same transaction.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from modules.core.outbox import flush_domain_events
from modules.orders.constants import OrderStatus
from modules.orders.exceptions import StaleState
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

OUTBOX_TOPIC = "orders"


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    def _queryset(self):
        return Order.objects.select_related("shop", "week_period").prefetch_related(
            "items", "status_history"
        )

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        fields = dict(data)
        items = fields.pop("items", [])
        order = Order(**fields)
        order.save()

        for item_data in items:
            OrderItem(
                order=order,
                product_id=item_data["product_id"],
                product_name=item_data["product_name"],
                quantity=item_data["quantity"],
                unit_price=item_data["unit_price"],
            ).save()

        flush_domain_events(order, OUTBOX_TOPIC)
        logger.info(
            "order.persisted",
            order_id=str(order.id),
            order_number=order.order_number,
            item_count=len(items),
        )
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Returns ``None`` for non-existent or malformed IDs."""
        try:
            return self._queryset().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Order]:
        try:
            return (
                Order.objects.select_for_update()
                .select_related("shop")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        queryset = self._queryset()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def queryset(self):
        """Unevaluated queryset for list endpoints (filtering, pagination)."""
        return Order.objects.select_related("shop").order_by("-created_at", "-id")

    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        return self._queryset().filter(idempotency_key=key).first()

    def list_in_period(self, period_id: UUID) -> List[Order]:
        return list(Order.objects.filter(week_period_id=period_id).order_by("created_at"))

    def list_completed_in_period(self, period_id: UUID) -> List[Order]:
        return list(
            Order.objects.filter(
                week_period_id=period_id, status=OrderStatus.COMPLETED
            ).order_by("created_at")
        )

    def list_pending_created_before(self, cutoff: datetime) -> List[Order]:
        return list(
            Order.objects.filter(
                status=OrderStatus.PENDING, created_at__lt=cutoff
            ).order_by("created_at")
        )

    # ------------------------------------------------------------------
    # Version-checked save
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order, expected_version: Optional[int] = None) -> Order:
        if entity._state.adding:
            entity.save()
            flush_domain_events(entity, OUTBOX_TOPIC)
            return entity

        expected = entity.version if expected_version is None else expected_version
        entity.updated_at = timezone.now()
        values = {
            field.attname: getattr(entity, field.attname)
            for field in Order._meta.concrete_fields
            if not field.primary_key and field.attname != "version"
        }
        updated = Order.objects.filter(pk=entity.pk, version=expected).update(
            version=expected + 1, **values
        )
        if not updated:
            current = Order.objects.filter(pk=entity.pk).values_list(
                "version", "status"
            ).first()
            logger.warning(
                "order.stale_write",
                order_id=str(entity.id),
                expected_version=expected,
                current=current,
            )
            raise StaleState(
                "The order was modified concurrently; reload and retry.",
                order_id=str(entity.id),
                expected_version=expected,
                current_version=current[0] if current else None,
                current_status=current[1] if current else None,
            )
        entity.version = expected + 1

        event_count = flush_domain_events(entity, OUTBOX_TOPIC)
        logger.info(
            "order.saved",
            order_id=str(entity.id),
            version=entity.version,
            event_count=event_count,
        )
        return entity

    def record_events(self, entity: Order) -> int:
        return flush_domain_events(entity, OUTBOX_TOPIC)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def add_history(
        self,
        order_id: UUID,
        new_status: str,
        actor_role: str,
        old_status: Optional[str] = None,
        notes: str = "",
    ) -> OrderStatusHistory:
        return OrderStatusHistory.objects.create(
            order_id=order_id,
            old_status=old_status,
            new_status=new_status,
            actor_role=actor_role,
            notes=notes,
        )

