"""Order lifecycle state machine.

``pending -> accepted -> preparing -> picked_up -> shop_paid -> completed``,
with ``cancelled`` reachable only from ``pending`` or ``accepted``.

``transition`` validates against ``TRANSITIONS`` and mutates the order in
memory (status, timestamp, cash flags, rider, cancellation reason).  It does
not persist anything; ``OrderService`` saves the order with a version check.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Iterable, Optional
from uuid import UUID

import structlog

from modules.core.clock import Clock, SystemClock
from modules.orders.constants import (
    TERMINAL_STATES,
    TIMESTAMP_FIELDS,
    TRANSITIONS,
    ActorRole,
    OrderStatus,
)
from modules.orders.exceptions import (
    CancellationReasonRequired,
    InvalidTransition,
    TerminalState,
)

logger = structlog.get_logger(__name__)

DEFAULT_AUTO_REJECT_AFTER = timedelta(minutes=10)


class OrderStateMachine:
    def __init__(
        self,
        clock: Optional[Clock] = None,
        auto_reject_after: timedelta = DEFAULT_AUTO_REJECT_AFTER,
    ) -> None:
        self._clock = clock or SystemClock()
        self._auto_reject_after = auto_reject_after

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @staticmethod
    def allowed_targets(status: str) -> Iterable[str]:
        return [target for (source, target) in TRANSITIONS if source == status]

    @staticmethod
    def can_transition(status: str, new_status: str, actor: str) -> bool:
        return actor in TRANSITIONS.get((status, new_status), frozenset())

    def has_timed_out(self, order: Any) -> bool:
        """Whether a still-pending order has waited longer than the timeout."""
        if order.status != OrderStatus.PENDING:
            return False
        return self._clock.now() - order.created_at > self._auto_reject_after

    # ------------------------------------------------------------------
    # Command
    # ------------------------------------------------------------------

    def transition(
        self,
        order: Any,
        new_status: str,
        actor: str,
        reason: Optional[str] = None,
        rider_id: Optional[UUID] = None,
    ) -> Any:
        """Move ``order`` to ``new_status`` on behalf of ``actor``.

        Raises:
            TerminalState: the order is completed or cancelled.
            InvalidTransition: the pair is not in the table, the actor may not
                perform it, a timed-out order is being accepted, or a rider
                other than the assigned one acts on the order.
            CancellationReasonRequired: cancelling without a reason.
        """
        current = order.status
        details = {
            "order_id": str(order.id),
            "from_status": current,
            "to_status": new_status,
            "actor": actor,
        }

        if current in TERMINAL_STATES:
            raise TerminalState(
                f"Order is already {current}; no further transitions are allowed.",
                **details,
            )

        allowed_actors = TRANSITIONS.get((current, new_status))
        if allowed_actors is None:
            raise InvalidTransition(
                f"Cannot move an order from {current} to {new_status}.",
                allowed=sorted(str(t) for t in self.allowed_targets(current)),
                **details,
            )
        if actor not in allowed_actors:
            raise InvalidTransition(
                f"A {actor} cannot move an order from {current} to {new_status}.",
                allowed_actors=sorted(str(a) for a in allowed_actors),
                **details,
            )

        if new_status == OrderStatus.ACCEPTED and self.has_timed_out(order):
            raise InvalidTransition(
                "The order waited too long and can no longer be accepted.",
                **details,
            )

        if new_status == OrderStatus.CANCELLED:
            if not reason or not reason.strip():
                raise CancellationReasonRequired(
                    "A cancellation reason is required.", **details
                )
            order.cancellation_reason = reason.strip()
            order.cancelled_by = actor

        if actor == ActorRole.RIDER:
            self._check_rider(order, new_status, rider_id, details)

        now = self._clock.now()
        order.status = new_status
        setattr(order, TIMESTAMP_FIELDS[new_status], now)

        if new_status == OrderStatus.SHOP_PAID:
            order.cash_collected = True
            order.cash_to_shop = True
        elif new_status == OrderStatus.COMPLETED:
            order.shop_confirmed_cash = True

        logger.debug("order.state_changed", **details)
        return order

    @staticmethod
    def _check_rider(
        order: Any, new_status: str, rider_id: Optional[UUID], details: dict
    ) -> None:
        assigned = order.rider_id
        if rider_id is None:
            if new_status == OrderStatus.PICKED_UP and assigned is None:
                raise InvalidTransition(
                    "A rider id is required to pick up an order.", **details
                )
            return
        if assigned is not None and str(assigned) != str(rider_id):
            raise InvalidTransition(
                "The order is assigned to a different rider.",
                assigned_rider_id=str(assigned),
                rider_id=str(rider_id),
                **details,
            )
        if new_status == OrderStatus.PICKED_UP:
            order.rider_id = rider_id
