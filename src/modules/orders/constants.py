"""Order lifecycle constants.

The transition table is static data: every legal ``(from, to)`` pair maps
to the actor roles allowed to perform it.  Any pair not listed is illegal.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    ACCEPTED = "accepted", "Accepted"
    PREPARING = "preparing", "Preparing"
    PICKED_UP = "picked_up", "Picked up"
    SHOP_PAID = "shop_paid", "Shop paid"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class ActorRole(models.TextChoices):
    CUSTOMER = "customer", "Customer"
    SHOP = "shop", "Shop"
    RIDER = "rider", "Rider"
    ADMIN = "admin", "Admin"
    # Automated jobs such as the auto-reject poller.
    SYSTEM = "system", "System"


_CANCELLERS = frozenset(
    {ActorRole.CUSTOMER, ActorRole.SHOP, ActorRole.ADMIN, ActorRole.SYSTEM}
)

TRANSITIONS: dict[tuple[str, str], frozenset[str]] = {
    (OrderStatus.PENDING, OrderStatus.ACCEPTED): frozenset({ActorRole.SHOP}),
    (OrderStatus.PENDING, OrderStatus.CANCELLED): _CANCELLERS,
    (OrderStatus.ACCEPTED, OrderStatus.PREPARING): frozenset({ActorRole.SHOP}),
    (OrderStatus.ACCEPTED, OrderStatus.CANCELLED): _CANCELLERS,
    (OrderStatus.PREPARING, OrderStatus.PICKED_UP): frozenset({ActorRole.RIDER}),
    (OrderStatus.PICKED_UP, OrderStatus.SHOP_PAID): frozenset({ActorRole.RIDER}),
    (OrderStatus.SHOP_PAID, OrderStatus.COMPLETED): frozenset({ActorRole.SHOP}),
}

TERMINAL_STATES: frozenset[str] = frozenset(
    {OrderStatus.COMPLETED, OrderStatus.CANCELLED}
)

CANCELLABLE_STATES: frozenset[str] = frozenset(
    source for (source, target) in TRANSITIONS if target == OrderStatus.CANCELLED
)

# Timestamp stamped on the order when it enters each status.
TIMESTAMP_FIELDS: dict[str, str] = {
    OrderStatus.ACCEPTED: "accepted_at",
    OrderStatus.PREPARING: "preparing_at",
    OrderStatus.PICKED_UP: "picked_up_at",
    OrderStatus.SHOP_PAID: "shop_paid_at",
    OrderStatus.COMPLETED: "completed_at",
    OrderStatus.CANCELLED: "cancelled_at",
}

ORDER_NUMBER_MAX_RETRIES = 5

AUTO_REJECT_REASON = "Auto-rejected: shop did not respond in time."


def next_status(status: str) -> str | None:
    """The single forward (non-cancel) successor of ``status``, if any."""
    for source, target in TRANSITIONS:
        if source == status and target != OrderStatus.CANCELLED:
            return target
    return None
