"""Domain events for the Orders bounded context.

Event facts (status pair, actor, amounts) travel in ``payload``.
"""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderPlaced(DomainEvent):
    """Raised when an order is placed."""


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised on every forward transition."""


@dataclass(frozen=True)
class OrderCompleted(DomainEvent):
    """Raised when the shop confirms the cash and the order completes."""


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    """Raised when an order is cancelled (manually or by auto-reject)."""
