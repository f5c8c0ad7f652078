"""Domain events for the Settlements bounded context."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class PeriodClosed(DomainEvent):
    """Raised when a weekly period closes and its settlements are generated."""


@dataclass(frozen=True)
class SettlementMarkedSettled(DomainEvent):
    """Raised when a shop or rider settlement is paid out."""


@dataclass(frozen=True)
class PeriodSettled(DomainEvent):
    """Raised when every settlement of a closed period is settled."""
