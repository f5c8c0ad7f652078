"""Domain bus interfaces for in-process event handling."""

from __future__ import annotations

from typing import Generic, Optional, Protocol, Type, TypeVar

from shared.domain.events import DomainEvent

E = TypeVar("E", bound=DomainEvent, contravariant=True)


class IEventHandler(Protocol, Generic[E]):
    """Handler interface for domain events."""

    def handle(self, event: E) -> None: ...


class IEventBus(Protocol):
    """Event bus interface.

    ``event_class_for`` lets the outbox relay rebuild a typed event from
    the ``event_type`` column it persisted.
    """

    def publish(self, event: DomainEvent) -> None: ...

    def subscribe(self, event_class: Type[E], handler: IEventHandler[E]) -> None: ...

    def event_class_for(self, event_name: str) -> Optional[Type[DomainEvent]]: ...
