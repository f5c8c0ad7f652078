"""Order domain exceptions.

Raised by the state machine and ``OrderService``; the API boundary
translates them into HTTP responses through the shared exception handler.
"""

from __future__ import annotations

from shared.domain.errors import DomainError, ErrorKind, NotFound


class OrderNotFound(NotFound):
    def __init__(self, order_id) -> None:
        super().__init__(
            f"Order {order_id} not found.", entity="order", order_id=str(order_id)
        )


class InvalidTransition(DomainError):
    """The requested status change is not permitted from the current state."""

    kind = ErrorKind.INVALID_TRANSITION


class TerminalState(InvalidTransition):
    """The order is already completed or cancelled."""

    kind = ErrorKind.TERMINAL_STATE


class StaleState(InvalidTransition):
    """The order changed since the caller last read it."""

    kind = ErrorKind.STALE_STATE


class CancellationReasonRequired(InvalidTransition):
    """Cancelling needs a non-empty reason."""


class InvalidOrderInput(DomainError):
    """The placement request violates an order-shape rule."""

    kind = ErrorKind.INVALID_ORDER_INPUT
