"""Settlement and period lifecycle exceptions."""

from __future__ import annotations

from shared.domain.errors import DomainError, ErrorKind, NotFound


class PeriodNotFound(NotFound):
    def __init__(self, period_id=None) -> None:
        message = (
            f"Weekly period {period_id} not found."
            if period_id is not None
            else "There is no active weekly period."
        )
        super().__init__(
            message,
            entity="weekly_period",
            period_id=str(period_id) if period_id is not None else None,
        )


class SettlementNotFound(NotFound):
    def __init__(self, settlement_id) -> None:
        super().__init__(
            f"Settlement {settlement_id} not found.",
            entity="settlement",
            settlement_id=str(settlement_id),
        )


class AlreadyClosed(DomainError):
    """The period has already left the ``active`` state."""

    kind = ErrorKind.ALREADY_CLOSED


class NotYetClosed(DomainError):
    """The period is still ``active``."""

    kind = ErrorKind.NOT_YET_CLOSED


class InvalidAggregateInput(DomainError):
    """Negative or inconsistent settlement inputs: an upstream integrity bug."""

    kind = ErrorKind.INVALID_AGGREGATE_INPUT


class StalePeriod(DomainError):
    """The period was modified concurrently."""

    kind = ErrorKind.STALE_STATE
