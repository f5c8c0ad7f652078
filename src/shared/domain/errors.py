"""Typed error taxonomy shared by every bounded context.

Business-rule violations are raised as ``DomainError`` subclasses.  Each
carries a stable ``kind`` (the discriminant callers switch on) and a
``details`` dict with the structured values needed to build a user-facing
message (e.g. ``shop_commission``, ``requested_points``).  Anything that is
not a ``DomainError`` is an unexpected failure and propagates as-is.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar, Dict, Optional


class ErrorKind(str, Enum):
    INVALID_TRANSITION = "InvalidTransition"
    TERMINAL_STATE = "TerminalState"
    STALE_STATE = "StaleState"
    INSUFFICIENT_BALANCE = "InsufficientBalance"
    EXCEEDS_COMMISSION_CAP = "ExceedsCommissionCap"
    NO_COMMISSION_HEADROOM = "NoCommissionHeadroom"
    INVALID_AGGREGATE_INPUT = "InvalidAggregateInput"
    ALREADY_CLOSED = "AlreadyClosed"
    NOT_YET_CLOSED = "NotYetClosed"
    NOT_FOUND = "NotFound"
    INVALID_ORDER_INPUT = "InvalidOrderInput"
    SHOP_UNAVAILABLE = "ShopUnavailable"


class DomainError(Exception):
    """Base class for expected business-rule failures."""

    kind: ClassVar[ErrorKind]

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "details": dict(self.details),
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, {self.details!r})"


class NotFound(DomainError):
    """A referenced aggregate does not exist."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str, entity: Optional[str] = None, **details: Any):
        super().__init__(message, entity=entity, **details)
