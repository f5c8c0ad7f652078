"""Points redemption exceptions.

Every redemption failure carries the numbers a caller needs to explain it
(requested points, available balance, the commission cap).
"""

from __future__ import annotations

from shared.domain.errors import DomainError, ErrorKind


class RedemptionError(DomainError):
    """Base class for rejected point redemptions."""


class InsufficientBalance(RedemptionError):
    kind = ErrorKind.INSUFFICIENT_BALANCE


class ExceedsCommissionCap(RedemptionError):
    kind = ErrorKind.EXCEEDS_COMMISSION_CAP


class NoCommissionHeadroom(RedemptionError):
    """Points were requested but free delivery consumed the whole commission."""

    kind = ErrorKind.NO_COMMISSION_HEADROOM
