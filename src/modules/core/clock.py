"""Clock abstraction injected into services.

Services never call ``timezone.now()`` directly so tests can pin time and
week-boundary math stays independent of the host's local time zone.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from django.utils import timezone


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Aware UTC wall clock."""

    def now(self) -> datetime:
        return timezone.now()


class FixedClock:
    """Clock frozen at a given instant; ``advance`` moves it forward."""

    def __init__(self, instant: datetime) -> None:
        if timezone.is_naive(instant):
            raise ValueError("FixedClock requires an aware datetime.")
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def advance(self, delta) -> None:
        self._instant = self._instant + delta
