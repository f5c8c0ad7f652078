"""Settlement repositories package."""

from modules.settlements.repositories.django_repository import (
    PeriodDjangoRepository,
    SettlementDjangoRepository,
)
from modules.settlements.repositories.interfaces import (
    IPeriodRepository,
    ISettlementRepository,
)

__all__ = [
    "IPeriodRepository",
    "ISettlementRepository",
    "PeriodDjangoRepository",
    "SettlementDjangoRepository",
]
