from django.apps import AppConfig


class SettlementsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.settlements"
    label = "settlements"

    def ready(self) -> None:
        from modules.settlements.events import (
            PeriodClosed,
            PeriodSettled,
            SettlementMarkedSettled,
        )
        from modules.settlements.handlers import (
            period_closed_handler,
            period_settled_handler,
            settlement_marked_settled_handler,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(PeriodClosed, period_closed_handler)
        event_bus.subscribe(PeriodSettled, period_settled_handler)
        event_bus.subscribe(SettlementMarkedSettled, settlement_marked_settled_handler)
