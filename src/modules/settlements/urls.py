"""Settlement URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.settlements.views import SettlementViewSet, WeeklyPeriodViewSet

router = DefaultRouter(trailing_slash=True)
router.register("periods", WeeklyPeriodViewSet, basename="period")
router.register("settlements", SettlementViewSet, basename="settlement")

urlpatterns = router.urls
