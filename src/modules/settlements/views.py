"""Period and settlement API views.

Admin-facing endpoints over ``SettlementService``; domain errors are
rendered by the shared exception handler.
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import ViewSet

from modules.settlements.serializers import (
    WeeklyPeriodSerializer,
    serialize_closed_period,
    serialize_report,
    serialize_settlement,
)
from modules.settlements.services import build_settlement_service


class WeeklyPeriodViewSet(ViewSet):
    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_settlement_service()

    @action(detail=False, methods=["get"])
    def current(self, request: Request) -> Response:
        """GET /api/v1/periods/current/ (opens one if none is active)."""
        period = self._service.manager.ensure_active_period()
        return Response(WeeklyPeriodSerializer(period).data)

    @action(detail=False, methods=["post"], url_path="close-current")
    def close_current(self, request: Request) -> Response:
        """POST /api/v1/periods/close-current/"""
        result = self._service.close_current_week()
        return Response(serialize_closed_period(result), status=status.HTTP_200_OK)

    @action(detail=True, methods=["get"])
    def report(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/periods/{pk}/report/"""
        return Response(serialize_report(self._service.get_settlement_report(pk)))


class SettlementViewSet(ViewSet):
    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_settlement_service()

    @action(detail=True, methods=["post"], url_path="mark-settled")
    def mark_settled(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/settlements/{pk}/mark-settled/"""
        settlement = self._service.mark_settled(pk)
        return Response(serialize_settlement(settlement))
