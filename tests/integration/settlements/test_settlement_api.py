"""Integration tests for the period and settlement HTTP API."""

from __future__ import annotations

from uuid import uuid4

import pytest

from modules.settlements.constants import PeriodStatus
from modules.settlements.models import WeeklyPeriod

pytestmark = pytest.mark.integration

PERIODS_URL = "/api/v1/periods/"
SETTLEMENTS_URL = "/api/v1/settlements/"


@pytest.fixture()
def completed_order(place_order, advance_order):
    return advance_order(place_order())


def _close(client):
    return client.post(f"{PERIODS_URL}close-current/", format="json")


class TestPeriodEndpoints:
    def test_current_opens_a_period(self, auth_client):
        response = auth_client.get(f"{PERIODS_URL}current/")

        assert response.status_code == 200
        assert response.json()["status"] == PeriodStatus.ACTIVE
        assert WeeklyPeriod.objects.filter(status=PeriodStatus.ACTIVE).count() == 1

    def test_close_current(self, auth_client, completed_order, shop, rider_id):
        response = _close(auth_client)

        assert response.status_code == 200
        body = response.json()
        assert body["period"]["status"] == PeriodStatus.CLOSED
        assert body["next_period"]["status"] == PeriodStatus.ACTIVE
        assert body["shop_settlements"][0]["shop_id"] == str(shop.id)
        assert body["shop_settlements"][0]["net_payable"] == "180.00"
        assert body["rider_settlements"][0]["rider_id"] == str(rider_id)

    def test_close_without_active_period_is_404(self, auth_client):
        response = _close(auth_client)

        assert response.status_code == 404
        assert response.json()["errors"][0]["code"] == "NotFound"

    def test_report(self, auth_client, completed_order):
        period_id = _close(auth_client).json()["period"]["id"]

        response = auth_client.get(f"{PERIODS_URL}{period_id}/report/")

        assert response.status_code == 200
        body = response.json()
        assert body["reconciles"] is True
        assert body["summary"]["total_gross_sales"] == "200.00"
        assert body["summary"]["admin_net_revenue"] == "20.00"
        assert body["summary"]["shop_count"] == 1
        assert body["personal_commission_total"] == "12.25"

    def test_report_of_active_period_is_409(self, auth_client, completed_order):
        period = WeeklyPeriod.objects.get(status=PeriodStatus.ACTIVE)

        response = auth_client.get(f"{PERIODS_URL}{period.id}/report/")

        assert response.status_code == 409
        assert response.json()["errors"][0]["code"] == "NotYetClosed"

    def test_requires_authentication(self, api_client):
        assert _close(api_client).status_code == 401


class TestMarkSettledEndpoint:
    def test_mark_settled(self, auth_client, completed_order):
        body = _close(auth_client).json()
        settlement_id = body["shop_settlements"][0]["id"]

        response = auth_client.post(
            f"{SETTLEMENTS_URL}{settlement_id}/mark-settled/", format="json"
        )

        assert response.status_code == 200
        assert response.json()["party"] == "shop"
        assert response.json()["status"] == "settled"

    def test_unknown_settlement_is_404(self, auth_client):
        response = auth_client.post(
            f"{SETTLEMENTS_URL}{uuid4()}/mark-settled/", format="json"
        )

        assert response.status_code == 404
