import logging
import uuid
from uuid import uuid4

import pytest

pytestmark = pytest.mark.integration

ORDERS_URL = "/api/v1/orders/"


def _order_payload(shop, customer_id):
    return {
        "customer_id": str(customer_id),
        "shop_id": str(shop.id),
        "items": [
            {
                "product_id": str(uuid4()),
                "product_name": "Feteer meshaltet",
                "unit_price": "120.00",
                "quantity": 1,
            }
        ],
    }


def _messages(caplog, event):
    return [r.getMessage() for r in caplog.records if event in r.getMessage()]


class TestCorrelationIdMiddleware:
    def test_echoes_request_id_on_order_placement(self, auth_client, shop, customer_id):
        response = auth_client.post(
            ORDERS_URL,
            _order_payload(shop, customer_id),
            format="json",
            HTTP_X_REQUEST_ID="place-order-7781",
        )
        assert response.status_code == 201
        assert response["X-Request-ID"] == "place-order-7781"

    def test_generates_uuid4_for_unauthenticated_calls(self, api_client):
        response = api_client.get("/api/v1/periods/current/")
        assert response.status_code == 401
        request_id = response["X-Request-ID"]
        assert str(uuid.UUID(request_id, version=4)) == request_id

    def test_request_id_reaches_repository_logs(self, auth_client, shop, customer_id, caplog):
        with caplog.at_level(logging.INFO):
            auth_client.post(
                ORDERS_URL,
                _order_payload(shop, customer_id),
                format="json",
                HTTP_X_REQUEST_ID="trace-order-persist",
            )
        persisted = _messages(caplog, "order.persisted")
        assert persisted, "order.persisted was not logged"
        assert all("trace-order-persist" in message for message in persisted)

    def test_each_request_gets_its_own_id(self, api_client, caplog):
        with caplog.at_level(logging.INFO):
            api_client.get("/health", HTTP_X_REQUEST_ID="first-probe")
            api_client.get("/health", HTTP_X_REQUEST_ID="second-probe")
        finished = _messages(caplog, "request.finished")
        assert len(finished) == 2
        assert "first-probe" in finished[0] and "second-probe" not in finished[0]
        assert "second-probe" in finished[1]
