"""Unit tests for the standardized DRF exception handler.

Covers:
- Domain errors map to their HTTP status with kind, message and details.
- DRF validation errors are flattened with the offending attribute.
- Unhandled exceptions are left to Django.
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from rest_framework import exceptions

from modules.core.exception_handler import standardized_exception_handler
from modules.orders.exceptions import (
    InvalidOrderInput,
    InvalidTransition,
    OrderNotFound,
    StaleState,
    TerminalState,
)
from modules.points.exceptions import NoCommissionHeadroom
from modules.settlements.exceptions import AlreadyClosed, InvalidAggregateInput

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    ("error", "status_code", "code"),
    [
        (OrderNotFound("missing"), 404, "NotFound"),
        (InvalidTransition("nope"), 409, "InvalidTransition"),
        (TerminalState("done"), 409, "TerminalState"),
        (StaleState("reload"), 409, "StaleState"),
        (AlreadyClosed("closed"), 409, "AlreadyClosed"),
        (NoCommissionHeadroom("none left"), 422, "NoCommissionHeadroom"),
        (InvalidOrderInput("bad"), 400, "InvalidOrderInput"),
        (InvalidAggregateInput("bad"), 400, "InvalidAggregateInput"),
    ],
)
def test_domain_error_status_mapping(error, status_code, code):
    response = standardized_exception_handler(error, {})

    assert response.status_code == status_code
    assert response.data["type"] == "domain_error"
    assert response.data["errors"][0]["code"] == code


def test_domain_error_details_are_exposed_as_meta():
    error = NoCommissionHeadroom(
        "Free delivery uses the whole commission.",
        requested_points=5,
        shop_commission=Decimal("10.00"),
        free_delivery_cost=Decimal("15.00"),
    )

    response = standardized_exception_handler(error, {})
    body = response.data["errors"][0]

    assert body["detail"] == "Free delivery uses the whole commission."
    assert body["attr"] is None
    assert body["meta"]["requested_points"] == 5
    assert body["meta"]["free_delivery_cost"] == Decimal("15.00")


def test_validation_errors_are_flattened():
    exc = exceptions.ValidationError(
        {"items": [{"quantity": ["Ensure this value is greater than or equal to 1."]}]}
    )

    response = standardized_exception_handler(exc, {})

    assert response.status_code == 400
    assert response.data["type"] == "validation_error"
    assert response.data["errors"][0]["attr"] == "items.0.quantity"
    assert response.data["errors"][0]["code"] == "invalid"


def test_other_api_exceptions_are_client_errors():
    response = standardized_exception_handler(exceptions.NotAuthenticated(), {})

    assert response.status_code == 401
    assert response.data["type"] == "client_error"
    assert response.data["errors"][0]["code"] == "not_authenticated"


def test_unexpected_exceptions_are_not_handled():
    assert standardized_exception_handler(RuntimeError("boom"), {}) is None
