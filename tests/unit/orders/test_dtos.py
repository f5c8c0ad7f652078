"""Unit tests for Order DTO shape validation."""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from modules.orders.constants import ActorRole, OrderStatus
from modules.orders.dtos import (
    PlaceOrderDTO,
    PlaceOrderItemDTO,
    RedemptionCheckDTO,
    TransitionOrderDTO,
)

pytestmark = pytest.mark.unit


def _item(**overrides):
    values = {
        "product_id": uuid4(),
        "product_name": "Ful medames",
        "unit_price": Decimal("25.00"),
        "quantity": 2,
    }
    values.update(overrides)
    return values


class TestPlaceOrderDTO:
    def test_valid(self):
        dto = PlaceOrderDTO(customer_id=uuid4(), shop_id=uuid4(), items=[_item()])

        assert dto.points_requested == 0
        assert dto.is_free_delivery is False
        assert dto.items[0].unit_price == Decimal("25.00")

    def test_string_price_is_parsed_as_decimal(self):
        item = PlaceOrderItemDTO(**_item(unit_price="12.50"))

        assert item.unit_price == Decimal("12.50")

    def test_float_price_is_rejected(self):
        with pytest.raises(ValidationError):
            PlaceOrderItemDTO(**_item(unit_price=12.5))

    def test_negative_points_are_rejected(self):
        with pytest.raises(ValidationError):
            PlaceOrderDTO(
                customer_id=uuid4(), shop_id=uuid4(), items=[_item()], points_requested=-1
            )

    def test_is_immutable(self):
        dto = PlaceOrderDTO(customer_id=uuid4(), shop_id=uuid4(), items=[_item()])

        with pytest.raises(ValidationError):
            dto.points_requested = 5


class TestTransitionOrderDTO:
    def test_status_and_actor_are_enums(self):
        dto = TransitionOrderDTO(
            order_id=uuid4(), new_status="accepted", actor_role="shop"
        )

        assert dto.new_status == OrderStatus.ACCEPTED
        assert dto.actor_role == ActorRole.SHOP

    def test_unknown_status_is_rejected(self):
        with pytest.raises(ValidationError):
            TransitionOrderDTO(order_id=uuid4(), new_status="delivered", actor_role="shop")


def test_redemption_check_rejects_negative_subtotal():
    with pytest.raises(ValidationError):
        RedemptionCheckDTO(
            customer_id=uuid4(),
            shop_id=uuid4(),
            subtotal=Decimal("-1"),
            points_requested=0,
        )
