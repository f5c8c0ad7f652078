from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from django.contrib.auth import get_user_model
from django.core.cache import cache

from rest_framework.test import APIClient

from modules.core.clock import FixedClock
from modules.orders.dtos import PlaceOrderDTO, PlaceOrderItemDTO
from modules.orders.services import build_order_service
from modules.points.repositories.django_repository import PointsDjangoRepository
from modules.points.services import PointsService
from modules.settlements.services import build_settlement_service
from modules.shops.models import Shop

# Wednesday 12:00 in Cairo; its Saturday-Friday week is 2025-W02.
WEDNESDAY_NOON = datetime(2025, 1, 8, 10, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    """Throttle counters live in the cache; start every test clean."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def auth_client():
    """APIClient with a force-authenticated Django user."""
    client = APIClient()
    user = get_user_model().objects.create_user(
        username="operator", password="testpass123"
    )
    client.force_authenticate(user=user)
    return client


# ---------------------------------------------------------------------------
# Domain fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock():
    return FixedClock(WEDNESDAY_NOON)


@pytest.fixture()
def shop():
    return Shop.objects.create(
        name="Koshary El Tahrir",
        commission_rate=Decimal("0.10"),
        delivery_fee=Decimal("15.00"),
        minimum_order=Decimal("50.00"),
    )


@pytest.fixture()
def customer_id():
    return uuid4()


@pytest.fixture()
def rider_id():
    return uuid4()


@pytest.fixture()
def points_service(clock):
    return PointsService(PointsDjangoRepository(), clock=clock)


@pytest.fixture()
def order_service(clock):
    return build_order_service(clock=clock)


@pytest.fixture()
def settlement_service(clock):
    return build_settlement_service(clock=clock)


@pytest.fixture()
def place_order(order_service, shop, customer_id):
    """Place an order; defaults to one 200.00 item at ``shop`` for ``customer_id``."""

    def _place(
        subtotal="200.00",
        points=0,
        free_delivery=False,
        target_shop=None,
        customer=None,
        idempotency_key=None,
    ):
        dto = PlaceOrderDTO(
            customer_id=customer or customer_id,
            shop_id=(target_shop or shop).id,
            items=[
                PlaceOrderItemDTO(
                    product_id=uuid4(),
                    product_name="Family koshary",
                    unit_price=Decimal(subtotal),
                    quantity=1,
                )
            ],
            points_requested=points,
            is_free_delivery=free_delivery,
            idempotency_key=idempotency_key,
        )
        return order_service.place_order(dto)

    return _place


@pytest.fixture()
def advance_order(order_service, rider_id):
    """Walk an order forward through the lifecycle up to ``target``."""
    from modules.orders.constants import ActorRole, OrderStatus
    from modules.orders.dtos import TransitionOrderDTO

    steps = [
        (OrderStatus.ACCEPTED, ActorRole.SHOP),
        (OrderStatus.PREPARING, ActorRole.SHOP),
        (OrderStatus.PICKED_UP, ActorRole.RIDER),
        (OrderStatus.SHOP_PAID, ActorRole.RIDER),
        (OrderStatus.COMPLETED, ActorRole.SHOP),
    ]

    def _advance(order, target=OrderStatus.COMPLETED, rider=None):
        for status, actor in steps:
            order = order_service.transition_order(
                TransitionOrderDTO(
                    order_id=order.id,
                    new_status=status,
                    actor_role=actor,
                    rider_id=(rider or rider_id) if actor == ActorRole.RIDER else None,
                )
            )
            if status == target:
                break
        return order

    return _advance
