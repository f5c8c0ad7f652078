"""Order API views.

Exposes ``OrderService`` over HTTP with a DRF ViewSet.  Domain exceptions
are not caught here: the shared exception handler turns every
``DomainError`` into the standardized error body and status code.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.core.pagination import StandardResultsSetPagination
from modules.orders.dtos import (
    CancelOrderDTO,
    PlaceOrderDTO,
    PlaceOrderItemDTO,
    RedemptionCheckDTO,
    TransitionOrderDTO,
)
from modules.orders.exceptions import OrderNotFound
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    CancelOrderSerializer,
    OrderListSerializer,
    OrderSerializer,
    PlaceOrderSerializer,
    RedemptionCheckSerializer,
    TransitionOrderSerializer,
)
from modules.orders.services import build_order_service


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Does **not** extend ``ModelViewSet``: writes go through ``OrderService``.
    """

    queryset = Order.objects.all()
    filterset_class = OrderFilter
    search_fields = ["order_number"]
    ordering_fields = ["created_at", "total_amount", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_order_service()

    def get_throttles(self) -> list[BaseThrottle]:
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_creation"
        elif self.action in {"list", "retrieve"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    def get_queryset(self):
        return OrderDjangoRepository().queryset()

    # ------------------------------------------------------------------
    # Place
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        Supports idempotency via the ``Idempotency-Key`` header: a repeated
        key returns the original order with 200 instead of 201.
        """
        serializer = PlaceOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        idempotency_key = request.headers.get("Idempotency-Key")
        dto = PlaceOrderDTO(
            customer_id=data["customer_id"],
            shop_id=data["shop_id"],
            items=[PlaceOrderItemDTO(**item) for item in data["items"]],
            points_requested=data["points_requested"],
            is_free_delivery=data["is_free_delivery"],
            notes=data.get("notes", ""),
            idempotency_key=idempotency_key,
        )
        replay = bool(
            idempotency_key
            and OrderDjangoRepository().get_by_idempotency_key(idempotency_key)
        )
        order = self._service.place_order(dto)
        return Response(
            OrderSerializer(order).data,
            status=status.HTTP_200_OK if replay else status.HTTP_201_CREATED,
        )

    @action(detail=False, methods=["post"], url_path="redemption-check")
    def redemption_check(self, request: Request) -> Response:
        """POST /api/v1/orders/redemption-check/

        Pre-flight points check so a client can warn before placing.
        """
        serializer = RedemptionCheckSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self._service.check_redemption(
            RedemptionCheckDTO(**serializer.validated_data)
        )
        error = result["error"]
        return Response(
            {
                "available_points": result["available_points"],
                "max_redeemable_points": result["max_redeemable_points"],
                "valid": error is None,
                "error": error.to_dict() if error is not None else None,
            }
        )

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/ (filtered, ordered, paginated)."""
        queryset = self.filter_queryset(self.get_queryset())
        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        serializer = OrderListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        if pk is None:
            raise OrderNotFound(pk)
        return Response(OrderSerializer(self._service.get_order(pk)).data)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def transition(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/transition/"""
        order = self._service.get_order(pk)
        serializer = TransitionOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        updated = self._service.transition_order(
            TransitionOrderDTO(
                order_id=order.id,
                new_status=data["status"],
                actor_role=data["actor_role"],
                rider_id=data["rider_id"],
                expected_version=data["expected_version"],
                notes=data["notes"],
            )
        )
        return Response(OrderSerializer(updated).data)

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel/"""
        order = self._service.get_order(pk)
        serializer = CancelOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        updated = self._service.cancel_order(
            CancelOrderDTO(
                order_id=order.id,
                reason=data["reason"],
                actor_role=data["actor_role"],
                expected_version=data["expected_version"],
            )
        )
        return Response(OrderSerializer(updated).data)
