"""Order DRF serializers for API input/output.

Input serializers validate request shape only; business rules live in
``OrderService``, which receives Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from modules.orders.constants import ActorRole, OrderStatus
from modules.orders.models import Order, OrderItem, OrderStatusHistory

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class PlaceOrderItemSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    product_name = serializers.CharField(max_length=200)
    unit_price = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal("0")
    )
    quantity = serializers.IntegerField(min_value=1)


class PlaceOrderSerializer(serializers.Serializer):
    customer_id = serializers.UUIDField()
    shop_id = serializers.UUIDField()
    items = PlaceOrderItemSerializer(many=True, allow_empty=False)
    points_requested = serializers.IntegerField(min_value=0, default=0)
    is_free_delivery = serializers.BooleanField(default=False)
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class TransitionOrderSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)
    actor_role = serializers.ChoiceField(choices=ActorRole.choices)
    rider_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    expected_version = serializers.IntegerField(
        required=False, allow_null=True, default=None, min_value=1
    )
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class CancelOrderSerializer(serializers.Serializer):
    reason = serializers.CharField(allow_blank=True)
    actor_role = serializers.ChoiceField(choices=ActorRole.choices)
    expected_version = serializers.IntegerField(
        required=False, allow_null=True, default=None, min_value=1
    )


class RedemptionCheckSerializer(serializers.Serializer):
    customer_id = serializers.UUIDField()
    shop_id = serializers.UUIDField()
    subtotal = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal("0")
    )
    points_requested = serializers.IntegerField(min_value=0)
    is_free_delivery = serializers.BooleanField(default=False)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "product_name",
            "quantity",
            "unit_price",
            "subtotal",
        ]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "old_status",
            "new_status",
            "actor_role",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Full order with its financial breakdown, items and history."""

    items = OrderItemSerializer(many=True, read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)
    free_delivery_cost = serializers.DecimalField(
        max_digits=12, decimal_places=2, read_only=True
    )
    shop_earnings = serializers.DecimalField(
        max_digits=12, decimal_places=2, read_only=True
    )
    rider_earnings = serializers.DecimalField(
        max_digits=12, decimal_places=2, read_only=True
    )

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "version",
            "customer_id",
            "shop_id",
            "rider_id",
            "week_period_id",
            "status",
            "subtotal",
            "delivery_fee",
            "is_free_delivery",
            "free_delivery_cost",
            "points_used",
            "points_discount",
            "total_amount",
            "commission_rate",
            "shop_commission",
            "platform_commission",
            "shop_earnings",
            "rider_earnings",
            "points_earned",
            "cash_collected",
            "cash_to_shop",
            "shop_confirmed_cash",
            "accepted_at",
            "preparing_at",
            "picked_up_at",
            "shop_paid_at",
            "completed_at",
            "cancelled_at",
            "cancellation_reason",
            "cancelled_by",
            "notes",
            "created_at",
            "updated_at",
            "items",
            "status_history",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order list (no nested relations)."""

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "shop_id",
            "customer_id",
            "rider_id",
            "status",
            "total_amount",
            "points_used",
            "created_at",
        ]
        read_only_fields = fields
