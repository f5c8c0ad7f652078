"""Order DTOs for the Service Layer.

Framework-agnostic, immutable (``frozen=True``) Pydantic v2 models passed
from the API layer to ``OrderService``.  They check shape and types only;
business rules (item limits, shop availability, minimum order) are
enforced by the service so every caller gets the same typed errors.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from modules.orders.constants import ActorRole, OrderStatus


class PlaceOrderItemDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: UUID
    product_name: str
    unit_price: Decimal
    quantity: int

    @field_validator("unit_price", mode="before")
    @classmethod
    def reject_float_price(cls, v):
        if isinstance(v, float):
            raise ValueError("unit_price must be a decimal string, not a float.")
        return v


class PlaceOrderDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    customer_id: UUID
    shop_id: UUID
    items: List[PlaceOrderItemDTO]
    points_requested: int = Field(default=0, ge=0)
    is_free_delivery: bool = False
    notes: Optional[str] = ""
    idempotency_key: Optional[str] = None


class TransitionOrderDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: UUID
    new_status: OrderStatus
    actor_role: ActorRole
    rider_id: Optional[UUID] = None
    expected_version: Optional[int] = None
    notes: str = ""


class CancelOrderDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: UUID
    reason: str
    actor_role: ActorRole
    expected_version: Optional[int] = None


class RedemptionCheckDTO(BaseModel):
    """Pre-flight redemption check input for a prospective order."""

    model_config = ConfigDict(frozen=True)

    customer_id: UUID
    shop_id: UUID
    subtotal: Decimal = Field(ge=0)
    points_requested: int = Field(ge=0)
    is_free_delivery: bool = False
