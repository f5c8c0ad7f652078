"""Unit tests for discount application against the commission cap.

Covers:
- Points-only redemption within the cap.
- Free delivery consuming commission headroom.
- Soft cap of requested points; hard failure with zero headroom.
- Per-order money conservation.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from modules.orders.discounts import (
    apply_discounts,
    build_order_breakdown,
    remaining_commission,
    validate_redemption,
)
from modules.points.exceptions import (
    ExceedsCommissionCap,
    InsufficientBalance,
    NoCommissionHeadroom,
)

pytestmark = pytest.mark.unit

SUBTOTAL = Decimal("200.00")
RATE = Decimal("0.10")
FEE = Decimal("15.00")


class TestPointsRedemption:
    def test_points_within_cap(self):
        breakdown = build_order_breakdown(
            SUBTOTAL, FEE, RATE, requested_points=10, customer_balance=50,
            is_free_delivery=False,
        )

        assert breakdown.commission.shop_commission == Decimal("20.00")
        assert breakdown.discount.points_used == 10
        assert breakdown.discount.points_discount == Decimal("10.00")
        assert breakdown.commission.platform_commission == Decimal("10.00")
        assert breakdown.discount.customer_payable == Decimal("205.00")
        assert breakdown.commission.shop_earnings == Decimal("180.00")
        assert breakdown.rider_earnings == Decimal("15.00")
        assert breakdown.points_earned == 2

    def test_request_above_cap_is_soft_capped(self):
        result = apply_discounts(
            SUBTOTAL, FEE, RATE, requested_points=50, customer_balance=100,
            is_free_delivery=False,
        )

        assert result.requested_points == 50
        assert result.points_used == 20
        assert result.points_discount == Decimal("20.00")

    def test_request_above_balance_is_soft_capped(self):
        result = apply_discounts(
            SUBTOTAL, FEE, RATE, requested_points=15, customer_balance=4,
            is_free_delivery=False,
        )

        assert result.points_used == 4

    def test_negative_request_is_rejected(self):
        with pytest.raises(ValueError):
            apply_discounts(SUBTOTAL, FEE, RATE, -1, 10, False)


class TestFreeDelivery:
    def test_free_delivery_consumes_headroom(self):
        breakdown = build_order_breakdown(
            SUBTOTAL, FEE, RATE, requested_points=0, customer_balance=0,
            is_free_delivery=True,
        )

        assert breakdown.discount.free_delivery_cost == Decimal("15.00")
        assert breakdown.discount.remaining_commission == Decimal("5.00")
        assert breakdown.commission.platform_commission == Decimal("5.00")
        assert breakdown.discount.customer_payable == Decimal("200.00")
        assert breakdown.rider_earnings == Decimal("15.00")

    def test_points_after_free_delivery_use_what_remains(self):
        result = apply_discounts(
            SUBTOTAL, FEE, RATE, requested_points=10, customer_balance=10,
            is_free_delivery=True,
        )

        assert result.points_used == 5
        assert result.total_platform_discount == Decimal("20.00")

    def test_no_headroom_rejects_points(self):
        with pytest.raises(NoCommissionHeadroom) as exc_info:
            apply_discounts(
                Decimal("100.00"), FEE, RATE, requested_points=5,
                customer_balance=50, is_free_delivery=True,
            )

        assert exc_info.value.details["free_delivery_cost"] == Decimal("15.00")
        assert exc_info.value.details["shop_commission"] == Decimal("10.00")

    def test_no_headroom_without_points_is_allowed(self):
        result = apply_discounts(
            Decimal("100.00"), FEE, RATE, requested_points=0,
            customer_balance=50, is_free_delivery=True,
        )

        assert result.points_used == 0
        assert result.remaining_commission == Decimal("0.00")

    def test_remaining_commission_never_negative(self):
        assert remaining_commission(Decimal("10.00"), Decimal("15.00")) == Decimal("0.00")


class TestValidateRedemption:
    def test_reports_cap_without_soft_capping(self):
        error = validate_redemption(SUBTOTAL, FEE, RATE, 50, 100, False)

        assert isinstance(error, ExceedsCommissionCap)

    def test_reports_balance(self):
        error = validate_redemption(SUBTOTAL, FEE, RATE, 10, 3, False)

        assert isinstance(error, InsufficientBalance)

    def test_reports_missing_headroom(self):
        error = validate_redemption(Decimal("100.00"), FEE, RATE, 1, 10, True)

        assert isinstance(error, NoCommissionHeadroom)

    def test_acceptable_request(self):
        assert validate_redemption(SUBTOTAL, FEE, RATE, 20, 20, False) is None


class TestConservation:
    @pytest.mark.parametrize(
        ("subtotal", "points", "free_delivery"),
        [
            ("200.00", 0, False),
            ("200.00", 10, False),
            ("200.00", 5, True),
            ("333.33", 33, False),
            ("80.00", 0, True),
        ],
    )
    def test_payment_equals_distribution(self, subtotal, points, free_delivery):
        breakdown = build_order_breakdown(
            Decimal(subtotal), FEE, RATE, points, 1000, free_delivery
        )

        assert breakdown.is_balanced()
