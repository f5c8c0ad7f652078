"""Unit tests for per-order commission arithmetic."""

from __future__ import annotations

from decimal import Decimal

import pytest

from modules.orders import commission

pytestmark = pytest.mark.unit


class TestShopCommission:
    def test_subtotal_times_rate(self):
        assert commission.shop_commission(Decimal("200.00"), Decimal("0.10")) == Decimal(
            "20.00"
        )

    def test_rounds_half_up_to_cents(self):
        assert commission.shop_commission(Decimal("10.05"), Decimal("0.10")) == Decimal(
            "1.01"
        )

    @pytest.mark.parametrize("rate", ["-0.01", "1.01"])
    def test_rate_outside_fraction_is_rejected(self, rate):
        with pytest.raises(ValueError):
            commission.shop_commission(Decimal("100.00"), Decimal(rate))

    def test_float_rate_is_rejected(self):
        with pytest.raises(TypeError):
            commission.shop_commission(Decimal("100.00"), 0.1)


class TestPlatformCommission:
    def test_discounts_are_funded_from_commission(self):
        result = commission.platform_commission(
            Decimal("20.00"), Decimal("10.00"), Decimal("0.00")
        )
        assert result == Decimal("10.00")

    def test_never_negative(self):
        result = commission.platform_commission(
            Decimal("5.00"), Decimal("0.00"), Decimal("15.00")
        )
        assert result == Decimal("0.00")

    def test_configured_minimum_is_a_floor(self):
        result = commission.platform_commission(
            Decimal("5.00"), Decimal("5.00"), Decimal("0.00"), minimum=Decimal("1.00")
        )
        assert result == Decimal("1.00")


class TestCommissionBreakdown:
    def test_shop_earnings_ignore_discounts(self):
        breakdown = commission.commission_breakdown(
            Decimal("200.00"),
            Decimal("0.10"),
            points_discount=Decimal("10.00"),
        )

        assert breakdown.shop_commission == Decimal("20.00")
        assert breakdown.shop_earnings == Decimal("180.00")
        assert breakdown.platform_commission == Decimal("10.00")
        assert breakdown.platform_net == Decimal("10.00")

    def test_platform_net_is_unclamped(self):
        breakdown = commission.commission_breakdown(
            Decimal("50.00"),
            Decimal("0.10"),
            free_delivery_cost=Decimal("15.00"),
        )

        assert breakdown.platform_commission == Decimal("0.00")
        assert breakdown.platform_net == Decimal("-10.00")

    def test_can_apply_discount(self):
        assert commission.can_apply_discount(Decimal("20.00"), Decimal("20.00"))
        assert not commission.can_apply_discount(Decimal("20.00"), Decimal("20.01"))
