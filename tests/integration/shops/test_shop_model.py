from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError

from modules.shops.models import Shop

pytestmark = pytest.mark.integration


class TestShopDefaults:
    def test_defaults_come_from_baladi_settings(self):
        shop = Shop.objects.create(name="Fatatri El Sayeda")
        shop.refresh_from_db()
        assert shop.commission_rate == Decimal("0.1000")
        assert shop.delivery_fee == Decimal("10.00")

    def test_overridden_defaults(self, settings):
        settings.BALADI = {
            **settings.BALADI,
            "DEFAULT_COMMISSION_RATE": Decimal("0.12"),
            "DEFAULT_DELIVERY_FEE": Decimal("20.00"),
        }
        shop = Shop(name="Zizo Shawarma")
        assert shop.commission_rate == Decimal("0.12")
        assert shop.delivery_fee == Decimal("20.00")


class TestShopCommissionBounds:
    @pytest.mark.parametrize("rate", ["0.05", "0.10", "0.30"])
    def test_rate_within_bounds_is_valid(self, rate):
        Shop(name="Abou Tarek", commission_rate=Decimal(rate)).full_clean()

    @pytest.mark.parametrize("rate", ["0.04", "0.31", "0.90"])
    def test_rate_outside_bounds_is_rejected(self, rate):
        with pytest.raises(ValidationError) as exc_info:
            Shop(name="Abou Tarek", commission_rate=Decimal(rate)).full_clean()
        assert "commission_rate" in exc_info.value.message_dict
