"""Tests for money helpers and discount arithmetic."""

from decimal import Decimal
from types import SimpleNamespace

from market.models.catalog_models import DiscountType
from market.models.coupon_models import CouponType
from market.services.coupon_service import compute_discount
from market.utils.decimal_utils import to_decimal
from market.utils.pricing import effective_unit_price


class TestToDecimal:
    def test_rounds_half_up_to_cents(self):
        assert to_decimal("10.005") == Decimal("10.01")
        assert to_decimal(Decimal("10.004")) == Decimal("10.00")

    def test_accepts_floats_without_binary_noise(self):
        assert to_decimal(0.1 + 0.2) == Decimal("0.30")

    def test_none_is_zero(self):
        assert to_decimal(None) == Decimal("0.00")


class TestEffectiveUnitPrice:
    def test_percent_discount(self):
        assert effective_unit_price("100", "10", DiscountType.PERCENT) == Decimal("90.00")

    def test_nominal_discount(self):
        assert effective_unit_price("100", "15", DiscountType.NOMINAL) == Decimal("85.00")

    def test_zero_discount_keeps_price(self):
        assert effective_unit_price("49.99", "0", DiscountType.PERCENT) == Decimal("49.99")

    def test_accepts_raw_enum_values(self):
        assert effective_unit_price("80", "25", "percent") == Decimal("60.00")

    def test_nominal_discount_above_price_is_not_clamped(self):
        assert effective_unit_price("10", "15", DiscountType.NOMINAL) == Decimal("-5.00")


def _coupon(type, value, max_value=None):
    return SimpleNamespace(type=type, value=Decimal(value), max_value=Decimal(max_value) if max_value else None)


class TestComputeDiscount:
    def test_percent(self):
        assert compute_discount(_coupon(CouponType.PERCENT, "20"), Decimal("180")) == Decimal("36.00")

    def test_percent_clamped_to_max_value(self):
        assert compute_discount(_coupon(CouponType.PERCENT, "20", "20"), Decimal("180")) == Decimal("20.00")

    def test_percent_under_max_value(self):
        assert compute_discount(_coupon(CouponType.PERCENT, "10", "50"), Decimal("180")) == Decimal("18.00")

    def test_amount_is_flat(self):
        assert compute_discount(_coupon(CouponType.AMOUNT, "25"), Decimal("180")) == Decimal("25.00")

    def test_amount_may_exceed_total(self):
        assert compute_discount(_coupon(CouponType.AMOUNT, "500"), Decimal("180")) == Decimal("500.00")
