import pytest

from bikehire.models.util import SessionType, DiscountType
from bikehire.pricing import get_price, apply_discount, MORNING_PRICE, DAILY_PRICE
from bikehire.store.records import CouponQuote


class TestPricing:

    @pytest.mark.parametrize("session, riders, price", [
        (SessionType.MORNING, 1, MORNING_PRICE),
        (SessionType.MORNING, 3, 3 * MORNING_PRICE),
        (SessionType.DAILY, 2, 2 * DAILY_PRICE),
    ])
    def test_price(self, session, riders, price):
        assert get_price(session, riders) == price

    def test_percent_coupon(self):
        coupon = CouponQuote("SUMMER", 15, DiscountType.PERCENT)
        assert get_price(SessionType.DAILY, 2, coupon) == 204

    def test_percent_capped(self):
        """Assert that a discount above 100% makes the booking free, not negative."""
        coupon = CouponQuote("FREE", 150, DiscountType.PERCENT)
        assert apply_discount(100, coupon) == 0

    def test_fixed_coupon(self):
        coupon = CouponQuote("TENOFF", 10, DiscountType.FIXED)
        assert get_price(SessionType.MORNING, 1, coupon) == MORNING_PRICE - 10

    def test_fixed_coupon_floor(self):
        coupon = CouponQuote("BIG", 500, DiscountType.FIXED)
        assert get_price(SessionType.MORNING, 1, coupon) == 0

    def test_rounding(self):
        coupon = CouponQuote("ODD", 33.333, DiscountType.PERCENT)
        assert apply_discount(80, coupon) == 53.33
