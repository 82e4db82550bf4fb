"""
The pricing module determines the price of a booking: a flat price per rider
for the session, less any coupon discount.
"""

from typing import Optional

from bikehire.models.util import SessionType, DiscountType
from bikehire.store.records import CouponQuote

MORNING_PRICE = 80
DAILY_PRICE = 120

SESSION_PRICES = {
    SessionType.MORNING: MORNING_PRICE,
    SessionType.DAILY: DAILY_PRICE,
}

MINIMUM = 0


def apply_discount(subtotal: float, coupon: Optional[CouponQuote]) -> float:
    """
    Takes a coupon off a subtotal. Percent discounts are capped at the whole
    subtotal, and fixed discounts can never push the price below zero.
    """
    if coupon is None:
        return subtotal

    if coupon.discount_type is DiscountType.PERCENT:
        discount = subtotal * min(coupon.discount, 100) / 100
    else:
        discount = coupon.discount

    return round(max(MINIMUM, subtotal - discount), 2)


def get_price(session: SessionType, riders: int, coupon: CouponQuote = None) -> float:
    """
    Given a session and the number of riders, returns the price of the booking.

    :return: The final price (in shekels).
    """
    subtotal = SESSION_PRICES[session] * riders
    return apply_discount(subtotal, coupon)
