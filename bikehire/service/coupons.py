"""
Coupons are single use codes that take money off a booking. Codes are
case insensitive and stored upper case.
"""

from bikehire.store.base import InventoryStore
from bikehire.store.records import CouponQuote


def normalize_code(code: str) -> str:
    return code.strip().upper()


async def quote_coupon(store: InventoryStore, code: str) -> CouponQuote:
    """
    Looks up the discount of an unused coupon.

    :raises CouponNotFoundError: If there is no such coupon.
    :raises CouponUsedError: If the coupon was already redeemed.
    """
    return await store.validate_coupon(normalize_code(code))


async def redeem_coupon(store: InventoryStore, code: str, booking_id: str):
    """
    Marks a coupon as used by a booking.

    :raises CouponUsedError: If another booking got to it first.
    """
    await store.mark_coupon_used(normalize_code(code), booking_id)
