"""
Coupon Related Views
--------------------

Lets customers check a coupon before they book.
"""

from http import HTTPStatus

from bikehire.serializer import returns, JSendSchema, JSendStatus
from bikehire.serializer.models import CouponSchema
from bikehire.service.coupons import quote_coupon
from bikehire.store.base import CouponNotFoundError, CouponUsedError
from bikehire.views.base import BaseView


class CouponView(BaseView):
    """
    Gets the discount of an unused coupon.
    """
    url = "/coupons/{code}"
    name = "coupon"

    @returns(
        coupon=JSendSchema.of(coupon=CouponSchema()),
        missing=(JSendSchema(), HTTPStatus.NOT_FOUND),
        used=(JSendSchema(), HTTPStatus.CONFLICT),
    )
    async def get(self):
        code = self.request.match_info["code"]
        try:
            coupon = await quote_coupon(self.store, code)
        except CouponNotFoundError:
            return "missing", {
                "status": JSendStatus.FAIL,
                "data": {"message": f"There is no coupon {code}.", "reason": "couponNotFound"}
            }
        except CouponUsedError:
            return "used", {
                "status": JSendStatus.FAIL,
                "data": {"message": f"Coupon {code} has already been used.", "reason": "couponUsed"}
            }

        return "coupon", {
            "status": JSendStatus.SUCCESS,
            "data": {"coupon": {
                "code": coupon.code, "discount": coupon.discount, "discount_type": coupon.discount_type
            }}
        }
