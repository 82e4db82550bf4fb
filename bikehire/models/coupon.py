from tortoise import Model, fields

from bikehire.models.fields import EnumField
from bikehire.models.util import DiscountType


class Coupon(Model):
    id = fields.IntField(pk=True)
    code = fields.CharField(max_length=64, unique=True)
    discount = fields.FloatField()
    discount_type = EnumField(DiscountType)
    created_at = fields.DatetimeField(auto_now_add=True)
    used_at = fields.DatetimeField(null=True)
    used_by_booking_id = fields.CharField(max_length=36, null=True)

    class Meta:
        table = "coupons"

    @property
    def is_used(self) -> bool:
        return self.used_at is not None
