from tortoise import Model, fields

from bikehire.models.fields import EnumField
from bikehire.models.util import SessionType, BookingStatus, BikeSize


class Booking(Model):
    id = fields.UUIDField(pk=True)
    date = fields.DateField()
    session = EnumField(SessionType)
    status = EnumField(BookingStatus, default=BookingStatus.CONFIRMED)
    created_at = fields.DatetimeField(auto_now_add=True)

    total_price = fields.FloatField(default=0)
    """The price after any discount."""

    phone = fields.CharField(max_length=16)
    email = fields.CharField(max_length=255)
    coupon_code = fields.CharField(max_length=64, null=True)
    client_id = fields.CharField(max_length=128, null=True)

    class Meta:
        table = "bookings"


class Rider(Model):
    id = fields.IntField(pk=True)
    booking = fields.ForeignKeyField("models.Booking", related_name="riders")
    name = fields.CharField(max_length=64)
    height = fields.FloatField()
    bike = fields.ForeignKeyField("models.Bike", related_name="riders", null=True)
    size = EnumField(BikeSize, null=True)
    """The size of the assigned bike, which may differ from the ideal size."""

    class Meta:
        table = "riders"


class BookingAttempt(Model):
    """A ledger of booking submissions, used for rate limiting."""
    id = fields.IntField(pk=True)
    client_id = fields.CharField(max_length=128, index=True)
    time = fields.DatetimeField(auto_now_add=True)
    successful = fields.BooleanField(default=False)

    class Meta:
        table = "booking_attempts"
