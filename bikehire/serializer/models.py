"""
Model Serializers
-----------------

Defines serializers for the bookings, availability and coupons in the system.
"""

from marshmallow import Schema, validates_schema, ValidationError, validate, pre_load
from marshmallow.fields import Integer, String, Email, Nested, DateTime, Float, Date, Dict, List, Boolean

from bikehire.models.util import BikeSize, SessionType, BookingStatus, DiscountType
from bikehire.service.availability import OccupancyLevel
from bikehire.service.draft import NAME_PATTERN, PHONE_PATTERN, NAME_LENGTH, EMAIL_MAX_LENGTH
from bikehire.service.sizing import MIN_HEIGHT, MAX_HEIGHT
from .fields import EnumField


class RiderDraftSchema(Schema):
    name = String(required=True, validate=[
        validate.Length(*NAME_LENGTH),
        validate.Regexp(NAME_PATTERN, error="Name can only contain letters, spaces, hyphens and apostrophes."),
    ])
    height = Float(required=True, validate=validate.Range(MIN_HEIGHT, MAX_HEIGHT))

    @pre_load
    def strip_name(self, data, **kwargs):
        if isinstance(data, dict) and isinstance(data.get("name"), str):
            data = dict(data, name=data["name"].strip())
        return data


class BookingDraftSchema(Schema):
    """The booking as the customer submits it."""
    date = Date(required=True)
    session = EnumField(SessionType, required=True)
    riders = Nested(RiderDraftSchema(), many=True, required=True, validate=validate.Length(min=1))
    phone = String(required=True, validate=validate.Regexp(
        PHONE_PATTERN, error="Phone must be a valid Israeli mobile number (05XXXXXXXX)."
    ))
    email = Email(required=True, validate=validate.Length(max=EMAIL_MAX_LENGTH))
    coupon_code = String(allow_none=True)


class RiderSchema(Schema):
    id = Integer(allow_none=True)
    name = String(required=True)
    height = Float(required=True)
    bike_id = Integer(allow_none=True)
    size = EnumField(BikeSize, allow_none=True)


class BookingSchema(Schema):
    """The schema corresponding to a stored booking."""
    id = String(required=True)
    date = Date(required=True)
    session = EnumField(SessionType, required=True)
    status = EnumField(BookingStatus, required=True)
    riders = Nested(RiderSchema(), many=True)
    total_price = Float()
    coupon_code = String(allow_none=True)
    created_at = DateTime()
    warnings = List(String())


class BookingStatusSchema(Schema):
    status = EnumField(BookingStatus, required=True)


class HeightRangeSchema(Schema):
    size = EnumField(BikeSize, required=True)
    min_height = Float(required=True)
    max_height = Float(required=True)

    @validates_schema
    def assert_range_not_empty(self, data, **kwargs):
        if data["min_height"] >= data["max_height"]:
            raise ValidationError("The minimum height must be below the maximum height.")


class SizeAvailabilitySchema(Schema):
    size = EnumField(BikeSize, required=True)
    available = Integer(required=True)
    booked = Integer(required=True)
    min_height = Float()
    max_height = Float()


class SlotAvailabilitySchema(Schema):
    """The reconciled availability of a single slot."""
    date = Date(required=True)
    session = EnumField(SessionType, required=True)
    booked = Integer(required=True)
    unattributed = Integer(required=True)
    capacity = Integer(required=True)
    remaining = Integer(required=True)
    occupancy = EnumField(OccupancyLevel, required=True)
    sizes = Nested(SizeAvailabilitySchema(), many=True)
    open = Boolean()
    """Whether the slot can still be booked."""


class SessionSummarySchema(Schema):
    booked = Integer(required=True)
    remaining = Integer(required=True)
    occupancy = EnumField(OccupancyLevel, required=True)


class CalendarDaySchema(Schema):
    date = Date(required=True)
    sessions = Dict(keys=String(), values=Nested(SessionSummarySchema()))


class CouponSchema(Schema):
    code = String(required=True)
    discount = Float(required=True)
    discount_type = EnumField(DiscountType, required=True)
