"""
Bike
----

A physical bike in the fleet. Bikes are tagged with a size and an
operational status; the booking flow only reads them, except for flipping
same-day bikes to rented once a booking has been made.
"""

from tortoise import Model, fields

from bikehire.models.fields import EnumField
from bikehire.models.util import BikeSize, BikeStatus


class Bike(Model):
    id = fields.IntField(pk=True)
    size = EnumField(BikeSize)
    status = EnumField(BikeStatus, default=BikeStatus.AVAILABLE)
    sticker_number = fields.CharField(max_length=16, null=True)

    class Meta:
        table = "bikes"

    def __str__(self):
        return f"[{self.size.value}] {self.sticker_number or self.id}"


class SizeRange(Model):
    """The heights that fit a given size of bike."""
    id = fields.IntField(pk=True)
    size = EnumField(BikeSize, unique=True)
    min_height = fields.FloatField()
    max_height = fields.FloatField()

    class Meta:
        table = "height_ranges"
