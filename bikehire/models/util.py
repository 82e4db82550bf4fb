from enum import Enum
from typing import List


class BikeSize(str, Enum):
    """We subclass string to make json serialization work."""
    XS = "XS"
    S = "S"
    M = "M"
    L = "L"
    XL = "XL"

    @property
    def ordinal(self) -> int:
        return list(BikeSize).index(self)

    @staticmethod
    def ordered() -> List['BikeSize']:
        """The sizes from smallest to largest."""
        return list(BikeSize)


class BikeStatus(str, Enum):
    AVAILABLE = "available"
    MAINTENANCE = "maintenance"
    RENTED = "rented"
    UNAVAILABLE = "unavailable"

    @staticmethod
    def out_of_fleet():
        """The statuses that take a bike out of the bookable fleet entirely."""
        return BikeStatus.MAINTENANCE, BikeStatus.UNAVAILABLE


class SessionType(str, Enum):
    MORNING = "morning"
    DAILY = "daily"


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked-in"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @staticmethod
    def inactive_types():
        """The statuses of bookings that no longer hold any bikes."""
        return BookingStatus.CANCELLED, BookingStatus.COMPLETED

    @staticmethod
    def cancellable_types():
        return BookingStatus.PENDING, BookingStatus.CONFIRMED

    def can_become(self, other: 'BookingStatus') -> bool:
        """Statuses only move forward, except cancellation which is only allowed early on."""
        if other is BookingStatus.CANCELLED:
            return self in BookingStatus.cancellable_types()
        if self is BookingStatus.CANCELLED:
            return False
        forward = [BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN, BookingStatus.COMPLETED]
        return forward.index(other) > forward.index(self)


class DiscountType(str, Enum):
    PERCENT = "percent"
    FIXED = "fixed"
