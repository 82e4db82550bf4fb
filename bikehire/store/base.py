"""
This module hosts the abstract base class for all stores. It defines the
"contract" of remote calls the booking engine relies on; every back-end
(memory, database, or the hosted store) must implement all of it.
"""

from abc import ABC, abstractmethod
from collections import Counter
from datetime import date, datetime, timedelta
from typing import List, Optional, Iterable

from bikehire.events import EventHub, EventList
from bikehire.models.util import BikeStatus, BookingStatus
from bikehire.service.sessions import slots_overlap
from bikehire.store.records import (
    BikeSnapshot, HeightRange, AggregateUsage, SizeUsage, BikeCommitment,
    RateLimitDecision, CouponQuote, NewBooking, BookingRecord
)


class StoreError(Exception):
    pass


class StoreUnavailableError(StoreError):
    """Raised when the store cannot be reached."""


class BikeConflictError(StoreError):
    """Raised when a booking asks for a bike that another live booking already holds."""

    def __init__(self, message, bike_ids: Iterable[int] = ()):
        super().__init__(message)
        self.bike_ids = list(bike_ids)


class CouponNotFoundError(StoreError):
    pass


class CouponUsedError(StoreError):
    """Raised when redeeming a coupon that has already been used."""


class BookingMissingError(StoreError):
    pass


class StoreEvent(EventList):

    def changed(self, table: str):
        """Something in the given table changed; anything derived from it must be re-read."""


class InventoryStore(ABC):
    """The abstract store interface."""

    def __init__(self):
        self.hub = EventHub(StoreEvent)

    async def open(self):
        """Acquires any resources the store needs."""

    async def close(self):
        """Releases the store's resources."""

    @abstractmethod
    async def get_bikes(self) -> List[BikeSnapshot]:
        """Gets the whole fleet."""

    @abstractmethod
    async def get_size_ranges(self) -> List[HeightRange]:
        """Gets the configured height ranges."""

    @abstractmethod
    async def get_aggregate_usage(self, start: date, end: date) -> List[AggregateUsage]:
        """Gets the total booked bikes for each slot between the two dates (inclusive)."""

    @abstractmethod
    async def get_size_usage(self, start: date, end: date) -> List[SizeUsage]:
        """Gets the booked bikes per size for each slot between the two dates (inclusive)."""

    @abstractmethod
    async def get_commitments(self, start: date, end: date) -> List[BikeCommitment]:
        """Gets the bikes held by live bookings between the two dates (inclusive)."""

    @abstractmethod
    async def check_rate_limit(self, client_id: str) -> RateLimitDecision:
        """Checks whether the client may attempt another booking."""

    @abstractmethod
    async def record_attempt(self, client_id: str, successful: bool):
        """Adds a booking attempt to the client's ledger."""

    @abstractmethod
    async def create_booking(self, booking: NewBooking) -> str:
        """
        Writes a booking and its rider assignments.

        :raises BikeConflictError: If an assigned bike is already held in an overlapping slot.
        :raises StoreError: If the write fails.
        """

    @abstractmethod
    async def get_booking(self, booking_id: str) -> Optional[BookingRecord]:
        """Gets a single booking."""

    @abstractmethod
    async def update_booking_status(self, booking_id: str, status: BookingStatus) -> BookingRecord:
        """
        Sets the status of a booking.

        :raises BookingMissingError: If there is no such booking.
        """

    @abstractmethod
    async def validate_coupon(self, code: str) -> CouponQuote:
        """
        Looks up an unused coupon.

        :raises CouponNotFoundError: If there is no such coupon.
        :raises CouponUsedError: If the coupon was already redeemed.
        """

    @abstractmethod
    async def mark_coupon_used(self, code: str, booking_id: str):
        """
        Redeems a coupon against a booking.

        :raises CouponUsedError: If the coupon was already redeemed.
        """

    @abstractmethod
    async def set_bike_status(self, bike_ids: List[int], status: BikeStatus):
        """Sets the operational status of the given bikes."""


def usage_from_bookings(bookings: Iterable[BookingRecord]):
    """
    Summarizes live bookings into the three usage reads.

    Riders without an assigned size count towards the aggregate only.
    """
    aggregate = Counter()
    by_size = Counter()
    commitments = []

    for booking in bookings:
        if not booking.is_live:
            continue
        aggregate[(booking.date, booking.session)] += len(booking.riders)
        for rider in booking.riders:
            if rider.size is not None:
                by_size[(booking.date, booking.session, rider.size)] += 1
            if rider.bike_id is not None:
                commitments.append(BikeCommitment(booking.date, booking.session, rider.bike_id))

    return (
        [AggregateUsage(d, s, count) for (d, s), count in aggregate.items()],
        [SizeUsage(d, s, size, count) for (d, s, size), count in by_size.items()],
        commitments,
    )


def conflicting_bikes(booking: NewBooking, existing: Iterable[BookingRecord]) -> List[int]:
    """The bikes of a new booking that a live, overlapping booking already holds."""
    wanted = set(booking.bike_ids)
    taken = {
        rider.bike_id
        for other in existing if other.is_live and slots_overlap(booking.slot, other.slot)
        for rider in other.riders if rider.bike_id in wanted
    }
    return sorted(taken)


def decide_rate_limit(attempts: Iterable[datetime], now: datetime,
                      max_attempts: int, window: timedelta) -> RateLimitDecision:
    """A sliding window over the client's recent attempts."""
    recent = sorted(time for time in attempts if time > now - window)
    if len(recent) < max_attempts:
        return RateLimitDecision(True)

    # the window reopens once enough of the oldest attempts have aged out
    frees_at = recent[len(recent) - max_attempts] + window
    return RateLimitDecision(False, max(1, int((frees_at - now).total_seconds())))
