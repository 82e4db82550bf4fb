"""
Provides a simple in-memory implementation of the store,
for development, testing, and mocking purposes.
"""

from collections import defaultdict
from datetime import date, datetime, timezone, timedelta
from typing import Dict, List, Optional, Iterable, Set, Callable
from uuid import uuid4

from bikehire import config
from bikehire.models.util import BikeSize, BikeStatus, BookingStatus, DiscountType
from bikehire.store.base import (
    InventoryStore, BikeConflictError, CouponNotFoundError, CouponUsedError, BookingMissingError,
    usage_from_bookings, conflicting_bikes, decide_rate_limit
)
from bikehire.store.records import (
    BikeSnapshot, HeightRange, AggregateUsage, SizeUsage, BikeCommitment, RateLimitDecision,
    CouponQuote, NewBooking, BookingRecord, RiderRecord
)


class MemoryStore(InventoryStore):
    """
    Emulates the store by doing all the operations in memory.

    Bookings added with ``sized=False`` count towards the aggregate read but
    are hidden from the per-size read, the way a reader that cannot see every
    booking would report them.
    """

    def __init__(self, bikes: Iterable[BikeSnapshot] = (), size_ranges: Iterable[HeightRange] = (),
                 clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
                 max_attempts: int = config.rate_limit_max_attempts,
                 window: timedelta = config.rate_limit_window):
        super().__init__()
        self.bikes: Dict[int, BikeSnapshot] = {bike.id: bike for bike in bikes}
        self.size_ranges: List[HeightRange] = list(size_ranges)
        self.bookings: Dict[str, BookingRecord] = {}
        self.coupons: Dict[str, Dict] = {}
        self.attempts: Dict[str, List[datetime]] = defaultdict(list)
        self.attempt_outcomes: Dict[str, List[bool]] = defaultdict(list)
        self._unsized: Set[str] = set()
        self._clock = clock
        self._max_attempts = max_attempts
        self._window = window

    def add_bike(self, size: BikeSize, status: BikeStatus = BikeStatus.AVAILABLE) -> BikeSnapshot:
        next_key = max(self.bikes.keys()) + 1 if self.bikes else 1
        bike = BikeSnapshot(next_key, size, status)
        self.bikes[next_key] = bike
        self.hub.changed("bikes")
        return bike

    def add_coupon(self, code: str, discount: float, discount_type: DiscountType = DiscountType.PERCENT):
        self.coupons[code] = {
            "quote": CouponQuote(code, discount, discount_type),
            "used_at": None,
            "used_by_booking_id": None,
        }

    def add_booking(self, booking: BookingRecord, sized: bool = True) -> BookingRecord:
        """Stores a booking as-is, without any conflict checks."""
        self.bookings[booking.id] = booking
        if not sized:
            self._unsized.add(booking.id)
        self.hub.changed("bookings")
        return booking

    def _in_range(self, start: date, end: date) -> List[BookingRecord]:
        return [booking for booking in self.bookings.values() if start <= booking.date <= end]

    async def get_bikes(self) -> List[BikeSnapshot]:
        return sorted(self.bikes.values(), key=lambda bike: bike.id)

    async def get_size_ranges(self) -> List[HeightRange]:
        return list(self.size_ranges)

    async def get_aggregate_usage(self, start: date, end: date) -> List[AggregateUsage]:
        aggregate, _, _ = usage_from_bookings(self._in_range(start, end))
        return aggregate

    async def get_size_usage(self, start: date, end: date) -> List[SizeUsage]:
        visible = [booking for booking in self._in_range(start, end) if booking.id not in self._unsized]
        _, by_size, _ = usage_from_bookings(visible)
        return by_size

    async def get_commitments(self, start: date, end: date) -> List[BikeCommitment]:
        _, _, commitments = usage_from_bookings(self._in_range(start, end))
        return commitments

    async def check_rate_limit(self, client_id: str) -> RateLimitDecision:
        return decide_rate_limit(self.attempts[client_id], self._clock(), self._max_attempts, self._window)

    async def record_attempt(self, client_id: str, successful: bool):
        self.attempts[client_id].append(self._clock())
        self.attempt_outcomes[client_id].append(successful)

    async def create_booking(self, booking: NewBooking) -> str:
        taken = conflicting_bikes(booking, self.bookings.values())
        if taken:
            raise BikeConflictError(f"Bikes {taken} are already booked around {booking.slot}.", taken)

        booking_id = str(uuid4())
        self.bookings[booking_id] = BookingRecord(
            id=booking_id,
            date=booking.date,
            session=booking.session,
            status=booking.status,
            riders=[
                RiderRecord(rider.name, rider.height, rider.bike_id, rider.size, index)
                for index, rider in enumerate(booking.riders, start=1)
            ],
            phone=booking.phone,
            email=booking.email,
            total_price=booking.total_price,
            coupon_code=booking.coupon_code,
            created_at=self._clock(),
        )
        self.hub.changed("bookings")
        return booking_id

    async def get_booking(self, booking_id: str) -> Optional[BookingRecord]:
        return self.bookings.get(booking_id)

    async def update_booking_status(self, booking_id: str, status: BookingStatus) -> BookingRecord:
        if booking_id not in self.bookings:
            raise BookingMissingError(f"No booking with id {booking_id}.")
        self.bookings[booking_id].status = status
        self.hub.changed("bookings")
        return self.bookings[booking_id]

    async def validate_coupon(self, code: str) -> CouponQuote:
        if code not in self.coupons:
            raise CouponNotFoundError(f"No coupon {code}.")
        if self.coupons[code]["used_at"] is not None:
            raise CouponUsedError(f"Coupon {code} was already used.")
        return self.coupons[code]["quote"]

    async def mark_coupon_used(self, code: str, booking_id: str):
        await self.validate_coupon(code)
        self.coupons[code]["used_at"] = self._clock()
        self.coupons[code]["used_by_booking_id"] = booking_id
        self.hub.changed("coupons")

    async def set_bike_status(self, bike_ids: List[int], status: BikeStatus):
        for bike_id in bike_ids:
            bike = self.bikes[bike_id]
            self.bikes[bike_id] = BikeSnapshot(bike.id, bike.size, status)
        self.hub.changed("bikes")
