"""
A store backed by a relational database through tortoise. Anything tortoise
can connect to works, though only sqlite and postgres are tried.
"""

from datetime import date, datetime, timezone, timedelta
from functools import wraps
from typing import List, Optional, Callable
from uuid import UUID

from tortoise import Tortoise
from tortoise.exceptions import BaseORMException, DBConnectionError
from tortoise.transactions import in_transaction

from bikehire import logger, config
from bikehire.models import Bike, SizeRange, Booking, Rider, BookingAttempt, Coupon
from bikehire.models.util import BikeStatus, BookingStatus
from bikehire.store.base import (
    InventoryStore, StoreError, StoreUnavailableError, BikeConflictError, CouponNotFoundError,
    CouponUsedError, BookingMissingError, usage_from_bookings, conflicting_bikes, decide_rate_limit
)
from bikehire.store.records import (
    BikeSnapshot, HeightRange, AggregateUsage, SizeUsage, BikeCommitment, RateLimitDecision,
    CouponQuote, NewBooking, BookingRecord, RiderRecord
)


def _record(booking: Booking) -> BookingRecord:
    return BookingRecord(
        id=str(booking.id),
        date=booking.date,
        session=booking.session,
        status=booking.status,
        riders=[
            RiderRecord(rider.name, rider.height, rider.bike_id, rider.size, rider.id)
            for rider in sorted(booking.riders, key=lambda rider: rider.id)
        ],
        phone=booking.phone,
        email=booking.email,
        total_price=booking.total_price,
        coupon_code=booking.coupon_code,
        created_at=booking.created_at,
    )


def orm_errors(method):
    """Turns the errors raised by tortoise into store errors."""

    @wraps(method)
    async def wrapper(self, *args, **kwargs):
        try:
            return await method(self, *args, **kwargs)
        except (DBConnectionError, OSError) as e:
            raise StoreUnavailableError(f"Lost the connection to {self.db_uri}: {e}")
        except BaseORMException as e:
            raise StoreError(f"{method.__name__} failed: {e}")

    return wrapper


class DatabaseStore(InventoryStore):

    def __init__(self, db_uri: str, generate_schemas: bool = False,
                 clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
                 max_attempts: int = config.rate_limit_max_attempts,
                 window: timedelta = config.rate_limit_window):
        super().__init__()
        self.db_uri = db_uri
        self._generate_schemas = generate_schemas
        self._clock = clock
        self._max_attempts = max_attempts
        self._window = window

    async def open(self):
        try:
            await Tortoise.init(db_url=self.db_uri, modules={"models": ["bikehire.models"]})
            if self._generate_schemas:
                await Tortoise.generate_schemas(safe=True)
        except (BaseORMException, OSError) as e:
            raise StoreUnavailableError(f"Could not open {self.db_uri}: {e}")
        logger.info("Connected to %s", self.db_uri)

    async def close(self):
        await Tortoise.close_connections()

    async def _live_bookings(self, start: date, end: date) -> List[BookingRecord]:
        bookings = await Booking.filter(
            date__gte=start, date__lte=end
        ).exclude(
            status__in=BookingStatus.inactive_types()
        ).prefetch_related("riders")
        return [_record(booking) for booking in bookings]

    @orm_errors
    async def get_bikes(self) -> List[BikeSnapshot]:
        return [BikeSnapshot(bike.id, bike.size, bike.status) for bike in await Bike.all().order_by("id")]

    @orm_errors
    async def get_size_ranges(self) -> List[HeightRange]:
        return [
            HeightRange(size_range.size, size_range.min_height, size_range.max_height)
            for size_range in await SizeRange.all().order_by("min_height")
        ]

    @orm_errors
    async def get_aggregate_usage(self, start: date, end: date) -> List[AggregateUsage]:
        aggregate, _, _ = usage_from_bookings(await self._live_bookings(start, end))
        return aggregate

    @orm_errors
    async def get_size_usage(self, start: date, end: date) -> List[SizeUsage]:
        _, by_size, _ = usage_from_bookings(await self._live_bookings(start, end))
        return by_size

    @orm_errors
    async def get_commitments(self, start: date, end: date) -> List[BikeCommitment]:
        _, _, commitments = usage_from_bookings(await self._live_bookings(start, end))
        return commitments

    @orm_errors
    async def check_rate_limit(self, client_id: str) -> RateLimitDecision:
        now = self._clock()
        attempts = await BookingAttempt.filter(client_id=client_id, time__gt=now - self._window)
        times = [
            attempt.time if attempt.time.tzinfo else attempt.time.replace(tzinfo=timezone.utc) for attempt in attempts
        ]
        return decide_rate_limit(times, now, self._max_attempts, self._window)

    @orm_errors
    async def record_attempt(self, client_id: str, successful: bool):
        await BookingAttempt.create(client_id=client_id, time=self._clock(), successful=successful)

    async def create_booking(self, booking: NewBooking) -> str:
        """
        Checks for conflicting bikes and writes the booking inside one
        transaction, so a conflicting write leaves nothing behind.
        """
        start = booking.date - timedelta(days=1)
        end = booking.date + timedelta(days=1)

        try:
            async with in_transaction() as connection:
                existing = await self._live_bookings(start, end)
                taken = conflicting_bikes(booking, existing)
                if taken:
                    raise BikeConflictError(f"Bikes {taken} are already booked around {booking.slot}.", taken)

                created = await Booking.create(
                    date=booking.date,
                    session=booking.session,
                    status=booking.status,
                    total_price=booking.total_price,
                    phone=booking.phone,
                    email=booking.email,
                    coupon_code=booking.coupon_code,
                    client_id=booking.client_id,
                    using_db=connection,
                )
                for rider in booking.riders:
                    await Rider.create(
                        booking_id=created.id,
                        name=rider.name,
                        height=rider.height,
                        bike_id=rider.bike_id,
                        size=rider.size,
                        using_db=connection,
                    )
        except BaseORMException as e:
            raise StoreError(f"Could not write the booking: {e}")

        self.hub.changed("bookings")
        return str(created.id)

    async def _get(self, booking_id: str) -> Optional[Booking]:
        try:
            UUID(booking_id)
        except ValueError:
            return None
        return await Booking.get_or_none(id=booking_id).prefetch_related("riders")

    @orm_errors
    async def get_booking(self, booking_id: str) -> Optional[BookingRecord]:
        booking = await self._get(booking_id)
        return _record(booking) if booking is not None else None

    @orm_errors
    async def update_booking_status(self, booking_id: str, status: BookingStatus) -> BookingRecord:
        booking = await self._get(booking_id)
        if booking is None:
            raise BookingMissingError(f"No booking with id {booking_id}.")

        booking.status = status
        await booking.save(update_fields=["status"])
        self.hub.changed("bookings")
        return _record(booking)

    @orm_errors
    async def validate_coupon(self, code: str) -> CouponQuote:
        coupon = await Coupon.get_or_none(code=code)
        if coupon is None:
            raise CouponNotFoundError(f"No coupon {code}.")
        if coupon.is_used:
            raise CouponUsedError(f"Coupon {code} was already used.")
        return CouponQuote(coupon.code, coupon.discount, coupon.discount_type)

    @orm_errors
    async def mark_coupon_used(self, code: str, booking_id: str):
        updated = await Coupon.filter(code=code, used_at__isnull=True).update(
            used_at=self._clock(), used_by_booking_id=booking_id
        )
        if not updated:
            if not await Coupon.exists(code=code):
                raise CouponNotFoundError(f"No coupon {code}.")
            raise CouponUsedError(f"Coupon {code} was already used.")
        self.hub.changed("coupons")

    @orm_errors
    async def set_bike_status(self, bike_ids: List[int], status: BikeStatus):
        await Bike.filter(id__in=bike_ids).update(status=status)
        self.hub.changed("bikes")
