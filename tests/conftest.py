from datetime import datetime, timedelta, timezone
from itertools import count
from typing import Iterable, Optional
from uuid import uuid4

import pytest
from faker import Faker
from faker.providers import person, internet

from bikehire.app import build_app
from bikehire.models.util import BikeSize, BikeStatus, SessionType, BookingStatus
from bikehire.service.availability import AvailabilityCache
from bikehire.service.draft import BookingDraft, RiderDraft
from bikehire.service.manager.booking_manager import BookingManager
from bikehire.service.sessions import local_now
from bikehire.service.sizing import SizeMap
from bikehire.store.database import DatabaseStore
from bikehire.store.memory import MemoryStore
from bikehire.store.records import BookingRecord, RiderRecord

fake = Faker()
fake.add_provider(person)
fake.add_provider(internet)

HEIGHTS = {
    BikeSize.XS: 130,
    BikeSize.S: 150,
    BikeSize.M: 165,
    BikeSize.L: 180,
    BikeSize.XL: 195,
}
"""A height in the middle of each default size range."""


class Clock:
    """A clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def random_phone() -> str:
    return "05" + fake.numerify("########")


@pytest.fixture
def clock() -> Clock:
    return Clock(datetime.now(timezone.utc))


@pytest.fixture
def booking_day():
    """A day far enough ahead that every session is open."""
    return local_now().date() + timedelta(days=7)


@pytest.fixture
def size_map() -> SizeMap:
    return SizeMap()


@pytest.fixture
def memory_store(clock) -> MemoryStore:
    return MemoryStore(clock=clock)


@pytest.fixture
def fleet_factory(memory_store):
    """Adds bikes to the memory store, given a count for each size."""

    def add_fleet(**sizes: int):
        return [
            memory_store.add_bike(BikeSize(size))
            for size, amount in sizes.items()
            for _ in range(amount)
        ]

    return add_fleet


@pytest.fixture
def draft_factory(booking_day):
    def create_draft(heights: Iterable[float] = (HEIGHTS[BikeSize.M],), day=None,
                     session: SessionType = SessionType.MORNING, coupon_code: Optional[str] = None) -> BookingDraft:
        return BookingDraft(
            date=day or booking_day,
            session=session,
            riders=[RiderDraft(fake.first_name(), height) for height in heights],
            phone=random_phone(),
            email=fake.email(),
            coupon_code=coupon_code,
        )

    return create_draft


@pytest.fixture
def booking_record_factory(booking_day):
    """Builds stored bookings directly, skipping the submission flow."""
    rider_ids = count(1)

    def create_record(riders: Iterable, day=None, session: SessionType = SessionType.MORNING,
                      status: BookingStatus = BookingStatus.CONFIRMED, phone: str = None) -> BookingRecord:
        return BookingRecord(
            id=str(uuid4()),
            date=day or booking_day,
            session=session,
            status=status,
            riders=[
                RiderRecord(fake.first_name(), HEIGHTS[bike.size], bike.id, bike.size, next(rider_ids))
                for bike in riders
            ],
            phone=phone or random_phone(),
            email=fake.email(),
        )

    return create_record


@pytest.fixture
def availability_cache(memory_store) -> AvailabilityCache:
    return AvailabilityCache(memory_store, online_capacity=None)


@pytest.fixture
def booking_manager(memory_store, availability_cache, clock) -> BookingManager:
    return BookingManager(memory_store, availability_cache, cooldown=timedelta(0), size_map=SizeMap(), clock=clock)


@pytest.fixture
async def database_store(clock):
    store = DatabaseStore("sqlite://:memory:", generate_schemas=True, clock=clock)
    await store.open()
    yield store
    await store.close()


@pytest.fixture
async def client(aiohttp_client, memory_store, clock):
    app = build_app(memory_store, cooldown=timedelta(0), clock=clock)
    return await aiohttp_client(app)
