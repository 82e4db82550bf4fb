"""
Records
-------

The plain values exchanged with a store. They are snapshots: the engine never
mutates them, it only reads them and asks the store to write new ones.
"""

from dataclasses import dataclass, field, asdict
from datetime import date, datetime, timezone
from typing import Optional, List, Dict, Any

from bikehire.models.util import BikeSize, BikeStatus, SessionType, BookingStatus, DiscountType


@dataclass(frozen=True)
class Slot:
    """A date and session pair, contested by every booking that overlaps it."""
    date: date
    session: SessionType

    def __str__(self):
        return f"{self.date.isoformat()} {self.session.value}"


@dataclass(frozen=True)
class BikeSnapshot:
    id: int
    size: BikeSize
    status: BikeStatus


@dataclass(frozen=True)
class HeightRange:
    size: BikeSize
    min_height: float
    max_height: float

    @property
    def centre(self) -> float:
        return (self.min_height + self.max_height) / 2


@dataclass(frozen=True)
class AggregateUsage:
    """The trusted, size-blind number of booked bikes in a slot."""
    date: date
    session: SessionType
    booked_count: int

    @property
    def slot(self) -> Slot:
        return Slot(self.date, self.session)


@dataclass(frozen=True)
class SizeUsage:
    """The booked bikes of one size in a slot, as far as the reader can see."""
    date: date
    session: SessionType
    size: BikeSize
    booked_count: int

    @property
    def slot(self) -> Slot:
        return Slot(self.date, self.session)


@dataclass(frozen=True)
class BikeCommitment:
    """A bike held by a rider of a live booking."""
    date: date
    session: SessionType
    bike_id: int

    @property
    def slot(self) -> Slot:
        return Slot(self.date, self.session)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after_seconds: int = 0


@dataclass(frozen=True)
class CouponQuote:
    code: str
    discount: float
    discount_type: DiscountType


@dataclass
class RiderRecord:
    name: str
    height: float
    bike_id: Optional[int] = None
    size: Optional[BikeSize] = None
    id: Optional[int] = None


@dataclass
class NewBooking:
    """Everything a store needs to write a booking in one go."""
    date: date
    session: SessionType
    riders: List[RiderRecord]
    phone: str
    email: str
    total_price: float = 0
    status: BookingStatus = BookingStatus.CONFIRMED
    coupon_code: Optional[str] = None
    client_id: Optional[str] = None

    @property
    def slot(self) -> Slot:
        return Slot(self.date, self.session)

    @property
    def bike_ids(self) -> List[int]:
        return [rider.bike_id for rider in self.riders if rider.bike_id is not None]


@dataclass
class BookingRecord:
    id: str
    date: date
    session: SessionType
    status: BookingStatus
    riders: List[RiderRecord]
    phone: str
    email: str
    total_price: float = 0
    coupon_code: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def slot(self) -> Slot:
        return Slot(self.date, self.session)

    @property
    def is_live(self) -> bool:
        return self.status not in BookingStatus.inactive_types()

    def serialize(self) -> Dict[str, Any]:
        data = asdict(self)
        data["riders"] = [
            {key: value for key, value in asdict(rider).items() if value is not None}
            for rider in self.riders
        ]
        return data
