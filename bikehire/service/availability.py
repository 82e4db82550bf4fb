"""
Availability
------------

Works out how many bikes of each size can still be sold for a slot.

Two reads feed into this. The aggregate read is trusted but blind to sizes,
while the per-size read can under-report, for example when the reader may not
see every booking. Any gap between the two is made of "ghost" bookings whose
size is unknown, and so they are taken from every size at once. The per-size
figures can then be pessimistic, but never promise a bike the aggregate says
is gone.

Responsibilities
================

- reconciling the two reads into per-size availability
- checking that a group of riders can be seated
- caching results until the store reports a change
"""

from collections import Counter
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from bikehire import logger, config
from bikehire.models.util import BikeSize, BikeStatus, SessionType
from bikehire.service.sessions import contending_slots
from bikehire.service.sizing import SizeMap, FallbackPolicy
from bikehire.store.base import InventoryStore, StoreEvent
from bikehire.store.records import Slot, AggregateUsage, SizeUsage, BikeSnapshot

OCCUPANCY_THRESHOLDS = {
    "low": 0.4,
    "medium": 0.8,
}


class OccupancyLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    FULL = "full"


def occupancy_level(booked: int, capacity: int) -> OccupancyLevel:
    """Buckets how full a slot is, for the booking calendar."""
    if capacity <= 0:
        return OccupancyLevel.FULL

    occupancy = booked / capacity
    if occupancy >= 1:
        return OccupancyLevel.FULL
    elif occupancy > OCCUPANCY_THRESHOLDS["medium"]:
        return OccupancyLevel.HIGH
    elif occupancy > OCCUPANCY_THRESHOLDS["low"]:
        return OccupancyLevel.MEDIUM
    else:
        return OccupancyLevel.LOW


def fleet_counts(bikes: Iterable[BikeSnapshot]) -> Dict[BikeSize, int]:
    """Counts the bikes of each size that are part of the bookable fleet."""
    counts = {size: 0 for size in BikeSize}
    for bike in bikes:
        if bike.status not in BikeStatus.out_of_fleet():
            counts[bike.size] += 1
    return counts


@dataclass(frozen=True)
class Reconciliation:
    slot: Slot
    total_usage: int
    detailed_usage: Dict[BikeSize, int]
    ghost: int
    available: Dict[BikeSize, int]
    capacity: int

    @property
    def remaining(self) -> int:
        """How many more riders the slot takes, ignoring sizes."""
        return max(0, self.capacity - self.total_usage)

    @property
    def occupancy(self) -> OccupancyLevel:
        return occupancy_level(self.total_usage, self.capacity)

    def serialize(self, size_map: SizeMap = None) -> Dict:
        sizes = []
        for size in BikeSize:
            entry = {
                "size": size,
                "available": self.available[size],
                "booked": self.detailed_usage[size],
            }
            height_range = size_map.range_for(size) if size_map is not None else None
            if height_range is not None:
                entry["min_height"] = height_range.min_height
                entry["max_height"] = height_range.max_height
            sizes.append(entry)

        return {
            "date": self.slot.date,
            "session": self.slot.session,
            "booked": self.total_usage,
            "unattributed": self.ghost,
            "capacity": self.capacity,
            "remaining": self.remaining,
            "occupancy": self.occupancy,
            "sizes": sizes,
        }


def reconcile(slot: Slot, aggregate: Iterable[AggregateUsage], size_usage: Iterable[SizeUsage],
              fleet: Dict[BikeSize, int], online_capacity: Optional[int] = None) -> Reconciliation:
    """
    Combines the aggregate and per-size reads for a slot.

    :param fleet: The number of bookable bikes of each size.
    :param online_capacity: An optional cap on the total bikes sold for the slot.
    """
    contenders = set(contending_slots(slot))

    total_usage = sum(row.booked_count for row in aggregate if row.slot in contenders)

    detailed_usage = {size: 0 for size in BikeSize}
    for row in size_usage:
        if row.slot in contenders:
            detailed_usage[row.size] += row.booked_count

    ghost = max(0, total_usage - sum(detailed_usage.values()))

    available = {
        size: max(0, fleet.get(size, 0) - detailed_usage[size] - ghost)
        for size in BikeSize
    }

    capacity = sum(fleet.values())
    if online_capacity is not None:
        capacity = min(capacity, online_capacity)

    return Reconciliation(slot, total_usage, detailed_usage, ghost, available, capacity)


def seat_riders(heights: Iterable[float], available: Dict[BikeSize, int],
                size_map: SizeMap, policy: FallbackPolicy = None) -> Tuple[bool, List[Optional[BikeSize]]]:
    """
    Dry-runs the assignment over counts instead of bikes, in rider order.

    :return: Whether every rider got a size, and the size each rider got.
    """
    remaining = Counter(available)
    seated = []

    for height in heights:
        size = next((s for s in size_map.candidate_sizes(height, policy) if remaining[s] > 0), None)
        if size is not None:
            remaining[size] -= 1
        seated.append(size)

    return all(size is not None for size in seated), seated


class AvailabilityCache:
    """
    Keeps the last reconciliation of each slot, and forgets all of them
    whenever the store reports that bookings or bikes changed. Values are
    recomputed on the next read, never eagerly.
    """

    def __init__(self, store: InventoryStore, online_capacity: Optional[int] = config.online_capacity):
        self._store = store
        self._online_capacity = online_capacity
        self._reconciliations: Dict[Slot, Reconciliation] = {}
        self._generation = 0
        """Bumped on every change, so a value computed across a change is not kept."""

        store.hub.subscribe(StoreEvent.changed, self.invalidate)

    def invalidate(self, table: str = None):
        if self._reconciliations:
            logger.debug("Availability invalidated by a change to %s", table)
        self._generation += 1
        self._reconciliations.clear()

    def is_cached(self, slot: Slot) -> bool:
        return slot in self._reconciliations

    async def get(self, slot: Slot) -> Reconciliation:
        """Gets the reconciliation for a slot, from the cache if it is still valid."""
        cached = self._reconciliations.get(slot)
        if cached is not None:
            return cached

        generation = self._generation
        reconciliation = await self.compute(slot)
        if generation == self._generation:
            self._reconciliations[slot] = reconciliation
        return reconciliation

    async def compute(self, slot: Slot) -> Reconciliation:
        """Reconciles the slot straight from the store, bypassing the cache."""
        start = slot.date - timedelta(days=1)
        bikes = await self._store.get_bikes()
        aggregate = await self._store.get_aggregate_usage(start, slot.date)
        size_usage = await self._store.get_size_usage(start, slot.date)
        return reconcile(slot, aggregate, size_usage, fleet_counts(bikes), self._online_capacity)

    async def calendar(self, start: date, end: date) -> List[Dict]:
        """The booked count, remaining bikes, and occupancy of every slot between two dates."""
        bikes = await self._store.get_bikes()
        fleet = fleet_counts(bikes)
        aggregate = await self._store.get_aggregate_usage(start - timedelta(days=1), end)
        size_usage = await self._store.get_size_usage(start - timedelta(days=1), end)

        days = []
        day = start
        while day <= end:
            sessions = {}
            for session in SessionType:
                reconciliation = reconcile(Slot(day, session), aggregate, size_usage, fleet, self._online_capacity)
                sessions[session.value] = {
                    "booked": reconciliation.total_usage,
                    "remaining": reconciliation.remaining,
                    "occupancy": reconciliation.occupancy,
                }
            days.append({"date": day, "sessions": sessions})
            day += timedelta(days=1)

        return days
