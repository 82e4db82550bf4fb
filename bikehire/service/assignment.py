"""
Assignment
----------

Hands concrete bikes to riders. The engine is handed a snapshot of the fleet
and of the bikes already held by live bookings, and never writes anything:
callers pass in the bikes they already picked so that the same bike is never
given out twice.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Set, Collection

from bikehire.models.util import BikeSize, BikeStatus
from bikehire.service.sessions import overlapping_slots, contending_slots
from bikehire.service.sizing import SizeMap, FallbackPolicy
from bikehire.store.records import BikeSnapshot, BikeCommitment, Slot


class AssignmentEngine:

    def __init__(self, size_map: SizeMap, fleet: Iterable[BikeSnapshot],
                 commitments: Iterable[BikeCommitment], policy: FallbackPolicy = None):
        self.size_map = size_map
        self.policy = policy or FallbackPolicy()
        self._fleet: List[BikeSnapshot] = sorted(fleet, key=lambda bike: bike.id)
        self._committed: Dict[Slot, Set[int]] = defaultdict(set)
        for commitment in commitments:
            self._committed[commitment.slot].add(commitment.bike_id)

    def committed_bikes(self, slot: Slot, following: bool = True) -> Set[int]:
        """
        The bikes held by any booking that shares bikes with the slot.

        :param following: Whether the next day's bookings count against a daily slot.
        """
        slots = overlapping_slots(slot) if following else contending_slots(slot)
        return set().union(*(self._committed.get(other, set()) for other in slots))

    def free_bikes(self, slot: Slot, excluded_bike_ids: Collection[int] = (),
                   following: bool = True) -> Dict[BikeSize, List[BikeSnapshot]]:
        """The bikes that can still be handed out in the slot, grouped by size, lowest id first."""
        committed = self.committed_bikes(slot, following)
        free = defaultdict(list)
        for bike in self._fleet:
            if bike.status is not BikeStatus.AVAILABLE:
                continue
            if bike.id in excluded_bike_ids or bike.id in committed:
                continue
            free[bike.size].append(bike)
        return free

    def find_best_bike(self, height: float, slot: Slot,
                       excluded_bike_ids: Collection[int] = ()) -> Optional[BikeSnapshot]:
        """
        Picks the bike for a rider.

        Bikes of the ideal size are tried first, then the fallback sizes
        allowed by the policy, closest first. Within a size the lowest id
        wins.

        :param excluded_bike_ids: Bikes already given to other riders of the same booking.
        :return: The bike, or ``None`` if nothing suitable is free.
        """
        free = self.free_bikes(slot, excluded_bike_ids)
        for size in self.size_map.candidate_sizes(height, self.policy):
            if free.get(size):
                return free[size][0]
        return None

    def held_for_following_day(self, height: float, slot: Slot, excluded_bike_ids: Collection[int] = ()) -> bool:
        """
        Whether the only bikes that would fit the rider are free in the
        slot itself, but already booked for the day after a daily slot.
        """
        if self.find_best_bike(height, slot, excluded_bike_ids) is not None:
            return False
        free = self.free_bikes(slot, excluded_bike_ids, following=False)
        return any(free.get(size) for size in self.size_map.candidate_sizes(height, self.policy))
