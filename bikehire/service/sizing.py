"""
Sizing
------

Maps rider heights onto bike sizes. The height ranges must partition
``[MIN_HEIGHT, MAX_HEIGHT]``: each range holds its lower bound but not its
upper bound, so a height on the edge between two sizes always gets the larger
one. The last range also holds ``MAX_HEIGHT`` itself.

When the ideal size is sold out, a rider may be offered a neighbouring size.
How far the search may stray is set by a :class:`FallbackPolicy`.
"""

from dataclasses import dataclass
from typing import List, Iterable, Optional, Dict

from bikehire import config
from bikehire.models.util import BikeSize
from bikehire.store.records import HeightRange

MIN_HEIGHT = 120
MAX_HEIGHT = 210

DEFAULT_RANGES = [
    HeightRange(BikeSize.XS, 120, 140),
    HeightRange(BikeSize.S, 140, 156),
    HeightRange(BikeSize.M, 156, 171),
    HeightRange(BikeSize.L, 171, 186),
    HeightRange(BikeSize.XL, 186, 210),
]


class SizeMapConfigurationError(Exception):
    """Raised when the height ranges do not partition the height domain."""


@dataclass(frozen=True)
class FallbackPolicy:
    max_distance: int = config.size_fallback_distance
    """How many sizes away from the ideal one the search may go."""

    height_tolerance: Optional[float] = config.size_height_tolerance
    """
    The largest relative distance between the rider's height and the centre
    of a fallback size's range. ``None`` only bounds the search by distance.
    """


class SizeMap:

    def __init__(self, ranges: Iterable[HeightRange] = None,
                 min_height: float = MIN_HEIGHT, max_height: float = MAX_HEIGHT):
        """
        :raises SizeMapConfigurationError: If the ranges leave gaps, overlap, or miss the domain.
        """
        self.min_height = min_height
        self.max_height = max_height
        self.ranges: List[HeightRange] = sorted(
            ranges if ranges is not None else DEFAULT_RANGES, key=lambda r: r.min_height
        )
        self._by_size: Dict[BikeSize, HeightRange] = {}
        self._validate()

    def _validate(self):
        if not self.ranges:
            raise SizeMapConfigurationError("No height ranges configured.")

        if self.ranges[0].min_height != self.min_height:
            raise SizeMapConfigurationError(
                f"Height ranges start at {self.ranges[0].min_height}, not {self.min_height}."
            )
        if self.ranges[-1].max_height != self.max_height:
            raise SizeMapConfigurationError(
                f"Height ranges end at {self.ranges[-1].max_height}, not {self.max_height}."
            )

        for lower, upper in zip(self.ranges, self.ranges[1:]):
            if lower.max_height < upper.min_height:
                raise SizeMapConfigurationError(f"Gap between {lower.size.value} and {upper.size.value}.")
            if lower.max_height > upper.min_height:
                raise SizeMapConfigurationError(f"{lower.size.value} overlaps {upper.size.value}.")

        for height_range in self.ranges:
            if height_range.min_height >= height_range.max_height:
                raise SizeMapConfigurationError(f"Range for {height_range.size.value} is empty.")
            if height_range.size in self._by_size:
                raise SizeMapConfigurationError(f"{height_range.size.value} has more than one range.")
            self._by_size[height_range.size] = height_range

    def __contains__(self, height: float) -> bool:
        return self.min_height <= height <= self.max_height

    def size_for(self, height: float) -> BikeSize:
        """
        Gets the ideal size for a rider.

        :raises ValueError: If the height is outside of the domain.
        """
        if height not in self:
            raise ValueError(f"Height {height} is outside of {self.min_height}-{self.max_height}.")

        for height_range in self.ranges:
            if height_range.min_height <= height < height_range.max_height:
                return height_range.size

        return self.ranges[-1].size

    def range_for(self, size: BikeSize) -> Optional[HeightRange]:
        return self._by_size.get(size)

    def within_tolerance(self, height: float, size: BikeSize, tolerance: Optional[float]) -> bool:
        if tolerance is None:
            return True
        height_range = self.range_for(size)
        if height_range is None:
            return False
        return abs(height - height_range.centre) / height_range.centre <= tolerance

    def candidate_sizes(self, height: float, policy: FallbackPolicy = None) -> List[BikeSize]:
        """
        The sizes a rider may ride, best first: the ideal size, then
        one size up, one size down, two up, and so on.
        """
        policy = policy or FallbackPolicy()
        ideal = self.size_for(height)
        sizes = BikeSize.ordered()
        candidates = [ideal]

        for distance in range(1, policy.max_distance + 1):
            for index in (ideal.ordinal + distance, ideal.ordinal - distance):
                if 0 <= index < len(sizes) and self.within_tolerance(height, sizes[index], policy.height_tolerance):
                    candidates.append(sizes[index])

        return candidates
