import pytest

from bikehire.models.util import BikeSize
from bikehire.service.sizing import SizeMap, SizeMapConfigurationError, FallbackPolicy, DEFAULT_RANGES
from bikehire.store.records import HeightRange


class TestSizeMap:

    @pytest.mark.parametrize("height, size", [
        (120, BikeSize.XS),
        (139.9, BikeSize.XS),
        (140, BikeSize.S),
        (156, BikeSize.M),
        (170.5, BikeSize.M),
        (171, BikeSize.L),
        (186, BikeSize.XL),
        (210, BikeSize.XL),
    ])
    def test_size_for(self, size_map, height, size):
        """Assert that heights on a boundary belong to the upper range."""
        assert size_map.size_for(height) is size

    @pytest.mark.parametrize("height", [119.9, 210.1])
    def test_outside_domain(self, size_map, height):
        """Assert that heights outside the domain have no size."""
        with pytest.raises(ValueError):
            size_map.size_for(height)

    def test_ranges_sorted(self):
        """Assert that ranges may be given in any order."""
        size_map = SizeMap(reversed(DEFAULT_RANGES))
        assert size_map.size_for(125) is BikeSize.XS

    def test_gap(self):
        """Assert that a gap between ranges is a configuration error."""
        ranges = [HeightRange(BikeSize.S, 120, 150), HeightRange(BikeSize.M, 151, 210)]
        with pytest.raises(SizeMapConfigurationError):
            SizeMap(ranges)

    def test_overlap(self):
        """Assert that overlapping ranges are a configuration error."""
        ranges = [HeightRange(BikeSize.S, 120, 160), HeightRange(BikeSize.M, 150, 210)]
        with pytest.raises(SizeMapConfigurationError):
            SizeMap(ranges)

    def test_wrong_bounds(self):
        """Assert that the ranges must cover the whole domain."""
        with pytest.raises(SizeMapConfigurationError):
            SizeMap([HeightRange(BikeSize.M, 130, 210)])
        with pytest.raises(SizeMapConfigurationError):
            SizeMap([HeightRange(BikeSize.M, 120, 200)])

    def test_duplicate_size(self):
        ranges = [HeightRange(BikeSize.M, 120, 160), HeightRange(BikeSize.M, 160, 210)]
        with pytest.raises(SizeMapConfigurationError):
            SizeMap(ranges)

    def test_empty(self):
        with pytest.raises(SizeMapConfigurationError):
            SizeMap([])


class TestCandidateSizes:

    def test_fallback_order(self, size_map):
        """Assert that fallback sizes go one up, one down, then two up and two down."""
        policy = FallbackPolicy(max_distance=2, height_tolerance=None)
        assert size_map.candidate_sizes(165, policy) == [BikeSize.M, BikeSize.L, BikeSize.S, BikeSize.XL, BikeSize.XS]

    def test_distance_bound(self, size_map):
        """Assert that the search does not go further than the policy allows."""
        policy = FallbackPolicy(max_distance=1, height_tolerance=None)
        assert size_map.candidate_sizes(165, policy) == [BikeSize.M, BikeSize.L, BikeSize.S]

    def test_no_fallback(self, size_map):
        assert size_map.candidate_sizes(165, FallbackPolicy(max_distance=0)) == [BikeSize.M]

    def test_edges_of_the_chart(self, size_map):
        """Assert that there is nothing below the smallest size."""
        policy = FallbackPolicy(max_distance=2, height_tolerance=None)
        assert size_map.candidate_sizes(125, policy) == [BikeSize.XS, BikeSize.S, BikeSize.M]

    def test_height_tolerance(self, size_map):
        """Assert that sizes whose centre is too far from the rider's height are skipped."""
        # S is centred on 148, which is 11% away from 165
        policy = FallbackPolicy(max_distance=2, height_tolerance=0.1)
        assert size_map.candidate_sizes(165, policy) == [BikeSize.M, BikeSize.L]

    def test_default_policy(self, size_map):
        """Assert that the default policy allows two sizes either way within 30%."""
        assert size_map.candidate_sizes(165) == [BikeSize.M, BikeSize.L, BikeSize.S, BikeSize.XL, BikeSize.XS]
