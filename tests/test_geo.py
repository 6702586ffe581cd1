"""
Tests for geographic helpers

Haversine distance, detour corridor and along-track projection.
"""

import pytest

from ecoride.utils.geo import (
    along_track_km,
    haversine_distance_km,
    is_on_route_corridor,
    route_deviation_km,
)


POINTS = [
    (12.9716, 77.5946),
    (12.9352, 77.6245),
    (40.7128, -74.0060),
    (-33.8688, 151.2093),
    (0.0, 0.0),
    (89.9, 179.9),
]


class TestHaversine:
    """Tests for haversine_distance_km."""

    @pytest.mark.parametrize("a", POINTS)
    @pytest.mark.parametrize("b", POINTS)
    def test_symmetric(self, a, b):
        assert haversine_distance_km(*a, *b) == haversine_distance_km(*b, *a)

    def test_same_point_is_zero(self):
        assert haversine_distance_km(12.9716, 77.5946, 12.9716, 77.5946) == 0

    def test_known_distance(self):
        """One degree of latitude is about 111.2 km."""
        assert haversine_distance_km(0, 0, 1, 0) == pytest.approx(111.19, abs=0.01)

    def test_city_distance(self):
        """MG Road to Koramangala is roughly 5 km as the crow flies."""
        d = haversine_distance_km(12.9716, 77.5946, 12.9352, 77.6245)
        assert 4.5 < d < 6

    def test_triangle_inequality_approximately(self):
        a, b, c = POINTS[0], POINTS[1], POINTS[2]
        ab = haversine_distance_km(*a, *b)
        bc = haversine_distance_km(*b, *c)
        ac = haversine_distance_km(*a, *c)
        assert ac <= ab + bc + 1e-6


class TestCorridor:
    """Tests for the detour-budget corridor test."""

    @pytest.mark.parametrize("p", POINTS)
    def test_degenerate_point_is_on_corridor(self, p):
        assert is_on_route_corridor(p, p, p, 0) is True

    def test_degenerate_route_deviation_is_twice_distance(self):
        start = (12.9716, 77.5946)
        point = (12.9352, 77.6245)
        expected = 2 * haversine_distance_km(*start, *point)
        assert route_deviation_km(start, start, point) == pytest.approx(expected)

    def test_midpoint_is_on_corridor(self):
        start = (12.9716, 77.5946)
        end = (12.9352, 77.6245)
        mid = ((start[0] + end[0]) / 2, (start[1] + end[1]) / 2)
        assert is_on_route_corridor(start, end, mid, 0.5)

    def test_far_point_is_off_corridor(self):
        start = (12.9716, 77.5946)
        end = (12.9352, 77.6245)
        mysuru = (12.2958, 76.6394)
        assert not is_on_route_corridor(start, end, mysuru, 50)


class TestAlongTrack:
    """Tests for along_track_km."""

    def test_forward_leg_positive(self):
        assert along_track_km((0, 0), (0, 1), (0, 0.2), (0, 0.8)) > 0

    def test_backward_leg_negative(self):
        assert along_track_km((0, 0), (0, 1), (0, 1), (0, 0)) < 0

    def test_reversal_is_full_trip_length(self):
        trip_km = haversine_distance_km(0, 0, 0, 1)
        assert along_track_km((0, 0), (0, 1), (0, 1), (0, 0)) == pytest.approx(-trip_km, rel=1e-3)

    def test_perpendicular_leg_is_zero(self):
        assert along_track_km((0, 0), (0, 1), (0, 0.5), (0.3, 0.5)) == pytest.approx(0, abs=1e-9)

    def test_empty_trip_is_zero(self):
        assert along_track_km((0, 0), (0, 0), (0, 0.2), (0, 0.8)) == 0
