"""
Matching Service

Geospatial filter deciding which published trips can serve a passenger's
requested pickup and drop.
"""

from typing import Iterable, List, Optional

from ecoride.config import settings
from ecoride.models.location import Location
from ecoride.models.trip import Trip
from ecoride.utils.geo import (
    along_track_km,
    displacement_km,
    haversine_distance_km,
    is_on_route_corridor,
)

_FROM_SETTINGS = object()


class MatchingService:
    """
    Matching engine for passenger route requests.

    A trip matches when either test passes and the direction guard holds:
    1. Strict match - pickup near trip start AND drop near trip end
    2. Corridor match - both pickup and drop lie within the detour budget
       of the trip's route (mid-route boarding)
    3. Direction guard - rejects requests travelling against the trip:
       dist(pickup, end) < dist(drop, start) + tolerance, and the pickup ->
       drop leg moves backwards along the trip by at most
       min(max_backtrack_km, half the trip length). A max_backtrack_km of
       None leaves only the distance comparison.

    The engine is a pure filter: no I/O, no state, no ordering.
    """

    def __init__(
        self,
        corridor_multiplier: Optional[float] = None,
        direction_tolerance_km: Optional[float] = None,
        default_max_distance_km: Optional[float] = None,
        max_backtrack_km=_FROM_SETTINGS,
    ):
        self.CORRIDOR_MULTIPLIER = (
            settings.corridor_multiplier if corridor_multiplier is None else corridor_multiplier
        )
        self.DIRECTION_TOLERANCE_KM = (
            settings.direction_tolerance_km
            if direction_tolerance_km is None
            else direction_tolerance_km
        )
        self.DEFAULT_MAX_DISTANCE_KM = (
            settings.default_max_distance_km
            if default_max_distance_km is None
            else default_max_distance_km
        )
        self.MAX_BACKTRACK_KM: Optional[float] = (
            settings.max_backtrack_km
            if max_backtrack_km is _FROM_SETTINGS
            else max_backtrack_km
        )

    def evaluate(
        self,
        trip: Trip,
        pickup: Location,
        drop: Location,
        max_distance_km: Optional[float] = None,
    ) -> dict:
        """
        Score one trip against a request and return the breakdown.

        Returns dict with strict_match, corridor_match, forward_direction,
        distances and the final `matched` flag.
        """
        radius = self.DEFAULT_MAX_DISTANCE_KM if max_distance_km is None else max_distance_km

        start = trip.start_point.lat_lng
        end = trip.end_point.lat_lng
        pickup_pt = pickup.lat_lng
        drop_pt = drop.lat_lng

        dist_to_pickup = haversine_distance_km(*pickup_pt, *start)
        dist_to_drop = haversine_distance_km(*drop_pt, *end)
        strict_match = dist_to_pickup <= radius and dist_to_drop <= radius

        corridor_km = radius * self.CORRIDOR_MULTIPLIER
        pickup_on_way = is_on_route_corridor(start, end, pickup_pt, corridor_km)
        drop_on_way = is_on_route_corridor(start, end, drop_pt, corridor_km)
        corridor_match = pickup_on_way and drop_on_way

        # Passenger heading must not run against the trip
        passenger_direction = haversine_distance_km(*pickup_pt, *end)
        reverse_direction = haversine_distance_km(*drop_pt, *start)
        within_tolerance = passenger_direction < reverse_direction + self.DIRECTION_TOLERANCE_KM

        backtrack_km = max(0.0, -along_track_km(start, end, pickup_pt, drop_pt))
        within_backtrack = self._within_backtrack(start, end, backtrack_km)
        forward_direction = within_tolerance and within_backtrack

        return {
            "trip_id": trip.trip_id,
            "dist_to_pickup_km": dist_to_pickup,
            "dist_to_drop_km": dist_to_drop,
            "strict_match": strict_match,
            "corridor_match": corridor_match,
            "backtrack_km": backtrack_km,
            "within_tolerance": within_tolerance,
            "within_backtrack": within_backtrack,
            "forward_direction": forward_direction,
            "matched": (strict_match or corridor_match) and forward_direction,
        }

    def _within_backtrack(self, start, end, backtrack_km: float) -> bool:
        if self.MAX_BACKTRACK_KM is None:
            return True
        # An exact reversal backtracks the full trip length, so it never fits
        trip_east, trip_north = displacement_km(start, end)
        half_trip_km = (trip_east ** 2 + trip_north ** 2) ** 0.5 / 2
        return backtrack_km <= min(self.MAX_BACKTRACK_KM, half_trip_km)

    def match(
        self,
        trips: Iterable[Trip],
        pickup: Location,
        drop: Location,
        max_distance_km: Optional[float] = None,
    ) -> List[Trip]:
        """
        Return the trips usable for the request, in input order.

        Candidates are expected to be pre-filtered by the caller (OPEN, seats
        left, future departure). An empty candidate list yields an empty list.
        """
        return [
            trip for trip in trips
            if self.evaluate(trip, pickup, drop, max_distance_km)["matched"]
        ]
