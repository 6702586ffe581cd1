"""
Geographic utility functions.

Pure distance helpers used by matching and routing. No I/O.
"""

from math import atan2, cos, radians, sin, sqrt

EARTH_RADIUS_KM = 6371.0


def haversine_distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points in kilometres (haversine).

    Args:
        lat1: Latitude of first point
        lon1: Longitude of first point
        lat2: Latitude of second point
        lon2: Longitude of second point

    Returns:
        Distance in kilometres
    """
    d_lat = radians(lat2 - lat1)
    d_lon = radians(lon2 - lon1)
    a = (
        sin(d_lat / 2) ** 2
        + cos(radians(lat1)) * cos(radians(lat2)) * sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * atan2(sqrt(a), sqrt(1 - a))


def route_deviation_km(
    start: tuple[float, float],
    end: tuple[float, float],
    point: tuple[float, float],
) -> float:
    """
    Extra distance added by routing start -> point -> end instead of start -> end.

    All tuples are (lat, lng). When start == end this is 2 * dist(start, point).
    """
    direct = haversine_distance_km(start[0], start[1], end[0], end[1])
    to_point = haversine_distance_km(start[0], start[1], point[0], point[1])
    from_point = haversine_distance_km(point[0], point[1], end[0], end[1])
    return (to_point + from_point) - direct


def displacement_km(
    origin: tuple[float, float],
    target: tuple[float, float],
) -> tuple[float, float]:
    """
    (east, north) offset from origin to target in kilometres.

    Equirectangular approximation around the mean latitude; good enough for
    comparing directions over city and regional distances.
    """
    mean_lat = radians((origin[0] + target[0]) / 2)
    d_lat = radians(target[0] - origin[0])
    d_lon = radians(target[1] - origin[1])
    return (EARTH_RADIUS_KM * d_lon * cos(mean_lat), EARTH_RADIUS_KM * d_lat)


def along_track_km(
    trip_start: tuple[float, float],
    trip_end: tuple[float, float],
    leg_start: tuple[float, float],
    leg_end: tuple[float, float],
) -> float:
    """
    Signed length of the leg projected onto the trip direction, in km.

    Negative when the leg travels against the trip. Zero when the trip has
    no length, since it then has no direction.
    """
    trip_east, trip_north = displacement_km(trip_start, trip_end)
    leg_east, leg_north = displacement_km(leg_start, leg_end)
    trip_length = sqrt(trip_east ** 2 + trip_north ** 2)
    if trip_length == 0:
        return 0.0
    return (trip_east * leg_east + trip_north * leg_north) / trip_length


def is_on_route_corridor(
    trip_start: tuple[float, float],
    trip_end: tuple[float, float],
    point: tuple[float, float],
    corridor_km: float,
) -> bool:
    """True if the detour through `point` costs at most `corridor_km`."""
    return route_deviation_km(trip_start, trip_end, point) <= corridor_km
