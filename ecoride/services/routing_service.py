"""
Routing Service

Distance, duration and encoded path between two coordinates. Providers are
tried in order (Google, then each OSRM server), each under its own timeout;
when all fail the route is estimated from straight-line distance.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional

import httpx
from geopy.distance import geodesic

from ecoride.config import settings
from ecoride.models.location import Location

logger = logging.getLogger(__name__)


class RoutingError(Exception):
    """Raised by a strategy that could not produce a route."""
    pass


@dataclass
class RouteInfo:
    """Route metadata returned by any provider."""
    distance_meters: int
    distance_label: str
    duration_seconds: int
    duration_label: str
    estimated: bool = False


def format_duration(seconds: float) -> str:
    """Human label: '25 min', '2 hr', '1 hr 5 min'."""
    total_min = round(seconds / 60)
    if total_min >= 60:
        hours, minutes = divmod(total_min, 60)
        return f"{hours} hr {minutes} min" if minutes > 0 else f"{hours} hr"
    return f"{total_min} min"


def format_distance(meters: float) -> str:
    return f"{meters / 1000:.1f} km"


# =============================================================================
# Strategies
# =============================================================================

class RoutingStrategy:
    """One provider. Subclasses raise RoutingError (or any error) on failure."""

    name = "base"

    async def route_info(
        self, client: httpx.AsyncClient, origin: Location, destination: Location
    ) -> RouteInfo:
        raise NotImplementedError

    async def encoded_path(
        self, client: httpx.AsyncClient, origin: Location, destination: Location
    ) -> str:
        raise NotImplementedError


class GoogleMapsStrategy(RoutingStrategy):
    """Google Distance Matrix (with live traffic) and Directions APIs."""

    name = "google"
    DISTANCE_URL = "https://maps.googleapis.com/maps/api/distancematrix/json"
    DIRECTIONS_URL = "https://maps.googleapis.com/maps/api/directions/json"

    def __init__(self, api_key: str):
        self.api_key = api_key

    @staticmethod
    def _latlng(point: Location) -> str:
        return f"{point.latitude},{point.longitude}"

    async def route_info(
        self, client: httpx.AsyncClient, origin: Location, destination: Location
    ) -> RouteInfo:
        response = await client.get(self.DISTANCE_URL, params={
            "origins": self._latlng(origin),
            "destinations": self._latlng(destination),
            "mode": "driving",
            "departure_time": "now",
            "traffic_model": "best_guess",
            "key": self.api_key,
        })
        response.raise_for_status()
        data = response.json()

        rows = data.get("rows") or [{}]
        element = (rows[0].get("elements") or [{}])[0]
        if data.get("status") != "OK" or element.get("status") != "OK":
            raise RoutingError(f"Google status {data.get('status')}/{element.get('status')}")

        # Prefer traffic-aware duration when present
        duration = element.get("duration_in_traffic") or element["duration"]
        return RouteInfo(
            distance_meters=element["distance"]["value"],
            distance_label=element["distance"]["text"],
            duration_seconds=duration["value"],
            duration_label=duration["text"],
        )

    async def encoded_path(
        self, client: httpx.AsyncClient, origin: Location, destination: Location
    ) -> str:
        response = await client.get(self.DIRECTIONS_URL, params={
            "origin": self._latlng(origin),
            "destination": self._latlng(destination),
            "mode": "driving",
            "alternatives": "false",
            "key": self.api_key,
        })
        response.raise_for_status()
        data = response.json()

        if data.get("status") != "OK" or not data.get("routes"):
            raise RoutingError(f"Google Directions status {data.get('status')}")
        return data["routes"][0]["overview_polyline"]["points"]


class OsrmStrategy(RoutingStrategy):
    """One public OSRM server."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/")
        self.name = f"osrm:{self.base_url}"

    async def _route(
        self,
        client: httpx.AsyncClient,
        origin: Location,
        destination: Location,
        params: dict,
    ) -> dict:
        url = (
            f"{self.base_url}/route/v1/driving/"
            f"{origin.longitude},{origin.latitude};"
            f"{destination.longitude},{destination.latitude}"
        )
        response = await client.get(url, params=params)
        response.raise_for_status()
        data = response.json()

        if data.get("code") != "Ok" or not data.get("routes"):
            raise RoutingError(f"OSRM code {data.get('code')}")
        return data["routes"][0]

    async def route_info(
        self, client: httpx.AsyncClient, origin: Location, destination: Location
    ) -> RouteInfo:
        route = await self._route(client, origin, destination, {"overview": "false"})
        distance = route["distance"]
        duration = route["duration"]
        return RouteInfo(
            distance_meters=round(distance),
            distance_label=format_distance(distance),
            duration_seconds=round(duration),
            duration_label=format_duration(duration),
        )

    async def encoded_path(
        self, client: httpx.AsyncClient, origin: Location, destination: Location
    ) -> str:
        route = await self._route(
            client, origin, destination, {"overview": "full", "geometries": "polyline"}
        )
        return route["geometry"]


# =============================================================================
# Service
# =============================================================================

class RoutingService:
    """
    Routing provider facade.

    Strategies are tried in order with a per-strategy timeout. Failures fall
    through to the next strategy and are logged, never raised.
    """

    def __init__(
        self,
        strategies: Optional[List[RoutingStrategy]] = None,
        timeout_seconds: Optional[float] = None,
        road_distance_factor: Optional[float] = None,
        fallback_speed_kmh: Optional[float] = None,
    ):
        if strategies is None:
            strategies = []
            if settings.google_maps_api_key:
                strategies.append(GoogleMapsStrategy(settings.google_maps_api_key))
            strategies.extend(OsrmStrategy(url) for url in settings.osrm_servers_list)

        self.strategies = strategies
        self.timeout_seconds = timeout_seconds or settings.routing_timeout_seconds
        self.road_distance_factor = road_distance_factor or settings.road_distance_factor
        self.fallback_speed_kmh = fallback_speed_kmh or settings.fallback_speed_kmh

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_seconds)

    def estimate_route(self, origin: Location, destination: Location) -> RouteInfo:
        """Straight-line distance times a road factor, at an average speed."""
        straight_m = geodesic(origin.lat_lng, destination.lat_lng).meters
        road_m = round(straight_m * self.road_distance_factor)
        duration_s = round(road_m / (self.fallback_speed_kmh * 1000 / 3600))
        return RouteInfo(
            distance_meters=road_m,
            distance_label=f"~{format_distance(road_m)}",
            duration_seconds=duration_s,
            duration_label=f"~{format_duration(duration_s)}",
            estimated=True,
        )

    async def get_route_info(self, origin: Location, destination: Location) -> RouteInfo:
        """Distance and duration; never raises, falls back to an estimate."""
        async with self._client() as client:
            for strategy in self.strategies:
                try:
                    return await asyncio.wait_for(
                        strategy.route_info(client, origin, destination),
                        timeout=self.timeout_seconds,
                    )
                except asyncio.TimeoutError:
                    logger.warning(f"[Routing] {strategy.name} timed out")
                except Exception as e:
                    logger.warning(f"[Routing] {strategy.name} failed: {e}")

        logger.warning("[Routing] All providers failed, using straight-line estimate")
        return self.estimate_route(origin, destination)

    async def get_encoded_path(self, origin: Location, destination: Location) -> Optional[str]:
        """Encoded polyline, or None when every provider fails."""
        async with self._client() as client:
            for strategy in self.strategies:
                try:
                    return await asyncio.wait_for(
                        strategy.encoded_path(client, origin, destination),
                        timeout=self.timeout_seconds,
                    )
                except asyncio.TimeoutError:
                    logger.warning(f"[Routing] {strategy.name} polyline timed out")
                except Exception as e:
                    logger.warning(f"[Routing] {strategy.name} polyline failed: {e}")

        return None

    async def preview_route(self, origin: Location, destination: Location) -> dict:
        """Labels and polyline for the trip creation preview."""
        info, polyline = await asyncio.gather(
            self.get_route_info(origin, destination),
            self.get_encoded_path(origin, destination),
        )
        return {
            "distance": info.distance_label,
            "duration": info.duration_label,
            "polyline": polyline or "",
        }
