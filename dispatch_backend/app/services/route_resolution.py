"""
Route resolution for trips.

Geocodes stops that arrive without coordinates and aggregates a multi-leg
directions result into a single polyline, distance and duration.
"""

import asyncio
from typing import Any, Dict, List, Sequence, Tuple

from dispatch_backend.app.core.exceptions import UpstreamServiceError
from dispatch_backend.app.schemas.trip import TripRouteResponse, TripStopInput
from dispatch_backend.app.services.maps_client import GoogleMapsClient


def order_stops(stops: Sequence[Any]) -> List[Any]:
    """Sort stops by sequence; ties keep their original order."""
    return sorted(stops, key=lambda stop: stop.sequence)


def split_route_stops(stops: Sequence[Any]) -> Tuple[Any, Any, List[Any]]:
    """
    Return (origin, destination, waypoints) for stops in sequence order.

    Waypoint order is preserved exactly, never re-optimized.
    """
    ordered = order_stops(stops)
    return ordered[0], ordered[-1], ordered[1:-1]


async def resolve_stop_coordinates(
    maps: GoogleMapsClient,
    stops: Sequence[TripStopInput],
) -> List[Tuple[float, float]]:
    """
    Return (lat, lng) for every stop, geocoding those missing either coordinate.

    Lookups run concurrently. The first geocoding failure propagates, so the
    caller persists nothing.
    """
    async def resolve(stop: TripStopInput) -> Tuple[float, float]:
        if stop.lat is not None and stop.lng is not None:
            return stop.lat, stop.lng
        return await maps.geocode(stop.address)

    return list(await asyncio.gather(*(resolve(stop) for stop in stops)))


def summarize_route(route: Dict[str, Any]) -> TripRouteResponse:
    """
    Sum distance and duration over every leg and keep the overview polyline verbatim.

    Raises:
        UpstreamServiceError: if a leg or the overview polyline is missing its values
    """
    distance_meters = 0
    duration_seconds = 0
    try:
        for leg in route.get("legs", []):
            distance_meters += leg["distance"]["value"]
            duration_seconds += leg["duration"]["value"]
        polyline = route["overview_polyline"]["points"]
    except (KeyError, TypeError) as e:
        raise UpstreamServiceError(f"Directions response malformed: {e!r}")

    return TripRouteResponse(
        polyline=polyline,
        distance_meters=distance_meters,
        duration_seconds=duration_seconds,
    )


async def compute_route(maps: GoogleMapsClient, stops: Sequence[Any]) -> TripRouteResponse:
    """
    Compute the driving route through stops in sequence order.

    Requires at least two stops; callers enforce that.
    """
    origin, destination, waypoints = split_route_stops(stops)
    route = await maps.directions(
        origin=(origin.lat, origin.lng),
        destination=(destination.lat, destination.lng),
        waypoints=[(wp.lat, wp.lng) for wp in waypoints],
    )
    return summarize_route(route)
