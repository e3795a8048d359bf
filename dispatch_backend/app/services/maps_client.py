"""
Google Maps web service client.

Thin async wrapper around the Geocoding and Directions JSON APIs. Every
failure is raised as UpstreamServiceError naming the operation and its
context. There is no retry and no caching.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from dispatch_backend.app.core.config import settings
from dispatch_backend.app.core.exceptions import UpstreamServiceError

logger = logging.getLogger(__name__)

LatLng = Tuple[float, float]


def _format_latlng(point: LatLng) -> str:
    return f"{point[0]},{point[1]}"


def _provider_failure(prefix: str, data: Dict[str, Any]) -> UpstreamServiceError:
    provider_status = data.get("status")
    message = f"{prefix}: {provider_status}"
    if data.get("error_message"):
        message += f" - {data['error_message']}"
    return UpstreamServiceError(message, provider_status=provider_status)


class GoogleMapsClient:
    """
    Geocoding and directions client.

    Args:
        api_key: Server key; a missing key fails the first call, not startup
        base_url: API root, e.g. https://maps.googleapis.com/maps/api
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (tests inject httpx.MockTransport)
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://maps.googleapis.com/maps/api",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.transport = transport

    async def _get_json(self, endpoint: str, params: Dict[str, str]) -> Dict[str, Any]:
        if not self.api_key:
            raise UpstreamServiceError("GOOGLE_MAPS_SERVER_KEY is not configured")

        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
        ) as client:
            response = await client.get(f"/{endpoint}/json", params={**params, "key": self.api_key})
            response.raise_for_status()
            return response.json()

    async def geocode(self, address: str) -> LatLng:
        """
        Resolve an address to (lat, lng) using the first geocoding result.

        Raises:
            UpstreamServiceError: on provider error status, zero results or transport failure
        """
        try:
            data = await self._get_json("geocode", {"address": address})
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Geocoding request failed for %r: %s", address, e)
            raise UpstreamServiceError(f'Geocoding request failed for "{address}": {e}')

        if data.get("status") != "OK" or not data.get("results"):
            logger.warning("Geocoding failed for %r: %s", address, data.get("status"))
            raise _provider_failure(f'Geocoding failed for "{address}"', data)

        location = data["results"][0]["geometry"]["location"]
        return float(location["lat"]), float(location["lng"])

    async def directions(
        self,
        origin: LatLng,
        destination: LatLng,
        waypoints: List[LatLng],
    ) -> Dict[str, Any]:
        """
        Request a driving route and return the first route candidate.

        Waypoints are passed in the given order; the provider is not asked
        to optimize them.

        Raises:
            UpstreamServiceError: on provider error status, zero routes or transport failure
        """
        params = {
            "origin": _format_latlng(origin),
            "destination": _format_latlng(destination),
            "mode": "driving",
        }
        if waypoints:
            params["waypoints"] = "|".join(_format_latlng(wp) for wp in waypoints)

        try:
            data = await self._get_json("directions", params)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Directions request failed: %s", e)
            raise UpstreamServiceError(f"Directions request failed: {e}")

        if data.get("status") != "OK":
            logger.warning("Directions API error: %s", data.get("status"))
            raise _provider_failure("Directions API error", data)

        routes = data.get("routes") or []
        if not routes:
            raise UpstreamServiceError("No route found from Directions API", provider_status="OK")

        return routes[0]


maps_client = GoogleMapsClient(
    api_key=settings.google_maps_server_key,
    base_url=settings.google_maps_base_url,
    timeout=settings.maps_request_timeout_seconds,
)


async def get_maps_client() -> GoogleMapsClient:
    """
    Get the maps client instance.

    Used as a FastAPI dependency so tests can override it.
    """
    return maps_client
