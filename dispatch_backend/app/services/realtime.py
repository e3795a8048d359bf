"""
Real-time change feed over Redis pub/sub.

After a trip or driver write is committed, a small JSON notification is
published so dashboards can refresh. Publishing is best-effort: the
persisted record is the source of truth, so failures are logged and
swallowed.
"""

import json
import logging
from typing import Any, Dict, Optional

from redis.exceptions import RedisError

from dispatch_backend.app.core.config import settings
from dispatch_backend.app.models.driver import Driver
from dispatch_backend.app.models.trip import Trip

logger = logging.getLogger(__name__)

TRIPS_CHANNEL = "trips"
DRIVERS_CHANNEL = "drivers"


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def trip_change(trip: Trip) -> Dict[str, Any]:
    return {
        "kind": "trip",
        "id": trip.id,
        "status": trip.status.value,
        "driverId": trip.driver_id,
        "updatedAt": _iso(trip.updated_at),
    }


def driver_change(driver: Driver) -> Dict[str, Any]:
    return {
        "kind": "driver",
        "uid": driver.uid,
        "isOnline": driver.is_online,
        "lastLocation": driver.last_location,
        "updatedAt": _iso(driver.updated_at),
    }


async def publish_change(redis, channel: str, message: Dict[str, Any]) -> bool:
    """
    Publish a change notification.

    Returns:
        True if published, False if disabled or Redis is unavailable
    """
    if not settings.realtime_enabled or redis is None:
        return False

    try:
        await redis.publish(channel, json.dumps(message))
        return True
    except (RedisError, OSError) as e:
        logger.warning("Realtime publish to %s failed: %s", channel, e)
        return False


async def publish_trip_change(redis, trip: Trip) -> bool:
    return await publish_change(redis, TRIPS_CHANNEL, trip_change(trip))


async def publish_driver_change(redis, driver: Driver) -> bool:
    return await publish_change(redis, DRIVERS_CHANNEL, driver_change(driver))
