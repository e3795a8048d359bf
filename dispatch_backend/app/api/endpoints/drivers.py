"""
Driver Presence API Endpoints.

Drivers report their GPS position and go offline; dispatchers and admins
list the fleet.
"""

from datetime import datetime, timezone
from typing import List, Optional
from fastapi import APIRouter, Depends, Body
from sqlalchemy.ext.asyncio import AsyncSession

from dispatch_backend.app.db.session import get_db
from dispatch_backend.app.core.guards import require_role, DISPATCH_ROLES
from dispatch_backend.app.core.redis_client import get_redis
from dispatch_backend.app.models.driver import Driver
from dispatch_backend.app.models.enums import UserRole
from dispatch_backend.app.models.user import User
from dispatch_backend.app.schemas.auth import CallerContext
from dispatch_backend.app.schemas.driver import (
    LocationPing, LocationPingResponse, OfflineResponse,
    DriverResponse, DriverWithProfileResponse
)
from dispatch_backend.app.services import presence
from dispatch_backend.app.services.realtime import publish_driver_change

router = APIRouter(prefix="/drivers", tags=["Drivers"])


def _driver_fields(driver: Driver, now: datetime) -> dict:
    return {
        "uid": driver.uid,
        "is_online": driver.is_online,
        "last_location": driver.last_location,
        "last_speed_mps": driver.last_speed_mps,
        "last_heading": driver.last_heading,
        "updated_at": driver.updated_at,
        "is_stale": presence.is_driver_stale(driver.updated_at, now),
    }


def driver_response(driver: Driver, now: datetime) -> DriverResponse:
    return DriverResponse(**_driver_fields(driver, now))


def driver_with_profile_response(
    driver: Driver,
    user: Optional[User],
    now: datetime
) -> DriverWithProfileResponse:
    return DriverWithProfileResponse(
        **_driver_fields(driver, now),
        name=(user.name if user else None) or "Unknown",
        email=(user.email if user else None) or ""
    )


@router.post("/location", response_model=LocationPingResponse)
async def post_location(
    ping: LocationPing = Body(...),
    caller: CallerContext = Depends(require_role([UserRole.DRIVER])),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    """
    Record the driver's current GPS position (Driver only).

    Marks the driver online and merges location, speed and heading.
    """
    driver = await presence.record_location_ping(db, caller, ping)
    await publish_driver_change(redis, driver)

    return LocationPingResponse(updated_at=driver.updated_at)


@router.post("/offline", response_model=OfflineResponse)
async def post_offline(
    caller: CallerContext = Depends(require_role([UserRole.DRIVER])),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    """Set the driver offline (Driver only). Last location is kept."""
    driver = await presence.go_offline(db, caller)
    await publish_driver_change(redis, driver)

    return OfflineResponse()


@router.get("/active", response_model=List[DriverResponse])
async def list_active_drivers(
    caller: CallerContext = Depends(require_role(DISPATCH_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """List online drivers with their last known position (Dispatcher/Admin only)."""
    now = datetime.now(timezone.utc)
    drivers = await presence.list_active_drivers(db)
    return [driver_response(driver, now) for driver in drivers]


@router.get("", response_model=List[DriverWithProfileResponse])
async def list_drivers(
    caller: CallerContext = Depends(require_role(DISPATCH_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """
    List all drivers joined with their profile name and email (Dispatcher/Admin only).

    Used for assignment dropdowns.
    """
    now = datetime.now(timezone.utc)
    rows = await presence.list_drivers_with_profiles(db)
    return [driver_with_profile_response(driver, user, now) for driver, user in rows]
