"""
Driver presence tracking.

Location pings merge the online flag and last position into the driver
record; going offline only clears the flag. Staleness is derived at read
time and never changes the stored online flag.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dispatch_backend.app.core.config import settings
from dispatch_backend.app.models.driver import Driver
from dispatch_backend.app.models.enums import DriverEventType
from dispatch_backend.app.models.user import User
from dispatch_backend.app.schemas.auth import CallerContext
from dispatch_backend.app.schemas.driver import LocationPing
from dispatch_backend.app.services.driver_events import log_driver_event


def is_driver_stale(
    updated_at: Optional[datetime],
    now: Optional[datetime] = None,
    threshold: Optional[timedelta] = None
) -> bool:
    """
    Check whether a driver's last update is older than the threshold.

    Naive timestamps (SQLite returns these) are treated as UTC.
    """
    if updated_at is None:
        return True
    if threshold is None:
        threshold = timedelta(seconds=settings.driver_stale_after_seconds)
    if now is None:
        now = datetime.now(timezone.utc)
    if updated_at.tzinfo is None:
        updated_at = updated_at.replace(tzinfo=timezone.utc)
    return now - updated_at > threshold


async def get_driver(db: AsyncSession, uid: str) -> Optional[Driver]:
    result = await db.execute(select(Driver).where(Driver.uid == uid))
    return result.scalar_one_or_none()


def new_driver_record(uid: str, now: datetime) -> Driver:
    """Initial record: offline, no location, zero speed and heading."""
    return Driver(
        uid=uid,
        is_online=False,
        last_lat=None,
        last_lng=None,
        last_speed_mps=0.0,
        last_heading=0.0,
        updated_at=now
    )


async def record_location_ping(
    db: AsyncSession,
    caller: CallerContext,
    ping: LocationPing
) -> Driver:
    """
    Merge a location ping into the caller's driver record.

    Only the presence fields are written; the record is created on the
    first ping if setup never initialized it.
    """
    now = datetime.now(timezone.utc)

    driver = await get_driver(db, caller.uid)
    if driver is None:
        driver = new_driver_record(caller.uid, now)
        db.add(driver)

    driver.is_online = True
    driver.last_lat = ping.lat
    driver.last_lng = ping.lng
    driver.last_speed_mps = ping.speed_mps
    driver.last_heading = ping.heading
    driver.updated_at = now

    await db.commit()
    await db.refresh(driver)

    await log_driver_event(
        db=db,
        event_type=DriverEventType.LOCATION_PING,
        driver_id=caller.uid,
        payload={
            "lat": ping.lat,
            "lng": ping.lng,
            "speedMps": ping.speed_mps,
            "heading": ping.heading
        }
    )

    return driver


async def go_offline(db: AsyncSession, caller: CallerContext) -> Driver:
    """Set the caller offline, leaving location, speed and heading untouched."""
    now = datetime.now(timezone.utc)

    driver = await get_driver(db, caller.uid)
    if driver is None:
        driver = new_driver_record(caller.uid, now)
        db.add(driver)

    driver.is_online = False
    driver.updated_at = now

    await db.commit()
    await db.refresh(driver)

    await log_driver_event(
        db=db,
        event_type=DriverEventType.STATUS_CHANGE,
        driver_id=caller.uid,
        payload={"status": "offline"}
    )

    return driver


async def list_active_drivers(db: AsyncSession) -> List[Driver]:
    result = await db.execute(
        select(Driver).where(Driver.is_online == True).order_by(Driver.uid)
    )
    return list(result.scalars().all())


async def list_drivers_with_profiles(db: AsyncSession) -> List[Tuple[Driver, Optional[User]]]:
    """All driver records, each paired with its profile when one exists."""
    result = await db.execute(
        select(Driver, User)
        .outerjoin(User, User.uid == Driver.uid)
        .order_by(Driver.uid)
    )
    return [(driver, user) for driver, user in result.all()]
