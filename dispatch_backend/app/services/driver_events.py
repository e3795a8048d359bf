"""
Driver event logging service.

Appends entries to the driver event log. The log is write-only and is
committed separately from the state change it describes.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from dispatch_backend.app.models.driver_event import DriverEvent
from dispatch_backend.app.models.enums import DriverEventType, TripStatus


async def log_driver_event(
    db: AsyncSession,
    event_type: DriverEventType,
    driver_id: str,
    payload: Optional[Dict[str, Any]] = None
) -> DriverEvent:
    """
    Append an event to the driver event log.

    Args:
        db: Database session
        event_type: LOCATION_PING or STATUS_CHANGE
        driver_id: Driver the event belongs to
        payload: Event details as JSON

    Returns:
        Created DriverEvent instance
    """
    event = DriverEvent(
        type=event_type,
        driver_id=driver_id,
        payload=payload or {},
        created_at=datetime.now(timezone.utc)
    )

    db.add(event)
    await db.commit()
    await db.refresh(event)

    return event


async def log_trip_transition(
    db: AsyncSession,
    driver_id: str,
    trip_id: str,
    from_status: TripStatus,
    to_status: TripStatus
) -> DriverEvent:
    """Record a trip status transition as a status_change event."""
    return await log_driver_event(
        db=db,
        event_type=DriverEventType.STATUS_CHANGE,
        driver_id=driver_id,
        payload={
            "tripId": trip_id,
            "from": from_status.value,
            "to": to_status.value
        }
    )
