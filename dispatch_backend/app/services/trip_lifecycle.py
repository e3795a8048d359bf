"""
Trip lifecycle engine.

Owns trip creation, driver assignment, route computation and status
transitions:

    draft --assign--> assigned --start--> in_progress --complete--> completed

Drivers may only make the two forward moves on trips assigned to them.
Dispatchers and admins may set a trip to in_progress or completed from any
state. Every status write is a compare-and-swap on the status that was
read, so a concurrent writer surfaces as ConflictError instead of being
silently overwritten.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dispatch_backend.app.core.config import settings
from dispatch_backend.app.core.exceptions import (
    AuthorizationError,
    ConflictError,
    ResourceNotFoundError,
)
from dispatch_backend.app.core.guards import DISPATCH_ROLES, can_view_trip, trip_driver_scope
from dispatch_backend.app.models.enums import TripStatus, UserRole
from dispatch_backend.app.models.trip import Trip, generate_id
from dispatch_backend.app.models.trip_stop import TripStop
from dispatch_backend.app.schemas.auth import CallerContext
from dispatch_backend.app.schemas.trip import CreateTrip, TripRouteResponse
from dispatch_backend.app.services.driver_events import log_trip_transition
from dispatch_backend.app.services.maps_client import GoogleMapsClient
from dispatch_backend.app.services.route_resolution import compute_route, resolve_stop_coordinates

logger = logging.getLogger(__name__)

# Forward moves a driver may make on their own trip
DRIVER_TRANSITIONS = {
    TripStatus.ASSIGNED: TripStatus.IN_PROGRESS,
    TripStatus.IN_PROGRESS: TripStatus.COMPLETED,
}


def _require_dispatcher(caller: CallerContext) -> None:
    if caller.role not in DISPATCH_ROLES:
        raise AuthorizationError(
            f"Requires one of: {', '.join(r.value for r in DISPATCH_ROLES)}"
        )


async def get_trip(db: AsyncSession, trip_id: str) -> Trip:
    """
    Load a trip by id.

    Raises:
        ResourceNotFoundError: if the trip does not exist
    """
    result = await db.execute(select(Trip).where(Trip.id == trip_id))
    trip = result.scalar_one_or_none()

    if not trip:
        raise ResourceNotFoundError("Trip", trip_id)

    return trip


async def get_trip_stops(db: AsyncSession, trip_id: str) -> List[TripStop]:
    """Stops in stored order; consumers sort by sequence."""
    result = await db.execute(
        select(TripStop).where(TripStop.trip_id == trip_id).order_by(TripStop.position)
    )
    return list(result.scalars().all())


async def get_stops_for_trips(db: AsyncSession, trip_ids: Sequence[str]) -> Dict[str, List[TripStop]]:
    stops_by_trip: Dict[str, List[TripStop]] = {trip_id: [] for trip_id in trip_ids}
    if not trip_ids:
        return stops_by_trip

    result = await db.execute(
        select(TripStop)
        .where(TripStop.trip_id.in_(trip_ids))
        .order_by(TripStop.trip_id, TripStop.position)
    )
    for stop in result.scalars().all():
        stops_by_trip[stop.trip_id].append(stop)
    return stops_by_trip


async def get_visible_trip(db: AsyncSession, caller: CallerContext, trip_id: str) -> Trip:
    """
    Load a trip the caller is allowed to see.

    Raises:
        ResourceNotFoundError: if the trip does not exist
        AuthorizationError: if a driver requests a trip not assigned to them
    """
    trip = await get_trip(db, trip_id)
    if not can_view_trip(caller, trip.driver_id):
        raise AuthorizationError("Not your trip")
    return trip


async def create_trip(
    db: AsyncSession,
    maps: GoogleMapsClient,
    caller: CallerContext,
    data: CreateTrip
) -> Tuple[Trip, List[TripStop]]:
    """
    Create a DRAFT trip, geocoding stops that arrive without coordinates.

    All geocoding completes before anything is written; a single failure
    aborts the whole creation.
    """
    _require_dispatcher(caller)

    coordinates = await resolve_stop_coordinates(maps, data.stops)

    now = datetime.now(timezone.utc)
    trip = Trip(
        id=generate_id(),
        driver_id=None,
        created_by=caller.uid,
        status=TripStatus.DRAFT,
        created_at=now,
        updated_at=now
    )
    db.add(trip)

    stops = [
        TripStop(
            trip_id=trip.id,
            address=stop.address,
            lat=lat,
            lng=lng,
            sequence=stop.sequence,
            notes=stop.notes or "",
            position=position
        )
        for position, (stop, (lat, lng)) in enumerate(zip(data.stops, coordinates))
    ]
    db.add_all(stops)

    await db.commit()
    await db.refresh(trip)

    logger.info("Trip %s created by %s with %d stops", trip.id, caller.uid, len(stops))
    return trip, stops


async def list_trips(
    db: AsyncSession,
    caller: CallerContext,
    status: Optional[TripStatus] = None,
    driver_id: Optional[str] = None,
    limit: Optional[int] = None
) -> List[Trip]:
    """
    List trips newest first.

    Drivers are always scoped to their own trips; their driver_id filter
    is ignored. The limit is capped at the configured maximum.
    """
    if limit is None:
        limit = settings.trips_default_limit
    limit = min(limit, settings.trips_max_limit)

    query = select(Trip)

    scoped_driver_id = trip_driver_scope(caller, driver_id)
    if scoped_driver_id is not None:
        query = query.where(Trip.driver_id == scoped_driver_id)

    if status is not None:
        query = query.where(Trip.status == status)

    query = query.order_by(Trip.created_at.desc()).limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())


async def _compare_and_set_status(
    db: AsyncSession,
    trip: Trip,
    expected: TripStatus,
    **values
) -> Trip:
    """
    Write status (and other columns) only if the trip is still in ``expected``.

    Raises:
        ConflictError: if another writer changed the status first
    """
    result = await db.execute(
        update(Trip)
        .where(Trip.id == trip.id, Trip.status == expected)
        .values(updated_at=datetime.now(timezone.utc), **values)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        await db.rollback()
        raise ConflictError(
            f"Trip status changed concurrently; expected {expected.value}"
        )

    await db.commit()
    await db.refresh(trip)
    return trip


async def assign_trip(
    db: AsyncSession,
    caller: CallerContext,
    trip_id: str,
    driver_id: str
) -> Trip:
    """
    Assign a driver to a DRAFT trip (dispatcher/admin only).

    Raises:
        ResourceNotFoundError: if the trip does not exist
        ConflictError: if the trip is not DRAFT; the trip is left unchanged
    """
    _require_dispatcher(caller)

    trip = await get_trip(db, trip_id)

    if trip.status != TripStatus.DRAFT:
        raise ConflictError("Trip can only be assigned from draft status")

    trip = await _compare_and_set_status(
        db, trip, TripStatus.DRAFT,
        driver_id=driver_id,
        status=TripStatus.ASSIGNED
    )

    await log_trip_transition(db, driver_id, trip.id, TripStatus.DRAFT, TripStatus.ASSIGNED)

    logger.info("Trip %s assigned to driver %s by %s", trip.id, driver_id, caller.uid)
    return trip


async def update_trip_status(
    db: AsyncSession,
    caller: CallerContext,
    trip_id: str,
    new_status: TripStatus
) -> Trip:
    """
    Move a trip to IN_PROGRESS or COMPLETED.

    Drivers: only on their own trip, only assigned -> in_progress or
    in_progress -> completed. Dispatchers/admins: from any state.

    Raises:
        ResourceNotFoundError: if the trip does not exist
        AuthorizationError: if a driver acts on a trip not assigned to them
        ConflictError: if a driver's trip is still DRAFT or the move is out of order
    """
    if new_status not in (TripStatus.IN_PROGRESS, TripStatus.COMPLETED):
        raise ConflictError(f"Trip status cannot be set to {new_status.value}")

    trip = await get_trip(db, trip_id)
    from_status = trip.status

    if caller.role == UserRole.DRIVER:
        if trip.driver_id != caller.uid:
            raise AuthorizationError("Not your trip")
        if from_status == TripStatus.DRAFT:
            raise ConflictError("Trip must be assigned first")
        if DRIVER_TRANSITIONS.get(from_status) != new_status:
            raise ConflictError(
                f"Cannot move trip from {from_status.value} to {new_status.value}"
            )
    else:
        _require_dispatcher(caller)

    trip = await _compare_and_set_status(db, trip, from_status, status=new_status)

    await log_trip_transition(
        db, trip.driver_id or caller.uid, trip.id, from_status, new_status
    )

    logger.info(
        "Trip %s moved %s -> %s by %s (%s)",
        trip.id, from_status.value, new_status.value, caller.uid, caller.role.value
    )
    return trip


async def compute_trip_route(
    db: AsyncSession,
    maps: GoogleMapsClient,
    caller: CallerContext,
    trip_id: str
) -> Tuple[Trip, TripRouteResponse]:
    """
    Compute and store the driving route for a trip (dispatcher/admin only).

    Recomputation overwrites any previous route.

    Raises:
        ResourceNotFoundError: if the trip does not exist
        ConflictError: if the trip has fewer than two stops
        UpstreamServiceError: if the directions call fails
    """
    _require_dispatcher(caller)

    trip = await get_trip(db, trip_id)
    stops = await get_trip_stops(db, trip.id)

    if len(stops) < 2:
        raise ConflictError("Need at least 2 stops to compute route")

    route = await compute_route(maps, stops)

    trip.route_polyline = route.polyline
    trip.route_distance_meters = route.distance_meters
    trip.route_duration_seconds = route.duration_seconds
    trip.updated_at = datetime.now(timezone.utc)

    await db.commit()
    await db.refresh(trip)

    return trip, route
