"""
Trip API Endpoints.

Dispatchers create, route and assign trips; drivers move their own trips
forward. Business rules live in the trip lifecycle service.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Path, Query, Body, status
from sqlalchemy.ext.asyncio import AsyncSession

from dispatch_backend.app.db.session import get_db
from dispatch_backend.app.core.config import settings
from dispatch_backend.app.core.dependencies import get_current_user
from dispatch_backend.app.core.exceptions import ResourceNotFoundError
from dispatch_backend.app.core.guards import require_role, DISPATCH_ROLES
from dispatch_backend.app.core.redis_client import get_redis
from dispatch_backend.app.models.enums import TripStatus
from dispatch_backend.app.models.trip import Trip
from dispatch_backend.app.models.trip_stop import TripStop
from dispatch_backend.app.schemas.auth import CallerContext
from dispatch_backend.app.schemas.trip import (
    CreateTrip, AssignTrip, UpdateTripStatus,
    TripResponse, TripStopResponse, TripRouteResponse,
    AssignTripResponse, ComputeRouteResponse, TripStatusResponse, RoutePoint
)
from dispatch_backend.app.services import trip_lifecycle
from dispatch_backend.app.services.maps_client import GoogleMapsClient, get_maps_client
from dispatch_backend.app.services.polyline import decode_polyline
from dispatch_backend.app.services.realtime import publish_trip_change

router = APIRouter(prefix="/trips", tags=["Trips"])


def trip_response(trip: Trip, stops: List[TripStop]) -> TripResponse:
    route = trip.route
    return TripResponse(
        id=trip.id,
        driver_id=trip.driver_id,
        created_by=trip.created_by,
        status=trip.status.value,
        stops=[
            TripStopResponse(
                stop_id=stop.id,
                address=stop.address,
                lat=stop.lat,
                lng=stop.lng,
                sequence=stop.sequence,
                notes=stop.notes
            )
            for stop in stops
        ],
        route=TripRouteResponse(**route) if route else None,
        created_at=trip.created_at,
        updated_at=trip.updated_at
    )


@router.post("", status_code=status.HTTP_201_CREATED, response_model=TripResponse)
async def create_trip(
    trip_data: CreateTrip = Body(...),
    caller: CallerContext = Depends(require_role(DISPATCH_ROLES)),
    db: AsyncSession = Depends(get_db),
    maps: GoogleMapsClient = Depends(get_maps_client),
    redis=Depends(get_redis)
):
    """
    Create a trip with its stops (Dispatcher/Admin only).

    Stops without coordinates are geocoded first; if any lookup fails,
    nothing is persisted.
    """
    trip, stops = await trip_lifecycle.create_trip(db, maps, caller, trip_data)
    await publish_trip_change(redis, trip)

    return trip_response(trip, stops)


@router.get("", response_model=List[TripResponse])
async def list_trips(
    trip_status: Optional[TripStatus] = Query(None, alias="status"),
    driver_id: Optional[str] = Query(None, alias="driverId"),
    limit: int = Query(settings.trips_default_limit, ge=1),
    caller: CallerContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    List trips, newest first.

    Drivers only ever see their own trips. The limit is capped at 100.
    """
    trips = await trip_lifecycle.list_trips(
        db, caller, status=trip_status, driver_id=driver_id, limit=limit
    )
    stops_by_trip = await trip_lifecycle.get_stops_for_trips(db, [trip.id for trip in trips])

    return [trip_response(trip, stops_by_trip[trip.id]) for trip in trips]


@router.get("/{trip_id}", response_model=TripResponse)
async def get_trip(
    trip_id: str = Path(..., description="Trip ID"),
    caller: CallerContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get one trip. Drivers may only read trips assigned to them."""
    trip = await trip_lifecycle.get_visible_trip(db, caller, trip_id)
    stops = await trip_lifecycle.get_trip_stops(db, trip.id)

    return trip_response(trip, stops)


@router.post("/{trip_id}/assign", response_model=AssignTripResponse)
async def assign_trip(
    trip_id: str = Path(..., description="Trip ID"),
    assignment: AssignTrip = Body(...),
    caller: CallerContext = Depends(require_role(DISPATCH_ROLES)),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    """
    Assign a driver to a DRAFT trip (Dispatcher/Admin only).

    Changes trip status from draft to assigned.
    """
    trip = await trip_lifecycle.assign_trip(db, caller, trip_id, assignment.driver_id)
    await publish_trip_change(redis, trip)

    return AssignTripResponse(status=trip.status.value, driver_id=trip.driver_id)


@router.post("/{trip_id}/route", response_model=ComputeRouteResponse)
async def compute_route(
    trip_id: str = Path(..., description="Trip ID"),
    caller: CallerContext = Depends(require_role(DISPATCH_ROLES)),
    db: AsyncSession = Depends(get_db),
    maps: GoogleMapsClient = Depends(get_maps_client),
    redis=Depends(get_redis)
):
    """Compute the driving route through the trip's stops (Dispatcher/Admin only)."""
    trip, route = await trip_lifecycle.compute_trip_route(db, maps, caller, trip_id)
    await publish_trip_change(redis, trip)

    return ComputeRouteResponse(route=route)


@router.get("/{trip_id}/route/path", response_model=List[RoutePoint])
async def get_route_path(
    trip_id: str = Path(..., description="Trip ID"),
    caller: CallerContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Decoded route polyline as a list of points, for drawing the route on a map."""
    trip = await trip_lifecycle.get_visible_trip(db, caller, trip_id)

    if trip.route_polyline is None:
        raise ResourceNotFoundError("Route", trip_id)

    return [RoutePoint(lat=lat, lng=lng) for lat, lng in decode_polyline(trip.route_polyline)]


@router.post("/{trip_id}/status", response_model=TripStatusResponse)
async def update_trip_status(
    trip_id: str = Path(..., description="Trip ID"),
    status_update: UpdateTripStatus = Body(...),
    caller: CallerContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    """
    Update trip status to in_progress or completed.

    Drivers may only advance their own assigned trips one step at a time;
    dispatchers and admins may set either status directly.
    """
    trip = await trip_lifecycle.update_trip_status(
        db, caller, trip_id, TripStatus(status_update.status)
    )
    await publish_trip_change(redis, trip)

    return TripStatusResponse(status=trip.status.value)
