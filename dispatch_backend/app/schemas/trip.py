"""
Trip schemas.

Input schemas for trip creation, assignment and status updates, and the
response shapes returned by the trip endpoints.
"""

from pydantic import Field
from typing import List, Literal, Optional
from datetime import datetime
from dispatch_backend.app.schemas.base import CamelModel


class TripStopInput(CamelModel):
    """Schema for one stop in a create-trip request. Coordinates are geocoded when absent."""
    address: str = Field(..., min_length=1)
    lat: Optional[float] = Field(default=None, ge=-90, le=90, strict=True)
    lng: Optional[float] = Field(default=None, ge=-180, le=180, strict=True)
    sequence: int = Field(..., ge=0, strict=True)
    notes: str = ""


class CreateTrip(CamelModel):
    """Schema for trip creation."""
    stops: List[TripStopInput] = Field(..., min_length=1)


class AssignTrip(CamelModel):
    """Schema for assigning a driver to a DRAFT trip."""
    driver_id: str = Field(..., min_length=1)


class UpdateTripStatus(CamelModel):
    """
    Schema for trip status updates.

    Deliberately narrower than TripStatus: a trip can never be moved back
    to draft or to assigned through this schema.
    """
    status: Literal["in_progress", "completed"]


class TripStopResponse(CamelModel):
    """Schema for trip stop response."""
    stop_id: str
    address: str
    lat: float
    lng: float
    sequence: int
    notes: str


class TripRouteResponse(CamelModel):
    """Aggregated route across all legs."""
    polyline: str
    distance_meters: int
    duration_seconds: int


class TripResponse(CamelModel):
    """Schema for trip response."""
    id: str
    driver_id: Optional[str]
    created_by: str
    status: str
    stops: List[TripStopResponse] = []
    route: Optional[TripRouteResponse] = None
    created_at: datetime
    updated_at: datetime


class AssignTripResponse(CamelModel):
    """Response after driver assignment."""
    ok: bool = True
    status: str
    driver_id: str


class ComputeRouteResponse(CamelModel):
    """Response after computing a trip route."""
    ok: bool = True
    route: TripRouteResponse


class TripStatusResponse(CamelModel):
    """Response after a status update."""
    ok: bool = True
    status: str


class RoutePoint(CamelModel):
    """One decoded point of a route polyline."""
    lat: float
    lng: float
