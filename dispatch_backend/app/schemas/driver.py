"""
Driver presence schemas.
"""

from pydantic import Field
from datetime import datetime
from typing import Optional
from dispatch_backend.app.schemas.base import CamelModel


class LocationPing(CamelModel):
    """Schema for a single GPS report from a driver."""
    lat: float = Field(..., ge=-90, le=90, strict=True)
    lng: float = Field(..., ge=-180, le=180, strict=True)
    speed_mps: float = Field(default=0, ge=0, strict=True)
    heading: float = Field(default=0, ge=0, le=360, strict=True)
    timestamp: Optional[datetime] = None


class LocationPingResponse(CamelModel):
    """Response after recording a location ping."""
    ok: bool = True
    updated_at: datetime


class OfflineResponse(CamelModel):
    """Response after a driver goes offline."""
    ok: bool = True
    is_online: bool = False


class DriverLocation(CamelModel):
    lat: float
    lng: float


class DriverResponse(CamelModel):
    """Driver record with the read-time staleness flag."""
    uid: str
    is_online: bool
    last_location: Optional[DriverLocation] = None
    last_speed_mps: float
    last_heading: float
    updated_at: datetime
    is_stale: bool


class DriverWithProfileResponse(DriverResponse):
    """Driver record joined with the profile name and email."""
    name: str = "Unknown"
    email: str = ""
