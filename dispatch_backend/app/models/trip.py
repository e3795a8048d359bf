"""
Trip database model.

Trips are created in DRAFT by a dispatcher and move forward through
ASSIGNED and IN_PROGRESS to COMPLETED. They are never deleted.
"""

import uuid
from sqlalchemy import Column, String, Integer, Text, DateTime, Enum
from sqlalchemy.sql import func
from dispatch_backend.app.db.session import Base
from dispatch_backend.app.models.enums import TripStatus, enum_values


def generate_id() -> str:
    return str(uuid.uuid4())


class Trip(Base):
    """
    Trip model.

    The computed route is embedded as three columns which are either all
    null (not computed yet) or all set.
    """
    __tablename__ = "trips"

    id = Column(String(36), primary_key=True, default=generate_id)

    # Driver assignment (null while DRAFT)
    driver_id = Column(String(128), nullable=True, index=True)

    # Dispatcher uid
    created_by = Column(String(128), nullable=False, index=True)

    # Status
    status = Column(
        Enum(TripStatus, name="trip_status", values_callable=enum_values),
        default=TripStatus.DRAFT,
        nullable=False,
        index=True
    )

    # Computed route
    route_polyline = Column(Text, nullable=True)
    route_distance_meters = Column(Integer, nullable=True)
    route_duration_seconds = Column(Integer, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @property
    def route(self):
        if self.route_polyline is None:
            return None
        return {
            "polyline": self.route_polyline,
            "distance_meters": self.route_distance_meters,
            "duration_seconds": self.route_duration_seconds,
        }

    def __repr__(self):
        return f"<Trip(id='{self.id}', driver_id={self.driver_id}, status='{self.status.value}')>"
