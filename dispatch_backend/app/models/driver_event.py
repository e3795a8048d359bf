"""
Driver Event database model.

Append-only diagnostic log of location pings and status changes.
"""

from sqlalchemy import Column, String, DateTime, Enum, JSON
from sqlalchemy.sql import func
from dispatch_backend.app.db.session import Base
from dispatch_backend.app.models.enums import DriverEventType, enum_values
from dispatch_backend.app.models.trip import generate_id


class DriverEvent(Base):
    """
    Driver event model.

    Events logged:
    - location_ping: {lat, lng, speedMps, heading}
    - status_change: {tripId, from, to} for trip transitions,
      {status: "offline"} when a driver goes offline
    """
    __tablename__ = "driver_events"

    id = Column(String(36), primary_key=True, default=generate_id)

    type = Column(
        Enum(DriverEventType, name="driver_event_type", values_callable=enum_values),
        nullable=False,
        index=True
    )
    driver_id = Column(String(128), nullable=False, index=True)

    payload = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<DriverEvent(id='{self.id}', type='{self.type.value}', driver_id='{self.driver_id}')>"
