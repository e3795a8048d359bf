"""
Driver presence database model.

One row per driver uid, holding the online flag and the last reported
position. The location columns stay null until the first location ping.
"""

from sqlalchemy import Column, String, Float, Boolean, DateTime
from sqlalchemy.sql import func
from dispatch_backend.app.db.session import Base


class Driver(Base):
    """Driver record model."""
    __tablename__ = "drivers"

    uid = Column(String(128), primary_key=True, index=True)

    is_online = Column(Boolean, default=False, nullable=False, index=True)

    # Last known position (both null until the first ping)
    last_lat = Column(Float, nullable=True)
    last_lng = Column(Float, nullable=True)
    last_speed_mps = Column(Float, default=0.0, nullable=False)
    last_heading = Column(Float, default=0.0, nullable=False)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @property
    def last_location(self):
        if self.last_lat is None or self.last_lng is None:
            return None
        return {"lat": self.last_lat, "lng": self.last_lng}

    def __repr__(self):
        return f"<Driver(uid='{self.uid}', online={self.is_online})>"
