"""
Trip Stop database model.

Stops are the addresses a trip visits. Traversal order is defined by
``sequence``, which is not necessarily contiguous; ``position`` records the
index in the list the dispatcher submitted.
"""

from sqlalchemy import Column, Integer, String, Float, ForeignKey, Text
from dispatch_backend.app.db.session import Base
from dispatch_backend.app.models.trip import generate_id


class TripStop(Base):
    """Trip Stop model."""
    __tablename__ = "trip_stops"

    id = Column(String(36), primary_key=True, default=generate_id)

    # Trip reference
    trip_id = Column(String(36), ForeignKey('trips.id'), nullable=False, index=True)

    # Stop details
    address = Column(String(500), nullable=False)
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    sequence = Column(Integer, nullable=False)
    notes = Column(Text, nullable=False, default="")

    position = Column(Integer, nullable=False)

    def __repr__(self):
        return f"<TripStop(id='{self.id}', trip_id='{self.trip_id}', seq={self.sequence})>"
