"""
Enumerations shared by models, schemas and the access-control gate.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles are peers; dispatcher and admin carry the same permissions
    everywhere a role check occurs.

    Roles:
        DRIVER: Reports location and executes assigned trips (default role)
        DISPATCHER: Creates, routes and assigns trips
        ADMIN: Same permissions as a dispatcher
    """
    DRIVER = "driver"
    DISPATCHER = "dispatcher"
    ADMIN = "admin"


class TripStatus(str, enum.Enum):
    """Trip status enumeration."""
    DRAFT = "draft"  # Created by a dispatcher, no driver yet
    ASSIGNED = "assigned"  # Driver assigned but not started
    IN_PROGRESS = "in_progress"  # Driver has started
    COMPLETED = "completed"  # Terminal; the record is kept


class DriverEventType(str, enum.Enum):
    """Driver event log entry types."""
    LOCATION_PING = "location_ping"
    STATUS_CHANGE = "status_change"


def enum_values(enum_cls):
    """Persist enum values (not member names) in SQLAlchemy Enum columns."""
    return [member.value for member in enum_cls]
