"""
Security guards for role-based and ownership-based access control.

Provides dependencies for protecting endpoints and helpers for scoping
trip access to the caller.
"""

from typing import List, Optional
from fastapi import Depends
from dispatch_backend.app.core.dependencies import get_current_user
from dispatch_backend.app.core.exceptions import AuthorizationError
from dispatch_backend.app.models.enums import UserRole
from dispatch_backend.app.schemas.auth import CallerContext

# Roles allowed to manage trips and view the fleet
DISPATCH_ROLES = [UserRole.DISPATCHER, UserRole.ADMIN]


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.get("/drivers")
        async def list_drivers(caller: CallerContext = Depends(require_role(DISPATCH_ROLES))):
            ...

    Args:
        allowed_roles: List of UserRole enums that are allowed to access the endpoint

    Returns:
        FastAPI dependency function that validates the caller's role

    Raises:
        AuthorizationError 403 if caller role is not in allowed_roles
    """
    async def role_checker(caller: CallerContext = Depends(get_current_user)) -> CallerContext:
        if caller.role not in allowed_roles:
            raise AuthorizationError(
                f"Requires one of: {', '.join(r.value for r in allowed_roles)}"
            )
        return caller

    return role_checker


def can_view_trip(caller: CallerContext, trip_driver_id: Optional[str]) -> bool:
    """
    Drivers only see trips assigned to them; dispatchers and admins see all.
    """
    if caller.role == UserRole.DRIVER:
        return trip_driver_id == caller.uid
    return caller.role in DISPATCH_ROLES


def trip_driver_scope(caller: CallerContext, requested_driver_id: Optional[str]) -> Optional[str]:
    """
    Get the driver id to filter trip queries by.

    For drivers: always their own uid (any requested filter is ignored)
    For dispatchers and admins: the requested filter, or None for all trips
    """
    if caller.role == UserRole.DRIVER:
        return caller.uid
    return requested_driver_id or None
