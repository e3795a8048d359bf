"""
Authentication and profile Pydantic schemas.

Defines the caller context resolved by the access-control gate and the
request/response schemas for profile endpoints.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from dispatch_backend.app.models.enums import UserRole
from dispatch_backend.app.schemas.base import CamelModel


class Identity(BaseModel):
    """
    Verified identity from a bearer token.

    Used by endpoints that must work before a profile exists.
    """
    uid: str
    email: str = ""


class CallerContext(Identity):
    """
    Identity plus the role resolved from the caller's profile.

    Passed explicitly into every lifecycle and presence operation.
    """
    role: UserRole


class CreateUserProfile(CamelModel):
    """
    Schema for first-time profile setup.

    Used by POST /auth/setup endpoint.
    Default role is DRIVER (for mobile app users).
    """
    name: str = Field(..., min_length=1, max_length=100, description="Display name")
    role: UserRole = Field(default=UserRole.DRIVER, description="User role (defaults to driver)")


class UserProfileResponse(CamelModel):
    """
    Schema for user profile response.

    Used by GET /me and POST /auth/setup.
    """
    uid: str
    email: str
    name: str
    role: UserRole
    created_at: Optional[datetime] = None


class ProfileExistsResponse(CamelModel):
    """Returned by POST /auth/setup when the profile was already created."""
    message: str = "Profile already exists"
    profile: UserProfileResponse
