"""
Profile API endpoints.

``POST /auth/setup`` creates the caller's profile after their first sign-in
with the identity service; ``GET /me`` returns it. Both need only a valid
bearer token, since the profile may not exist yet.
"""

from datetime import datetime, timezone
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from dispatch_backend.app.db.session import get_db
from dispatch_backend.app.core.dependencies import get_identity
from dispatch_backend.app.core.exceptions import ResourceNotFoundError
from dispatch_backend.app.models.user import User
from dispatch_backend.app.models.enums import UserRole
from dispatch_backend.app.schemas.auth import (
    Identity, CreateUserProfile, UserProfileResponse, ProfileExistsResponse
)
from dispatch_backend.app.services.presence import new_driver_record

router = APIRouter(prefix="/auth", tags=["Authentication"])
me_router = APIRouter(prefix="/me", tags=["Authentication"])


def _profile_response(user: User) -> UserProfileResponse:
    return UserProfileResponse(
        uid=user.uid,
        email=user.email or "",
        name=user.name,
        role=user.role,
        created_at=user.created_at
    )


@router.post("/setup", status_code=status.HTTP_201_CREATED)
async def setup_profile(
    profile_data: CreateUserProfile,
    response: Response,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db)
):
    """
    Create the caller's profile.

    Idempotent: an existing profile is returned unchanged with 200.
    Drivers also get an initial, offline driver record.
    """
    result = await db.execute(select(User).where(User.uid == identity.uid))
    existing_user = result.scalar_one_or_none()

    if existing_user:
        response.status_code = status.HTTP_200_OK
        return ProfileExistsResponse(profile=_profile_response(existing_user))

    now = datetime.now(timezone.utc)
    new_user = User(
        uid=identity.uid,
        email=identity.email,
        name=profile_data.name,
        role=profile_data.role,
        created_at=now
    )
    db.add(new_user)

    if new_user.role == UserRole.DRIVER:
        db.add(new_driver_record(identity.uid, now))

    await db.commit()
    await db.refresh(new_user)

    return _profile_response(new_user)


@me_router.get("", response_model=UserProfileResponse)
async def get_my_profile(
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db)
):
    """
    Get the authenticated caller's profile.

    Raises:
        404: If the caller has not completed profile setup
    """
    result = await db.execute(select(User).where(User.uid == identity.uid))
    user = result.scalar_one_or_none()

    if not user:
        raise ResourceNotFoundError("User profile", identity.uid)

    return _profile_response(user)
