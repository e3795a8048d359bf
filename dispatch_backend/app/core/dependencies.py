"""
Authentication dependencies for FastAPI.

``get_identity`` verifies the bearer token only; ``get_current_user``
additionally resolves the caller's role from their profile and is what
every role-gated endpoint builds on.
"""

from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from dispatch_backend.app.core.jwt import decode_access_token
from dispatch_backend.app.core.exceptions import AuthenticationError, AuthorizationError
from dispatch_backend.app.db.session import get_db
from dispatch_backend.app.models.user import User
from dispatch_backend.app.schemas.auth import Identity, CallerContext

# HTTP Bearer security scheme (errors are raised in the app's own envelope)
security = HTTPBearer(auto_error=False)


def identity_from_token(token: Optional[str]) -> Identity:
    """
    Verify a bearer token and return the identity it carries.

    Raises:
        AuthenticationError: if the token is missing, invalid, expired or has no subject
    """
    if not token:
        raise AuthenticationError("Missing or invalid token")

    payload = decode_access_token(token)
    if payload is None:
        raise AuthenticationError("Invalid or expired token")

    uid = payload.get("sub")
    if not uid:
        raise AuthenticationError("Invalid token payload")

    return Identity(uid=str(uid), email=payload.get("email") or "")


async def resolve_caller(db: AsyncSession, identity: Identity) -> CallerContext:
    """
    Resolve the caller's role from their stored profile.

    Raises:
        AuthorizationError: if the identity has no profile yet
    """
    result = await db.execute(select(User).where(User.uid == identity.uid))
    user = result.scalar_one_or_none()

    if not user:
        raise AuthorizationError("User profile not found")

    return CallerContext(uid=identity.uid, email=identity.email, role=user.role)


async def get_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Identity:
    """FastAPI dependency for token-only authentication."""
    token = credentials.credentials if credentials else None
    return identity_from_token(token)


async def get_current_user(
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db)
) -> CallerContext:
    """
    FastAPI dependency for authenticated callers with a profile.

    Returns:
        CallerContext with uid, email and role

    Raises:
        AuthenticationError: 401 if the token is missing or invalid
        AuthorizationError: 403 if the caller has no profile
    """
    return await resolve_caller(db, identity)
