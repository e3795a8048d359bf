"""
API Router.

Aggregates all API endpoints. Routes are mounted at the root to match the
paths the mobile and web clients call.
"""

from fastapi import APIRouter
from dispatch_backend.app.api.endpoints import auth, drivers, trips, live

router = APIRouter()

# Profile setup and lookup
router.include_router(auth.router)
router.include_router(auth.me_router)

# Driver presence
router.include_router(drivers.router)

# Trip lifecycle and routing
router.include_router(trips.router)

# Real-time change feed
router.include_router(live.router)
