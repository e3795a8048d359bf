"""
FastAPI Application Entry Point.

This is the main application file for the Fleet Dispatch Backend.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from dispatch_backend.app.core.config import settings
from dispatch_backend.app.api.router import router as api_router
from dispatch_backend.app.db.session import engine, Base
from dispatch_backend.app.core.observability import ObservabilityMiddleware, configure_logging
from dispatch_backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from dispatch_backend.app.models.user import User
from dispatch_backend.app.models.driver import Driver
from dispatch_backend.app.models.trip import Trip
from dispatch_backend.app.models.trip_stop import TripStop
from dispatch_backend.app.models.driver_event import DriverEvent

configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    Creates database tables on startup.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()

# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    description="Trip dispatch, driver presence and route computation API",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Liveness flag and service name
    """
    return {
        "ok": True,
        "service": settings.service_name,
    }


app.include_router(api_router)
