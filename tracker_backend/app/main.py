"""
FastAPI Application Entry Point.

This is the main application file for the Tracker Backend.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from tracker_backend.app.core.config import settings
from tracker_backend.app.api.v1.router import router as api_v1_router
from tracker_backend.app.db.session import engine, Base
from tracker_backend.app.core.observability import ObservabilityMiddleware, configure_logging
from tracker_backend.app.core.token_revocation import ping_redis
from tracker_backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from tracker_backend.app.models.user import User
from tracker_backend.app.models.user_settings import UserSettings, UIStateEntry
from tracker_backend.app.models.application_settings import ApplicationSettings
from tracker_backend.app.models.audit_log import AuditLog
from tracker_backend.app.models.device import Device
from tracker_backend.app.models.maintenance import Maintenance
from tracker_backend.app.models.position import Position
from tracker_backend.app.models.geofence import GeoFence
from tracker_backend.app.models.device_event import DeviceEvent

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
    version=settings.api_version,
    debug=settings.debug,
    description="Authorization and data-consistency core of a fleet-tracking platform",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status, application information and Redis reachability
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "redis": await ping_redis(),
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")
