"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from tracker_backend.app.api.v1.endpoints import auth, users, devices, positions, geofences, settings

router = APIRouter()

router.include_router(auth.router)
router.include_router(users.router)
router.include_router(devices.router)
router.include_router(positions.router)
router.include_router(geofences.router)
router.include_router(settings.router)
