"""
Latest position API endpoints.
"""

from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from tracker_backend.app.db.session import get_db
from tracker_backend.app.models.user import User
from tracker_backend.app.schemas.position import PositionResponse
from tracker_backend.app.core.dependencies import get_current_user
from tracker_backend.app.domain.fleet.position_service import PositionService
from tracker_backend.app.services.geofence_calculator import GeoFenceContainment, get_containment

router = APIRouter(prefix="/positions", tags=["Positions"])


@router.get("/latest", response_model=List[PositionResponse])
async def get_latest_positions(
    caller: User = Depends(get_current_user),
    containment: GeoFenceContainment = Depends(get_containment),
    db: AsyncSession = Depends(get_db)
):
    """Latest position per accessible device, annotated with containing geo-fences."""
    positions = await PositionService.get_latest_positions(db, caller, containment)
    return [PositionResponse.model_validate(position) for position in positions]


@router.get("/latest-non-idle", response_model=List[PositionResponse])
async def get_latest_non_idle_positions(
    caller: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Newest moving position per accessible device."""
    positions = await PositionService.get_latest_non_idle_positions(db, caller)
    return [PositionResponse.model_validate(position) for position in positions]
