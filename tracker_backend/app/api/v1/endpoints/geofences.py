"""
Geo-fence API endpoints.
"""

from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from tracker_backend.app.db.session import get_db
from tracker_backend.app.models.enums import Role
from tracker_backend.app.models.geofence import GeoFence
from tracker_backend.app.models.user import User
from tracker_backend.app.schemas.device import DeviceDeletionResponse
from tracker_backend.app.schemas.geofence import GeoFenceCreate, GeoFenceResponse, GeoFenceUpdate
from tracker_backend.app.schemas.share import ShareResponse, ShareUpdate, ShareUpdateResponse
from tracker_backend.app.core.dependencies import get_current_user
from tracker_backend.app.core.guards import require_manager, require_user
from tracker_backend.app.domain.fleet.geofence_service import GeoFenceService
from tracker_backend.app.api.v1.endpoints.devices import share_response

router = APIRouter(prefix="/geofences", tags=["Geo-fences"])


def geofence_response(geo_fence: GeoFence, device_ids) -> GeoFenceResponse:
    return GeoFenceResponse.model_validate(geo_fence).model_copy(update={"device_ids": sorted(device_ids)})


@router.get("", response_model=List[GeoFenceResponse])
async def get_geofences(
    caller: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Accessible geo-fences with their linked devices."""
    return [geofence_response(item, ids) for item, ids in await GeoFenceService.get_geofences(db, caller)]


@router.post("", response_model=GeoFenceResponse, status_code=status.HTTP_201_CREATED)
async def add_geofence(
    data: GeoFenceCreate,
    caller: User = Depends(require_user(write=True)),
    db: AsyncSession = Depends(get_db)
):
    geo_fence, device_ids = await GeoFenceService.add_geofence(db, caller, data)
    response = geofence_response(geo_fence, device_ids)
    await db.commit()
    return response


@router.put("/{geofence_id}", response_model=GeoFenceResponse)
async def update_geofence(
    geofence_id: int,
    data: GeoFenceUpdate,
    caller: User = Depends(require_user(write=True)),
    db: AsyncSession = Depends(get_db)
):
    geo_fence, device_ids = await GeoFenceService.update_geofence(db, caller, geofence_id, data)
    response = geofence_response(geo_fence, device_ids)
    await db.commit()
    return response


@router.delete("/{geofence_id}", response_model=DeviceDeletionResponse)
async def remove_geofence(
    geofence_id: int,
    caller: User = Depends(require_user(write=True)),
    db: AsyncSession = Depends(get_db)
):
    """Detach the caller from a geo-fence; the last owner leaving deletes it."""
    deleted = await GeoFenceService.remove_geofence(db, caller, geofence_id)
    await db.commit()
    return DeviceDeletionResponse(id=geofence_id, deleted=deleted)


@router.get("/{geofence_id}/share", response_model=ShareResponse)
async def get_geofence_share(
    geofence_id: int,
    caller: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db)
):
    return share_response(geofence_id, await GeoFenceService.get_share(db, caller, geofence_id))


@router.put("/{geofence_id}/share", response_model=ShareUpdateResponse)
async def save_geofence_share(
    geofence_id: int,
    data: ShareUpdate,
    caller: User = Depends(require_user([Role.ADMIN, Role.MANAGER], write=True)),
    db: AsyncSession = Depends(get_db)
):
    share = {entry.user_id: entry.shared for entry in data.entries}
    deleted = await GeoFenceService.save_share(db, caller, geofence_id, share)
    await db.commit()
    return ShareUpdateResponse(resource_id=geofence_id, deleted=deleted)
