"""
Device API endpoints.

Device CRUD, device sharing and the position archive of a device.
"""

from datetime import datetime
from typing import List
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from tracker_backend.app.db.session import get_db
from tracker_backend.app.models.device import Device
from tracker_backend.app.models.enums import Role
from tracker_backend.app.models.user import User
from tracker_backend.app.schemas.device import (
    DeviceCreate, DeviceDeletionResponse, DeviceResponse, DeviceUpdate, MaintenanceResponse
)
from tracker_backend.app.schemas.position import PositionResponse
from tracker_backend.app.schemas.share import ShareEntry, ShareResponse, ShareUpdate, ShareUpdateResponse
from tracker_backend.app.core.dependencies import get_current_user
from tracker_backend.app.core.guards import require_manager, require_user
from tracker_backend.app.domain.fleet.device_service import DeviceService
from tracker_backend.app.domain.fleet.position_service import PositionService

router = APIRouter(prefix="/devices", tags=["Devices"])


def device_response(device: Device, maintenances) -> DeviceResponse:
    return DeviceResponse.model_validate(device).model_copy(update={
        "maintenances": [MaintenanceResponse.model_validate(item) for item in maintenances]
    })


def share_response(resource_id: int, share) -> ShareResponse:
    return ShareResponse(
        resource_id=resource_id,
        entries=[ShareEntry(user_id=user.id, login=user.login, shared=shared) for user, shared in share]
    )


@router.get("", response_model=List[DeviceResponse])
async def get_devices(
    caller: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Accessible devices with their maintenance lists."""
    return [device_response(device, items) for device, items in await DeviceService.get_devices(db, caller)]


@router.post("", response_model=DeviceResponse, status_code=status.HTTP_201_CREATED)
async def add_device(
    data: DeviceCreate,
    caller: User = Depends(require_user(write=True)),
    db: AsyncSession = Depends(get_db)
):
    """Create a device owned by the caller."""
    device, maintenances = await DeviceService.add_device(db, caller, data)
    response = device_response(device, maintenances)
    await db.commit()
    return response


@router.put("/{device_id}", response_model=DeviceResponse)
async def update_device(
    device_id: int,
    data: DeviceUpdate,
    caller: User = Depends(require_user(write=True)),
    db: AsyncSession = Depends(get_db)
):
    """Update a device, reconcile its maintenance list and emit due-maintenance events."""
    device, maintenances = await DeviceService.update_device(db, caller, device_id, data)
    response = device_response(device, maintenances)
    await db.commit()
    return response


@router.delete("/{device_id}", response_model=DeviceDeletionResponse)
async def remove_device(
    device_id: int,
    caller: User = Depends(require_user(write=True)),
    db: AsyncSession = Depends(get_db)
):
    """Detach the caller from a device; the last owner leaving deletes it."""
    deleted = await DeviceService.remove_device(db, caller, device_id)
    await db.commit()
    return DeviceDeletionResponse(id=device_id, deleted=deleted)


@router.get("/{device_id}/share", response_model=ShareResponse)
async def get_device_share(
    device_id: int,
    caller: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db)
):
    """Ownership of the device for every user visible to the caller."""
    return share_response(device_id, await DeviceService.get_share(db, caller, device_id))


@router.put("/{device_id}/share", response_model=ShareUpdateResponse)
async def save_device_share(
    device_id: int,
    data: ShareUpdate,
    caller: User = Depends(require_user([Role.ADMIN, Role.MANAGER], write=True)),
    db: AsyncSession = Depends(get_db)
):
    """Apply a partial share map."""
    share = {entry.user_id: entry.shared for entry in data.entries}
    deleted = await DeviceService.save_share(db, caller, device_id, share)
    await db.commit()
    return ShareUpdateResponse(resource_id=device_id, deleted=deleted)


@router.get("/{device_id}/positions", response_model=List[PositionResponse])
async def get_positions(
    device_id: int,
    time_from: datetime = Query(..., alias="from"),
    time_to: datetime = Query(..., alias="to"),
    apply_filter: bool = Query(False, alias="filter"),
    caller: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Position archive of a device.

    `filter=true` applies the caller's position filter preferences.
    """
    positions = await PositionService.get_positions(db, caller, device_id, time_from, time_to, apply_filter)
    return [PositionResponse.model_validate(position) for position in positions]
