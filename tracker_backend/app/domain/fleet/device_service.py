"""
Device Service (Domain Logic).

Device CRUD, maintenance schedules and device sharing. Every operation
takes the caller explicitly and checks it with the authorization guard
before touching data.
"""

from typing import Dict, List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from tracker_backend.app.core.exceptions import ConflictFailure, ResourceNotFoundError, ValidationFailure
from tracker_backend.app.core.guards import authorize, enforce
from tracker_backend.app.domain.settings.settings_service import SettingsService
from tracker_backend.app.models.device import Device
from tracker_backend.app.models.maintenance import Maintenance
from tracker_backend.app.models.user import User
from tracker_backend.app.schemas.device import DeviceCreate, DeviceUpdate
from tracker_backend.app.services import sharing
from tracker_backend.app.services.audit import AuditAction, log_caller_action
from tracker_backend.app.services.maintenance import (
    emit_maintenance_events, maintenances_of, reconcile_maintenances
)

DeviceWithMaintenances = Tuple[Device, List[Maintenance]]


def _require_identity(data: DeviceCreate) -> None:
    missing = [
        field for field in ("name", "unique_id")
        if not (getattr(data, field) or "").strip()
    ]
    if missing:
        raise ValidationFailure("Device name and unique id are required", details={"missing": missing})


def _apply_fields(device: Device, data: DeviceCreate) -> None:
    device.name = data.name.strip()
    device.unique_id = data.unique_id.strip()
    device.timeout = data.timeout
    device.idle_speed_threshold = data.idle_speed_threshold
    device.auto_update_odometer = data.auto_update_odometer


class DeviceService:

    @staticmethod
    async def get_accessible_device(
        db: AsyncSession,
        caller: User,
        device_id: int,
        requires_write: bool = False,
        manages_devices: bool = False
    ) -> Device:
        """
        Load a device the caller is allowed to act on.

        Raises:
            ResourceNotFoundError: if the device does not exist
            PermissionDenied: if the guard denies access
        """
        device = await db.get(Device, device_id)
        if device is None:
            raise ResourceNotFoundError("Device", device_id)

        app_settings = await SettingsService.get_application_settings(db) if manages_devices else None
        accessible_ids = await sharing.accessible_device_ids(db, caller) if not caller.admin else None
        enforce(authorize(
            caller,
            requires_write=requires_write,
            target_device=device,
            accessible_device_ids=accessible_ids,
            manages_devices=manages_devices,
            app_settings=app_settings
        ))
        return device

    @staticmethod
    async def get_devices(db: AsyncSession, caller: User) -> List[DeviceWithMaintenances]:
        """Accessible devices with their maintenance lists ordered by index."""
        devices = await sharing.accessible_devices(db, caller)
        return [(device, await maintenances_of(db, device.id)) for device in devices]

    @staticmethod
    async def add_device(db: AsyncSession, caller: User, data: DeviceCreate) -> DeviceWithMaintenances:
        """
        Create a device owned by the caller.

        Raises:
            PermissionDenied: if device management is disabled for the caller
            ValidationFailure: if name or unique id is blank
            ConflictFailure: if the unique id is taken
        """
        app_settings = await SettingsService.get_application_settings(db)
        enforce(authorize(caller, requires_write=True, manages_devices=True, app_settings=app_settings))
        _require_identity(data)

        device = Device(odometer=data.odometer, latest_position_id=None)
        _apply_fields(device, data)
        maintenances = []
        for item in data.maintenances:
            maintenance = Maintenance()
            maintenance.copy_from(item)
            maintenances.append(maintenance)

        await sharing.add_device(db, device, maintenances, caller)
        await log_caller_action(db, caller, AuditAction.DEVICE_CREATED,
                                metadata={"device_id": device.id, "unique_id": device.unique_id})
        return device, sorted(maintenances, key=lambda m: (m.index_no, m.id))

    @staticmethod
    async def update_device(
        db: AsyncSession,
        caller: User,
        device_id: int,
        data: DeviceUpdate
    ) -> DeviceWithMaintenances:
        """
        Update a device and reconcile its maintenance list.

        When the odometer changes, MAINTENANCE_REQUIRED events are emitted
        for every record whose threshold was crossed, new records included.

        Raises:
            ValidationFailure: if name or unique id is blank
            PermissionDenied: if the caller cannot manage the device
            ConflictFailure: if another device already uses the unique id
        """
        device = await DeviceService.get_accessible_device(
            db, caller, device_id, requires_write=True, manages_devices=True
        )
        _require_identity(data)

        result = await db.execute(
            select(Device.id).where(Device.unique_id == data.unique_id.strip(), Device.id != device.id)
        )
        if result.first() is not None:
            raise ConflictFailure(
                f"Device with unique id '{data.unique_id}' already exists",
                details={"unique_id": data.unique_id}
            )

        previous_odometer = device.odometer
        _apply_fields(device, data)
        device.odometer = data.odometer

        maintenances = await reconcile_maintenances(db, device, data.maintenances)
        events = await emit_maintenance_events(db, device, maintenances, previous_odometer)

        await db.flush()
        await log_caller_action(db, caller, AuditAction.DEVICE_UPDATED, metadata={
            "device_id": device.id,
            "odometer": [previous_odometer, device.odometer],
            "maintenance_events": [event.maintenance_id for event in events],
        })
        return device, maintenances

    @staticmethod
    async def remove_device(db: AsyncSession, caller: User, device_id: int) -> bool:
        """
        Detach the caller (and visible users) from a device.

        Returns:
            True if no owner remained and the device was deleted
        """
        device = await DeviceService.get_accessible_device(
            db, caller, device_id, requires_write=True, manages_devices=True
        )
        unique_id = device.unique_id
        deleted = await sharing.remove_device(db, device, caller)

        action = AuditAction.DEVICE_DELETED if deleted else AuditAction.DEVICE_DETACHED
        await log_caller_action(db, caller, action, metadata={"device_id": device_id, "unique_id": unique_id})
        return deleted

    @staticmethod
    async def get_share(db: AsyncSession, caller: User, device_id: int) -> List[Tuple[User, bool]]:
        await DeviceService.get_accessible_device(db, caller, device_id)
        return await sharing.get_share(db, sharing.DEVICE_OWNERS, device_id, caller)

    @staticmethod
    async def save_share(
        db: AsyncSession,
        caller: User,
        device_id: int,
        share: Dict[int, Optional[bool]]
    ) -> bool:
        """
        Apply a partial share map to a device.

        Returns:
            True if the edit left no owner and the device was deleted
        """
        device = await DeviceService.get_accessible_device(db, caller, device_id, requires_write=True)
        deleted = await sharing.set_share(db, sharing.DEVICE_OWNERS, device, share, caller)
        await log_caller_action(db, caller, AuditAction.DEVICE_SHARED, metadata={
            "device_id": device_id,
            "share": {str(user_id): shared for user_id, shared in share.items()},
            "deleted": deleted,
        })
        return deleted
