"""
Geo-fence Service (Domain Logic).

Geo-fence CRUD, device links and sharing.
"""

from typing import Dict, List, Optional, Set, Tuple
from sqlalchemy.ext.asyncio import AsyncSession

from tracker_backend.app.core.exceptions import PermissionDenied, ResourceNotFoundError, ValidationFailure
from tracker_backend.app.core.guards import authorize, enforce
from tracker_backend.app.models.geofence import GeoFence
from tracker_backend.app.models.user import User
from tracker_backend.app.schemas.geofence import GeoFenceCreate, GeoFenceUpdate
from tracker_backend.app.services import sharing
from tracker_backend.app.services.audit import AuditAction, log_caller_action

GeoFenceWithDevices = Tuple[GeoFence, Set[int]]


def _require_name(data: GeoFenceCreate) -> None:
    if not (data.name or "").strip():
        raise ValidationFailure("Geo-fence name is required", details={"missing": ["name"]})


class GeoFenceService:

    @staticmethod
    async def get_accessible_geofence(
        db: AsyncSession,
        caller: User,
        geofence_id: int,
        requires_write: bool = False
    ) -> GeoFence:
        """
        Load a geo-fence the caller owns (directly or through managed users).

        Raises:
            ResourceNotFoundError: if the geo-fence does not exist
            PermissionDenied: if the caller cannot access it
        """
        geo_fence = await db.get(GeoFence, geofence_id)
        if geo_fence is None:
            raise ResourceNotFoundError("GeoFence", geofence_id)

        enforce(authorize(caller, requires_write=requires_write))
        if not caller.admin:
            accessible = {item.id for item in await sharing.accessible_geofences(db, caller)}
            if geo_fence.id not in accessible:
                raise PermissionDenied("Access denied. You do not have permission to manage this geo-fence.")
        return geo_fence

    @staticmethod
    async def get_geofences(db: AsyncSession, caller: User) -> List[GeoFenceWithDevices]:
        geo_fences = await sharing.accessible_geofences(db, caller)
        return [(item, await sharing.geofence_device_ids(db, item.id)) for item in geo_fences]

    @staticmethod
    async def add_geofence(db: AsyncSession, caller: User, data: GeoFenceCreate) -> GeoFenceWithDevices:
        """
        Create a geo-fence owned by the caller.

        Only devices accessible to the caller are linked.
        """
        enforce(authorize(caller, requires_write=True))
        _require_name(data)

        geo_fence = GeoFence()
        geo_fence.copy_from(data)
        geo_fence.name = data.name.strip()

        accessible_ids = await sharing.accessible_device_ids(db, caller)
        device_ids = set(data.device_ids) & accessible_ids
        await sharing.add_geofence(db, geo_fence, caller, device_ids)

        await log_caller_action(db, caller, AuditAction.GEOFENCE_CREATED,
                                metadata={"geofence_id": geo_fence.id, "name": geo_fence.name})
        return geo_fence, device_ids

    @staticmethod
    async def update_geofence(
        db: AsyncSession,
        caller: User,
        geofence_id: int,
        data: GeoFenceUpdate
    ) -> GeoFenceWithDevices:
        """
        Update a geo-fence and its device links.

        Links to devices the caller cannot access are left untouched.
        """
        geo_fence = await GeoFenceService.get_accessible_geofence(db, caller, geofence_id, requires_write=True)
        _require_name(data)

        geo_fence.copy_from(data)
        geo_fence.name = data.name.strip()

        accessible_ids = await sharing.accessible_device_ids(db, caller)
        device_ids = await sharing.set_geofence_devices(db, geo_fence, data.device_ids, accessible_ids)

        await db.flush()
        await log_caller_action(db, caller, AuditAction.GEOFENCE_UPDATED,
                                metadata={"geofence_id": geo_fence.id, "device_ids": sorted(device_ids)})
        return geo_fence, device_ids

    @staticmethod
    async def remove_geofence(db: AsyncSession, caller: User, geofence_id: int) -> bool:
        """
        Detach the caller (and visible users) from a geo-fence.

        Returns:
            True if no owner remained and the geo-fence was deleted
        """
        geo_fence = await GeoFenceService.get_accessible_geofence(db, caller, geofence_id, requires_write=True)
        name = geo_fence.name
        deleted = await sharing.remove_geofence(db, geo_fence, caller)

        action = AuditAction.GEOFENCE_DELETED if deleted else AuditAction.GEOFENCE_DETACHED
        await log_caller_action(db, caller, action, metadata={"geofence_id": geofence_id, "name": name})
        return deleted

    @staticmethod
    async def get_share(db: AsyncSession, caller: User, geofence_id: int) -> List[Tuple[User, bool]]:
        await GeoFenceService.get_accessible_geofence(db, caller, geofence_id)
        return await sharing.get_share(db, sharing.GEOFENCE_OWNERS, geofence_id, caller)

    @staticmethod
    async def save_share(
        db: AsyncSession,
        caller: User,
        geofence_id: int,
        share: Dict[int, Optional[bool]]
    ) -> bool:
        geo_fence = await GeoFenceService.get_accessible_geofence(db, caller, geofence_id, requires_write=True)
        deleted = await sharing.set_share(db, sharing.GEOFENCE_OWNERS, geo_fence, share, caller)
        await log_caller_action(db, caller, AuditAction.GEOFENCE_SHARED, metadata={
            "geofence_id": geofence_id,
            "share": {str(user_id): shared for user_id, shared in share.items()},
            "deleted": deleted,
        })
        return deleted
