"""
Sharing registry for devices and geo-fences.

Ownership is kept in index tables (users_devices, users_geofences) instead
of object references. A resource whose owner set becomes empty is purged
in the same unit of work, following a fixed cleanup order:

    device:    detach latest position -> delete events -> delete positions
               -> unlink geo-fences -> delete maintenance -> delete owners
               -> delete device
    geo-fence: delete events -> unlink devices -> delete owners
               -> delete geo-fence
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy import Table, delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tracker_backend.app.core.exceptions import ConflictFailure, InvalidState, PermissionDenied
from tracker_backend.app.models.device import Device, device_owners
from tracker_backend.app.models.device_event import DeviceEvent
from tracker_backend.app.models.geofence import GeoFence, geofence_devices, geofence_owners
from tracker_backend.app.models.maintenance import Maintenance
from tracker_backend.app.models.position import Position
from tracker_backend.app.models.user import User
from tracker_backend.app.models.user_settings import UIStateEntry, UserSettings
from tracker_backend.app.services.user_hierarchy import is_visible_to, managed_users_of, visible_users

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OwnerIndex:
    """Owner index table of one resource kind."""
    table: Table
    key: str

    @property
    def resource_column(self):
        return self.table.c[self.key]

    @property
    def user_column(self):
        return self.table.c.user_id


DEVICE_OWNERS = OwnerIndex(device_owners, "device_id")
GEOFENCE_OWNERS = OwnerIndex(geofence_owners, "geofence_id")


# Owner index primitives

async def owner_ids(db: AsyncSession, index: OwnerIndex, resource_id: int) -> Set[int]:
    result = await db.execute(
        select(index.user_column).where(index.resource_column == resource_id)
    )
    return set(result.scalars().all())


async def owned_resource_ids(db: AsyncSession, index: OwnerIndex, user_ids: Iterable[int]) -> Set[int]:
    result = await db.execute(
        select(index.resource_column).where(index.user_column.in_(list(user_ids)))
    )
    return set(result.scalars().all())


async def add_owner(db: AsyncSession, index: OwnerIndex, resource_id: int, user_id: int) -> None:
    await db.execute(insert(index.table).values({index.key: resource_id, "user_id": user_id}))


async def remove_owners(db: AsyncSession, index: OwnerIndex, resource_id: int, user_ids: Iterable[int]) -> None:
    user_ids = list(user_ids)
    if not user_ids:
        return
    await db.execute(
        delete(index.table).where(
            index.resource_column == resource_id,
            index.user_column.in_(user_ids)
        )
    )


# Accessibility

async def _scope_user_ids(db: AsyncSession, user: User) -> List[int]:
    """The user plus, for managers, the directly managed users."""
    ids = [user.id]
    if user.manager:
        ids.extend(managed.id for managed in await managed_users_of(db, user))
    return ids


async def accessible_devices(db: AsyncSession, user: User) -> List[Device]:
    """
    Devices the user can access.

    Admins access every device; other users access devices they own and,
    for managers, devices owned by their managed users.
    """
    query = select(Device).order_by(Device.id)
    if not user.admin:
        scope = await _scope_user_ids(db, user)
        query = query.where(
            Device.id.in_(select(device_owners.c.device_id).where(device_owners.c.user_id.in_(scope)))
        )
    result = await db.execute(query)
    return list(result.scalars().all())


async def accessible_device_ids(db: AsyncSession, user: User) -> Set[int]:
    return {device.id for device in await accessible_devices(db, user)}


async def accessible_geofences(db: AsyncSession, user: User) -> List[GeoFence]:
    """Geo-fences the user can access, with the same scoping as devices."""
    query = select(GeoFence).order_by(GeoFence.id)
    if not user.admin:
        scope = await _scope_user_ids(db, user)
        query = query.where(
            GeoFence.id.in_(select(geofence_owners.c.geofence_id).where(geofence_owners.c.user_id.in_(scope)))
        )
    result = await db.execute(query)
    return list(result.scalars().all())


async def geofence_device_ids(db: AsyncSession, geofence_id: int) -> Set[int]:
    result = await db.execute(
        select(geofence_devices.c.device_id).where(geofence_devices.c.geofence_id == geofence_id)
    )
    return set(result.scalars().all())


# Devices

async def add_device(
    db: AsyncSession,
    device: Device,
    maintenances: List[Maintenance],
    owner: User
) -> Device:
    """
    Persist a new device owned solely by `owner`, with its maintenance records.

    Raises:
        ConflictFailure: if a device with the same unique id exists (nothing is persisted)
    """
    result = await db.execute(select(Device.id).where(Device.unique_id == device.unique_id))
    if result.first() is not None:
        raise ConflictFailure(
            f"Device with unique id '{device.unique_id}' already exists",
            details={"unique_id": device.unique_id}
        )

    db.add(device)
    await db.flush()
    await add_owner(db, DEVICE_OWNERS, device.id, owner.id)

    for maintenance in maintenances:
        maintenance.device_id = device.id
        db.add(maintenance)
    await db.flush()

    return device


async def purge_device(db: AsyncSession, device: Device) -> None:
    """Delete a device and everything depending on it, in cleanup order."""
    device.latest_position_id = None
    await db.flush()

    await db.execute(delete(DeviceEvent).where(DeviceEvent.device_id == device.id))
    await db.execute(delete(Position).where(Position.device_id == device.id))
    await db.execute(delete(geofence_devices).where(geofence_devices.c.device_id == device.id))
    await db.execute(delete(Maintenance).where(Maintenance.device_id == device.id))
    await db.execute(delete(device_owners).where(device_owners.c.device_id == device.id))

    await db.delete(device)
    await db.flush()
    logger.info("Device %s (%s) deleted with its history", device.id, device.unique_id)


async def remove_device(db: AsyncSession, device: Device, caller: User) -> bool:
    """
    Detach the caller (and, for admins/managers, every visible user) from a device.

    Returns:
        True if the owner set became empty and the device was deleted
    """
    owners = await owner_ids(db, DEVICE_OWNERS, device.id)
    stripped = {caller.id}
    if caller.admin or caller.manager:
        stripped |= {user.id for user in await visible_users(db, caller)}

    await remove_owners(db, DEVICE_OWNERS, device.id, owners & stripped)

    if not owners - stripped:
        await purge_device(db, device)
        return True
    return False


# Geo-fences

async def add_geofence(
    db: AsyncSession,
    geofence: GeoFence,
    owner: User,
    device_ids: Iterable[int] = ()
) -> GeoFence:
    """Persist a geo-fence owned by `owner` and linked to `device_ids`."""
    db.add(geofence)
    await db.flush()
    await add_owner(db, GEOFENCE_OWNERS, geofence.id, owner.id)
    for device_id in sorted(set(device_ids)):
        await db.execute(insert(geofence_devices).values(geofence_id=geofence.id, device_id=device_id))
    return geofence


async def set_geofence_devices(
    db: AsyncSession,
    geofence: GeoFence,
    requested_ids: Iterable[int],
    accessible_ids: Set[int]
) -> Set[int]:
    """
    Reconcile a geo-fence's device links with the requested set.

    Only devices accessible to the caller are linked or unlinked; links to
    devices the caller cannot see are left alone.

    Returns:
        The resulting set of linked device ids
    """
    requested = set(requested_ids)
    current = await geofence_device_ids(db, geofence.id)

    unlink = {device_id for device_id in current if device_id not in requested and device_id in accessible_ids}
    link = (requested & accessible_ids) - current

    if unlink:
        await db.execute(
            delete(geofence_devices).where(
                geofence_devices.c.geofence_id == geofence.id,
                geofence_devices.c.device_id.in_(unlink)
            )
        )
    for device_id in sorted(link):
        await db.execute(insert(geofence_devices).values(geofence_id=geofence.id, device_id=device_id))

    return (current - unlink) | link


async def purge_geofence(db: AsyncSession, geofence: GeoFence) -> None:
    """Delete a geo-fence and its events; linked devices are only unlinked."""
    await db.execute(delete(DeviceEvent).where(DeviceEvent.geo_fence_id == geofence.id))
    await db.execute(delete(geofence_devices).where(geofence_devices.c.geofence_id == geofence.id))
    await db.execute(delete(geofence_owners).where(geofence_owners.c.geofence_id == geofence.id))

    await db.delete(geofence)
    await db.flush()
    logger.info("Geo-fence %s (%s) deleted", geofence.id, geofence.name)


async def remove_geofence(db: AsyncSession, geofence: GeoFence, caller: User) -> bool:
    """
    Detach the caller (and visible users for admins/managers) from a geo-fence.

    Returns:
        True if the geo-fence was deleted
    """
    owners = await owner_ids(db, GEOFENCE_OWNERS, geofence.id)
    stripped = {caller.id}
    if caller.admin or caller.manager:
        stripped |= {user.id for user in await visible_users(db, caller)}

    await remove_owners(db, GEOFENCE_OWNERS, geofence.id, owners & stripped)

    if not owners - stripped:
        await purge_geofence(db, geofence)
        return True
    return False


# Share maps

async def get_share(db: AsyncSession, index: OwnerIndex, resource_id: int, caller: User) -> List[Tuple[User, bool]]:
    """Every user visible to the caller, with whether they own the resource."""
    owners = await owner_ids(db, index, resource_id)
    return [(user, user.id in owners) for user in await visible_users(db, caller)]


async def set_share(
    db: AsyncSession,
    index: OwnerIndex,
    resource,
    share: Dict[int, Optional[bool]],
    caller: User
) -> bool:
    """
    Apply a partial share map (user id -> shared) to a resource's owner set.

    Only users visible to the caller are considered; users absent from the
    map (or mapped to None) keep their current state.

    Returns:
        True if the owner set became empty and the resource was purged
    """
    owners = await owner_ids(db, index, resource.id)

    for user in await visible_users(db, caller):
        shared = share.get(user.id)
        if shared is None:
            continue
        if shared and user.id not in owners:
            await add_owner(db, index, resource.id, user.id)
            owners.add(user.id)
        elif not shared and user.id in owners:
            await remove_owners(db, index, resource.id, [user.id])
            owners.discard(user.id)

    if not owners:
        if index is DEVICE_OWNERS:
            await purge_device(db, resource)
        else:
            await purge_geofence(db, resource)
        return True
    return False


# Users

async def remove_user(db: AsyncSession, user: User, caller: User) -> None:
    """
    Delete a user after detaching it from everything it owns.

    Devices and geo-fences left without owners are purged; users managed
    by the removed user lose their manager reference.

    Raises:
        InvalidState: if the caller tries to remove itself
        PermissionDenied: if a non-admin caller does not manage the user
    """
    if user.id == caller.id:
        raise InvalidState("Users cannot remove themselves")
    if not caller.admin and not await is_visible_to(db, caller, user):
        raise PermissionDenied("You can only remove users you manage")

    await db.execute(delete(UIStateEntry).where(UIStateEntry.user_id == user.id))
    await db.execute(delete(UserSettings).where(UserSettings.user_id == user.id))

    for device_id in sorted(await owned_resource_ids(db, DEVICE_OWNERS, [user.id])):
        await remove_owners(db, DEVICE_OWNERS, device_id, [user.id])
        if not await owner_ids(db, DEVICE_OWNERS, device_id):
            await purge_device(db, await db.get(Device, device_id))

    for geofence_id in sorted(await owned_resource_ids(db, GEOFENCE_OWNERS, [user.id])):
        await remove_owners(db, GEOFENCE_OWNERS, geofence_id, [user.id])
        if not await owner_ids(db, GEOFENCE_OWNERS, geofence_id):
            await purge_geofence(db, await db.get(GeoFence, geofence_id))

    await db.execute(
        update(User).where(User.managed_by_id == user.id).values(managed_by_id=None)
    )

    await db.delete(user)
    await db.flush()
    logger.info("User %s (%s) removed by %s", user.id, user.login, caller.login)
