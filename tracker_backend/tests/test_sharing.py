"""
Tests for the sharing registry: ownership, cascading deletes and share maps.
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select

from tracker_backend.app.core.exceptions import ConflictFailure, InvalidState, PermissionDenied
from tracker_backend.app.models.device import Device, device_owners
from tracker_backend.app.models.device_event import DeviceEvent
from tracker_backend.app.models.enums import DeviceEventType
from tracker_backend.app.models.geofence import GeoFence, geofence_devices
from tracker_backend.app.models.maintenance import Maintenance
from tracker_backend.app.models.position import Position
from tracker_backend.app.models.user import User
from tracker_backend.app.models.user_settings import UIStateEntry, UserSettings
from tracker_backend.app.services import sharing


async def count(db, column, *criteria) -> int:
    result = await db.execute(select(func.count(column)).where(*criteria))
    return result.scalar_one()


@pytest.fixture
async def tracked_device(db_session, make_user, make_device, make_position, make_geofence, ts):
    """A device with positions, events, maintenance and a geo-fence link, owned by alice and bob."""
    alice = await make_user("alice")
    bob = await make_user("bob")
    device = await make_device([alice, bob], "dev-1", maintenances=[("oil", 1000, 500)])
    position = await make_position(device, ts(0), 45.0, 10.0, latest=True)
    await make_position(device, ts(1), 45.1, 10.1)
    geo_fence = await make_geofence([alice], "yard", [[45.0, 10.0]], devices=[device])
    db_session.add(DeviceEvent(time=datetime.now(timezone.utc), type=DeviceEventType.GEO_FENCE_ENTER,
                               device_id=device.id, position_id=position.id, geo_fence_id=geo_fence.id))
    await db_session.commit()
    return device, alice, bob, geo_fence


async def test_removing_non_last_owner_keeps_device(db_session, tracked_device):
    device, alice, bob, _ = tracked_device

    deleted = await sharing.remove_device(db_session, device, alice)

    assert deleted is False
    assert await sharing.owner_ids(db_session, sharing.DEVICE_OWNERS, device.id) == {bob.id}
    assert await count(db_session, Position.id, Position.device_id == device.id) == 2


async def test_removing_last_owner_purges_device_and_dependents(db_session, tracked_device):
    device, alice, bob, geo_fence = tracked_device
    device_id = device.id

    assert await sharing.remove_device(db_session, device, alice) is False
    assert await sharing.remove_device(db_session, device, bob) is True
    await db_session.commit()

    assert await count(db_session, Device.id, Device.id == device_id) == 0
    assert await count(db_session, Position.id, Position.device_id == device_id) == 0
    assert await count(db_session, DeviceEvent.id, DeviceEvent.device_id == device_id) == 0
    assert await count(db_session, Maintenance.id, Maintenance.device_id == device_id) == 0
    assert await count(db_session, geofence_devices.c.device_id, geofence_devices.c.device_id == device_id) == 0
    assert await count(db_session, device_owners.c.device_id, device_owners.c.device_id == device_id) == 0
    # geo-fences are only unlinked
    assert await count(db_session, GeoFence.id, GeoFence.id == geo_fence.id) == 1


async def test_admin_removal_strips_every_visible_owner(db_session, make_user, tracked_device):
    device, _, _, _ = tracked_device
    admin = await make_user("root", admin=True)

    assert await sharing.remove_device(db_session, device, admin) is True


async def test_manager_removal_strips_managed_owners_only(db_session, make_user, make_device):
    manager = await make_user("manager", manager=True)
    managed = await make_user("managed", managed_by=manager)
    outsider = await make_user("outsider")
    device = await make_device([manager, managed, outsider], "dev-1")

    assert await sharing.remove_device(db_session, device, manager) is False
    assert await sharing.owner_ids(db_session, sharing.DEVICE_OWNERS, device.id) == {outsider.id}


async def test_add_device_with_taken_unique_id_persists_nothing(db_session, make_user, make_device):
    owner = await make_user("owner")
    await make_device([owner], "dev-1")
    duplicate = Device(unique_id="dev-1", name="copy")

    with pytest.raises(ConflictFailure):
        await sharing.add_device(db_session, duplicate, [Maintenance(name="oil")], owner)
    await db_session.rollback()

    assert await count(db_session, Device.id) == 1
    assert await count(db_session, Maintenance.id) == 0


async def test_add_device_binds_owner_and_maintenance(db_session, make_user):
    owner = await make_user("owner")
    device = Device(unique_id="dev-9", name="van")

    await sharing.add_device(db_session, device, [Maintenance(name="oil", index_no=0)], owner)

    assert await sharing.owner_ids(db_session, sharing.DEVICE_OWNERS, device.id) == {owner.id}
    assert await count(db_session, Maintenance.id, Maintenance.device_id == device.id) == 1


async def test_partial_share_leaves_absent_users_untouched(db_session, make_user, make_device):
    admin = await make_user("root", admin=True)
    alice = await make_user("alice")
    bob = await make_user("bob")
    carol = await make_user("carol")
    device = await make_device([alice, bob], "dev-1")

    deleted = await sharing.set_share(db_session, sharing.DEVICE_OWNERS, device, {alice.id: False, carol.id: True}, admin)

    assert deleted is False
    assert await sharing.owner_ids(db_session, sharing.DEVICE_OWNERS, device.id) == {bob.id, carol.id}


async def test_share_edit_emptying_owner_set_purges_device(db_session, make_user, tracked_device):
    device, alice, bob, _ = tracked_device
    admin = await make_user("root", admin=True)
    device_id = device.id

    deleted = await sharing.set_share(db_session, sharing.DEVICE_OWNERS, device, {alice.id: False, bob.id: False}, admin)

    assert deleted is True
    assert await count(db_session, Device.id, Device.id == device_id) == 0
    assert await count(db_session, Position.id, Position.device_id == device_id) == 0


async def test_manager_share_ignores_users_outside_its_tree(db_session, make_user, make_device):
    manager = await make_user("manager", manager=True)
    managed = await make_user("managed", managed_by=manager)
    outsider = await make_user("outsider")
    device = await make_device([manager], "dev-1")

    await sharing.set_share(db_session, sharing.DEVICE_OWNERS, device, {managed.id: True, outsider.id: True}, manager)

    assert await sharing.owner_ids(db_session, sharing.DEVICE_OWNERS, device.id) == {manager.id, managed.id}
    share = await sharing.get_share(db_session, sharing.DEVICE_OWNERS, device.id, manager)
    assert [(user.login, shared) for user, shared in share] == [("managed", True)]


async def test_removing_last_geofence_owner_deletes_events_but_not_devices(db_session, tracked_device):
    device, alice, _, geo_fence = tracked_device
    geo_fence_id = geo_fence.id

    assert await sharing.remove_geofence(db_session, geo_fence, alice) is True
    await db_session.commit()

    assert await count(db_session, GeoFence.id, GeoFence.id == geo_fence_id) == 0
    assert await count(db_session, DeviceEvent.id, DeviceEvent.geo_fence_id == geo_fence_id) == 0
    assert await count(db_session, Device.id, Device.id == device.id) == 1


async def test_accessible_devices_follow_management(db_session, make_user, make_device):
    manager = await make_user("manager", manager=True)
    managed = await make_user("managed", managed_by=manager)
    outsider = await make_user("outsider")
    own = await make_device([manager], "own")
    managed_device = await make_device([managed], "managed")
    foreign = await make_device([outsider], "foreign")

    assert await sharing.accessible_device_ids(db_session, manager) == {own.id, managed_device.id}
    assert await sharing.accessible_device_ids(db_session, managed) == {managed_device.id}
    admin = await make_user("root", admin=True)
    assert await sharing.accessible_device_ids(db_session, admin) == {own.id, managed_device.id, foreign.id}


async def test_user_cannot_remove_itself(db_session, make_user):
    admin = await make_user("root", admin=True)

    with pytest.raises(InvalidState):
        await sharing.remove_user(db_session, admin, admin)


async def test_manager_cannot_remove_unmanaged_user(db_session, make_user):
    manager = await make_user("manager", manager=True)
    outsider = await make_user("outsider")

    with pytest.raises(PermissionDenied):
        await sharing.remove_user(db_session, outsider, manager)


async def test_remove_user_detaches_and_cascades(db_session, make_user, make_device, make_geofence):
    admin = await make_user("root", admin=True)
    leaving = await make_user("leaving", manager=True)
    staying = await make_user("staying")
    orphan = await make_user("orphan", managed_by=leaving)
    solo = await make_device([leaving], "solo")
    shared = await make_device([leaving, staying], "shared")
    fence = await make_geofence([leaving], "fence", [[45.0, 10.0], [45.1, 10.0], [45.1, 10.1]])
    solo_id, fence_id, leaving_id = solo.id, fence.id, leaving.id

    await sharing.remove_user(db_session, leaving, admin)
    await db_session.commit()

    assert await count(db_session, User.id, User.id == leaving_id) == 0
    assert await count(db_session, Device.id, Device.id == solo_id) == 0
    assert await sharing.owner_ids(db_session, sharing.DEVICE_OWNERS, shared.id) == {staying.id}
    assert await count(db_session, GeoFence.id, GeoFence.id == fence_id) == 0
    assert await count(db_session, UIStateEntry.id, UIStateEntry.user_id == leaving_id) == 0
    assert await count(db_session, UserSettings.id, UserSettings.user_id == leaving_id) == 0
    result = await db_session.execute(select(User.managed_by_id).where(User.id == orphan.id))
    assert result.scalar_one() is None
