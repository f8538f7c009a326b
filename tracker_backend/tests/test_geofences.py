"""
Tests for geo-fence containment, geo-fence CRUD and geo-fence sharing.
"""

from types import SimpleNamespace

from sqlalchemy import select

from tracker_backend.app.models.enums import GeoFenceType
from tracker_backend.app.models.geofence import GeoFence, geofence_devices
from tracker_backend.app.services.geofence_calculator import GeoFenceCalculator

calculator = GeoFenceCalculator()


def fence(type, points, radius=None):
    return SimpleNamespace(type=type, points=points, radius=radius)


def point(latitude, longitude):
    return SimpleNamespace(latitude=latitude, longitude=longitude)


def test_circle_contains_points_within_radius():
    depot = fence(GeoFenceType.CIRCLE, [[45.0, 10.0]], radius=1000)

    assert calculator.contains(depot, point(45.005, 10.0))
    assert not calculator.contains(depot, point(45.02, 10.0))


def test_polygon_contains_interior_points_only():
    square = fence(GeoFenceType.POLYGON, [[0, 0], [0, 1], [1, 1], [1, 0]])

    assert calculator.contains(square, point(0.5, 0.5))
    assert not calculator.contains(square, point(1.5, 0.5))


def test_polygon_needs_three_points():
    segment = fence(GeoFenceType.POLYGON, [[0, 0], [1, 1]])

    assert not calculator.contains(segment, point(0.5, 0.5))


def test_line_uses_half_the_radius_as_corridor():
    road = fence(GeoFenceType.LINE, [[45.0, 10.0], [45.0, 10.1]], radius=2000)

    # ~0.56 km off the road
    assert calculator.contains(road, point(45.005, 10.05))
    # ~1.1 km off the road, outside the 1 km corridor
    assert not calculator.contains(road, point(45.01, 10.05))


def test_empty_geofence_contains_nothing():
    assert not calculator.contains(fence(GeoFenceType.CIRCLE, [], radius=100), point(0, 0))


def geofence_payload(name="Depot", device_ids=(), **fields):
    payload = {
        "name": name,
        "type": "POLYGON",
        "points": [[0, 0], [0, 1], [1, 1], [1, 0]],
        "device_ids": list(device_ids),
    }
    payload.update(fields)
    return payload


async def test_add_geofence_links_only_accessible_devices(client, headers, make_user, make_device):
    alice = await make_user("alice")
    bob = await make_user("bob")
    mine = await make_device([alice], "mine")
    theirs = await make_device([bob], "theirs")

    response = await client.post("/v1/geofences", headers=headers(alice),
                                 json=geofence_payload(device_ids=[mine.id, theirs.id]))

    assert response.status_code == 201
    assert response.json()["device_ids"] == [mine.id]

    response = await client.get("/v1/geofences", headers=headers(bob))
    assert response.json() == []


async def test_blank_geofence_name_is_validation_failure(client, headers, make_user):
    alice = await make_user("alice")

    response = await client.post("/v1/geofences", headers=headers(alice), json=geofence_payload(name=" "))

    assert response.status_code == 400


async def test_update_keeps_links_to_devices_caller_cannot_see(client, db_session, headers, make_user,
                                                               make_device, make_geofence):
    alice = await make_user("alice")
    bob = await make_user("bob")
    mine = await make_device([alice], "mine")
    other = await make_device([alice], "other")
    theirs = await make_device([bob], "theirs")
    geo_fence = await make_geofence([alice, bob], "Depot", [[0, 0], [0, 1], [1, 1]], devices=[mine, theirs])

    response = await client.put(f"/v1/geofences/{geo_fence.id}", headers=headers(alice),
                                json=geofence_payload(name="Yard", device_ids=[other.id]))

    assert response.status_code == 200
    assert response.json()["name"] == "Yard"
    assert response.json()["device_ids"] == sorted([other.id, theirs.id])

    result = await db_session.execute(
        select(geofence_devices.c.device_id).where(geofence_devices.c.geofence_id == geo_fence.id)
    )
    assert set(result.scalars().all()) == {other.id, theirs.id}


async def test_cannot_update_foreign_geofence(client, headers, make_user, make_geofence):
    alice = await make_user("alice")
    bob = await make_user("bob")
    geo_fence = await make_geofence([bob], "Depot", [[0, 0], [0, 1], [1, 1]])

    response = await client.put(f"/v1/geofences/{geo_fence.id}", headers=headers(alice), json=geofence_payload())

    assert response.status_code == 403


async def test_missing_geofence_is_not_found(client, headers, make_user):
    alice = await make_user("alice")

    response = await client.delete("/v1/geofences/999", headers=headers(alice))

    assert response.status_code == 404


async def test_removing_last_owner_deletes_geofence_but_not_devices(client, db_session, headers, make_user,
                                                                   make_device, make_geofence):
    alice = await make_user("alice")
    device = await make_device([alice], "mine")
    geo_fence = await make_geofence([alice], "Depot", [[0, 0], [0, 1], [1, 1]], devices=[device])

    response = await client.delete(f"/v1/geofences/{geo_fence.id}", headers=headers(alice))

    assert response.json() == {"id": geo_fence.id, "deleted": True}
    result = await db_session.execute(select(GeoFence.id))
    assert result.scalars().all() == []

    response = await client.get("/v1/devices", headers=headers(alice))
    assert [d["id"] for d in response.json()] == [device.id]


async def test_unsharing_every_owner_purges_geofence(client, db_session, headers, make_user, make_geofence):
    manager = await make_user("manager", manager=True)
    driver = await make_user("driver", managed_by=manager)
    geo_fence = await make_geofence([driver], "Depot", [[0, 0], [0, 1], [1, 1]])

    response = await client.get(f"/v1/geofences/{geo_fence.id}/share", headers=headers(manager))
    assert response.json()["entries"] == [{"user_id": driver.id, "login": "driver", "shared": True}]

    response = await client.put(f"/v1/geofences/{geo_fence.id}/share", headers=headers(manager),
                                json={"entries": [{"user_id": driver.id, "shared": False}]})

    assert response.json() == {"resource_id": geo_fence.id, "deleted": True}
    result = await db_session.execute(select(GeoFence.id))
    assert result.scalars().all() == []


async def test_blank_update_of_foreign_geofence_is_denied_not_invalid(client, headers, make_user, make_geofence):
    alice = await make_user("alice")
    bob = await make_user("bob")
    geo_fence = await make_geofence([bob], "Depot", [[0, 0], [0, 1], [1, 1]])

    response = await client.put(f"/v1/geofences/{geo_fence.id}", headers=headers(alice),
                                json=geofence_payload(name=" "))

    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_PERM_001"
