"""
Tests for the manager hierarchy and user visibility.
"""

from tracker_backend.app.services.user_hierarchy import is_visible_to, managed_users_of, visible_users


async def test_managed_users_are_direct_only(db_session, make_user):
    top = await make_user("top", manager=True)
    middle = await make_user("middle", manager=True, managed_by=top)
    await make_user("bottom", managed_by=middle)

    assert [user.login for user in await managed_users_of(db_session, top)] == ["middle"]


async def test_visibility_by_role(db_session, make_user):
    admin = await make_user("root", admin=True)
    manager = await make_user("manager", manager=True)
    managed = await make_user("managed", managed_by=manager)
    plain = await make_user("plain")

    assert {u.login for u in await visible_users(db_session, admin)} == {"root", "manager", "managed", "plain"}
    assert [u.login for u in await visible_users(db_session, manager)] == ["managed"]
    assert await visible_users(db_session, plain) == []

    assert await is_visible_to(db_session, manager, managed)
    assert not await is_visible_to(db_session, manager, plain)
    assert await is_visible_to(db_session, admin, plain)


async def test_manager_lists_exactly_its_managed_users(client, headers, make_user):
    await make_user("root", admin=True)
    manager = await make_user("manager", manager=True)
    other_manager = await make_user("other", manager=True)
    await make_user("mine-1", managed_by=manager)
    await make_user("mine-2", managed_by=manager)
    await make_user("theirs", managed_by=other_manager)

    response = await client.get("/v1/users", headers=headers(manager))

    assert response.status_code == 200
    assert sorted(user["login"] for user in response.json()) == ["mine-1", "mine-2"]


async def test_plain_users_cannot_list_users(client, headers, make_user):
    plain = await make_user("plain")

    response = await client.get("/v1/users", headers=headers(plain))

    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_PERM_001"
