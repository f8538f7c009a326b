"""
Unit tests for the authorization guard.
"""

import pytest

from tracker_backend.app.core.exceptions import PermissionDenied
from tracker_backend.app.core.guards import Denied, Ok, authorize, enforce
from tracker_backend.app.models.application_settings import ApplicationSettings
from tracker_backend.app.models.device import Device
from tracker_backend.app.models.enums import Role
from tracker_backend.app.models.user import User


def user(admin=False, manager=False, read_only=False) -> User:
    return User(id=1, login="u", admin=admin, manager=manager, read_only=read_only)


def test_any_authenticated_user_passes_without_role_requirement():
    assert authorize(user()) == Ok()


def test_missing_caller_is_denied():
    assert isinstance(authorize(None), Denied)


@pytest.mark.parametrize("caller, roles, allowed", [
    (user(admin=True), [Role.ADMIN], True),
    (user(manager=True), [Role.ADMIN], False),
    (user(manager=True), [Role.ADMIN, Role.MANAGER], True),
    (user(), [Role.ADMIN, Role.MANAGER], False),
])
def test_role_check(caller, roles, allowed):
    assert isinstance(authorize(caller, required_roles=roles), Ok) is allowed


def test_read_only_is_denied_writes_regardless_of_role():
    caller = user(admin=True, read_only=True)

    assert authorize(caller, required_roles=[Role.ADMIN]) == Ok()
    result = authorize(caller, required_roles=[Role.ADMIN], requires_write=True)
    assert isinstance(result, Denied)
    assert "Read-only" in result.reason


def test_device_scope_for_non_admins():
    device = Device(id=7, unique_id="d7", name="d7")

    assert authorize(user(), target_device=device, accessible_device_ids={7}) == Ok()
    assert isinstance(authorize(user(), target_device=device, accessible_device_ids={8}), Denied)
    assert isinstance(authorize(user(manager=True), target_device=device, accessible_device_ids=None), Denied)
    assert authorize(user(admin=True), target_device=device, accessible_device_ids=set()) == Ok()


def test_device_management_can_be_restricted_to_admins_and_managers():
    app_settings = ApplicationSettings(disallow_device_management_by_users=True)

    assert isinstance(authorize(user(), manages_devices=True, app_settings=app_settings), Denied)
    assert authorize(user(manager=True), manages_devices=True, app_settings=app_settings) == Ok()
    assert authorize(user(), manages_devices=False, app_settings=app_settings) == Ok()


def test_enforce_raises_permission_denied():
    enforce(Ok())
    with pytest.raises(PermissionDenied) as exc_info:
        enforce(Denied("nope"))
    assert exc_info.value.message == "nope"
    assert exc_info.value.status_code == 403
