"""
Security guards for role-based and ownership-based access control.

`authorize` is a pure predicate over already-loaded caller and target
state returning `Ok` or `Denied`; `enforce` turns a denial into
PermissionDenied at the start of an operation. `require_user` wires both
into FastAPI dependencies.

Usage:
    @router.post("/users")
    async def add_user(
        user_data: UserCreate,
        caller: User = Depends(require_user([Role.ADMIN, Role.MANAGER], write=True)),
        db: AsyncSession = Depends(get_db)
    ):
        ...
"""

from dataclasses import dataclass
from typing import Collection, Iterable, Optional, Union
from fastapi import Depends
from tracker_backend.app.core.dependencies import get_current_user
from tracker_backend.app.core.exceptions import PermissionDenied
from tracker_backend.app.models.enums import Role
from tracker_backend.app.models.user import User


@dataclass(frozen=True)
class Ok:
    """Every check passed."""


@dataclass(frozen=True)
class Denied:
    """A check failed; `reason` is reported to the caller."""
    reason: str


AuthResult = Union[Ok, Denied]


def authorize(
    caller: User,
    required_roles: Optional[Iterable[Role]] = None,
    requires_write: bool = False,
    target_device=None,
    accessible_device_ids: Optional[Collection[int]] = None,
    manages_devices: bool = False,
    app_settings=None
) -> AuthResult:
    """
    Evaluate role, write and device-management predicates for a caller.

    Args:
        caller: Authenticated user
        required_roles: Caller must hold at least one of them; empty means any user
        requires_write: Deny read-only callers
        target_device: Device the operation manages, if any
        accessible_device_ids: Ids of devices the caller can access (needed with target_device)
        manages_devices: Operation creates, changes or removes devices
        app_settings: ApplicationSettings, consulted when manages_devices is set

    Returns:
        Ok() or Denied(reason)
    """
    if caller is None:
        return Denied("Authentication required")

    roles = set(required_roles or ())
    if roles and not (caller.roles & roles):
        return Denied(f"Access denied. Required role: {', '.join(sorted(r.value for r in roles))}")

    if requires_write and caller.read_only:
        return Denied("Read-only users cannot modify data")

    if manages_devices and app_settings is not None and app_settings.disallow_device_management_by_users:
        if not (caller.admin or caller.manager):
            return Denied("Device management is disabled for regular users")

    if target_device is not None and not caller.admin:
        if target_device.id not in set(accessible_device_ids or ()):
            return Denied("Access denied. You do not have permission to manage this device.")

    return Ok()


def enforce(result: AuthResult) -> None:
    """
    Stop the operation when the guard denied it.

    Raises:
        PermissionDenied: if result is Denied
    """
    if isinstance(result, Denied):
        raise PermissionDenied(result.reason)


def require_user(roles: Optional[Iterable[Role]] = None, write: bool = False):
    """
    Dependency factory for role- and write-gated operations.

    Args:
        roles: Roles of which the caller must hold at least one (None for any user)
        write: Whether the operation mutates data

    Returns:
        FastAPI dependency resolving to the authorized caller
    """
    required = tuple(roles or ())

    async def caller_checker(caller: User = Depends(get_current_user)) -> User:
        enforce(authorize(caller, required_roles=required, requires_write=write))
        return caller

    return caller_checker


require_admin = require_user([Role.ADMIN])
require_manager = require_user([Role.ADMIN, Role.MANAGER])
