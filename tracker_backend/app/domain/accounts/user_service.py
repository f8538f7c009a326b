"""
User Service (Domain Logic).

User administration within the manager hierarchy: listing, creation,
updates, removal and role assignment.
"""

from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from tracker_backend.app.core.exceptions import (
    ConflictFailure, PermissionDenied, ResourceNotFoundError, ValidationFailure
)
from tracker_backend.app.core.security import apply_password, set_password
from tracker_backend.app.domain.settings.settings_service import SettingsService
from tracker_backend.app.models.user import User
from tracker_backend.app.models.user_settings import UIStateEntry
from tracker_backend.app.schemas.settings import UserSettingsSchema
from tracker_backend.app.schemas.user import (
    RoleAssignment, UserCreate, UserProfileResponse, UserResponse, UserUpdate
)
from tracker_backend.app.services import sharing
from tracker_backend.app.services.audit import AuditAction, log_caller_action
from tracker_backend.app.services.user_hierarchy import is_visible_to, visible_users


def require_credentials(login: Optional[str], password: Optional[str]) -> str:
    """
    Check that login and password are present and return the stripped login.

    Raises:
        ValidationFailure: if either is missing or blank
    """
    missing = [
        field for field, value in (("login", login), ("password", password))
        if value is None or not value.strip()
    ]
    if missing:
        raise ValidationFailure("Login and password are required", details={"missing": missing})
    return login.strip()


async def login_taken(db: AsyncSession, login: str, exclude_user_id: Optional[int] = None) -> bool:
    query = select(User.id).where(User.login == login)
    if exclude_user_id is not None:
        query = query.where(User.id != exclude_user_id)
    result = await db.execute(query)
    return result.first() is not None


def _event_values(events) -> Optional[list]:
    if events is None:
        return None
    return [event.value for event in events]


class UserService:

    @staticmethod
    async def profile(db: AsyncSession, user: User) -> UserProfileResponse:
        """User with its settings."""
        await db.refresh(user)
        user_settings = await SettingsService.get_user_settings(db, user.id)
        return UserProfileResponse(
            user=UserResponse.model_validate(user),
            settings=UserSettingsSchema.model_validate(user_settings) if user_settings else None
        )

    @staticmethod
    async def get_users(db: AsyncSession, caller: User) -> List[User]:
        """Users visible to the caller (admin: all, manager: managed users)."""
        return await visible_users(db, caller)

    @staticmethod
    async def get_user(db: AsyncSession, user_id: int) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise ResourceNotFoundError("User", user_id)
        return user

    @staticmethod
    async def add_user(db: AsyncSession, caller: User, data: UserCreate) -> User:
        """
        Create a user managed by the caller.

        Only admins can create admins. The password is hashed with the
        application default method.

        Raises:
            ValidationFailure: if login or password is blank
            ConflictFailure: if the login is taken
        """
        login = require_credentials(data.login, data.password)
        if await login_taken(db, login):
            raise ConflictFailure(f"Login '{login}' is already taken", details={"login": login})

        app_settings = await SettingsService.get_application_settings(db)

        user = User(
            login=login,
            email=data.email,
            admin=data.admin and caller.admin,
            manager=data.manager,
            read_only=data.read_only,
            managed_by_id=caller.id,
            notification_events=_event_values(data.notification_events),
        )
        set_password(user, app_settings.default_hash_implementation, data.password)

        db.add(user)
        await db.flush()

        await SettingsService.save_user_settings(db, user.id, data.settings)
        db.add(UIStateEntry.default_archive_grid(user.id))
        await db.flush()

        await log_caller_action(db, caller, AuditAction.USER_CREATED, target=user,
                                metadata={"admin": user.admin, "manager": user.manager})
        return user

    @staticmethod
    async def update_user(db: AsyncSession, caller: User, user_id: int, data: UserUpdate) -> User:
        """
        Update a user.

        A caller updating itself may change its profile and settings but
        cannot grant itself admin, and a non-admin cannot gain manager.
        An admin or manager updating a visible user may change that user's
        login, email and password.

        Raises:
            ValidationFailure: if login or password is blank
            PermissionDenied: if the caller may not update this user
            ConflictFailure: if the new login is taken
        """
        login = require_credentials(data.login, data.password)
        user = await UserService.get_user(db, user_id)
        is_self = user.id == caller.id

        if is_self:
            if data.admin and not caller.admin:
                raise PermissionDenied("You cannot grant yourself admin rights")
        elif not (caller.admin or (caller.manager and await is_visible_to(db, caller, user))):
            raise PermissionDenied("You can only update yourself or users you manage")

        if login != user.login and await login_taken(db, login, exclude_user_id=user.id):
            raise ConflictFailure(f"Login '{login}' is already taken", details={"login": login})

        app_settings = await SettingsService.get_application_settings(db)

        user.login = login
        user.email = data.email
        password_changed = apply_password(user, data.password, app_settings.default_hash_implementation)

        if is_self:
            manager = data.manager if caller.admin else (caller.manager and data.manager)
            user.admin = data.admin
            user.manager = manager
            user.notification_events = _event_values(data.notification_events)
            if data.settings is not None:
                await SettingsService.save_user_settings(db, user.id, data.settings)

        await db.flush()
        await log_caller_action(db, caller, AuditAction.USER_UPDATED, target=user,
                                metadata={"password_changed": password_changed, "self": is_self})
        return user

    @staticmethod
    async def remove_user(db: AsyncSession, caller: User, user_id: int) -> None:
        """
        Remove a user, detaching it from shared devices and geo-fences.

        Raises:
            InvalidState: if the caller removes itself
            PermissionDenied: if a manager removes a user it does not manage
        """
        user = await UserService.get_user(db, user_id)
        target_id, target_login = user.id, user.login

        await sharing.remove_user(db, user, caller)

        await log_caller_action(db, caller, AuditAction.USER_DELETED,
                                metadata={"user_id": target_id, "login": target_login})

    @staticmethod
    async def save_roles(db: AsyncSession, caller: User, assignments: List[RoleAssignment]) -> List[User]:
        """
        Apply role flags to visible users.

        Only admins can change the admin flag; managers set manager and
        read-only flags of the users they manage.
        """
        updated = []
        for assignment in assignments:
            user = await UserService.get_user(db, assignment.id)
            if not await is_visible_to(db, caller, user):
                raise PermissionDenied("You can only change roles of users you manage")

            before = {"admin": user.admin, "manager": user.manager, "read_only": user.read_only}
            if caller.admin:
                user.admin = assignment.admin
            user.manager = assignment.manager
            user.read_only = assignment.read_only
            after = {"admin": user.admin, "manager": user.manager, "read_only": user.read_only}

            if before != after:
                await log_caller_action(db, caller, AuditAction.ROLE_CHANGED, target=user,
                                        metadata={"before": before, "after": after})
            updated.append(user)

        await db.flush()
        return updated
