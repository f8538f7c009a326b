"""
Auth Service (Domain Logic).

Login with rehash-on-login, self-registration and logout.
"""

import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from tracker_backend.app.core.exceptions import AuthenticationError, InvalidState, PermissionDenied
from tracker_backend.app.core.security import needs_rehash, set_password, verify_credential
from tracker_backend.app.core.token_revocation import revoke_token
from tracker_backend.app.domain.accounts.user_service import login_taken, require_credentials
from tracker_backend.app.domain.settings.settings_service import SettingsService
from tracker_backend.app.models.enums import PasswordHashMethod
from tracker_backend.app.models.user import User
from tracker_backend.app.models.user_settings import UIStateEntry, UserSettings
from tracker_backend.app.services.audit import AuditAction, log_auth_event

logger = logging.getLogger(__name__)


class AuthService:

    @staticmethod
    async def login(
        db: AsyncSession,
        login: str,
        password: str,
        hashed: bool = False,
        ip_address: Optional[str] = None
    ) -> User:
        """
        Authenticate a user.

        When the stored hash method is not the application default and the
        plaintext was supplied, the credential is rehashed with the default.

        Args:
            db: Database session
            login: Login name
            password: Plaintext, or the stored hash when `hashed` is set
            hashed: Whether `password` is already hashed
            ip_address: Client address for the audit log

        Returns:
            The authenticated User

        Raises:
            AuthenticationError: on unknown login, empty or wrong credential.
                The failed attempt is already flushed to the audit log.
        """
        result = await db.execute(select(User).where(User.login == login))
        user = result.scalar_one_or_none()

        if not verify_credential(user, password, already_hashed=hashed):
            await log_auth_event(
                db=db,
                action=AuditAction.LOGIN_FAILED,
                user_id=user.id if user else None,
                login=login,
                ip_address=ip_address,
                metadata={"reason": "Invalid credentials" if user else "User not found"}
            )
            logger.warning("Failed login for '%s'", login)
            raise AuthenticationError()

        app_settings = await SettingsService.get_application_settings(db)
        default_method = app_settings.default_hash_implementation
        if needs_rehash(user.password_hash_method, default_method, hashed):
            previous = user.password_hash_method
            set_password(user, default_method, password)
            await log_auth_event(
                db=db,
                action=AuditAction.PASSWORD_REHASHED,
                user_id=user.id,
                login=user.login,
                metadata={"from": PasswordHashMethod(previous).value, "to": user.password_hash_method.value}
            )

        await log_auth_event(
            db=db,
            action=AuditAction.LOGIN_SUCCESS,
            user_id=user.id,
            login=user.login,
            ip_address=ip_address
        )
        return user

    @staticmethod
    async def register(db: AsyncSession, login: str, password: str) -> User:
        """
        Self-register a new user.

        Registered users are managers of their own (initially empty) tree
        and get default settings and UI state.

        Raises:
            PermissionDenied: if registration is disabled
            ValidationFailure: if login or password is blank
            InvalidState: if the login is taken
        """
        app_settings = await SettingsService.get_application_settings(db)
        if not app_settings.registration_enabled:
            raise PermissionDenied("Registration is disabled")

        login = require_credentials(login, password)
        if await login_taken(db, login):
            raise InvalidState(f"Login '{login}' is already registered")

        user = User(login=login, admin=False, manager=True, read_only=False)
        set_password(user, app_settings.default_hash_implementation, password)
        db.add(user)
        await db.flush()

        db.add(UserSettings.defaults(user.id))
        db.add(UIStateEntry.default_archive_grid(user.id))
        await db.flush()

        await log_auth_event(db=db, action=AuditAction.USER_REGISTERED, user_id=user.id, login=user.login)
        return user

    @staticmethod
    async def logout(db: AsyncSession, caller: User, token: str) -> bool:
        """Revoke the presented token."""
        revoked = await revoke_token(token, caller.id)
        await log_auth_event(db=db, action=AuditAction.LOGOUT, user_id=caller.id, login=caller.login)
        return revoked
