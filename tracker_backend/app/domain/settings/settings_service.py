"""
Settings Service (Domain Logic).

Application-wide settings, per-user settings and the tracker server log.
"""

import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from tracker_backend.app.core.exceptions import ResourceUnavailable
from tracker_backend.app.models.application_settings import ApplicationSettings
from tracker_backend.app.models.user import User
from tracker_backend.app.models.user_settings import UserSettings
from tracker_backend.app.schemas.settings import ApplicationSettingsSchema, TrackerLogResponse, UserSettingsSchema
from tracker_backend.app.services.audit import AuditAction, log_caller_action
from tracker_backend.app.services.tracker_log import read_log_tail

logger = logging.getLogger(__name__)


class SettingsService:

    @staticmethod
    async def get_application_settings(db: AsyncSession) -> ApplicationSettings:
        """
        Return the application settings row, creating it with defaults on first use.
        """
        result = await db.execute(select(ApplicationSettings).order_by(ApplicationSettings.id).limit(1))
        app_settings = result.scalar_one_or_none()
        if app_settings is None:
            app_settings = ApplicationSettings.defaults()
            db.add(app_settings)
            await db.flush()
            logger.info("Application settings initialised with defaults")
        return app_settings

    @staticmethod
    async def update_application_settings(
        db: AsyncSession,
        caller: User,
        data: ApplicationSettingsSchema
    ) -> ApplicationSettings:
        """Overwrite the application settings. Admin-only, enforced by the endpoint."""
        app_settings = await SettingsService.get_application_settings(db)
        changes = {}
        for field, value in data.model_dump().items():
            if getattr(app_settings, field) != value:
                changes[field] = value
            setattr(app_settings, field, value)

        await db.flush()
        await log_caller_action(db, caller, AuditAction.SETTINGS_UPDATED, metadata={"changes": changes})
        return app_settings

    @staticmethod
    async def get_user_settings(db: AsyncSession, user_id: int) -> Optional[UserSettings]:
        result = await db.execute(select(UserSettings).where(UserSettings.user_id == user_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def save_user_settings(
        db: AsyncSession,
        user_id: int,
        data: Optional[UserSettingsSchema]
    ) -> UserSettings:
        """
        Create or overwrite a user's settings.

        With `data` None an existing row is kept as is and a missing one
        is created with defaults.
        """
        user_settings = await SettingsService.get_user_settings(db, user_id)
        if user_settings is None:
            user_settings = UserSettings.defaults(user_id)
            db.add(user_settings)
        if data is not None:
            for field, value in data.model_dump().items():
                setattr(user_settings, field, value)
        await db.flush()
        return user_settings

    @staticmethod
    def get_tracker_server_log(size_kb: int) -> TrackerLogResponse:
        """
        Tail of the tracker server log.

        A missing log is not an error: the explanation is returned instead.
        """
        try:
            return TrackerLogResponse(available=True, content=read_log_tail(size_kb))
        except ResourceUnavailable as exc:
            logger.warning("%s", exc.message)
            return TrackerLogResponse(available=False, content=exc.message)
