"""
Application settings API endpoints.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from tracker_backend.app.db.session import get_db
from tracker_backend.app.models.enums import Role
from tracker_backend.app.models.user import User
from tracker_backend.app.schemas.settings import ApplicationSettingsSchema, TrackerLogResponse
from tracker_backend.app.core.dependencies import get_current_user
from tracker_backend.app.core.guards import require_admin, require_user
from tracker_backend.app.domain.settings.settings_service import SettingsService

router = APIRouter(prefix="/settings", tags=["Settings"])


@router.get("", response_model=ApplicationSettingsSchema)
async def get_application_settings(
    caller: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    app_settings = await SettingsService.get_application_settings(db)
    response = ApplicationSettingsSchema.model_validate(app_settings)
    await db.commit()
    return response


@router.put("", response_model=ApplicationSettingsSchema)
async def update_application_settings(
    data: ApplicationSettingsSchema,
    caller: User = Depends(require_user([Role.ADMIN], write=True)),
    db: AsyncSession = Depends(get_db)
):
    app_settings = await SettingsService.update_application_settings(db, caller, data)
    response = ApplicationSettingsSchema.model_validate(app_settings)
    await db.commit()
    return response


@router.get("/tracker-log", response_model=TrackerLogResponse)
async def get_tracker_server_log(
    size_kb: int = Query(64, ge=1, le=32767),
    caller: User = Depends(require_admin)
):
    """Tail of the tracker server log; reports where it looked when the log is missing."""
    return SettingsService.get_tracker_server_log(size_kb)
