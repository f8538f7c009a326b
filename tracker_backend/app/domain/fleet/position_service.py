"""
Position Service (Domain Logic).

Archive queries through the position filter pipeline, and latest
positions of accessible devices.
"""

from datetime import datetime
from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from tracker_backend.app.domain.fleet.device_service import DeviceService
from tracker_backend.app.domain.settings.settings_service import SettingsService
from tracker_backend.app.models.position import Position
from tracker_backend.app.models.user import User
from tracker_backend.app.services import sharing
from tracker_backend.app.services.geofence_calculator import GeoFenceContainment
from tracker_backend.app.services.position_filter import PositionFilter, get_filtered_positions


class PositionService:

    @staticmethod
    async def get_positions(
        db: AsyncSession,
        caller: User,
        device_id: int,
        time_from: datetime,
        time_to: datetime,
        apply_filter: bool = False
    ) -> List[Position]:
        """
        Positions of an accessible device within [time_from, time_to].

        With `apply_filter` the caller's filter preferences are applied;
        distances to the preceding sample are filled in either way.
        """
        device = await DeviceService.get_accessible_device(db, caller, device_id)

        filters = None
        if apply_filter:
            user_settings = await SettingsService.get_user_settings(db, caller.id)
            filters = PositionFilter.from_user_settings(user_settings)

        return await get_filtered_positions(db, device.id, time_from, time_to, filters)

    @staticmethod
    async def get_latest_positions(
        db: AsyncSession,
        caller: User,
        containment: GeoFenceContainment
    ) -> List[Position]:
        """
        Latest position of every accessible device.

        Each position is annotated with the ids of the accessible geo-fences
        containing it, and `distance` carries the device odometer.
        """
        devices = await sharing.accessible_devices(db, caller)
        geo_fences = await sharing.accessible_geofences(db, caller)

        positions = []
        for device in devices:
            if device.latest_position_id is None:
                continue
            position = await db.get(Position, device.latest_position_id)
            if position is None:
                continue
            position.geo_fences = [
                geo_fence.id for geo_fence in geo_fences
                if containment.contains(geo_fence, position)
            ]
            position.distance = device.odometer
            positions.append(position)
        return positions

    @staticmethod
    async def get_latest_non_idle_positions(db: AsyncSession, caller: User) -> List[Position]:
        """
        Per accessible device, the newest moving position.

        Devices that never moved report their earliest position instead;
        devices without positions are skipped.
        """
        positions = []
        for device in await sharing.accessible_devices(db, caller):
            result = await db.execute(
                select(Position)
                .where(Position.device_id == device.id, Position.speed > 0)
                .order_by(Position.time.desc(), Position.id.desc())
                .limit(1)
            )
            position = result.scalar_one_or_none()
            if position is None:
                result = await db.execute(
                    select(Position)
                    .where(Position.device_id == device.id)
                    .order_by(Position.time, Position.id)
                    .limit(1)
                )
                position = result.scalar_one_or_none()
            if position is not None:
                positions.append(position)
        return positions
