"""
Position filter pipeline.

Two stages:
    1. Query predicates (zero coordinates, validity, speed) exclude raw
       samples in SQL, ordered by time within the requested window.
    2. A single scan annotates each sample with the distance to its raw
       predecessor and drops duplicate timestamps and short hops.

Distances are measured against the preceding sample of the queried
sequence, not the last retained one.
"""

import operator
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from tracker_backend.app.models.enums import SpeedModifier, SpeedUnit
from tracker_backend.app.models.position import Position
from tracker_backend.app.services.geo import haversine_distance


_SPEED_OPERATORS = {
    SpeedModifier.LT: operator.lt,
    SpeedModifier.LE: operator.le,
    SpeedModifier.EQ: operator.eq,
    SpeedModifier.GE: operator.ge,
    SpeedModifier.GT: operator.gt,
}


@dataclass
class PositionFilter:
    """
    Filter configuration taken from a user's settings.

    `min_distance` is in kilometres; `speed_threshold` is in knots.
    """
    hide_zero_coordinates: bool = False
    hide_invalid_locations: bool = False
    hide_duplicates: bool = False
    min_distance: Optional[float] = None
    speed_modifier: Optional[SpeedModifier] = None
    speed_threshold: Optional[float] = None

    @classmethod
    def from_user_settings(cls, user_settings) -> "PositionFilter":
        if user_settings is None:
            return cls()

        speed_threshold = None
        if user_settings.speed_modifier is not None and user_settings.speed_for_filter is not None:
            unit = SpeedUnit(user_settings.speed_unit or SpeedUnit.KNOTS)
            speed_threshold = unit.to_knots(user_settings.speed_for_filter)

        return cls(
            hide_zero_coordinates=bool(user_settings.hide_zero_coordinates),
            hide_invalid_locations=bool(user_settings.hide_invalid_locations),
            hide_duplicates=bool(user_settings.hide_duplicates),
            min_distance=user_settings.min_distance,
            speed_modifier=user_settings.speed_modifier if speed_threshold is not None else None,
            speed_threshold=speed_threshold,
        )


def positions_query(device_id: int, time_from: datetime, time_to: datetime,
                    filters: Optional[PositionFilter] = None):
    """Build the windowed, time-ordered position query with the SQL-level predicates."""
    query = select(Position).where(
        Position.device_id == device_id,
        Position.time.between(time_from, time_to)
    )

    if filters is not None:
        if filters.hide_zero_coordinates:
            query = query.where(or_(Position.latitude != 0, Position.longitude != 0))
        if filters.hide_invalid_locations:
            query = query.where(Position.valid.is_(True))
        if filters.speed_modifier is not None and filters.speed_threshold is not None:
            compare = _SPEED_OPERATORS[SpeedModifier(filters.speed_modifier)]
            query = query.where(compare(Position.speed, filters.speed_threshold))

    return query.order_by(Position.time, Position.id)


def scan_positions(positions: Sequence[Position], filters: Optional[PositionFilter] = None) -> List[Position]:
    """
    Annotate distances and apply the duplicate/min-distance retention rules.

    Every sample after the first gets `distance` (km) to its raw predecessor,
    whether or not it is retained. The first sample is always retained.
    """
    retained = []
    for i, position in enumerate(positions):
        keep = True
        if i > 0:
            previous = positions[i - 1]
            position.distance = haversine_distance(
                previous.latitude, previous.longitude,
                position.latitude, position.longitude
            )

            if filters is not None and filters.hide_duplicates:
                keep = previous.time != position.time
            if keep and filters is not None and filters.min_distance is not None:
                keep = position.distance >= filters.min_distance
        if keep:
            retained.append(position)
    return retained


async def get_filtered_positions(
    db: AsyncSession,
    device_id: int,
    time_from: datetime,
    time_to: datetime,
    filters: Optional[PositionFilter] = None
) -> List[Position]:
    """
    Run both pipeline stages for one device and window.

    Args:
        db: Database session
        device_id: Device whose positions are read
        time_from, time_to: Inclusive time window
        filters: Filter configuration, or None to return every sample

    Returns:
        Retained positions in time order, each carrying `distance`
    """
    result = await db.execute(positions_query(device_id, time_from, time_to, filters))
    return scan_positions(list(result.scalars().all()), filters)
