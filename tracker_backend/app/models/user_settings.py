"""
User settings and UI state database models.
"""

import json

from sqlalchemy import Column, Integer, String, Float, Boolean, Enum, ForeignKey, Text
from tracker_backend.app.db.session import Base
from tracker_backend.app.models.enums import SpeedUnit, SpeedModifier


class UserSettings(Base):
    """
    Per-user preferences, including the position filter configuration.

    `min_distance` is in kilometres, `speed_for_filter` in `speed_unit`.
    """
    __tablename__ = "user_settings"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False, index=True)

    speed_unit = Column(Enum(SpeedUnit), default=SpeedUnit.KNOTS, nullable=False)
    time_zone_id = Column(String(64), nullable=True)

    # Map
    center_longitude = Column(Float, default=12.5, nullable=False)
    center_latitude = Column(Float, default=41.9, nullable=False)
    zoom_level = Column(Integer, default=1, nullable=False)
    map_type = Column(String(32), default="OSM", nullable=False)

    # Position filter
    hide_zero_coordinates = Column(Boolean, default=False, nullable=False)
    hide_invalid_locations = Column(Boolean, default=False, nullable=False)
    hide_duplicates = Column(Boolean, default=False, nullable=False)
    min_distance = Column(Float, nullable=True)
    speed_modifier = Column(Enum(SpeedModifier), nullable=True)
    speed_for_filter = Column(Float, nullable=True)

    @classmethod
    def defaults(cls, user_id: int = None) -> "UserSettings":
        return cls(
            user_id=user_id,
            speed_unit=SpeedUnit.KNOTS,
            center_longitude=12.5,
            center_latitude=41.9,
            zoom_level=1,
            map_type="OSM",
            hide_zero_coordinates=False,
            hide_invalid_locations=False,
            hide_duplicates=False,
        )

    def __repr__(self):
        return f"<UserSettings(user_id={self.user_id}, speed_unit='{self.speed_unit}')>"


ARCHIVE_GRID_STATE = "archiveGrid"


class UIStateEntry(Base):
    """Opaque UI state persisted per user (grid layouts and the like)."""
    __tablename__ = "ui_state"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(128), nullable=False)
    value = Column(Text, nullable=True)

    @classmethod
    def default_archive_grid(cls, user_id: int) -> "UIStateEntry":
        hidden = {"valid": True, "altitude": True, "course": True, "distance": True, "other": True}
        return cls(
            user_id=user_id,
            name=ARCHIVE_GRID_STATE,
            value=json.dumps({"columns": {"hidden": hidden}}),
        )
