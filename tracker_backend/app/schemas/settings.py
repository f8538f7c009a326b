"""
Settings Pydantic schemas.

Covers per-user preferences and the admin-editable application settings.
"""

from pydantic import BaseModel, Field
from typing import Optional
from tracker_backend.app.models.enums import PasswordHashMethod, SpeedModifier, SpeedUnit


class UserSettingsSchema(BaseModel):
    """Per-user preferences, including the position filter."""
    speed_unit: SpeedUnit = SpeedUnit.KNOTS
    time_zone_id: Optional[str] = None
    center_longitude: float = 12.5
    center_latitude: float = 41.9
    zoom_level: int = 1
    map_type: str = "OSM"

    hide_zero_coordinates: bool = False
    hide_invalid_locations: bool = False
    hide_duplicates: bool = False
    min_distance: Optional[float] = Field(None, ge=0, description="Minimum hop between positions, in km")
    speed_modifier: Optional[SpeedModifier] = None
    speed_for_filter: Optional[float] = Field(None, ge=0, description="Speed threshold in speed_unit")

    class Config:
        from_attributes = True


class ApplicationSettingsSchema(BaseModel):
    """Runtime application settings."""
    registration_enabled: bool = True
    update_interval: int = Field(15000, gt=0, description="Client refresh interval in ms")
    default_hash_implementation: PasswordHashMethod = PasswordHashMethod.MD5
    disallow_device_management_by_users: bool = False
    event_recording_enabled: bool = True
    language: str = Field("default", max_length=16)

    class Config:
        from_attributes = True


class TrackerLogResponse(BaseModel):
    """Tail of the tracker server log, or the reason it is unavailable."""
    available: bool
    content: str
