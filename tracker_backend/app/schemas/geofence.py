"""
Geo-fence Pydantic schemas.
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from tracker_backend.app.models.enums import GeoFenceType


class GeoFenceCreate(BaseModel):
    """
    Schema for POST /geofences and PUT /geofences/{id}.

    `points` are [latitude, longitude] pairs; `device_ids` lists the
    devices the geo-fence applies to.
    """
    name: str = Field(..., max_length=128)
    description: Optional[str] = Field(None, max_length=1024)
    type: GeoFenceType = GeoFenceType.POLYGON
    points: List[List[float]] = Field(default_factory=list)
    radius: Optional[float] = Field(None, ge=0, description="Metres")
    color: Optional[str] = Field(None, max_length=16)
    all_devices: bool = False
    device_ids: List[int] = Field(default_factory=list)


class GeoFenceUpdate(GeoFenceCreate):
    pass


class GeoFenceResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    type: GeoFenceType
    points: List[List[float]]
    radius: Optional[float] = None
    color: Optional[str] = None
    all_devices: bool
    device_ids: List[int] = Field(default_factory=list)

    class Config:
        from_attributes = True
