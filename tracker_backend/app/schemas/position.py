"""
Position Pydantic schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import List, Optional


class PositionResponse(BaseModel):
    """
    Position sample.

    `distance` is the hop from the preceding sample (km) for archive
    queries, or the device odometer for latest positions.
    """
    id: int
    device_id: int
    time: datetime
    valid: bool
    latitude: float
    longitude: float
    altitude: Optional[float] = None
    speed: Optional[float] = None
    course: Optional[float] = None
    address: Optional[str] = None
    other: Optional[str] = None
    distance: Optional[float] = None
    geo_fences: Optional[List[int]] = None

    class Config:
        from_attributes = True
