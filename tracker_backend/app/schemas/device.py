"""
Device and maintenance Pydantic schemas.
"""

from pydantic import BaseModel, Field
from typing import List, Optional


class MaintenanceSchema(BaseModel):
    """
    Maintenance record as submitted with a device.

    Records carrying the id of a stored record update it in place; records
    without an id are created.
    """
    id: Optional[int] = None
    name: str = Field(..., min_length=1, max_length=128)
    index_no: int = 0
    last_service: float = Field(0, ge=0, description="Odometer at last service, km")
    service_interval: float = Field(0, ge=0, description="Distance between services, km")


class MaintenanceResponse(MaintenanceSchema):
    id: int
    device_id: int

    class Config:
        from_attributes = True


class DeviceCreate(BaseModel):
    """Schema for POST /devices."""
    unique_id: str = Field(..., max_length=128, description="External device identifier")
    name: str = Field(..., max_length=128)
    timeout: int = Field(5 * 60, ge=0, description="Offline timeout in seconds")
    idle_speed_threshold: float = Field(0, ge=0, description="Knots")
    odometer: float = Field(0, ge=0, description="Km")
    auto_update_odometer: bool = False
    maintenances: List[MaintenanceSchema] = Field(default_factory=list)


class DeviceUpdate(DeviceCreate):
    """Schema for PUT /devices/{id}; `maintenances` replaces the stored list."""


class DeviceResponse(BaseModel):
    id: int
    unique_id: str
    name: str
    timeout: int
    idle_speed_threshold: float
    odometer: float
    auto_update_odometer: bool
    latest_position_id: Optional[int] = None
    maintenances: List[MaintenanceResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class DeviceDeletionResponse(BaseModel):
    """Outcome of DELETE /devices/{id} and DELETE /geofences/{id}."""
    id: int
    deleted: bool = Field(..., description="True if the last owner was removed and the resource purged")
