"""
Device Event database model.

Immutable record of an occurrence derived from device data.
"""

from sqlalchemy import Column, Integer, Boolean, DateTime, Enum, ForeignKey
from tracker_backend.app.db.session import Base
from tracker_backend.app.models.enums import DeviceEventType


class DeviceEvent(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    time = Column(DateTime(timezone=True), nullable=False, index=True)
    type = Column(Enum(DeviceEventType), nullable=False, index=True)

    # References
    device_id = Column(Integer, ForeignKey("devices.id"), nullable=False, index=True)
    position_id = Column(Integer, ForeignKey("positions.id"), nullable=True)
    geo_fence_id = Column(Integer, ForeignKey("geofences.id"), nullable=True, index=True)
    maintenance_id = Column(Integer, ForeignKey("maintenances.id"), nullable=True, index=True)

    notification_sent = Column(Boolean, default=False, nullable=False)

    def __repr__(self):
        return f"<DeviceEvent(id={self.id}, type='{self.type}', device_id={self.device_id})>"
