"""
Maintenance database model.

Service schedule of a device, measured on the device odometer.
"""

from sqlalchemy import Column, Integer, String, Float, ForeignKey
from tracker_backend.app.db.session import Base


class Maintenance(Base):
    """
    Maintenance record.

    Belongs to exactly one device and is ordered among its siblings by
    `index_no`. Due once the odometer reaches `last_service + service_interval`.
    """
    __tablename__ = "maintenances"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    device_id = Column(Integer, ForeignKey("devices.id"), nullable=False, index=True)

    name = Column(String(128), nullable=False)
    index_no = Column(Integer, default=0, nullable=False)

    # Odometer baseline and delta (km)
    last_service = Column(Float, default=0, nullable=False)
    service_interval = Column(Float, default=0, nullable=False)

    @property
    def service_threshold(self) -> float:
        return self.last_service + self.service_interval

    def copy_from(self, other) -> None:
        self.name = other.name
        self.index_no = other.index_no
        self.last_service = other.last_service
        self.service_interval = other.service_interval

    def __repr__(self):
        return f"<Maintenance(id={self.id}, device_id={self.device_id}, name='{self.name}', index={self.index_no})>"
