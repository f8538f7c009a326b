"""
Device database model and the device owner index table.

A device is shared by a set of owning users; it lives as long as
at least one owner remains.
"""

from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey, Table
from sqlalchemy.sql import func
from tracker_backend.app.db.session import Base


# Owner index table (device_id <-> user_id), indexed both ways
device_owners = Table(
    "users_devices",
    Base.metadata,
    Column("device_id", Integer, ForeignKey("devices.id"), primary_key=True, index=True),
    Column("user_id", Integer, ForeignKey("users.id"), primary_key=True, index=True),
)


class Device(Base):
    """
    Tracked device.

    `latest_position_id` is a weak reference to the last received position;
    it is detached before the device's positions are purged.
    """
    __tablename__ = "devices"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Identification
    unique_id = Column(String(128), unique=True, nullable=False, index=True)
    name = Column(String(128), nullable=False)

    # Behaviour
    timeout = Column(Integer, default=5 * 60, nullable=False)  # seconds
    idle_speed_threshold = Column(Float, default=0, nullable=False)  # knots

    # Odometer (km)
    odometer = Column(Float, default=0, nullable=False)
    auto_update_odometer = Column(Boolean, default=False, nullable=False)

    latest_position_id = Column(Integer, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Device(id={self.id}, unique_id='{self.unique_id}', name='{self.name}')>"
