"""
Position database model.

Stores raw telemetry samples reported by devices.
"""

from sqlalchemy import Column, Integer, Float, Boolean, String, ForeignKey, DateTime
from tracker_backend.app.db.session import Base


class Position(Base):
    """
    Position model.

    Immutable telemetry sample. `distance` and `geo_fences` are transient
    annotations filled in when positions are served; they are never stored.
    """
    __tablename__ = "positions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    device_id = Column(Integer, ForeignKey("devices.id"), nullable=False, index=True)

    time = Column(DateTime(timezone=True), nullable=False, index=True)
    valid = Column(Boolean, default=True, nullable=False)

    # GPS coordinates
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    altitude = Column(Float, nullable=True)

    speed = Column(Float, nullable=True)  # knots
    course = Column(Float, nullable=True)
    address = Column(String(512), nullable=True)
    other = Column(String(4096), nullable=True)

    # Transient annotations
    distance = None
    geo_fences = None

    def __repr__(self):
        return f"<Position(device_id={self.device_id}, time={self.time}, lat={self.latitude}, lng={self.longitude})>"
