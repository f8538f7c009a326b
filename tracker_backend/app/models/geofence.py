"""
Geo-fence database model with its owner and device index tables.
"""

from sqlalchemy import Column, Integer, String, Float, Boolean, Enum, ForeignKey, JSON, Table
from tracker_backend.app.db.session import Base
from tracker_backend.app.models.enums import GeoFenceType


# Owner index table (geofence_id <-> user_id)
geofence_owners = Table(
    "users_geofences",
    Base.metadata,
    Column("geofence_id", Integer, ForeignKey("geofences.id"), primary_key=True, index=True),
    Column("user_id", Integer, ForeignKey("users.id"), primary_key=True, index=True),
)

# Device membership (not ownership)
geofence_devices = Table(
    "geofences_devices",
    Base.metadata,
    Column("geofence_id", Integer, ForeignKey("geofences.id"), primary_key=True, index=True),
    Column("device_id", Integer, ForeignKey("devices.id"), primary_key=True, index=True),
)


class GeoFence(Base):
    """
    Named region.

    `points` is a list of [latitude, longitude] pairs; for circles the
    first pair is the centre. `radius` is in metres.
    """
    __tablename__ = "geofences"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(128), nullable=False)
    description = Column(String(1024), nullable=True)
    type = Column(Enum(GeoFenceType), default=GeoFenceType.POLYGON, nullable=False)
    points = Column(JSON, nullable=False, default=list)
    radius = Column(Float, nullable=True)
    color = Column(String(16), nullable=True)
    all_devices = Column(Boolean, default=False, nullable=False)

    def copy_from(self, other) -> None:
        self.name = other.name
        self.description = other.description
        self.type = other.type
        self.points = [list(point) for point in other.points]
        self.radius = other.radius
        self.color = other.color
        self.all_devices = other.all_devices

    def __repr__(self):
        return f"<GeoFence(id={self.id}, name='{self.name}', type='{self.type}')>"
