"""
Enumerations shared by the tracking models.

Defines roles, password hash methods, speed units and event/geo-fence types.
"""

import enum


class Role(str, enum.Enum):
    """
    Role flags a caller may hold.

    Roles:
        ADMIN: Unrestricted visibility and write access
        MANAGER: Access limited to self-managed users and their resources
    """
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"


class PasswordHashMethod(str, enum.Enum):
    """Hash method tag stored next to every credential."""
    PLAIN = "PLAIN"
    MD5 = "MD5"
    SHA512 = "SHA512"


class SpeedUnit(str, enum.Enum):
    """Speed unit of user-entered values. Positions store knots."""
    KNOTS = "knots"
    KILOMETERS_PER_HOUR = "kilometersPerHour"
    MILES_PER_HOUR = "milesPerHour"

    def to_knots(self, value: float) -> float:
        return value / _KNOTS_FACTOR[self]


# Units per knot
_KNOTS_FACTOR = {
    SpeedUnit.KNOTS: 1.0,
    SpeedUnit.KILOMETERS_PER_HOUR: 1.852,
    SpeedUnit.MILES_PER_HOUR: 1.150779,
}


class SpeedModifier(str, enum.Enum):
    """Comparator applied to position speed by the position filter."""
    LT = "<"
    LE = "<="
    EQ = "="
    GE = ">="
    GT = ">"


class GeoFenceType(str, enum.Enum):
    CIRCLE = "CIRCLE"
    POLYGON = "POLYGON"
    LINE = "LINE"


class DeviceEventType(str, enum.Enum):
    """Kinds of derived device events."""
    OFFLINE = "OFFLINE"
    GEO_FENCE_ENTER = "GEO_FENCE_ENTER"
    GEO_FENCE_EXIT = "GEO_FENCE_EXIT"
    MAINTENANCE_REQUIRED = "MAINTENANCE_REQUIRED"
