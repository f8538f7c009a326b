"""
Great-circle geometry helpers.

Distances are in kilometres unless noted otherwise.
"""

import math

EARTH_RADIUS_KM = 6371.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Args:
        lat1, lon1: First point coordinates (degrees)
        lat2, lon2: Second point coordinates (degrees)

    Returns:
        Distance in kilometers
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = lat2_rad - lat1_rad
    dlon = math.radians(lon2 - lon1)

    a = math.sin(dlat / 2)**2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2)**2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def distance_to_segment_km(lat: float, lon: float, start, end) -> float:
    """
    Approximate distance from a point to the segment start-end.

    Projects onto a local equirectangular plane around the point, which
    is accurate for the short segments geo-fence lines are made of.
    """
    scale = math.cos(math.radians(lat))
    ax, ay = (start[1] - lon) * scale, start[0] - lat
    bx, by = (end[1] - lon) * scale, end[0] - lat

    dx, dy = bx - ax, by - ay
    length_sq = dx * dx + dy * dy
    t = 0.0 if length_sq == 0 else max(0.0, min(1.0, -(ax * dx + ay * dy) / length_sq))

    px, py = ax + t * dx, ay + t * dy
    return math.radians(math.hypot(px, py)) * EARTH_RADIUS_KM
