"""
Geo-fence containment.

The position services only depend on the `GeoFenceContainment` protocol;
`GeoFenceCalculator` is the default implementation and can be swapped
through the `get_containment` dependency.
"""

from typing import Protocol, Sequence

from tracker_backend.app.models.enums import GeoFenceType
from tracker_backend.app.services.geo import distance_to_segment_km, haversine_distance


class GeoFenceContainment(Protocol):
    def contains(self, geo_fence, position) -> bool:
        ...


def _point_in_polygon(lat: float, lon: float, points: Sequence[Sequence[float]]) -> bool:
    """Ray casting over [lat, lon] vertices."""
    inside = False
    j = len(points) - 1
    for i in range(len(points)):
        lat_i, lon_i = points[i][0], points[i][1]
        lat_j, lon_j = points[j][0], points[j][1]
        if (lon_i > lon) != (lon_j > lon):
            crossing = (lat_j - lat_i) * (lon - lon_i) / (lon_j - lon_i) + lat_i
            if lat < crossing:
                inside = not inside
        j = i
    return inside


class GeoFenceCalculator:
    """
    Default containment oracle.

    CIRCLE: within `radius` metres of the first point.
    POLYGON: inside the ring formed by the points.
    LINE: within `radius / 2` metres of any segment.
    """

    def contains(self, geo_fence, position) -> bool:
        points = geo_fence.points or []
        if not points:
            return False

        lat, lon = position.latitude, position.longitude
        radius_km = (geo_fence.radius or 0) / 1000.0

        if geo_fence.type == GeoFenceType.CIRCLE:
            center = points[0]
            return haversine_distance(center[0], center[1], lat, lon) <= radius_km

        if geo_fence.type == GeoFenceType.POLYGON:
            return len(points) >= 3 and _point_in_polygon(lat, lon, points)

        if geo_fence.type == GeoFenceType.LINE:
            if len(points) == 1:
                return haversine_distance(points[0][0], points[0][1], lat, lon) <= radius_km / 2
            return any(
                distance_to_segment_km(lat, lon, start, end) <= radius_km / 2
                for start, end in zip(points, points[1:])
            )

        return False


_default_calculator = GeoFenceCalculator()


def get_containment() -> GeoFenceContainment:
    """FastAPI dependency providing the containment oracle."""
    return _default_calculator
