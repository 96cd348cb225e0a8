"""Great-circle distance and approximate bounding boxes."""

from __future__ import annotations

import math
from dataclasses import dataclass

from clinicfinder.models import Coordinate

EARTH_RADIUS_METERS = 6_371_000
EARTH_RADIUS_KM = 6371.0

# cos(latitude) is clamped to this floor so the longitude offset stays finite
# near the poles.
_MIN_COS_LAT = 1e-6
MAX_SUPPORTED_LATITUDE = 89.9


@dataclass(frozen=True)
class BoundingBox:
    north: float
    south: float
    east: float
    west: float

    def contains(self, point: Coordinate) -> bool:
        return (
            self.south <= point.latitude <= self.north
            and self.west <= point.longitude <= self.east
        )


def haversine_distance_km(a: Coordinate, b: Coordinate) -> float:
    """Full-precision great-circle distance in kilometers.

    Use :func:`round_distance` for presentation; sorting uses this value.
    """
    lat_a = math.radians(a.latitude)
    lat_b = math.radians(b.latitude)
    delta_lat = math.radians(b.latitude - a.latitude)
    delta_lng = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat_a) * math.cos(lat_b) * math.sin(delta_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_KM * c


def round_distance(distance_km: float) -> float:
    return round(distance_km, 2)


def bounding_box(center: Coordinate, radius_meters: float) -> BoundingBox:
    """Flat-earth box around *center*, over-inclusive for small radii.

    Raises ``ValueError`` for non-positive radii and for centers beyond
    ``MAX_SUPPORTED_LATITUDE`` where the longitude correction diverges.
    """
    if radius_meters <= 0:
        raise ValueError(f"radius must be positive, got {radius_meters}")
    if abs(center.latitude) > MAX_SUPPORTED_LATITUDE:
        raise ValueError(f"latitude {center.latitude} is too close to a pole")

    lat_offset = math.degrees(radius_meters / EARTH_RADIUS_METERS)
    cos_lat = max(math.cos(math.radians(center.latitude)), _MIN_COS_LAT)
    lng_offset = math.degrees(radius_meters / (EARTH_RADIUS_METERS * cos_lat))

    return BoundingBox(
        north=min(center.latitude + lat_offset, 90.0),
        south=max(center.latitude - lat_offset, -90.0),
        east=center.longitude + lng_offset,
        west=center.longitude - lng_offset,
    )
