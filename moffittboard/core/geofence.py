"""Geofence check — pure business logic.

Check-ins can optionally be limited to a circle around the library.
Distances use the haversine formula on a spherical Earth, which is far
more precise than a phone's GPS fix at these scales.

No I/O: this module only transforms data.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

_EARTH_RADIUS_METERS = 6_371_000.0


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lon: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.lat <= 90.0:
            raise ValueError(f"Latitude out of range: {self.lat}")
        if not -180.0 <= self.lon <= 180.0:
            raise ValueError(f"Longitude out of range: {self.lon}")


def distance_meters(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points, in meters."""
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    dlat = lat2 - lat1
    dlon = math.radians(b.lon - a.lon)

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * _EARTH_RADIUS_METERS * math.asin(math.sqrt(h))


def is_within(point: GeoPoint, center: GeoPoint, radius_meters: float) -> bool:
    """True if point lies inside (or on) the circle around center."""
    return distance_meters(point, center) <= radius_meters


@dataclass(frozen=True)
class Geofence:
    """A circular area check-ins must come from."""

    center: GeoPoint
    radius_meters: float

    def contains(self, point: GeoPoint) -> bool:
        return is_within(point, self.center, self.radius_meters)
