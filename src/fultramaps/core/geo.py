from __future__ import annotations
from dataclasses import dataclass
from math import atan2, cos, radians, sin, sqrt

"""
Geospatial helpers.

We keep a tiny geometry layer here so the mapping service and the API can do
distance calculations without pulling in heavier GIS dependencies.

Coordinates are not range-checked: callers are responsible for passing
latitude in [-90, 90] and longitude in [-180, 180]. Validation happens at the
API boundary (`fultramaps.domain.models.GeoPoint`), not here.
"""

EARTH_RADIUS_M = 6_371_000


@dataclass(frozen=True)
class Coordinate:
    """A latitude/longitude pair in decimal degrees (WGS84)."""

    lat: float
    lon: float


def haversine_m(a: Coordinate, b: Coordinate) -> float:
    """Compute great-circle distance in meters between two points."""
    lat1 = radians(a.lat)
    lat2 = radians(b.lat)
    dlat = radians(b.lat - a.lat)
    dlon = radians(b.lon - a.lon)

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * atan2(sqrt(h), sqrt(1 - h))
    return EARTH_RADIUS_M * c
