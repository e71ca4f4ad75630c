"""
Map viewport helpers.

A region is a map bounding box expressed as a center plus the full span on
each axis (`lat_delta`, `lon_delta`), the shape native map views expect.
Zero-span regions are legal and represent a single point.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from fultramaps.core.geo import Coordinate

DEFAULT_PADDING = 1.2
MIN_DELTA = 0.01


@dataclass(frozen=True)
class MapRegion:
    """Viewport center + latitude/longitude span in decimal degrees."""

    lat: float
    lon: float
    lat_delta: float
    lon_delta: float

    @property
    def center(self) -> Coordinate:
        return Coordinate(lat=self.lat, lon=self.lon)


# Mexico City.
DEFAULT_REGION = MapRegion(lat=19.4326, lon=-99.1332, lat_delta=0.0922, lon_delta=0.0421)


def fit_region(
    points: Sequence[Coordinate],
    padding: float = DEFAULT_PADDING,
    *,
    default: MapRegion = DEFAULT_REGION,
    min_delta: float = MIN_DELTA,
) -> MapRegion:
    """Return a viewport containing all `points`, padded by `padding` and floored at `min_delta`."""
    if not points:
        return default

    if len(points) == 1:
        p = points[0]
        return MapRegion(lat=p.lat, lon=p.lon, lat_delta=min_delta, lon_delta=min_delta)

    min_lat = max_lat = points[0].lat
    min_lon = max_lon = points[0].lon
    for p in points:
        min_lat = min(min_lat, p.lat)
        max_lat = max(max_lat, p.lat)
        min_lon = min(min_lon, p.lon)
        max_lon = max(max_lon, p.lon)

    return MapRegion(
        lat=(min_lat + max_lat) / 2,
        lon=(min_lon + max_lon) / 2,
        lat_delta=max((max_lat - min_lat) * padding, min_delta),
        lon_delta=max((max_lon - min_lon) * padding, min_delta),
    )


def contains(region: MapRegion, point: Coordinate) -> bool:
    """True iff `point` lies within the closed box `center ± delta/2` on both axes."""
    half_lat = region.lat_delta / 2
    half_lon = region.lon_delta / 2
    return (
        region.lat - half_lat <= point.lat <= region.lat + half_lat
        and region.lon - half_lon <= point.lon <= region.lon + half_lon
    )
