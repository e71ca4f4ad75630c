"""
Domain models (Pydantic).

These types represent the stable "contract" between layers:
- API/CLI inputs (`GeoPoint`, `DirectionsRequest`)
- provider results (`GeocodingResult`, `PlaceSuggestion`, `PlaceDetails`)
- routes (`RouteInfo`, `DirectionsResponse`)

The pure geometry helpers in `fultramaps.core` work on plain dataclasses and do
not validate; range checks happen here, at the boundary.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from fultramaps.core.formatting import format_distance, format_duration, round_half_up
from fultramaps.core.geo import Coordinate
from fultramaps.core.polyline import CodecName
from fultramaps.core.region import MapRegion

TravelMode = Literal["driving", "walking", "bicycling", "transit"]

DirectionsStatus = Literal[
    "OK",
    "NOT_FOUND",
    "ZERO_RESULTS",
    "MAX_WAYPOINTS_EXCEEDED",
    "INVALID_REQUEST",
    "OVER_QUERY_LIMIT",
    "REQUEST_DENIED",
    "UNKNOWN_ERROR",
]


class GeoPoint(BaseModel):
    """A geographic point in decimal degrees."""

    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)

    def to_coordinate(self) -> Coordinate:
        return Coordinate(lat=self.lat, lon=self.lon)

    @classmethod
    def from_coordinate(cls, c: Coordinate) -> "GeoPoint":
        return cls(lat=c.lat, lon=c.lon)


class Region(BaseModel):
    """Map viewport: center + full span per axis."""

    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)
    lat_delta: float = Field(..., ge=0)
    lon_delta: float = Field(..., ge=0)

    def to_map_region(self) -> MapRegion:
        return MapRegion(lat=self.lat, lon=self.lon, lat_delta=self.lat_delta, lon_delta=self.lon_delta)

    @classmethod
    def from_map_region(cls, r: MapRegion) -> "Region":
        return cls(lat=r.lat, lon=r.lon, lat_delta=r.lat_delta, lon_delta=r.lon_delta)


class Distance(BaseModel):
    """Distance in meters plus its display text."""

    value: int
    text: str

    @classmethod
    def from_meters(cls, meters: float) -> "Distance":
        value = round_half_up(meters)
        return cls(value=value, text=format_distance(value))


class Duration(BaseModel):
    """Duration in seconds plus its display text."""

    value: int
    text: str

    @classmethod
    def from_seconds(cls, seconds: float) -> "Duration":
        value = round_half_up(seconds)
        return cls(value=value, text=format_duration(value))


class AddressComponent(BaseModel):
    long_name: str
    short_name: str
    types: list[str] = Field(default_factory=list)


class GeocodingResult(BaseModel):
    place_id: str
    formatted_address: str
    location: GeoPoint
    address_components: list[AddressComponent] = Field(default_factory=list)


class PlaceSuggestion(BaseModel):
    """One autocomplete suggestion."""

    place_id: str
    description: str
    main_text: str
    secondary_text: str = ""
    types: list[str] = Field(default_factory=list)


class PlaceDetails(BaseModel):
    """A resolved place with its structured address."""

    location: GeoPoint
    address: str
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None
    place_id: str | None = None
    formatted_address: str | None = None


class RouteStep(BaseModel):
    distance: Distance
    duration: Duration
    start_location: GeoPoint
    end_location: GeoPoint
    instruction: str
    maneuver: str | None = None
    polyline: str = ""


class RouteInfo(BaseModel):
    """One route between origin and destination.

    `polyline_codec` names the wire format `polyline` (and step polylines) are
    encoded with; decode with `fultramaps.core.polyline.get_codec`.
    """

    origin: GeoPoint
    destination: GeoPoint
    waypoints: list[GeoPoint] = Field(default_factory=list)
    distance: Distance
    duration: Duration
    polyline: str
    polyline_codec: CodecName
    steps: list[RouteStep] = Field(default_factory=list)


class DirectionsRequest(BaseModel):
    """Directions query; origin/destination/waypoints may be points or free-text addresses."""

    origin: GeoPoint | str
    destination: GeoPoint | str
    waypoints: list[GeoPoint | str] = Field(default_factory=list)
    mode: TravelMode = "driving"
    alternatives: bool = False
    avoid_tolls: bool = False
    avoid_highways: bool = False


class DirectionsResponse(BaseModel):
    routes: list[RouteInfo] = Field(default_factory=list)
    status: DirectionsStatus
    error_message: str | None = None


def location_param(value: GeoPoint | str) -> str:
    """Render a point or address the way provider query strings expect (`lat,lon`)."""
    if isinstance(value, GeoPoint):
        return f"{value.lat},{value.lon}"
    return value
