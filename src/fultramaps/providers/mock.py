"""
Offline mock provider.

Used in development and tests when no provider key is available. Results are
plausible points around the configured default region (Mexico City); routes are
straight lines between the requested points, encoded with the configured codec.
"""

from __future__ import annotations

import random

from fultramaps.config.settings import Settings
from fultramaps.core.formatting import round_half_up
from fultramaps.core.geo import Coordinate, haversine_m
from fultramaps.core.polyline import get_codec
from fultramaps.domain.models import (
    AddressComponent,
    DirectionsRequest,
    DirectionsResponse,
    Distance,
    Duration,
    GeocodingResult,
    GeoPoint,
    PlaceDetails,
    PlaceSuggestion,
    RouteInfo,
)

# Fixture endpoints used when a directions request names addresses instead of points.
MOCK_ORIGIN = GeoPoint(lat=19.4326, lon=-99.1332)
MOCK_DESTINATION = GeoPoint(lat=19.4234, lon=-99.1685)

_JITTER_DEG = 0.05
_CITY_SUFFIX = "Ciudad de México, CDMX, México"


class MockMapsClient:
    name = "mock"

    def __init__(self, settings: Settings, *, rng: random.Random | None = None):
        self._settings = settings
        self._rng = rng or random.Random(settings.maps.mock.seed)
        self.codec = get_codec(settings.maps.resolved_codec(), precision=settings.maps.flexible_precision)

    def _nearby(self) -> GeoPoint:
        region = self._settings.maps.default_region
        return GeoPoint(
            lat=region.lat + self._rng.random() * _JITTER_DEG,
            lon=region.lon + self._rng.random() * _JITTER_DEG,
        )

    def geocode(self, address: str) -> GeocodingResult | None:
        return GeocodingResult(
            place_id="mock-place-id",
            formatted_address=address,
            location=self._nearby(),
            address_components=[AddressComponent(long_name=address, short_name=address, types=["street_address"])],
        )

    def reverse_geocode(self, point: GeoPoint) -> GeocodingResult | None:
        return GeocodingResult(
            place_id="mock-place-id",
            formatted_address=f"Calle Ejemplo {self._rng.randrange(1000)}, Ciudad de México",
            location=point,
        )

    def autocomplete(self, text: str, session_token: str | None = None) -> list[PlaceSuggestion]:
        out: list[PlaceSuggestion] = []
        for i, suffix in enumerate(("", " Norte", " Sur"), start=1):
            main = f"{text}{suffix}"
            out.append(
                PlaceSuggestion(
                    place_id=f"mock-{i}",
                    description=f"{main}, {_CITY_SUFFIX}",
                    main_text=main,
                    secondary_text=_CITY_SUFFIX,
                    types=["street_address"],
                )
            )
        return out

    def place_details(self, place_id: str, session_token: str | None = None) -> PlaceDetails | None:
        return PlaceDetails(
            location=self._nearby(),
            address="Calle de Ejemplo 123",
            city="Ciudad de México",
            state="CDMX",
            postal_code="06600",
            country="México",
            place_id=place_id,
            formatted_address="Calle de Ejemplo 123, Col. Centro, Ciudad de México, CDMX 06600",
        )

    def directions(self, request: DirectionsRequest) -> DirectionsResponse:
        origin = request.origin if isinstance(request.origin, GeoPoint) else MOCK_ORIGIN
        destination = request.destination if isinstance(request.destination, GeoPoint) else MOCK_DESTINATION
        waypoints = [wp for wp in request.waypoints if isinstance(wp, GeoPoint)]

        path: list[Coordinate] = [p.to_coordinate() for p in (origin, *waypoints, destination)]
        meters = sum(haversine_m(a, b) for a, b in zip(path, path[1:]))
        minutes = round_half_up(meters / self._settings.maps.mock.speed_m_per_min)

        route = RouteInfo(
            origin=origin,
            destination=destination,
            waypoints=waypoints,
            distance=Distance.from_meters(meters),
            duration=Duration.from_seconds(minutes * 60),
            polyline=self.codec.encode(path),
            polyline_codec=self.codec.name,
        )
        return DirectionsResponse(routes=[route], status="OK")
