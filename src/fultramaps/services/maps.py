"""
Mapping service façade.

`MapService` is what the API and CLI talk to. It hides which provider is
configured (`maps.provider`) and adds the geometry the delivery screens need on
top of raw provider results: decoded route paths and viewports that fit them.
"""

from __future__ import annotations

import logging
from typing import Sequence

from fultramaps.config.settings import Settings
from fultramaps.core.cache import FileCache
from fultramaps.core.env import resolve_project_path
from fultramaps.core.geo import Coordinate, haversine_m
from fultramaps.core.polyline import PolylineCodec, decode_or_empty, get_codec
from fultramaps.core.rate_limit import TokenBucketRateLimiter
from fultramaps.core.region import MapRegion, contains, fit_region
from fultramaps.domain.models import (
    DirectionsRequest,
    DirectionsResponse,
    Distance,
    GeocodingResult,
    GeoPoint,
    PlaceDetails,
    PlaceSuggestion,
    RouteInfo,
)
from fultramaps.providers.base import MapsProvider
from fultramaps.providers.google import GoogleMapsClient
from fultramaps.providers.here import HereMapsClient
from fultramaps.providers.mock import MockMapsClient

logger = logging.getLogger(__name__)


def build_cache(settings: Settings) -> FileCache:
    return FileCache(
        resolve_project_path(settings.cache.dir),
        enabled=settings.cache.enabled,
        default_ttl_seconds=settings.cache.default_ttl_seconds,
    )


def build_provider(settings: Settings, cache: FileCache) -> MapsProvider:
    """Instantiate the provider client named by `maps.provider`."""
    rpm = settings.maps.max_requests_per_minute
    limiter = TokenBucketRateLimiter(max_per_minute=rpm) if rpm > 0 else None

    provider = settings.maps.provider
    if provider == "google":
        client: MapsProvider = GoogleMapsClient(settings, cache, rate_limiter=limiter)
    elif provider == "here":
        client = HereMapsClient(settings, cache, rate_limiter=limiter)
    else:
        client = MockMapsClient(settings)

    configured = settings.maps.polyline_codec
    if configured and configured != client.codec.name:
        logger.warning(
            "maps.polyline_codec=%s differs from the %s provider's wire format (%s); "
            "routes keep the provider's format.",
            configured,
            provider,
            client.codec.name,
        )
    return client


class MapService:
    """Provider-agnostic geocoding, directions, and route geometry."""

    def __init__(
        self,
        settings: Settings,
        provider: MapsProvider | None = None,
        cache: FileCache | None = None,
    ):
        self._settings = settings
        self._provider = provider or build_provider(settings, cache or build_cache(settings))

    @property
    def provider_name(self) -> str:
        return self._provider.name

    @property
    def codec(self) -> PolylineCodec:
        """Codec used when callers encode/decode without naming one."""
        return get_codec(self._settings.maps.resolved_codec(), precision=self._settings.maps.flexible_precision)

    @property
    def default_region(self) -> MapRegion:
        r = self._settings.maps.default_region
        return MapRegion(lat=r.lat, lon=r.lon, lat_delta=r.lat_delta, lon_delta=r.lon_delta)

    def geocode_address(self, address: str) -> GeocodingResult | None:
        if not address.strip():
            return None
        return self._provider.geocode(address)

    def reverse_geocode(self, point: GeoPoint) -> GeocodingResult | None:
        return self._provider.reverse_geocode(point)

    def autocomplete(self, text: str, session_token: str | None = None) -> list[PlaceSuggestion]:
        if not text.strip():
            return []
        return self._provider.autocomplete(text, session_token=session_token)

    def place_details(self, place_id: str, session_token: str | None = None) -> PlaceDetails | None:
        return self._provider.place_details(place_id, session_token=session_token)

    def get_directions(self, request: DirectionsRequest) -> DirectionsResponse:
        response = self._provider.directions(request)
        if response.status != "OK":
            logger.info("Directions via %s returned %s", self._provider.name, response.status)
        return response

    def route_points(self, route: RouteInfo) -> list[Coordinate]:
        """Decode a route's polyline with the codec it was encoded with.

        Malformed strings, and strings that decode to coordinates off the globe,
        give [] so the route is simply not drawn.
        """
        codec = get_codec(route.polyline_codec, precision=self._settings.maps.flexible_precision)
        points = decode_or_empty(codec, route.polyline)
        if any(not (-90 <= p.lat <= 90 and -180 <= p.lon <= 180) for p in points):
            logger.warning("Dropping %s polyline with out-of-range coordinates", codec.name)
            return []
        return points

    def route_region(self, route: RouteInfo) -> MapRegion:
        """Viewport that shows the whole route, endpoints included."""
        points = [route.origin.to_coordinate(), *self.route_points(route), route.destination.to_coordinate()]
        return self.fit(points)

    def fit(self, points: Sequence[Coordinate], padding: float | None = None) -> MapRegion:
        fit_cfg = self._settings.maps.region_fit
        return fit_region(
            points,
            fit_cfg.padding if padding is None else padding,
            default=self.default_region,
            min_delta=fit_cfg.min_delta,
        )

    def is_visible(self, point: Coordinate, region: MapRegion) -> bool:
        return contains(region, point)

    def distance_between(self, a: Coordinate, b: Coordinate) -> Distance:
        return Distance.from_meters(haversine_m(a, b))
