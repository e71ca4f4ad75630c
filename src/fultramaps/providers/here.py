"""
HERE client (Geocoding & Search v1, Routing v8).

HERE returns route geometry per section as Flexible Polyline strings. Sections
are merged into one route polyline, and per-action step polylines are cut from
the section geometry using each action's point offset.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from fultramaps.config.settings import Settings
from fultramaps.core.cache import FileCache
from fultramaps.core.geo import Coordinate
from fultramaps.core.polyline import FlexiblePolylineCodec, PolylineDecodeError
from fultramaps.core.rate_limit import TokenBucketRateLimiter
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
    RouteStep,
    TravelMode,
    location_param,
)
from fultramaps.providers.base import HttpProviderClient, http_error_status

logger = logging.getLogger(__name__)

TRAVEL_MODES: dict[TravelMode, str] = {
    "driving": "car",
    "walking": "pedestrian",
    "bicycling": "bicycle",
    "transit": "publicTransport",
}

# Address fields surfaced as components, in display order.
_ADDRESS_FIELDS = ("houseNumber", "street", "district", "city", "county", "state", "postalCode", "countryName")
_SHORT_NAMES = {"state": "stateCode", "countryName": "countryCode"}


def travel_mode(mode: TravelMode | None) -> str:
    return TRAVEL_MODES.get(mode or "driving", "car")


def _point(pos: dict[str, Any]) -> GeoPoint:
    return GeoPoint(lat=float(pos["lat"]), lon=float(pos["lng"]))


def _components(address: dict[str, Any]) -> list[AddressComponent]:
    out: list[AddressComponent] = []
    for field in _ADDRESS_FIELDS:
        value = address.get(field)
        if not value:
            continue
        short = address.get(_SHORT_NAMES.get(field, field)) or value
        out.append(AddressComponent(long_name=str(value), short_name=str(short), types=[field]))
    return out


def _parse_item(item: dict[str, Any], location: GeoPoint | None = None) -> GeocodingResult:
    address = item.get("address") or {}
    return GeocodingResult(
        place_id=str(item.get("id") or ""),
        formatted_address=str(address.get("label") or item.get("title") or ""),
        location=location or _point(item["position"]),
        address_components=_components(address),
    )


class HereMapsClient(HttpProviderClient):
    """HERE REST client with caching and rate limiting."""

    name = "here"
    api_key_param = "apiKey"

    def __init__(
        self,
        settings: Settings,
        cache: FileCache,
        *,
        rate_limiter: TokenBucketRateLimiter | None = None,
    ):
        super().__init__(settings, cache, api_key=settings.maps.here.api_key, rate_limiter=rate_limiter)
        self._cfg = settings.maps.here
        self.codec = FlexiblePolylineCodec(precision=settings.maps.flexible_precision)

    def _check_payload(self, payload: Any) -> Any:
        if not isinstance(payload, dict):
            raise ValueError("Unexpected HERE response shape")
        return payload

    def _search_params(self) -> dict[str, Any]:
        return {"lang": self._cfg.search.lang}

    def _first_item(self, namespace: str, url: str, params: dict[str, Any]) -> dict[str, Any] | None:
        payload = self._fetch(namespace, url, params, ttl_seconds=self._settings.maps.geocode_cache_ttl_seconds)
        items = payload.get("items") or []
        return items[0] if items else None

    def geocode(self, address: str) -> GeocodingResult | None:
        params = {
            **self._search_params(),
            "q": address,
            "in": f"countryCode:{self._cfg.search.country}",
            "limit": 1,
        }
        try:
            item = self._first_item("geocode", self._cfg.geocode_url, params)
            return _parse_item(item) if item else None
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.warning("HERE geocoding failed: %s", e)
            return None

    def reverse_geocode(self, point: GeoPoint) -> GeocodingResult | None:
        params = {**self._search_params(), "at": location_param(point), "limit": 1}
        try:
            item = self._first_item("revgeocode", self._cfg.reverse_geocode_url, params)
            return _parse_item(item, location=point) if item else None
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.warning("HERE reverse geocoding failed: %s", e)
            return None

    def autocomplete(self, text: str, session_token: str | None = None) -> list[PlaceSuggestion]:
        # HERE has no session tokens; the parameter is accepted for interface parity.
        region = self._settings.maps.default_region
        params = {
            **self._search_params(),
            "q": text,
            "at": f"{region.lat},{region.lon}",
            "limit": self._cfg.search.limit,
        }
        try:
            payload = self._fetch(
                "autosuggest",
                self._cfg.autosuggest_url,
                params,
                ttl_seconds=self._settings.cache.default_ttl_seconds,
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("HERE autosuggest failed: %s", e)
            return []

        out: list[PlaceSuggestion] = []
        for item in payload.get("items") or []:
            # Query-completion items have no id and cannot be looked up.
            if not item.get("id"):
                continue
            title = str(item.get("title") or "")
            label = str((item.get("address") or {}).get("label") or "")
            out.append(
                PlaceSuggestion(
                    place_id=str(item["id"]),
                    description=label or title,
                    main_text=title,
                    secondary_text=label if label and label != title else "",
                    types=[str(item["resultType"])] if item.get("resultType") else [],
                )
            )
        return out

    def place_details(self, place_id: str, session_token: str | None = None) -> PlaceDetails | None:
        try:
            item = self._fetch(
                "lookup",
                self._cfg.lookup_url,
                {**self._search_params(), "id": place_id},
                ttl_seconds=self._settings.maps.geocode_cache_ttl_seconds,
            )
            if not isinstance(item, dict) or "position" not in item:
                return None
            address = item.get("address") or {}
            label = str(address.get("label") or item.get("title") or "")
            return PlaceDetails(
                location=_point(item["position"]),
                address=label,
                city=address.get("city"),
                state=address.get("state"),
                postal_code=address.get("postalCode"),
                country=address.get("countryName"),
                place_id=place_id,
                formatted_address=label,
            )
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.warning("HERE lookup failed: %s", e)
            return None

    def _resolve(self, value: GeoPoint | str) -> GeoPoint | None:
        """Routing v8 only takes coordinates; addresses are geocoded first."""
        if isinstance(value, GeoPoint):
            return value
        result = self.geocode(value)
        return result.location if result else None

    def _section_points(self, section: dict[str, Any]) -> list[Coordinate]:
        return self.codec.decode(str(section.get("polyline") or ""))

    def _section_steps(self, section: dict[str, Any], points: list[Coordinate]) -> list[RouteStep]:
        actions = section.get("actions") or []
        steps: list[RouteStep] = []
        if not points:
            return steps
        last = len(points) - 1
        for i, action in enumerate(actions):
            start = min(int(action.get("offset") or 0), last)
            end = min(int(actions[i + 1].get("offset", last)), last) if i + 1 < len(actions) else last
            kind = str(action.get("action") or "")
            direction = action.get("direction")
            steps.append(
                RouteStep(
                    distance=Distance.from_meters(float(action.get("length") or 0)),
                    duration=Duration.from_seconds(float(action.get("duration") or 0)),
                    start_location=GeoPoint.from_coordinate(points[start]),
                    end_location=GeoPoint.from_coordinate(points[end]),
                    instruction=str(action.get("instruction") or kind),
                    maneuver=f"{kind}-{direction}" if direction else (kind or None),
                    polyline=self.codec.encode(points[start : end + 1]),
                )
            )
        return steps

    def _parse_route(self, route: dict[str, Any], origin: GeoPoint, destination: GeoPoint) -> RouteInfo:
        sections = route.get("sections") or []
        if not sections:
            raise ValueError("Route without sections")

        path: list[Coordinate] = []
        steps: list[RouteStep] = []
        meters = 0.0
        seconds = 0.0
        for section in sections:
            points = self._section_points(section)
            # Consecutive sections share their junction point.
            path.extend(points[1:] if path and points and points[0] == path[-1] else points)
            steps.extend(self._section_steps(section, points))
            summary = section.get("summary") or {}
            meters += float(summary.get("length") or 0)
            seconds += float(summary.get("duration") or 0)

        polyline = str(sections[0].get("polyline") or "") if len(sections) == 1 else self.codec.encode(path)
        waypoints = [_point(s["arrival"]["place"]["location"]) for s in sections[:-1]]
        return RouteInfo(
            origin=origin,
            destination=destination,
            waypoints=waypoints,
            distance=Distance.from_meters(meters),
            duration=Duration.from_seconds(seconds),
            polyline=polyline,
            polyline_codec=self.codec.name,
            steps=steps,
        )

    def directions(self, request: DirectionsRequest) -> DirectionsResponse:
        origin = self._resolve(request.origin)
        destination = self._resolve(request.destination)
        vias = [self._resolve(wp) for wp in request.waypoints]
        if origin is None or destination is None or any(v is None for v in vias):
            return DirectionsResponse(status="NOT_FOUND", error_message="Could not geocode route endpoints")

        params: dict[str, Any] = {
            "transportMode": travel_mode(request.mode),
            "origin": location_param(origin),
            "destination": location_param(destination),
            "return": "polyline,summary,actions,instructions",
            "lang": self._cfg.search.lang,
        }
        if vias:
            params["via"] = [location_param(v) for v in vias if v is not None]
        avoid = [
            name
            for flag, name in ((request.avoid_tolls, "tollRoad"), (request.avoid_highways, "controlledAccessHighway"))
            if flag
        ]
        if avoid:
            params["avoid[features]"] = ",".join(avoid)
        if request.alternatives:
            params["alternatives"] = 2

        try:
            payload = self._fetch(
                "routes",
                self._cfg.routing_url,
                params,
                ttl_seconds=self._settings.maps.directions_cache_ttl_seconds,
            )
            raw_routes = payload.get("routes") or []
            if not raw_routes:
                notices = payload.get("notices") or []
                message = "; ".join(str(n.get("title") or n.get("code")) for n in notices) or None
                return DirectionsResponse(status="ZERO_RESULTS", error_message=message)
            routes = [self._parse_route(r, origin, destination) for r in raw_routes]
            return DirectionsResponse(routes=routes, status="OK")
        except httpx.HTTPError as e:
            logger.warning("HERE routing request failed: %s", e)
            return DirectionsResponse(status=http_error_status(e), error_message=str(e))
        except PolylineDecodeError as e:
            logger.warning("HERE routing returned a malformed polyline: %s", e)
            return DirectionsResponse(status="UNKNOWN_ERROR", error_message=str(e))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("HERE routing response could not be parsed: %s", e)
            return DirectionsResponse(status="UNKNOWN_ERROR", error_message=str(e))
