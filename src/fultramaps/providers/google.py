"""
Google Maps Platform client (Geocoding, Places, Directions).

Route geometry comes back in the classic encoded polyline format, so routes
built here are tagged with the `google` codec.
"""

from __future__ import annotations

import logging
import re
from typing import Any

import httpx

from fultramaps.config.settings import Settings
from fultramaps.core.cache import FileCache
from fultramaps.core.polyline import GooglePolylineCodec
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
    location_param,
)
from fultramaps.providers.base import HttpProviderClient, ProviderError, http_error_status

logger = logging.getLogger(__name__)

_CACHEABLE_STATUSES = {"OK", "ZERO_RESULTS", "NOT_FOUND"}
_KNOWN_DIRECTIONS_STATUSES = {
    "OK",
    "NOT_FOUND",
    "ZERO_RESULTS",
    "MAX_WAYPOINTS_EXCEEDED",
    "INVALID_REQUEST",
    "OVER_QUERY_LIMIT",
    "REQUEST_DENIED",
    "UNKNOWN_ERROR",
}
_HTML_TAG = re.compile(r"<[^>]*>")


def _point(loc: dict[str, Any]) -> GeoPoint:
    return GeoPoint(lat=float(loc["lat"]), lon=float(loc["lng"]))


def _components(raw: list[dict[str, Any]] | None) -> list[AddressComponent]:
    return [
        AddressComponent(
            long_name=str(c.get("long_name") or ""),
            short_name=str(c.get("short_name") or ""),
            types=list(c.get("types") or []),
        )
        for c in raw or []
    ]


def _parse_geocoding(result: dict[str, Any], location: GeoPoint | None = None) -> GeocodingResult:
    return GeocodingResult(
        place_id=str(result.get("place_id") or ""),
        formatted_address=str(result.get("formatted_address") or ""),
        location=location or _point(result["geometry"]["location"]),
        address_components=_components(result.get("address_components")),
    )


class GoogleMapsClient(HttpProviderClient):
    """Google Maps web-service client with caching and rate limiting."""

    name = "google"
    api_key_param = "key"

    def __init__(
        self,
        settings: Settings,
        cache: FileCache,
        *,
        rate_limiter: TokenBucketRateLimiter | None = None,
    ):
        super().__init__(settings, cache, api_key=settings.maps.google.api_key, rate_limiter=rate_limiter)
        self._cfg = settings.maps.google
        self.codec = GooglePolylineCodec()

    def _check_payload(self, payload: Any) -> Any:
        if not isinstance(payload, dict):
            raise ValueError("Unexpected Google response shape")
        status = str(payload.get("status") or "UNKNOWN_ERROR")
        if status not in _CACHEABLE_STATUSES:
            raise ProviderError(status, payload.get("error_message"))
        return payload

    def _geocode_query(self, params: dict[str, Any], location: GeoPoint | None = None) -> GeocodingResult | None:
        try:
            payload = self._fetch(
                "geocode",
                self._cfg.geocode_url,
                {**params, "language": self._settings.app.language},
                ttl_seconds=self._settings.maps.geocode_cache_ttl_seconds,
            )
            results = payload.get("results") or []
            if payload.get("status") != "OK" or not results:
                return None
            return _parse_geocoding(results[0], location)
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.warning("Google geocoding failed: %s", e)
            return None

    def geocode(self, address: str) -> GeocodingResult | None:
        return self._geocode_query({"address": address})

    def reverse_geocode(self, point: GeoPoint) -> GeocodingResult | None:
        return self._geocode_query({"latlng": location_param(point)}, location=point)

    def autocomplete(self, text: str, session_token: str | None = None) -> list[PlaceSuggestion]:
        params: dict[str, Any] = {
            "input": text,
            "components": f"country:{self._settings.app.country_code}",
            "language": self._settings.app.language,
        }
        if session_token:
            params["sessiontoken"] = session_token
        try:
            payload = self._fetch(
                "autocomplete",
                self._cfg.autocomplete_url,
                params,
                ttl_seconds=self._settings.cache.default_ttl_seconds,
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Google place autocomplete failed: %s", e)
            return []

        out: list[PlaceSuggestion] = []
        for p in payload.get("predictions") or []:
            fmt = p.get("structured_formatting") or {}
            description = str(p.get("description") or "")
            out.append(
                PlaceSuggestion(
                    place_id=str(p.get("place_id") or ""),
                    description=description,
                    main_text=str(fmt.get("main_text") or description),
                    secondary_text=str(fmt.get("secondary_text") or ""),
                    types=list(p.get("types") or []),
                )
            )
        return out

    def place_details(self, place_id: str, session_token: str | None = None) -> PlaceDetails | None:
        params: dict[str, Any] = {
            "place_id": place_id,
            "fields": "geometry,formatted_address,address_components",
            "language": self._settings.app.language,
        }
        if session_token:
            params["sessiontoken"] = session_token
        try:
            payload = self._fetch(
                "place-details",
                self._cfg.place_details_url,
                params,
                ttl_seconds=self._settings.maps.geocode_cache_ttl_seconds,
            )
            result = payload.get("result")
            if payload.get("status") != "OK" or not result:
                return None

            components = result.get("address_components") or []

            def component(kind: str) -> str:
                for c in components:
                    if kind in (c.get("types") or []):
                        return str(c.get("long_name") or "")
                return ""

            address = str(result.get("formatted_address") or "")
            return PlaceDetails(
                location=_point(result["geometry"]["location"]),
                address=address,
                city=component("locality") or component("administrative_area_level_2") or None,
                state=component("administrative_area_level_1") or None,
                postal_code=component("postal_code") or None,
                country=component("country") or None,
                place_id=place_id,
                formatted_address=address,
            )
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.warning("Google place details failed: %s", e)
            return None

    def _parse_route(self, route: dict[str, Any], request: DirectionsRequest) -> RouteInfo:
        legs = route.get("legs") or []
        if not legs:
            raise ValueError("Route without legs")

        steps: list[RouteStep] = []
        for leg in legs:
            for step in leg.get("steps") or []:
                steps.append(
                    RouteStep(
                        distance=Distance.from_meters(float(step["distance"]["value"])),
                        duration=Duration.from_seconds(float(step["duration"]["value"])),
                        start_location=_point(step["start_location"]),
                        end_location=_point(step["end_location"]),
                        instruction=_HTML_TAG.sub("", str(step.get("html_instructions") or "")),
                        maneuver=step.get("maneuver"),
                        polyline=str((step.get("polyline") or {}).get("points") or ""),
                    )
                )

        meters = sum(float(leg["distance"]["value"]) for leg in legs)
        seconds = sum(float(leg["duration"]["value"]) for leg in legs)
        origin = request.origin if isinstance(request.origin, GeoPoint) else _point(legs[0]["start_location"])
        destination = (
            request.destination
            if isinstance(request.destination, GeoPoint)
            else _point(legs[-1]["end_location"])
        )
        return RouteInfo(
            origin=origin,
            destination=destination,
            waypoints=[_point(leg["end_location"]) for leg in legs[:-1]],
            distance=Distance.from_meters(meters),
            duration=Duration.from_seconds(seconds),
            polyline=str((route.get("overview_polyline") or {}).get("points") or ""),
            polyline_codec=self.codec.name,
            steps=steps,
        )

    def directions(self, request: DirectionsRequest) -> DirectionsResponse:
        params: dict[str, Any] = {
            "origin": location_param(request.origin),
            "destination": location_param(request.destination),
            "mode": request.mode,
            "language": self._settings.app.language,
        }
        if request.waypoints:
            params["waypoints"] = "|".join(location_param(wp) for wp in request.waypoints)
        avoid = [name for flag, name in ((request.avoid_tolls, "tolls"), (request.avoid_highways, "highways")) if flag]
        if avoid:
            params["avoid"] = "|".join(avoid)
        if request.alternatives:
            params["alternatives"] = "true"

        try:
            payload = self._fetch(
                "directions",
                self._cfg.directions_url,
                params,
                ttl_seconds=self._settings.maps.directions_cache_ttl_seconds,
            )
            status = str(payload.get("status"))
            raw_routes = payload.get("routes") or []
            if status != "OK" or not raw_routes:
                known = status in _KNOWN_DIRECTIONS_STATUSES and status != "OK"
                return DirectionsResponse(
                    status=status if known else "ZERO_RESULTS",
                    error_message=payload.get("error_message"),
                )
            routes = [self._parse_route(r, request) for r in raw_routes]
            return DirectionsResponse(routes=routes, status="OK")
        except ProviderError as e:
            logger.warning("Google directions returned %s", e)
            status = e.status if e.status in _KNOWN_DIRECTIONS_STATUSES else "UNKNOWN_ERROR"
            return DirectionsResponse(status=status, error_message=e.message)
        except httpx.HTTPError as e:
            logger.warning("Google directions request failed: %s", e)
            return DirectionsResponse(status=http_error_status(e), error_message=str(e))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Google directions response could not be parsed: %s", e)
            return DirectionsResponse(status="UNKNOWN_ERROR", error_message=str(e))
