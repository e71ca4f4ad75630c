"""
API routes.

Endpoints:
- GET  `/api/settings`: public settings for clients (provider keys redacted).
- POST `/api/polyline/encode`, `/api/polyline/decode`: polyline codec.
- POST `/api/distance`: great-circle distance between two points.
- POST `/api/region/fit`, `/api/region/contains`: map viewport helpers.
- POST `/api/directions`, `/api/directions/path`: routing via the configured provider.
- GET  `/api/geocode`, `/api/reverse-geocode`: geocoding.
- GET  `/api/places/autocomplete`, `/api/places/{place_id}`: place search.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from fultramaps.config.settings import get_settings
from fultramaps.core.polyline import CodecName, PolylineCodec, PolylineDecodeError, get_codec
from fultramaps.domain.models import (
    DirectionsRequest,
    DirectionsResponse,
    Distance,
    GeocodingResult,
    GeoPoint,
    PlaceDetails,
    PlaceSuggestion,
    Region,
)
from fultramaps.services.maps import MapService

router = APIRouter()


class EncodeRequest(BaseModel):
    points: list[GeoPoint]
    codec: CodecName | None = None
    precision: int | None = Field(default=None, ge=0, le=15)


class DecodeRequest(BaseModel):
    encoded: str
    codec: CodecName | None = None


class PathResponse(BaseModel):
    codec: CodecName
    encoded: str
    points: list[GeoPoint]


class DistanceRequest(BaseModel):
    origin: GeoPoint
    destination: GeoPoint


class FitRegionRequest(BaseModel):
    points: list[GeoPoint]
    padding: float | None = Field(default=None, gt=0)


class ContainsRequest(BaseModel):
    point: GeoPoint
    region: Region


class RoutePathResponse(BaseModel):
    status: str
    points: list[GeoPoint]
    region: Region
    distance: Distance | None = None


@lru_cache
def _service() -> MapService:
    return MapService(get_settings())


def _codec(name: CodecName | None, precision: int | None = None) -> PolylineCodec:
    if name is None and precision is None:
        return _service().codec
    settings = get_settings()
    return get_codec(
        name or settings.maps.resolved_codec(),
        precision=settings.maps.flexible_precision if precision is None else precision,
    )


def _points(points: list[Any]) -> list[GeoPoint]:
    return [GeoPoint.from_coordinate(p) for p in points]


@router.get("/api/settings")
def get_public_settings() -> dict:
    """Return safe-to-expose settings for client defaults (credentials removed)."""
    settings = get_settings()
    data = settings.model_dump(mode="json")
    maps = data.get("maps", {})
    for provider in ("google", "here"):
        maps.get(provider, {}).pop("api_key", None)

    return {
        "app": {"language": data["app"]["language"], "country_code": data["app"]["country_code"]},
        "maps": {
            "provider": maps.get("provider"),
            "polyline_codec": settings.maps.resolved_codec(),
            "flexible_precision": maps.get("flexible_precision"),
            "default_region": maps.get("default_region"),
            "region_fit": maps.get("region_fit"),
        },
    }


@router.post("/api/polyline/encode", response_model=PathResponse)
def post_polyline_encode(body: EncodeRequest) -> PathResponse:
    codec = _codec(body.codec, body.precision)
    encoded = codec.encode(p.to_coordinate() for p in body.points)
    return PathResponse(codec=codec.name, encoded=encoded, points=body.points)


@router.post("/api/polyline/decode", response_model=PathResponse)
def post_polyline_decode(body: DecodeRequest) -> PathResponse:
    codec = _codec(body.codec)
    try:
        points = codec.decode(body.encoded)
    except PolylineDecodeError as e:
        raise HTTPException(
            status_code=400,
            detail={"code": "DECODE_ERROR", "message": str(e)},
        ) from e
    try:
        return PathResponse(codec=codec.name, encoded=body.encoded, points=_points(points))
    except ValueError as e:
        # Decoded values outside lat/lon ranges.
        raise HTTPException(
            status_code=400,
            detail={"code": "DECODE_ERROR", "message": str(e)},
        ) from e


@router.post("/api/distance", response_model=Distance)
def post_distance(body: DistanceRequest) -> Distance:
    return _service().distance_between(body.origin.to_coordinate(), body.destination.to_coordinate())


@router.post("/api/region/fit", response_model=Region)
def post_region_fit(body: FitRegionRequest) -> Region:
    region = _service().fit([p.to_coordinate() for p in body.points], padding=body.padding)
    return Region.from_map_region(region)


@router.post("/api/region/contains")
def post_region_contains(body: ContainsRequest) -> dict:
    inside = _service().is_visible(body.point.to_coordinate(), body.region.to_map_region())
    return {"inside": inside}


@router.post("/api/directions", response_model=DirectionsResponse)
def post_directions(body: DirectionsRequest) -> DirectionsResponse:
    try:
        return _service().get_directions(body)
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail={"code": "INTERNAL_ERROR", "message": str(e)},
        ) from e


@router.post("/api/directions/path", response_model=RoutePathResponse)
def post_directions_path(body: DirectionsRequest) -> RoutePathResponse:
    """Route geometry for the first route, ready to draw: decoded points + fitted viewport."""
    service = _service()
    response = service.get_directions(body)
    if response.status != "OK" or not response.routes:
        # No route drawn: empty path, default viewport.
        return RoutePathResponse(
            status=response.status,
            points=[],
            region=Region.from_map_region(service.default_region),
        )
    route = response.routes[0]
    return RoutePathResponse(
        status=response.status,
        points=_points(service.route_points(route)),
        region=Region.from_map_region(service.route_region(route)),
        distance=route.distance,
    )


@router.get("/api/geocode", response_model=GeocodingResult)
def get_geocode(address: str = Query(..., min_length=1)) -> GeocodingResult:
    result = _service().geocode_address(address)
    if result is None:
        raise HTTPException(status_code=404, detail={"code": "NOT_FOUND", "message": address})
    return result


@router.get("/api/reverse-geocode", response_model=GeocodingResult)
def get_reverse_geocode(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
) -> GeocodingResult:
    result = _service().reverse_geocode(GeoPoint(lat=lat, lon=lon))
    if result is None:
        raise HTTPException(status_code=404, detail={"code": "NOT_FOUND", "message": f"{lat},{lon}"})
    return result


@router.get("/api/places/autocomplete")
def get_places_autocomplete(
    text: str = Query(..., alias="input", min_length=1),
    session_token: str | None = None,
) -> dict:
    suggestions: list[PlaceSuggestion] = _service().autocomplete(text, session_token=session_token)
    return {"count": len(suggestions), "suggestions": [s.model_dump(mode="json") for s in suggestions]}


@router.get("/api/places/{place_id}", response_model=PlaceDetails)
def get_place_details(place_id: str, session_token: str | None = None) -> PlaceDetails:
    result = _service().place_details(place_id, session_token=session_token)
    if result is None:
        raise HTTPException(status_code=404, detail={"code": "NOT_FOUND", "message": place_id})
    return result
