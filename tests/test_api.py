import random

import pytest
from starlette.testclient import TestClient

from fultramaps.api.app import app
from fultramaps.config.settings import get_settings
from fultramaps.core.geo import Coordinate
from fultramaps.core.polyline import FlexiblePolylineCodec, GooglePolylineCodec
from fultramaps.domain.models import DirectionsResponse, GeoPoint, RouteInfo
from fultramaps.providers.mock import MockMapsClient
from fultramaps.services.maps import MapService

ZOCALO = {"lat": 19.4326, "lon": -99.1332}
DOCTORES = {"lat": 19.4234, "lon": -99.1685}


class _StubNothingFound:
    name = "stub"
    codec = GooglePolylineCodec()

    def geocode(self, address):
        return None

    def reverse_geocode(self, point):
        return None

    def autocomplete(self, text, session_token=None):
        return []

    def place_details(self, place_id, session_token=None):
        return None

    def directions(self, request):
        return DirectionsResponse(status="ZERO_RESULTS", error_message="no route")


class _StubOffGlobeRoute(_StubNothingFound):
    def directions(self, request):
        route = RouteInfo(
            origin=GeoPoint(**ZOCALO),
            destination=GeoPoint(**DOCTORES),
            distance={"value": 3841, "text": "3.8 km"},
            duration={"value": 480, "text": "8 min"},
            polyline=FlexiblePolylineCodec().encode([Coordinate(90.00001, 0.0)]),
            polyline_codec="flexible",
        )
        return DirectionsResponse(routes=[route], status="OK")


def _settings():
    settings = get_settings().model_copy(deep=True)
    settings.maps.provider = "mock"
    settings.maps.polyline_codec = None
    return settings


@pytest.fixture
def client(monkeypatch):
    import fultramaps.api.routes as routes

    settings = _settings()
    service = MapService(settings, provider=MockMapsClient(settings, rng=random.Random(1)))
    monkeypatch.setattr(routes, "_service", lambda: service)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def empty_client(monkeypatch):
    import fultramaps.api.routes as routes

    service = MapService(_settings(), provider=_StubNothingFound())
    monkeypatch.setattr(routes, "_service", lambda: service)
    with TestClient(app) as c:
        yield c


def test_polyline_encode_and_decode(client):
    points = [{"lat": 38.5, "lon": -120.2}, {"lat": 40.7, "lon": -120.95}, {"lat": 43.252, "lon": -126.453}]
    resp = client.post("/api/polyline/encode", json={"points": points, "codec": "google"})
    assert resp.status_code == 200
    assert resp.json()["encoded"] == "_p~iF~ps|U_ulLnnqC_mqNvxq`@"

    resp = client.post("/api/polyline/decode", json={"encoded": "BFoz5xJ67i1B1B7PzIhaxL7Y", "codec": "flexible"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["codec"] == "flexible"
    assert data["points"][0] == {"lat": 50.10228, "lon": 8.69821}
    assert len(data["points"]) == 4


def test_polyline_decode_malformed_is_400(client):
    resp = client.post("/api/polyline/decode", json={"encoded": "_p~iF~ps|", "codec": "google"})
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "DECODE_ERROR"


def test_polyline_decode_out_of_range_is_400(client):
    encoded = GooglePolylineCodec().encode([Coordinate(95.0, 0.0)])
    resp = client.post("/api/polyline/decode", json={"encoded": encoded, "codec": "google"})
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "DECODE_ERROR"


def test_distance(client):
    resp = client.post("/api/distance", json={"origin": ZOCALO, "destination": DOCTORES})
    assert resp.status_code == 200
    assert resp.json()["text"] == "3.8 km"


def test_region_fit_single_point(client):
    resp = client.post("/api/region/fit", json={"points": [ZOCALO]})
    assert resp.status_code == 200
    assert resp.json() == {**ZOCALO, "lat_delta": 0.01, "lon_delta": 0.01}


def test_region_fit_empty_returns_default(client):
    resp = client.post("/api/region/fit", json={"points": []})
    assert resp.json() == {"lat": 19.4326, "lon": -99.1332, "lat_delta": 0.0922, "lon_delta": 0.0421}


def test_region_contains(client):
    region = {"lat": 19.4326, "lon": -99.1332, "lat_delta": 0.0922, "lon_delta": 0.0421}
    resp = client.post("/api/region/contains", json={"point": ZOCALO, "region": region})
    assert resp.json() == {"inside": True}

    # 0.0353 deg west of centre, past the 0.02105 half-width.
    resp = client.post("/api/region/contains", json={"point": DOCTORES, "region": region})
    assert resp.json() == {"inside": False}

    resp = client.post("/api/region/contains", json={"point": {"lat": 20.0, "lon": -99.0}, "region": region})
    assert resp.json() == {"inside": False}


def test_invalid_point_is_422(client):
    resp = client.post("/api/distance", json={"origin": {"lat": 91, "lon": 0}, "destination": DOCTORES})
    assert resp.status_code == 422


def test_directions_with_mock_provider(client):
    resp = client.post("/api/directions", json={"origin": ZOCALO, "destination": DOCTORES})
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "OK"
    route = data["routes"][0]
    assert route["polyline_codec"] == "google"
    assert route["duration"] == {"value": 480, "text": "8 min"}


def test_directions_path(client):
    resp = client.post("/api/directions/path", json={"origin": ZOCALO, "destination": DOCTORES})
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "OK"
    assert len(data["points"]) == 2
    assert data["distance"]["text"] == "3.8 km"
    region = data["region"]
    assert region["lat"] - region["lat_delta"] / 2 <= DOCTORES["lat"] <= region["lat"] + region["lat_delta"] / 2


def test_directions_path_without_route_uses_default_region(empty_client):
    resp = empty_client.post("/api/directions/path", json={"origin": "a", "destination": "b"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ZERO_RESULTS"
    assert data["points"] == []
    assert data["region"]["lat_delta"] == 0.0922


def test_geocode_and_places(client):
    resp = client.get("/api/geocode", params={"address": "Av. Juárez 10"})
    assert resp.status_code == 200
    assert resp.json()["formatted_address"] == "Av. Juárez 10"

    resp = client.get("/api/places/autocomplete", params={"input": "Reforma"})
    assert resp.status_code == 200
    assert resp.json()["count"] == 3

    resp = client.get("/api/places/mock-1")
    assert resp.status_code == 200
    assert resp.json()["place_id"] == "mock-1"


def test_not_found_results_are_404(empty_client):
    resp = empty_client.get("/api/geocode", params={"address": "nowhere"})
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "NOT_FOUND"

    assert empty_client.get("/api/reverse-geocode", params={"lat": 0, "lon": 0}).status_code == 404
    assert empty_client.get("/api/places/unknown").status_code == 404


def test_public_settings_hide_api_keys(client, monkeypatch):
    monkeypatch.setenv("GOOGLE_MAPS_API_KEY", "super-secret")
    get_settings.cache_clear()
    try:
        resp = client.get("/api/settings")
    finally:
        get_settings.cache_clear()
    assert resp.status_code == 200
    assert "super-secret" not in resp.text
    assert resp.json()["maps"]["default_region"]["lat"] == 19.4326


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_directions_path_with_off_globe_geometry_draws_no_route(monkeypatch):
    import fultramaps.api.routes as routes

    service = MapService(_settings(), provider=_StubOffGlobeRoute())
    monkeypatch.setattr(routes, "_service", lambda: service)
    with TestClient(app) as c:
        resp = c.post("/api/directions/path", json={"origin": ZOCALO, "destination": DOCTORES})
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "OK"
    assert data["points"] == []
    region = data["region"]
    assert region["lon"] - region["lon_delta"] / 2 <= DOCTORES["lon"] <= region["lon"] + region["lon_delta"] / 2
