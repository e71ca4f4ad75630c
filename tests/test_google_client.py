import httpx

from fultramaps.config.settings import get_settings
from fultramaps.core.cache import FileCache
from fultramaps.domain.models import DirectionsRequest, GeoPoint
from fultramaps.providers.google import GoogleMapsClient

ROUTE_POLYLINE = "_p~iF~ps|U_ulLnnqC_mqNvxq`@"

DIRECTIONS_OK = {
    "status": "OK",
    "routes": [
        {
            "overview_polyline": {"points": ROUTE_POLYLINE},
            "legs": [
                {
                    "distance": {"value": 2000, "text": "2,0 km"},
                    "duration": {"value": 300, "text": "5 min"},
                    "start_location": {"lat": 19.4326, "lng": -99.1332},
                    "end_location": {"lat": 19.43, "lng": -99.15},
                    "steps": [
                        {
                            "distance": {"value": 2000},
                            "duration": {"value": 300},
                            "start_location": {"lat": 19.4326, "lng": -99.1332},
                            "end_location": {"lat": 19.43, "lng": -99.15},
                            "html_instructions": "Dirígete al <b>oeste</b> por <b>Av. Madero</b>",
                            "maneuver": "turn-left",
                            "polyline": {"points": "_p~iF~ps|U"},
                        }
                    ],
                },
                {
                    "distance": {"value": 1840},
                    "duration": {"value": 190},
                    "start_location": {"lat": 19.43, "lng": -99.15},
                    "end_location": {"lat": 19.4234, "lng": -99.1685},
                    "steps": [],
                },
            ],
        }
    ],
}


class FakeGetJson:
    """Records calls and returns (or raises) canned responses per URL."""

    def __init__(self, responses):
        self.responses = responses
        self.calls = []

    def __call__(self, url, *, params=None, headers=None, timeout_seconds=15):
        self.calls.append((url, dict(params or {})))
        response = self.responses[url]
        if isinstance(response, Exception):
            raise response
        return response


def _status_error(url: str, code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", url)
    response = httpx.Response(code, request=request)
    return httpx.HTTPStatusError(str(code), request=request, response=response)


def _client(monkeypatch, tmp_path, responses, *, cache_enabled=False):
    settings = get_settings().model_copy(deep=True)
    settings.maps.google.api_key = "test-key"
    fake = FakeGetJson(responses)
    monkeypatch.setattr("fultramaps.providers.base.get_json", fake)
    client = GoogleMapsClient(settings, FileCache(tmp_path, enabled=cache_enabled))
    return client, fake, settings.maps.google


def test_directions_parses_legs_and_steps(monkeypatch, tmp_path):
    settings = get_settings()
    client, fake, cfg = _client(monkeypatch, tmp_path, {settings.maps.google.directions_url: DIRECTIONS_OK})

    resp = client.directions(
        DirectionsRequest(
            origin="Zócalo, CDMX",
            destination=GeoPoint(lat=19.4234, lon=-99.1685),
            waypoints=[GeoPoint(lat=19.43, lon=-99.15), "Av. Reforma 1"],
            avoid_tolls=True,
            avoid_highways=True,
            alternatives=True,
        )
    )

    assert resp.status == "OK"
    route = resp.routes[0]
    assert route.distance.value == 3840
    assert route.distance.text == "3.8 km"
    assert route.duration.value == 490
    assert route.duration.text == "8 min"
    assert route.polyline == ROUTE_POLYLINE
    assert route.polyline_codec == "google"
    assert route.origin == GeoPoint(lat=19.4326, lon=-99.1332)
    assert route.waypoints == [GeoPoint(lat=19.43, lon=-99.15)]
    assert route.steps[0].instruction == "Dirígete al oeste por Av. Madero"
    assert route.steps[0].maneuver == "turn-left"

    url, params = fake.calls[0]
    assert url == cfg.directions_url
    assert params["key"] == "test-key"
    assert params["origin"] == "Zócalo, CDMX"
    assert params["destination"] == "19.4234,-99.1685"
    assert params["waypoints"] == "19.43,-99.15|Av. Reforma 1"
    assert params["avoid"] == "tolls|highways"
    assert params["alternatives"] == "true"
    assert params["mode"] == "driving"


def test_directions_provider_error_status_is_reported(monkeypatch, tmp_path):
    settings = get_settings()
    client, _, _ = _client(
        monkeypatch,
        tmp_path,
        {settings.maps.google.directions_url: {"status": "REQUEST_DENIED", "error_message": "The provided API key is invalid."}},
    )
    resp = client.directions(DirectionsRequest(origin="a", destination="b"))
    assert resp.status == "REQUEST_DENIED"
    assert resp.routes == []
    assert resp.error_message == "The provided API key is invalid."


def test_directions_zero_results(monkeypatch, tmp_path):
    settings = get_settings()
    client, _, _ = _client(
        monkeypatch, tmp_path, {settings.maps.google.directions_url: {"status": "ZERO_RESULTS", "routes": []}}
    )
    resp = client.directions(DirectionsRequest(origin="a", destination="b"))
    assert resp.status == "ZERO_RESULTS"
    assert resp.routes == []


def test_directions_http_errors_map_to_statuses(monkeypatch, tmp_path):
    url = get_settings().maps.google.directions_url

    client, _, _ = _client(monkeypatch, tmp_path, {url: _status_error(url, 429)})
    assert client.directions(DirectionsRequest(origin="a", destination="b")).status == "OVER_QUERY_LIMIT"

    client, _, _ = _client(monkeypatch, tmp_path, {url: httpx.ConnectError("connection refused")})
    resp = client.directions(DirectionsRequest(origin="a", destination="b"))
    assert resp.status == "UNKNOWN_ERROR"
    assert "connection refused" in resp.error_message


def test_directions_serves_stale_route_when_provider_is_down(monkeypatch, tmp_path):
    url = get_settings().maps.google.directions_url
    client, fake, _ = _client(monkeypatch, tmp_path, {url: DIRECTIONS_OK}, cache_enabled=True)
    request = DirectionsRequest(origin="a", destination="b")

    monkeypatch.setattr("fultramaps.core.cache.time.time", lambda: 0)
    assert client.directions(request).status == "OK"

    fake.responses[url] = httpx.ConnectError("connection refused")
    monkeypatch.setattr("fultramaps.core.cache.time.time", lambda: 10**6)
    resp = client.directions(request)
    assert resp.status == "OK"
    assert resp.routes[0].distance.value == 3840
    assert len(fake.calls) == 2


def test_geocode_returns_first_result(monkeypatch, tmp_path):
    url = get_settings().maps.google.geocode_url
    payload = {
        "status": "OK",
        "results": [
            {
                "place_id": "ChIJ-zocalo",
                "formatted_address": "Plaza de la Constitución, Centro, CDMX, México",
                "geometry": {"location": {"lat": 19.4326, "lng": -99.1332}},
                "address_components": [
                    {"long_name": "Centro", "short_name": "Centro", "types": ["sublocality"]},
                ],
            }
        ],
    }
    client, fake, _ = _client(monkeypatch, tmp_path, {url: payload})

    result = client.geocode("Zócalo")
    assert result.place_id == "ChIJ-zocalo"
    assert result.location == GeoPoint(lat=19.4326, lon=-99.1332)
    assert result.address_components[0].types == ["sublocality"]
    assert fake.calls[0][1]["address"] == "Zócalo"
    assert fake.calls[0][1]["language"] == "es"


def test_geocode_zero_results_is_none(monkeypatch, tmp_path):
    url = get_settings().maps.google.geocode_url
    client, _, _ = _client(monkeypatch, tmp_path, {url: {"status": "ZERO_RESULTS", "results": []}})
    assert client.geocode("nowhere") is None


def test_reverse_geocode_keeps_requested_point(monkeypatch, tmp_path):
    url = get_settings().maps.google.geocode_url
    payload = {
        "status": "OK",
        "results": [{"place_id": "p", "formatted_address": "Calle 1", "geometry": {"location": {"lat": 0, "lng": 0}}}],
    }
    client, fake, _ = _client(monkeypatch, tmp_path, {url: payload})
    point = GeoPoint(lat=19.4326, lon=-99.1332)

    result = client.reverse_geocode(point)
    assert result.location == point
    assert fake.calls[0][1]["latlng"] == "19.4326,-99.1332"


def test_autocomplete_parses_predictions(monkeypatch, tmp_path):
    url = get_settings().maps.google.autocomplete_url
    payload = {
        "status": "OK",
        "predictions": [
            {
                "place_id": "p1",
                "description": "Av. Insurgentes Sur, CDMX, México",
                "structured_formatting": {"main_text": "Av. Insurgentes Sur", "secondary_text": "CDMX, México"},
                "types": ["route"],
            }
        ],
    }
    client, fake, _ = _client(monkeypatch, tmp_path, {url: payload})

    suggestions = client.autocomplete("insurgentes", session_token="tok-1")
    assert [s.main_text for s in suggestions] == ["Av. Insurgentes Sur"]
    assert suggestions[0].secondary_text == "CDMX, México"
    params = fake.calls[0][1]
    assert params["components"] == "country:mx"
    assert params["sessiontoken"] == "tok-1"


def test_place_details_extracts_address_parts(monkeypatch, tmp_path):
    url = get_settings().maps.google.place_details_url
    payload = {
        "status": "OK",
        "result": {
            "formatted_address": "Av. Paseo de la Reforma 1, Tabacalera, 06030 CDMX, México",
            "geometry": {"location": {"lat": 19.4361, "lng": -99.1483}},
            "address_components": [
                {"long_name": "Ciudad de México", "types": ["locality", "political"]},
                {"long_name": "CDMX", "types": ["administrative_area_level_1"]},
                {"long_name": "06030", "types": ["postal_code"]},
                {"long_name": "México", "types": ["country"]},
            ],
        },
    }
    client, _, _ = _client(monkeypatch, tmp_path, {url: payload})

    details = client.place_details("p1")
    assert details.city == "Ciudad de México"
    assert details.state == "CDMX"
    assert details.postal_code == "06030"
    assert details.country == "México"
    assert details.place_id == "p1"
    assert details.location == GeoPoint(lat=19.4361, lon=-99.1483)


def test_place_details_failure_is_none(monkeypatch, tmp_path):
    url = get_settings().maps.google.place_details_url
    client, _, _ = _client(monkeypatch, tmp_path, {url: _status_error(url, 500)})
    assert client.place_details("p1") is None
