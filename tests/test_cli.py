import json

import pytest

from fultramaps.cli import main
from fultramaps.config.settings import get_settings
from fultramaps.core.geo import Coordinate, haversine_m
from fultramaps.core.polyline import GooglePolylineCodec
from fultramaps.domain.models import Distance


@pytest.fixture(autouse=True)
def mock_provider(monkeypatch, tmp_path):
    for key in ("FULTRAMAPS_CONFIG_PATH", "FULTRAMAPS_PROVIDER", "FULTRAMAPS_POLYLINE_CODEC"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("FULTRAMAPS_CACHE_DIR", str(tmp_path / "cache"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_encode_prints_google_polyline(capsys):
    rc = main(["encode", "38.5,-120.2", "40.7,-120.95", "43.252,-126.453"])
    assert rc == 0
    assert capsys.readouterr().out.strip() == "_p~iF~ps|U_ulLnnqC_mqNvxq`@"


def test_encode_flexible_with_precision(capsys):
    rc = main(["encode", "50.10228,8.69821", "--codec", "flexible", "--precision", "5"])
    assert rc == 0
    assert capsys.readouterr().out.strip().startswith("BF")


def test_decode_json(capsys):
    rc = main(["decode", "BFoz5xJ67i1B1B7PzIhaxL7Y", "--codec", "flexible", "--json"])
    assert rc == 0
    points = json.loads(capsys.readouterr().out)
    assert points[-1] == {"lat": 50.09878, "lon": 8.68752}


def test_decode_malformed_exits_2(capsys):
    rc = main(["decode", "_p~iF~ps|"])
    assert rc == 2
    assert "error:" in capsys.readouterr().err


def test_distance(capsys):
    rc = main(["distance", "19.4326,-99.1332", "19.4234,-99.1685"])
    assert rc == 0
    assert capsys.readouterr().out.strip() == "3.8 km"


def test_invalid_point_is_a_usage_error():
    with pytest.raises(SystemExit) as exc:
        main(["distance", "19.4326", "19.4234,-99.1685"])
    assert exc.value.code == 2


def test_fit_region_single_point(capsys):
    rc = main(["fit-region", "19.4326,-99.1332"])
    assert rc == 0
    region = json.loads(capsys.readouterr().out)
    assert region == {"lat": 19.4326, "lon": -99.1332, "lat_delta": 0.01, "lon_delta": 0.01}


def test_directions_with_mock_provider(capsys):
    rc = main(["directions", "--origin", "19.4326,-99.1332", "--destination", "19.4234,-99.1685"])
    assert rc == 0
    out = capsys.readouterr().out
    assert "3.8 km, 8 min" in out
    assert "(2 points, google)" in out


def test_southern_and_western_points_are_values(capsys):
    rc = main(["distance", "-33.8688,151.2093", "-34.0,151.0", "--json"])
    assert rc == 0
    expected = Distance.from_meters(haversine_m(Coordinate(-33.8688, 151.2093), Coordinate(-34.0, 151.0)))
    assert json.loads(capsys.readouterr().out) == expected.model_dump(mode="json")

    rc = main(["fit-region", "-33.8688,151.2093"])
    assert rc == 0
    region = json.loads(capsys.readouterr().out)
    assert (region["lat"], region["lon"]) == (-33.8688, 151.2093)


def test_encode_negative_leading_points(capsys):
    rc = main(["encode", "-38.5,120.2", "-40.7,120.95"])
    assert rc == 0
    out = capsys.readouterr().out.strip()
    assert out == GooglePolylineCodec().encode([Coordinate(-38.5, 120.2), Coordinate(-40.7, 120.95)])


def test_directions_accepts_negative_origin(capsys):
    rc = main(["directions", "--origin", "-33.8688,151.2093", "--destination", "-34.0,151.0"])
    assert rc == 0
    assert "(2 points, google)" in capsys.readouterr().out
