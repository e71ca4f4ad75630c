"""
Fultra Maps CLI entrypoint.

Quick local access to the geometry helpers and the configured mapping provider,
without running the API server. Everything delegates to `fultramaps.core` and
`fultramaps.services.maps.MapService`.
"""

from __future__ import annotations

import argparse
import json
import re
import sys
from typing import Any

from fultramaps.config.settings import get_settings
from fultramaps.core.geo import Coordinate
from fultramaps.core.logging import configure_logging
from fultramaps.core.polyline import PolylineCodec, PolylineDecodeError, get_codec
from fultramaps.domain.models import DirectionsRequest, GeoPoint, Region
from fultramaps.services.maps import MapService


# Plain negative numbers plus negative-leading `LAT,LON` pairs such as `-33.86,151.2`.
_NEGATIVE_VALUE = re.compile(r"^-(\d+\.?\d*|\.\d+)(,\s*-?(\d+\.?\d*|\.\d+))?$")


class _ArgumentParser(argparse.ArgumentParser):
    """Parser that reads southern/western coordinates as values, not option flags."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._negative_number_matcher = _NEGATIVE_VALUE


def _parse_point(value: str) -> Coordinate:
    """Parse a `LAT,LON` argument."""
    parts = value.split(",")
    if len(parts) != 2:
        raise argparse.ArgumentTypeError(f"Invalid point '{value}', expected LAT,LON")
    try:
        return Coordinate(lat=float(parts[0]), lon=float(parts[1]))
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid point '{value}', expected LAT,LON") from e


def _location(value: str) -> GeoPoint | str:
    """`LAT,LON` becomes a point; anything else is passed through as an address."""
    try:
        c = _parse_point(value)
    except argparse.ArgumentTypeError:
        return value
    return GeoPoint(lat=c.lat, lon=c.lon)


def _codec(args: argparse.Namespace) -> PolylineCodec:
    settings = get_settings()
    precision = args.precision if args.precision is not None else settings.maps.flexible_precision
    return get_codec(args.codec or settings.maps.resolved_codec(), precision=precision)


def _dump(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _cmd_encode(args: argparse.Namespace) -> int:
    print(_codec(args).encode(args.point))
    return 0


def _cmd_decode(args: argparse.Namespace) -> int:
    codec = _codec(args)
    try:
        points = codec.decode(args.encoded)
    except PolylineDecodeError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    if args.json:
        _dump([{"lat": p.lat, "lon": p.lon} for p in points])
        return 0
    for p in points:
        print(f"{p.lat},{p.lon}")
    return 0


def _cmd_distance(args: argparse.Namespace) -> int:
    service = MapService(get_settings())
    d = service.distance_between(args.origin, args.destination)
    if args.json:
        _dump(d.model_dump(mode="json"))
    else:
        print(d.text)
    return 0


def _cmd_fit_region(args: argparse.Namespace) -> int:
    service = MapService(get_settings())
    region = service.fit(args.point, padding=args.padding)
    _dump(Region.from_map_region(region).model_dump(mode="json"))
    return 0


def _cmd_directions(args: argparse.Namespace) -> int:
    service = MapService(get_settings())
    request = DirectionsRequest(
        origin=_location(args.origin),
        destination=_location(args.destination),
        waypoints=[_location(w) for w in args.waypoint],
        mode=args.mode,
        alternatives=bool(args.alternatives),
        avoid_tolls=bool(args.avoid_tolls),
        avoid_highways=bool(args.avoid_highways),
    )
    response = service.get_directions(request)

    if args.json:
        _dump(response.model_dump(mode="json"))
        return 0 if response.status == "OK" else 1

    if response.status != "OK":
        print(f"{response.status}: {response.error_message or 'no route'}")
        return 1
    for i, route in enumerate(response.routes, start=1):
        points = service.route_points(route)
        print(f"{i:>2}. {route.distance.text}, {route.duration.text} ({len(points)} points, {route.polyline_codec})")
        for step in route.steps:
            print(f"    - {step.instruction} ({step.distance.text})")
    return 0


def _cmd_geocode(args: argparse.Namespace) -> int:
    service = MapService(get_settings())
    result = service.geocode_address(args.address)
    if result is None:
        print("not found", file=sys.stderr)
        return 1
    if args.json:
        _dump(result.model_dump(mode="json"))
    else:
        print(f"{result.location.lat},{result.location.lon}  {result.formatted_address}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the Fultra Maps CLI."""
    parser = _ArgumentParser(prog="fultramaps")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_codec_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("--codec", choices=["google", "flexible"], default=None, help="Defaults to maps.polyline_codec.")
        p.add_argument("--precision", type=int, default=None, help="Flexible polyline precision (0..15).")

    enc = sub.add_parser("encode", help="Encode points into a polyline string.")
    enc.add_argument("point", nargs="*", type=_parse_point, help="LAT,LON (repeatable)")
    add_codec_args(enc)
    enc.set_defaults(func=_cmd_encode)

    dec = sub.add_parser("decode", help="Decode a polyline string into points.")
    dec.add_argument("encoded")
    add_codec_args(dec)
    dec.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    dec.set_defaults(func=_cmd_decode)

    dist = sub.add_parser("distance", help="Great-circle distance between two points.")
    dist.add_argument("origin", type=_parse_point, help="LAT,LON")
    dist.add_argument("destination", type=_parse_point, help="LAT,LON")
    dist.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    dist.set_defaults(func=_cmd_distance)

    fit = sub.add_parser("fit-region", help="Map viewport containing all points.")
    fit.add_argument("point", nargs="*", type=_parse_point, help="LAT,LON (repeatable)")
    fit.add_argument("--padding", type=float, default=None)
    fit.set_defaults(func=_cmd_fit_region)

    dirs = sub.add_parser("directions", help="Route between two points or addresses.")
    dirs.add_argument("--origin", required=True, help="LAT,LON or address")
    dirs.add_argument("--destination", required=True, help="LAT,LON or address")
    dirs.add_argument("--waypoint", action="append", default=[], help="LAT,LON or address (repeatable)")
    dirs.add_argument("--mode", choices=["driving", "walking", "bicycling", "transit"], default="driving")
    dirs.add_argument("--alternatives", action="store_true")
    dirs.add_argument("--avoid-tolls", action="store_true")
    dirs.add_argument("--avoid-highways", action="store_true")
    dirs.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    dirs.set_defaults(func=_cmd_directions)

    geo = sub.add_parser("geocode", help="Resolve an address to coordinates.")
    geo.add_argument("address")
    geo.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    geo.set_defaults(func=_cmd_geocode)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m fultramaps.cli`."""
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
