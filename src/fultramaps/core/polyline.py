"""
Polyline codecs.

Routing providers exchange route geometry as compact strings. Two wire formats
are supported, each as a named strategy behind the `PolylineCodec` interface:

- `google`: the classic encoded polyline algorithm (fixed 1e-5 degree scale,
  ASCII offset 63). Used by Google-style Directions APIs.
- `flexible`: HERE Flexible Polyline, format version 1 (header with explicit
  precision, URL-safe base64 alphabet). Used by HERE Routing v8.

Both formats share the same core: coordinates are scaled to integers, delta
coded against the previous point, zigzag mapped to unsigned, and written as
5-bit groups (least significant first) with a 0x20 continuation bit.

Which codec is active is a configuration choice (`maps.polyline_codec`);
routes carry the name of the codec their polyline was encoded with so the two
formats are never mixed.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, Iterator, Literal, Protocol

from fultramaps.core.geo import Coordinate

logger = logging.getLogger(__name__)

CodecName = Literal["google", "flexible"]


class PolylineDecodeError(ValueError):
    """Raised when an encoded polyline is malformed."""


class PolylineCodec(Protocol):
    name: str

    def encode(self, points: Iterable[Coordinate]) -> str: ...

    def decode(self, encoded: str) -> list[Coordinate]: ...


def _zigzag(value: int) -> int:
    return ~(value << 1) if value < 0 else value << 1


def _unzigzag(value: int) -> int:
    return ~(value >> 1) if value & 1 else value >> 1


# Longest accepted varint: 13 chunks (65 bits). Real coordinate deltas need far less.
_MAX_VALUE_SHIFT = 60


def _check_shift(shift: int, offset: int) -> None:
    if shift > _MAX_VALUE_SHIFT:
        raise PolylineDecodeError(f"Polyline value too long at offset {offset}")


def _varint_chunks(value: int) -> Iterator[int]:
    """Yield 5-bit groups of a non-negative int, continuation bit set on all but the last."""
    while value >= 0x20:
        yield 0x20 | (value & 0x1F)
        value >>= 5
    yield value


class GooglePolylineCodec:
    """Classic encoded polyline (fixed 1e5 scale)."""

    name = "google"
    scale = 1e5

    def _encode_value(self, value: int, out: list[str]) -> None:
        for chunk in _varint_chunks(_zigzag(value)):
            out.append(chr(chunk + 63))

    def encode(self, points: Iterable[Coordinate]) -> str:
        out: list[str] = []
        prev_lat = 0
        prev_lon = 0
        for p in points:
            # Math.round semantics: halves go toward +inf.
            lat = int(math.floor(p.lat * self.scale + 0.5))
            lon = int(math.floor(p.lon * self.scale + 0.5))
            self._encode_value(lat - prev_lat, out)
            self._encode_value(lon - prev_lon, out)
            prev_lat = lat
            prev_lon = lon
        return "".join(out)

    def decode(self, encoded: str) -> list[Coordinate]:
        points: list[Coordinate] = []
        index = 0
        n = len(encoded)
        lat = 0
        lon = 0

        def read_value() -> int:
            nonlocal index
            result = 0
            shift = 0
            while True:
                if index >= n:
                    raise PolylineDecodeError(f"Truncated polyline at offset {index}")
                b = ord(encoded[index]) - 63
                if b < 0 or b > 0x3F:
                    raise PolylineDecodeError(
                        f"Invalid polyline character {encoded[index]!r} at offset {index}"
                    )
                _check_shift(shift, index)
                index += 1
                result |= (b & 0x1F) << shift
                shift += 5
                if b < 0x20:
                    return _unzigzag(result)

        while index < n:
            lat += read_value()
            lon += read_value()
            points.append(Coordinate(lat=lat / self.scale, lon=lon / self.scale))
        return points


FLEXIBLE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"
_FLEXIBLE_LOOKUP = {ch: i for i, ch in enumerate(FLEXIBLE_ALPHABET)}
FLEXIBLE_FORMAT_VERSION = 1

# Third-dimension kinds 4 and 5 are reserved by the format.
_RESERVED_THIRD_DIMS = {4, 5}


class FlexiblePolylineCodec:
    """HERE Flexible Polyline (format version 1), 2D encoding.

    `precision` is the number of decimal digits kept when encoding. Decoding
    always uses the precision written in the string's header. Strings with a
    third dimension (altitude, elevation, ...) decode to their 2D projection.
    """

    name = "flexible"

    def __init__(self, precision: int = 5):
        if not 0 <= int(precision) <= 15:
            raise ValueError("precision must be between 0 and 15")
        self.precision = int(precision)

    @staticmethod
    def _scale(value: float, multiplier: int) -> int:
        # Half away from zero, as the reference JS/Java encoders do.
        scaled = math.floor(abs(value) * multiplier + 0.5)
        return int(-scaled if value < 0 else scaled)

    @staticmethod
    def _encode_unsigned(value: int, out: list[str]) -> None:
        for chunk in _varint_chunks(value):
            out.append(FLEXIBLE_ALPHABET[chunk])

    def encode(self, points: Iterable[Coordinate]) -> str:
        pts = list(points)
        if not pts:
            return ""
        out: list[str] = []
        self._encode_unsigned(FLEXIBLE_FORMAT_VERSION, out)
        # Header content: precision | third_dim << 4 | third_dim_precision << 7 (2D only).
        self._encode_unsigned(self.precision, out)

        multiplier = 10**self.precision
        prev_lat = 0
        prev_lon = 0
        for p in pts:
            lat = self._scale(p.lat, multiplier)
            lon = self._scale(p.lon, multiplier)
            self._encode_unsigned(_zigzag(lat - prev_lat), out)
            self._encode_unsigned(_zigzag(lon - prev_lon), out)
            prev_lat = lat
            prev_lon = lon
        return "".join(out)

    @staticmethod
    def _unsigned_values(encoded: str) -> Iterator[int]:
        result = 0
        shift = 0
        for offset, ch in enumerate(encoded):
            try:
                b = _FLEXIBLE_LOOKUP[ch]
            except KeyError:
                raise PolylineDecodeError(
                    f"Invalid polyline character {ch!r} at offset {offset}"
                ) from None
            _check_shift(shift, offset)
            result |= (b & 0x1F) << shift
            if b & 0x20:
                shift += 5
                continue
            yield result
            result = 0
            shift = 0
        if shift > 0:
            raise PolylineDecodeError("Truncated polyline: dangling continuation bit")

    def decode(self, encoded: str) -> list[Coordinate]:
        if not encoded:
            return []
        values = self._unsigned_values(encoded)
        try:
            version = next(values)
            header = next(values)
        except StopIteration:
            raise PolylineDecodeError("Truncated polyline header") from None
        if version != FLEXIBLE_FORMAT_VERSION:
            raise PolylineDecodeError(f"Unsupported flexible polyline version {version}")

        precision = header & 0x0F
        third_dim = (header >> 4) & 0x07
        if third_dim in _RESERVED_THIRD_DIMS:
            raise PolylineDecodeError(f"Reserved third dimension kind {third_dim}")
        stride = 3 if third_dim else 2
        divisor = 10**precision

        deltas = [_unzigzag(v) for v in values]
        if len(deltas) % stride:
            raise PolylineDecodeError("Truncated polyline: incomplete coordinate tuple")

        points: list[Coordinate] = []
        lat = 0
        lon = 0
        for i in range(0, len(deltas), stride):
            lat += deltas[i]
            lon += deltas[i + 1]
            points.append(Coordinate(lat=lat / divisor, lon=lon / divisor))
        return points


def get_codec(name: str, *, precision: int = 5) -> PolylineCodec:
    """Return the codec strategy registered under `name`."""
    if name == GooglePolylineCodec.name:
        return GooglePolylineCodec()
    if name == FlexiblePolylineCodec.name:
        return FlexiblePolylineCodec(precision=precision)
    raise ValueError(f"Unknown polyline codec '{name}', expected one of: google, flexible")


def decode_or_empty(codec: PolylineCodec, encoded: str | None) -> list[Coordinate]:
    """Decode `encoded`, degrading to an empty path ("no route drawn") if it is malformed."""
    if not encoded:
        return []
    try:
        return codec.decode(encoded)
    except PolylineDecodeError as e:
        logger.warning("Dropping malformed %s polyline: %s", codec.name, e)
        return []
