"""Encoded polyline codec (precision 5).

Each coordinate is scaled by 1e5, rounded, delta-encoded against the
previous point, zigzag-mapped to an unsigned integer, and emitted in 5-bit
groups (low-order first).  Every group except the last carries the 0x20
continuation bit; each group is offset by 63 into the printable ASCII
range.  Quantization error is at most 0.5e-5 degrees (~0.55 m).

Example::

    >>> encode_polyline([(38.5, -120.2), (40.7, -120.95), (43.252, -126.453)])
    '_p~iF~ps|U_ulLnnqC_mqNvxq`@'
"""

from __future__ import annotations

import math
from typing import Iterable, Sequence

from gpxgrid.errors import ParseError

POINT_SCALE = 1e5

LatLng = tuple[float, float]

_CHAR_OFFSET = 63
_CONTINUATION = 0x20
_GROUP_MASK = 0x1F


def _scale(value: float) -> int:
    # Half-up rounding, matching what clients that produce these strings use.
    return math.floor(value * POINT_SCALE + 0.5)


def _zigzag(delta: int) -> int:
    return ~(delta << 1) if delta < 0 else delta << 1


def _unzigzag(value: int) -> int:
    return ~(value >> 1) if value & 1 else value >> 1


def _encode_value(value: int) -> str:
    chunks: list[str] = []
    while value >= _CONTINUATION:
        chunks.append(chr((_CONTINUATION | (value & _GROUP_MASK)) + _CHAR_OFFSET))
        value >>= 5
    chunks.append(chr(value + _CHAR_OFFSET))
    return "".join(chunks)


def encode_polyline(points: Iterable[Sequence[float]]) -> str:
    """Encode ``(lat, lng)`` pairs into a polyline string.

    Args:
        points: Iterable of ``(lat, lng)`` pairs in degrees.

    Returns:
        Encoded string; empty for an empty sequence.
    """
    prev_lat = 0
    prev_lng = 0
    out: list[str] = []

    for lat, lng in points:
        lat_e5 = _scale(lat)
        lng_e5 = _scale(lng)
        out.append(_encode_value(_zigzag(lat_e5 - prev_lat)))
        out.append(_encode_value(_zigzag(lng_e5 - prev_lng)))
        prev_lat = lat_e5
        prev_lng = lng_e5

    return "".join(out)


def _decode_value(encoded: str, index: int) -> tuple[int, int]:
    """Read one zigzag value starting at ``index``.

    Returns:
        ``(signed delta, index after the value)``.

    Raises:
        ParseError: On an out-of-range character or a truncated value.
    """
    result = 0
    shift = 0
    length = len(encoded)

    while True:
        if index >= length:
            raise ParseError(f"Truncated polyline at offset {index}")
        byte = ord(encoded[index]) - _CHAR_OFFSET
        if not 0 <= byte < 0x40:
            raise ParseError(
                f"Invalid polyline character {encoded[index]!r} at offset {index}"
            )
        index += 1
        result |= (byte & _GROUP_MASK) << shift
        shift += 5
        if byte < _CONTINUATION:
            return _unzigzag(result), index


def decode_polyline(encoded: str) -> list[LatLng]:
    """Decode a polyline string back into ``(lat, lng)`` tuples.

    Raises:
        ParseError: If the string is corrupt.
    """
    points: list[LatLng] = []
    index = 0
    lat = 0
    lng = 0

    while index < len(encoded):
        delta_lat, index = _decode_value(encoded, index)
        if index >= len(encoded):
            raise ParseError("Polyline ends with a latitude but no longitude")
        delta_lng, index = _decode_value(encoded, index)
        lat += delta_lat
        lng += delta_lng
        points.append((lat / POINT_SCALE, lng / POINT_SCALE))

    return points
