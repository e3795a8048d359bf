"""
Encoded polyline codec.

Implements Google's polyline algorithm format:
https://developers.google.com/maps/documentation/utilities/polylinealgorithm
"""

import math
from typing import Iterable, List, Tuple

Point = Tuple[float, float]


def _decode_value(encoded: str, index: int) -> Tuple[int, int]:
    result = 0
    shift = 0
    while True:
        if index >= len(encoded):
            raise ValueError("Malformed polyline: truncated value")
        b = ord(encoded[index]) - 63
        index += 1
        result |= (b & 0x1F) << shift
        shift += 5
        if b < 0x20:
            break
    value = ~(result >> 1) if result & 1 else result >> 1
    return value, index


def _encode_value(value: int) -> str:
    value = ~(value << 1) if value < 0 else value << 1
    chunks = []
    while value >= 0x20:
        chunks.append(chr((0x20 | (value & 0x1F)) + 63))
        value >>= 5
    chunks.append(chr(value + 63))
    return "".join(chunks)


def decode_polyline(encoded: str, precision: int = 5) -> List[Point]:
    """
    Decode an encoded polyline into (lat, lng) points.

    Raises:
        ValueError: if the string ends in the middle of a value
    """
    factor = 10 ** precision
    points = []
    index = lat = lng = 0

    while index < len(encoded):
        delta, index = _decode_value(encoded, index)
        lat += delta
        delta, index = _decode_value(encoded, index)
        lng += delta
        points.append((lat / factor, lng / factor))

    return points


def encode_polyline(points: Iterable[Point], precision: int = 5) -> str:
    """Encode (lat, lng) points as a polyline string."""
    factor = 10 ** precision
    parts = []
    prev_lat = prev_lng = 0

    for lat, lng in points:
        # Math.round semantics (half rounds up), matching the reference encoder
        lat_i = int(math.floor(lat * factor + 0.5))
        lng_i = int(math.floor(lng * factor + 0.5))
        parts.append(_encode_value(lat_i - prev_lat))
        parts.append(_encode_value(lng_i - prev_lng))
        prev_lat, prev_lng = lat_i, lng_i

    return "".join(parts)
