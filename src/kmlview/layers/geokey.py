"""Geo-keys — comparison keys that correlate placemarks with rendered entities.

A geo-key is "name|lon,lat" with both degrees rounded to 5 decimals
(about 1.1 m), or just the trimmed name when no coordinate is known.
Coordinates are (lon, lat) tuples, KML order.
"""

from __future__ import annotations

import math

COORD_PRECISION = 5

# Mean Earth radius for great-circle distances
EARTH_RADIUS_M = 6_371_000.0


def round_coord(value: float | None, digits: int = COORD_PRECISION) -> float | None:
    """Round half-up to ``digits`` decimals; None for missing or non-finite input."""
    if value is None:
        return None
    try:
        v = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(v):
        return None
    p = 10 ** digits
    rounded = math.floor(v * p + 0.5) / p
    # -0.0 -> 0.0
    return rounded + 0.0


def _format_degrees(v: float) -> str:
    text = repr(v)
    if text.endswith(".0"):
        text = text[:-2]
    return text


def coord_key(coordinate: tuple[float, float] | None) -> str | None:
    """Return "lon,lat" at key precision, or None if either part is unusable."""
    if coordinate is None:
        return None
    lon = round_coord(coordinate[0])
    lat = round_coord(coordinate[1])
    if lon is None or lat is None:
        return None
    return f"{_format_degrees(lon)},{_format_degrees(lat)}"


def geo_key(name: str | None, coordinate: tuple[float, float] | None = None) -> str:
    """Build the geo-key for a feature name and optional (lon, lat)."""
    nm = (name or "").strip()
    ck = coord_key(coordinate)
    return f"{nm}|{ck}" if ck else nm


def haversine_m(a: tuple[float, float], b: tuple[float, float]) -> float:
    """Great-circle distance in meters between two (lon, lat) points."""
    lon1, lat1 = math.radians(a[0]), math.radians(a[1])
    lon2, lat2 = math.radians(b[0]), math.radians(b[1])
    s1 = math.sin((lat2 - lat1) / 2)
    s2 = math.sin((lon2 - lon1) / 2)
    h = s1 * s1 + math.cos(lat1) * math.cos(lat2) * s2 * s2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(h)))
