"""
Geo helpers: geohash encoding, coordinate validation and distances.

Dependencies:
    - pygeohash (geohash encode/decode)
    - geopy (geodesic distance)
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable

import pygeohash as pgh
from geopy.distance import geodesic

from dayline.models import LocationSample


_GEOHASH_RE = re.compile(r"^[0123456789bcdefghjkmnpqrstuvwxyz]{1,12}$")


def is_valid_coordinate(lat: float | None, lng: float | None) -> bool:
    if lat is None or lng is None:
        return False
    try:
        lat = float(lat)
        lng = float(lng)
    except (TypeError, ValueError):
        return False
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0


def is_valid_geohash(value: str | None) -> bool:
    return bool(value) and bool(_GEOHASH_RE.match(value))


def encode(lat: float, lng: float, precision: int = 7) -> str:
    return pgh.encode(lat, lng, precision=precision)


def decode(geohash: str | None) -> tuple[float, float] | None:
    """Decode a geohash to its cell centre, or None when malformed."""
    if not is_valid_geohash(geohash):
        return None
    try:
        lat, lng = pgh.decode(geohash)
    except (KeyError, ValueError):
        return None
    return float(lat), float(lng)


def distance_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    return geodesic((lat1, lng1), (lat2, lng2)).meters


def centroid(samples: Iterable[LocationSample]) -> tuple[float, float] | None:
    """Mean position of valid samples (adequate at city scale)."""
    points = [(float(s.latitude), float(s.longitude)) for s in samples if s.is_valid]
    if not points:
        return None
    lat = sum(p[0] for p in points) / len(points)
    lng = sum(p[1] for p in points) / len(points)
    return lat, lng
