"""Great-circle distance and speed helpers."""

from __future__ import annotations

import math
from typing import Protocol

from app.core.constants import EARTH_RADIUS_M


class GeoPoint(Protocol):
    lat: float
    lng: float


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Return great-circle distance in meters between two WGS84 points.

    NaN or infinite inputs are not guarded and propagate to the result.
    """
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def distance_meters(a: GeoPoint, b: GeoPoint) -> float:
    return haversine_m(a.lat, a.lng, b.lat, b.lng)


def speed_mps(distance: float, elapsed_s: float) -> float:
    """Speed in m/s; 0.0 when no time has passed (or timestamps went backwards)."""
    if elapsed_s <= 0:
        return 0.0
    return distance / elapsed_s
