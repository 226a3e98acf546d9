"""Great-circle helpers."""

from __future__ import annotations

import math
from typing import Optional

from geopy.distance import great_circle


def is_valid_position(lat: Optional[float], lon: Optional[float]) -> bool:
    if lat is None or lon is None:
        return False
    try:
        lat_f, lon_f = float(lat), float(lon)
    except (TypeError, ValueError):
        return False
    if not (math.isfinite(lat_f) and math.isfinite(lon_f)):
        return False
    return abs(lat_f) <= 90.0 and abs(lon_f) <= 180.0


def distance_nm(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in nautical miles between two WGS84 points."""
    return great_circle((lat1, lon1), (lat2, lon2)).nautical
