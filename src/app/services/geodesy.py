# src/app/services/geodesy.py
from __future__ import annotations

import math
from typing import Any

EARTH_RADIUS_KM = 6371.0


def to_radians(degrees: float) -> float:
    return degrees * math.pi / 180.0


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Compute great-circle distance between two points on Earth (haversine).
    Returns distance in kilometers.
    """
    phi1 = to_radians(lat1)
    phi2 = to_radians(lat2)
    dphi = to_radians(lat2 - lat1)
    dlambda = to_radians(lon2 - lon1)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def parse_locale_decimal(value: Any) -> float:
    """
    Parse a decimal written with a comma separator ("40,4167", "1,479").

    Only the first comma is replaced. Returns NaN for empty, non-numeric or
    non-finite input; callers treat NaN as "value unavailable".
    """
    if value is None or isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else math.nan

    text = str(value).strip().replace(",", ".", 1)
    if not text:
        return math.nan
    try:
        number = float(text)
    except ValueError:
        return math.nan
    return number if math.isfinite(number) else math.nan


def is_available(number: float) -> bool:
    return not math.isnan(number)
