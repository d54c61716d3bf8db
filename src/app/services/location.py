# src/app/services/location.py
"""
User position source.

The position is typed into the sidebar, either as coordinates
("40,4167; -3,7033" or "40.4167, -3.7033") or as a place name that is
geocoded. `make_locator` turns that text into the zero-argument callable the
station finder expects for a point query.
"""

from __future__ import annotations

import re
from typing import Callable, Optional

from src.app.app_errors import GeocodeNotFound, LocationDenied
from src.app.models import LatLon
from src.app.services.geodesy import is_available, parse_locale_decimal
from src.integration.geocoding import Geocoder

_NUMBER = r"[-+]?\d+(?:[.,]\d+)?"
# Semicolon separator allows comma decimals; a plain comma only works with dot decimals.
_COORDS_SEMICOLON = re.compile(rf"^\s*({_NUMBER})\s*;\s*({_NUMBER})\s*$")
_COORDS_COMMA = re.compile(r"^\s*([-+]?\d+(?:\.\d+)?)\s*,\s*([-+]?\d+(?:\.\d+)?)\s*$")
_COORDS_SPACE = re.compile(rf"^\s*({_NUMBER})\s+({_NUMBER})\s*$")


def parse_coordinates(text: str) -> Optional[LatLon]:
    """
    Parse "lat; lon" style input. Returns None when the text is not a pair of
    numbers, raises LocationDenied when it is but lies outside valid ranges.
    """
    if not text:
        return None
    for pattern in (_COORDS_SEMICOLON, _COORDS_COMMA, _COORDS_SPACE):
        m = pattern.match(text)
        if m:
            break
    else:
        return None

    lat = parse_locale_decimal(m.group(1))
    lon = parse_locale_decimal(m.group(2))
    if not (is_available(lat) and is_available(lon)) or not (-90 <= lat <= 90 and -180 <= lon <= 180):
        raise LocationDenied(
            "These coordinates are not a valid position.",
            remediation="Use latitude between -90 and 90 and longitude between -180 and 180.",
            details=text,
        )
    return (lat, lon)


def make_locator(text: str, geocoder: Geocoder) -> Callable[[], LatLon]:
    def _locate() -> LatLon:
        query = (text or "").strip()
        if not query:
            raise LocationDenied(
                "Your location is not available.",
                remediation="Type your coordinates or the place where you are.",
            )
        coords = parse_coordinates(query)
        if coords is not None:
            return coords

        point = geocoder.geocode(query)
        if point is None:
            raise GeocodeNotFound(
                f"Could not find the coordinates of: {query}.",
                remediation="Check the spelling or add the province.",
            )
        lon, lat = point
        return (lat, lon)

    return _locate
