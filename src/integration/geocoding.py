"""
Module: Place-name geocoding.

Description:
    Resolves a free-form place name ("Madrid", "Calle Mayor 1, Soria") to a
    (longitude, latitude) pair. Two providers share the same contract:

    - `NominatimGeocoder` (default): OpenStreetMap Nominatim search via `requests`.
    - `GoogleGeocoder`: Google Geocoding API via the `googlemaps` client.

    `geocode()` returns None when the place is not found. Transport or API
    failures raise `ExternalServiceError`.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Any, Dict, Optional, Protocol

import googlemaps  # type: ignore[import-untyped]
from googlemaps import exceptions as gm_exceptions  # type: ignore[import-untyped]
import requests

from src.app.app_errors import ExternalServiceError
from src.app.config.settings import FinderConfig, google_api_key
from src.app.models import LonLat

logger = logging.getLogger(__name__)


class Geocoder(Protocol):
    def geocode(self, place_name: str) -> Optional[LonLat]: ...


GEOCODE_CACHE_SIZE = 256


def _cache_key(query: str) -> str:
    return " ".join(query.lower().split())


class _GeocodeCache:
    """Least-recently-used memo of resolved places, capped at `maxsize` entries."""

    def __init__(self, maxsize: int = GEOCODE_CACHE_SIZE) -> None:
        self._maxsize = maxsize
        self._entries: "OrderedDict[str, LonLat]" = OrderedDict()

    def get(self, key: str) -> Optional[LonLat]:
        point = self._entries.get(key)
        if point is not None:
            self._entries.move_to_end(key)
        return point

    def put(self, key: str, point: LonLat) -> None:
        self._entries[key] = point
        self._entries.move_to_end(key)
        while len(self._entries) > self._maxsize:
            self._entries.popitem(last=False)


class NominatimGeocoder:
    def __init__(
        self,
        base_url: str,
        user_agent: str,
        timeout: float = 10.0,
        country_codes: str = "es",
        session: Optional[requests.Session] = None,
        cache_size: int = GEOCODE_CACHE_SIZE,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._user_agent = user_agent
        self._timeout = timeout
        self._country_codes = country_codes
        self._session = session or requests.Session()
        self._cache = _GeocodeCache(cache_size)

    def geocode(self, place_name: str) -> Optional[LonLat]:
        query = (place_name or "").strip()
        if not query:
            return None

        key = _cache_key(query)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        params: Dict[str, Any] = {"q": query, "format": "jsonv2", "limit": 1}
        if self._country_codes:
            params["countrycodes"] = self._country_codes

        logger.info("Geocoding '%s' with Nominatim", query)
        try:
            resp = self._session.get(
                f"{self._base_url}/search",
                params=params,
                headers={"User-Agent": self._user_agent},
                timeout=self._timeout,
            )
            resp.raise_for_status()
            payload = resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("Nominatim request failed for '%s': %s", query, e)
            raise ExternalServiceError("Geocoding service is not reachable.", details=str(e)) from e

        if not isinstance(payload, list) or not payload:
            logger.info("No geocoding result for '%s'", query)
            return None

        item = payload[0]
        try:
            point = (float(item["lon"]), float(item["lat"]))
        except (KeyError, TypeError, ValueError):
            logger.warning("Nominatim result without coordinates for '%s': %r", query, item)
            return None

        self._cache.put(key, point)
        return point


class GoogleGeocoder:
    def __init__(
        self, client: googlemaps.Client, region: str = "es", cache_size: int = GEOCODE_CACHE_SIZE
    ) -> None:
        self._client = client
        self._region = region
        self._cache = _GeocodeCache(cache_size)

    def geocode(self, place_name: str) -> Optional[LonLat]:
        query = (place_name or "").strip()
        if not query:
            return None

        key = _cache_key(query)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        logger.info("Geocoding '%s' with Google", query)
        try:
            results = self._client.geocode(query, region=self._region)
        except (gm_exceptions.ApiError, gm_exceptions.TransportError, gm_exceptions.Timeout) as e:
            logger.error("Google geocoding failed for '%s': %s", query, e)
            raise ExternalServiceError("Geocoding service is not reachable.", details=str(e)) from e

        if not results:
            return None

        location = results[0].get("geometry", {}).get("location", {})
        lat = location.get("lat")
        lon = location.get("lng")
        if lat is None or lon is None:
            return None

        point = (float(lon), float(lat))
        self._cache.put(key, point)
        return point


def build_geocoder(config: FinderConfig) -> Geocoder:
    if config.geocoder_provider == "google":
        region = (config.country_codes.split(",")[0] or "es").strip()
        return GoogleGeocoder(googlemaps.Client(key=google_api_key()), region=region)
    return NominatimGeocoder(
        base_url=config.nominatim_base_url,
        user_agent=config.user_agent,
        timeout=config.request_timeout_seconds,
        country_codes=config.country_codes,
    )
