"""
Module: Driving routes between two points.

Description:
    Computes a driving route and returns its geometry as a tuple of
    (longitude, latitude) vertices. Two providers share the same contract:

    - `OsrmRouter` (default): OSRM HTTP API via `requests`; the geometry is
      requested as an encoded polyline and decoded with `polyline`.
    - `GoogleRouter`: Google Directions API via the `googlemaps` client; the
      path is assembled from the step polylines.

    `route()` returns None when no route exists between the points. Transport
    or API failures raise `ExternalServiceError`.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional, Protocol

import googlemaps  # type: ignore[import-untyped]
from googlemaps import exceptions as gm_exceptions  # type: ignore[import-untyped]
import polyline  # type: ignore[import-untyped]
import requests

from src.app.app_errors import ExternalServiceError
from src.app.config.settings import FinderConfig, google_api_key
from src.app.models import LonLat, RoutePathLonLat

logger = logging.getLogger(__name__)

# OSRM answers these with HTTP 400; they mean "no route", not a failure.
OSRM_NO_ROUTE_CODES = {"NoRoute", "NoSegment"}


class Router(Protocol):
    def route(self, origin: LonLat, dest: LonLat) -> Optional[RoutePathLonLat]: ...


def dedupe_consecutive_points(points: Iterable[LonLat]) -> RoutePathLonLat:
    deduped: List[LonLat] = []
    for point in points:
        if deduped:
            prev = deduped[-1]
            if abs(prev[0] - point[0]) < 1e-7 and abs(prev[1] - point[1]) < 1e-7:
                continue
        deduped.append(point)
    return tuple(deduped)


def decode_polyline_lonlat(encoded: str) -> RoutePathLonLat:
    """Decode a Google-style encoded polyline (precision 5) into [lon, lat] vertices."""
    return dedupe_consecutive_points((float(lon), float(lat)) for lat, lon in polyline.decode(encoded))


class OsrmRouter:
    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        profile: str = "driving",
        session: Optional[requests.Session] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._profile = profile
        self._session = session or requests.Session()

    def route(self, origin: LonLat, dest: LonLat) -> Optional[RoutePathLonLat]:
        coordinate_string = f"{origin[0]},{origin[1]};{dest[0]},{dest[1]}"
        url = f"{self._base_url}/route/v1/{self._profile}/{coordinate_string}"

        logger.info("Requesting OSRM route %s", coordinate_string)
        try:
            resp = self._session.get(
                url,
                params={"overview": "full", "geometries": "polyline", "steps": "false"},
                timeout=self._timeout,
            )
            payload = resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("OSRM request failed: %s", e)
            raise ExternalServiceError("Routing service is not reachable.", details=str(e)) from e

        code = payload.get("code") if isinstance(payload, dict) else None
        if code in OSRM_NO_ROUTE_CODES:
            logger.info("OSRM found no route (%s)", code)
            return None

        try:
            resp.raise_for_status()
        except requests.RequestException as e:
            message = payload.get("message", "") if isinstance(payload, dict) else ""
            logger.error("OSRM returned an error: %s %s", e, message)
            raise ExternalServiceError("Routing service returned an error.", details=message or str(e)) from e

        routes = payload.get("routes") if isinstance(payload, dict) else None
        if code != "Ok" or not routes:
            logger.info("OSRM response without routes (code=%s)", code)
            return None

        geometry = routes[0].get("geometry")
        if not isinstance(geometry, str) or not geometry:
            return None

        return decode_polyline_lonlat(geometry) or None


def decode_route_steps_lonlat(route: dict[str, Any]) -> RoutePathLonLat:
    """
    Decodes all step polylines from a Google Directions route into one path.

    Returns an empty tuple when the route has no decodable step polylines.
    """
    coords: List[LonLat] = []
    for leg in route.get("legs", []):
        for step in leg.get("steps", []):
            enc = step.get("polyline", {}).get("points")
            if not enc:
                continue
            coords.extend(decode_polyline_lonlat(enc))
    return dedupe_consecutive_points(coords)


class GoogleRouter:
    def __init__(self, client: googlemaps.Client, region: str = "es") -> None:
        self._client = client
        self._region = region

    def route(self, origin: LonLat, dest: LonLat) -> Optional[RoutePathLonLat]:
        logger.info("Requesting Google Directions route %s -> %s", origin, dest)
        try:
            # The client expects (lat, lon).
            directions = self._client.directions(
                origin=(origin[1], origin[0]),
                destination=(dest[1], dest[0]),
                mode="driving",
                alternatives=False,
                region=self._region,
            )
        except (gm_exceptions.ApiError, gm_exceptions.TransportError, gm_exceptions.Timeout) as e:
            logger.error("Google Directions request failed: %s", e)
            raise ExternalServiceError("Routing service is not reachable.", details=str(e)) from e

        if not directions:
            return None

        path = decode_route_steps_lonlat(directions[0])
        if not path:
            overview = directions[0].get("overview_polyline", {}).get("points")
            path = decode_polyline_lonlat(overview) if overview else ()
        return path or None


def build_router(config: FinderConfig) -> Router:
    if config.router_provider == "google":
        region = (config.country_codes.split(",")[0] or "es").strip()
        return GoogleRouter(googlemaps.Client(key=google_api_key()), region=region)
    return OsrmRouter(base_url=config.osrm_base_url, timeout=config.request_timeout_seconds)
