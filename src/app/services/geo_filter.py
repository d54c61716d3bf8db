"""
MODULE: Geo Filter — Spatial Predicates over the Station Collection
-------------------------------------------------------------------

Purpose
- Selects the stations that belong to the current spatial query:
  - point-radius: station within `radius_km` of a center (default 10 km),
  - corridor: station within `corridor_km` of at least one route vertex (default 5 km).

Outputs
- Fresh lists of `StationRecord` copies annotated with `distance_km`
  (distance to the center, or minimum distance to any route vertex).
  Canonical records are never modified.
- Input order is preserved unless `rank=True` is requested for a corridor,
  which orders stations by their distance to the route (approximate
  "along-route" order).

Known limitation
- The corridor test samples route *vertices*, not segments. A station beside a
  long straight segment with sparse vertices can be missed. This is the
  expected behavior of the predicate, not something to patch here.

Performance
- Corridor filtering first discards stations outside the route's bounding box
  padded by the corridor width, and skips vertices outside the same padding
  around each station. Both bounds are conservative for the haversine metric,
  so the result is identical to the exhaustive check.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, List, Optional, Sequence, Tuple

from src.app.models import (
    DEFAULT_CORRIDOR_KM,
    DEFAULT_POINT_RADIUS_KM,
    Corridor,
    LatLon,
    PointRadius,
    RoutePathLonLat,
    SpatialQuery,
    StationRecord,
)
from src.app.services.geodesy import EARTH_RADIUS_KM, distance_km, to_radians

logger = logging.getLogger(__name__)

# Absorbs rounding at the exact threshold.
_PAD_EPSILON_DEG = 1e-9


def station_distance_km(station: StationRecord, lat: float, lon: float) -> Optional[float]:
    if not station.has_coordinates:
        return None
    return distance_km(lat, lon, station.latitude, station.longitude)  # type: ignore[arg-type]


# ---------------------------------------------------------------------
# Point-radius
# ---------------------------------------------------------------------

def filter_within_radius(
    stations: Iterable[StationRecord],
    center: LatLon,
    radius_km: float = DEFAULT_POINT_RADIUS_KM,
) -> List[StationRecord]:
    lat0, lon0 = center
    matches: List[StationRecord] = []
    for station in stations:
        d_km = station_distance_km(station, lat0, lon0)
        if d_km is not None and d_km <= radius_km:
            matches.append(station.with_distance(d_km))
    return matches


# ---------------------------------------------------------------------
# Corridor
# ---------------------------------------------------------------------

def _latitude_pad_deg(corridor_km: float) -> float:
    # Great-circle distance is never shorter than the latitude difference.
    return math.degrees(corridor_km / EARTH_RADIUS_KM) + _PAD_EPSILON_DEG


def _longitude_pad_deg(corridor_km: float, max_abs_lat: float) -> float:
    # From the haversine term cos(phi1)cos(phi2)sin^2(dlambda/2) <= sin^2(d/2R).
    cos_lat = math.cos(to_radians(min(max_abs_lat, 89.999)))
    ratio = math.sin(corridor_km / (2 * EARTH_RADIUS_KM)) / cos_lat
    if ratio >= 1.0:
        return 360.0
    return math.degrees(2 * math.asin(ratio)) + _PAD_EPSILON_DEG


def _route_bounds(
    polyline: RoutePathLonLat, corridor_km: float
) -> Tuple[float, float, float, float, float, float]:
    lons = [p[0] for p in polyline]
    lats = [p[1] for p in polyline]
    lat_pad = _latitude_pad_deg(corridor_km)
    max_abs_lat = max(abs(min(lats)), abs(max(lats))) + lat_pad
    lon_pad = _longitude_pad_deg(corridor_km, max_abs_lat)
    return min(lats) - lat_pad, max(lats) + lat_pad, min(lons) - lon_pad, max(lons) + lon_pad, lat_pad, lon_pad


def min_distance_to_route_km(
    station: StationRecord,
    polyline: Sequence[Tuple[float, float]],
) -> Optional[float]:
    """Minimum distance from the station to any route vertex ([lon, lat])."""
    if not station.has_coordinates or not polyline:
        return None
    best = math.inf
    for lon, lat in polyline:
        d_km = distance_km(lat, lon, station.latitude, station.longitude)  # type: ignore[arg-type]
        if d_km < best:
            best = d_km
    return best


def _min_distance_within_pad(
    station: StationRecord,
    polyline: RoutePathLonLat,
    lat_pad: float,
    lon_pad: float,
) -> float:
    s_lat = station.latitude
    s_lon = station.longitude
    best = math.inf
    for lon, lat in polyline:
        if abs(lat - s_lat) > lat_pad or abs(lon - s_lon) > lon_pad:  # type: ignore[operator]
            continue
        d_km = distance_km(lat, lon, s_lat, s_lon)  # type: ignore[arg-type]
        if d_km < best:
            best = d_km
    return best


def filter_along_corridor(
    stations: Iterable[StationRecord],
    polyline: RoutePathLonLat,
    corridor_km: float = DEFAULT_CORRIDOR_KM,
    *,
    rank: bool = False,
) -> List[StationRecord]:
    """
    Stations with at least one route vertex within `corridor_km`.

    Each match carries `distance_km` = its minimum distance to a route vertex.
    """
    if not polyline:
        return []

    lat_min, lat_max, lon_min, lon_max, lat_pad, lon_pad = _route_bounds(polyline, corridor_km)

    matches: List[StationRecord] = []
    for station in stations:
        if not station.has_coordinates:
            continue
        if not (lat_min <= station.latitude <= lat_max and lon_min <= station.longitude <= lon_max):  # type: ignore[operator]
            continue
        best = _min_distance_within_pad(station, polyline, lat_pad, lon_pad)
        if best <= corridor_km:
            matches.append(station.with_distance(best))

    if rank:
        return rank_along_route(matches)
    return matches


def rank_along_route(stations: Iterable[StationRecord]) -> List[StationRecord]:
    """Stable ascending order by route distance; stations without one go last."""
    return sorted(
        stations,
        key=lambda s: (s.distance_km is None, s.distance_km if s.distance_km is not None else 0.0),
    )


# ---------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------

def apply_spatial_query(stations: Iterable[StationRecord], query: SpatialQuery) -> List[StationRecord]:
    """Point queries keep input order; corridor queries are ranked along the route."""
    if isinstance(query, PointRadius):
        matches = filter_within_radius(stations, query.center, query.radius_km)
        logger.info("Point query (%.1f km) matched %d stations", query.radius_km, len(matches))
        return matches
    if isinstance(query, Corridor):
        matches = filter_along_corridor(stations, query.polyline, query.corridor_km, rank=True)
        logger.info(
            "Corridor query (%.1f km, %d vertices) matched %d stations",
            query.corridor_km,
            len(query.polyline),
            len(matches),
        )
        return matches
    raise TypeError(f"Unsupported spatial query: {query!r}")
