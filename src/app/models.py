"""
Core data types shared by the finder services.

Coordinate conventions (both are used, so they are named explicitly):
- `LatLon`: (latitude, longitude), used for user positions and reference points.
- `LonLat`: (longitude, latitude), used by route polylines (GeoJSON order).
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Mapping, Optional, Tuple, TypeAlias, Union

LatLon: TypeAlias = Tuple[float, float]
LonLat: TypeAlias = Tuple[float, float]
RoutePathLonLat: TypeAlias = Tuple[LonLat, ...]

DEFAULT_POINT_RADIUS_KM = 10.0
DEFAULT_CORRIDOR_KM = 5.0


@dataclass(frozen=True)
class StationRecord:
    """
    One fuel station as loaded from the dataset.

    `latitude`/`longitude` are already normalized to float degrees (None when the
    source value could not be parsed). `prices` maps the dataset's price field
    names to their raw, locale-formatted strings (or the "not available" sentinel).

    `distance_km` is not part of the canonical record: the geo filter attaches it
    to a copy relative to some reference point.
    """

    station_id: str
    latitude: Optional[float]
    longitude: Optional[float]
    brand: str = ""
    address: str = ""
    municipality: str = ""
    locality: str = ""
    province: str = ""
    postal_code: str = ""
    opening_hours: str = ""
    prices: Mapping[str, str] = field(default_factory=dict, compare=False, repr=False)
    distance_km: Optional[float] = field(default=None, compare=False)

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def lat_lon(self) -> Optional[LatLon]:
        if not self.has_coordinates:
            return None
        return (self.latitude, self.longitude)  # type: ignore[return-value]

    @property
    def lon_lat(self) -> Optional[LonLat]:
        if not self.has_coordinates:
            return None
        return (self.longitude, self.latitude)  # type: ignore[return-value]

    def with_distance(self, distance_km: Optional[float]) -> "StationRecord":
        return replace(self, distance_km=distance_km)


@dataclass(frozen=True)
class PointRadius:
    center: LatLon
    radius_km: float = DEFAULT_POINT_RADIUS_KM

    @property
    def reference_point(self) -> LatLon:
        return self.center


@dataclass(frozen=True)
class Corridor:
    polyline: RoutePathLonLat
    corridor_km: float = DEFAULT_CORRIDOR_KM
    origin: Optional[LatLon] = None

    @property
    def reference_point(self) -> Optional[LatLon]:
        # Geocoded origin if known, else the first route vertex.
        if self.origin is not None:
            return self.origin
        if not self.polyline:
            return None
        lon, lat = self.polyline[0]
        return (lat, lon)


SpatialQuery: TypeAlias = Union[PointRadius, Corridor]
