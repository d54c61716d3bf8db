"""
MODULE: Station Finder — Filter-State Orchestrator
--------------------------------------------------

Purpose
- Single write surface for the presentation layer. Combines the three filter
  dimensions (spatial query, brand, fuel type) into one derived list of
  displayed stations and delegates highlighting to the selection component.

State
- `FilterState` (owned here): spatial query (none / point / corridor), brand
  ("all" or one brand), fuel type.
- Derived, recomputed explicitly by each transition:
  - spatial matches (stations satisfying the spatial query),
  - brand facets of the spatial matches,
  - displayed stations (spatial matches narrowed by brand).
- `SelectionState` is owned by `StationSelection` and only read from here.

Transitions
- set point query / set corridor query: replace the query, reset brand to
  "all", recompute matches and facets, clear the selection.
- set brand: narrow the current matches; the spatial query is untouched.
- set fuel type: only changes which price is shown and compared.
- Without a spatial query nothing is displayed, whatever the brand.

Requests
- Point and corridor queries share one request sequence: whichever was
  triggered last wins, even if an earlier one resolves afterwards. Stale
  results are discarded without touching state.
- Failures leave the previous state untouched and come back as a `Notice`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from src.app.app_errors import (
    AppError,
    DataUnavailable,
    GeocodeNotFound,
    NoReferencePoint,
    Notice,
    RouteNotFound,
    UnknownStation,
    UnsupportedFuelType,
)
from src.app.models import (
    DEFAULT_CORRIDOR_KM,
    DEFAULT_POINT_RADIUS_KM,
    Corridor,
    LatLon,
    LonLat,
    PointRadius,
    RoutePathLonLat,
    SpatialQuery,
    StationRecord,
)
from src.app.services.brands import ALL_BRANDS, available_brands, filter_by_brand, is_all_brands
from src.app.services.geo_filter import apply_spatial_query
from src.app.services.prices import DEFAULT_FUEL_TYPE, normalise_fuel_type
from src.app.services.selection import SelectionState, StationSelection
from src.app.services.sequencing import RequestSequence
from src.decision.recommender import CHEAPEST, NEAREST, find_cheapest_station, find_nearest_station
from src.integration.fuel_dataset import index_by_id
from src.integration.geocoding import Geocoder
from src.integration.routing import Router

logger = logging.getLogger(__name__)

LocationSource = Callable[[], LatLon]
StationSource = Callable[[], Sequence[StationRecord]]


@dataclass
class FilterState:
    spatial_query: Optional[SpatialQuery] = None
    brand: str = ALL_BRANDS
    fuel_type: str = DEFAULT_FUEL_TYPE

    @property
    def reference_point(self) -> Optional[LatLon]:
        if self.spatial_query is None:
            return None
        return self.spatial_query.reference_point


def _station_label(station: StationRecord) -> str:
    return station.brand or station.address or station.station_id


class StationFinder:
    def __init__(
        self,
        geocoder: Geocoder,
        router: Router,
        *,
        point_radius_km: float = DEFAULT_POINT_RADIUS_KM,
        corridor_km: float = DEFAULT_CORRIDOR_KM,
    ) -> None:
        self._geocoder = geocoder
        self._router = router
        self._point_radius_km = point_radius_km
        self._corridor_km = corridor_km
        self._spatial_requests = RequestSequence()

        self._stations: Tuple[StationRecord, ...] = ()
        self._by_id: Dict[str, StationRecord] = {}
        self._spatial_matches: List[StationRecord] = []
        self._displayed: List[StationRecord] = []
        self._brands: List[str] = []

        self.state = FilterState()
        self.selection = StationSelection(router)

    # -----------------------------------------------------------------
    # Read-only views
    # -----------------------------------------------------------------

    @property
    def stations(self) -> Tuple[StationRecord, ...]:
        return self._stations

    @property
    def spatial_matches(self) -> Tuple[StationRecord, ...]:
        return tuple(self._spatial_matches)

    @property
    def displayed_stations(self) -> Tuple[StationRecord, ...]:
        return tuple(self._displayed)

    @property
    def available_brands(self) -> Tuple[str, ...]:
        return tuple(self._brands)

    @property
    def selection_state(self) -> SelectionState:
        return self.selection.state

    @property
    def reference_point(self) -> Optional[LatLon]:
        return self.state.reference_point

    @property
    def geocoder(self) -> Geocoder:
        return self._geocoder

    @property
    def point_radius_km(self) -> float:
        return self._point_radius_km

    @property
    def corridor_km(self) -> float:
        return self._corridor_km

    # -----------------------------------------------------------------
    # Dataset
    # -----------------------------------------------------------------

    def load_stations(self, fetch: StationSource) -> Notice:
        stations = tuple(fetch())
        if not stations:
            return Notice.from_error(
                DataUnavailable(
                    "Station data could not be loaded.",
                    remediation="Check your connection and reload the page in a few minutes.",
                ),
            )

        self._stations = stations
        self._by_id = index_by_id(stations)
        if self.state.spatial_query is not None:
            self._apply_spatial_query(self.state.spatial_query)
        return Notice.success("Data updated", f"{len(stations)} fuel stations loaded.")

    # -----------------------------------------------------------------
    # Spatial queries
    # -----------------------------------------------------------------

    def begin_spatial_request(self) -> int:
        return self._spatial_requests.issue()

    def _is_current(self, ticket: int) -> bool:
        if self._spatial_requests.is_current(ticket):
            return True
        logger.info(
            "Discarding stale spatial result (ticket %d, latest %d)", ticket, self._spatial_requests.latest
        )
        return False

    def _apply_spatial_query(self, query: SpatialQuery) -> None:
        matches = apply_spatial_query(self._stations, query)
        self.state.spatial_query = query
        self.state.brand = ALL_BRANDS
        self._spatial_matches = matches
        self._brands = available_brands(matches)
        self._displayed = list(matches)
        self.selection.clear()

    def set_point_query(self, locate: LocationSource) -> Notice:
        """Resolve the user's position and show the stations around it."""
        ticket = self.begin_spatial_request()
        try:
            location = locate()
        except AppError as e:
            if not self._is_current(ticket):
                return Notice.stale()
            return Notice.from_error(e, title="Location error")
        return self.resolve_point_query(ticket, location)

    def resolve_point_query(self, ticket: int, location: LatLon) -> Notice:
        if not self._is_current(ticket):
            return Notice.stale()

        lat, lon = location
        query = PointRadius(center=(float(lat), float(lon)), radius_km=self._point_radius_km)
        self._apply_spatial_query(query)
        return Notice.success(
            "Location found",
            f"Found {len(self._displayed)} fuel stations within {query.radius_km:g} km.",
        )

    def set_corridor_query(self, origin_name: str, destination_name: str) -> Notice:
        """Geocode both places, route between them and show the stations along the route."""
        if not (origin_name or "").strip() or not (destination_name or "").strip():
            return Notice.from_error(
                GeocodeNotFound(
                    "Please enter an origin and a destination.",
                    remediation="Type a city or address in both fields.",
                ),
            )

        ticket = self.begin_spatial_request()
        try:
            origin = self._geocoder.geocode(origin_name)
            destination = self._geocoder.geocode(destination_name)
            missing = [name for name, point in ((origin_name, origin), (destination_name, destination)) if point is None]
            if missing:
                raise GeocodeNotFound(
                    "Could not find the coordinates of: " + ", ".join(m.strip() for m in missing) + ".",
                    remediation="Check the spelling or add the province.",
                )
            path = self._router.route(origin, destination)  # type: ignore[arg-type]
            if not path:
                raise RouteNotFound(
                    "No driving route was found between these places.",
                    details=f"{origin_name!r} -> {destination_name!r}",
                )
        except AppError as e:
            if not self._is_current(ticket):
                return Notice.stale()
            return Notice.from_error(e, title="Route error")

        origin_lon, origin_lat = origin  # type: ignore[misc]
        return self.resolve_corridor_query(ticket, path, origin=(origin_lat, origin_lon))

    def resolve_corridor_query(
        self,
        ticket: int,
        polyline: Sequence[LonLat],
        origin: Optional[LatLon] = None,
    ) -> Notice:
        if not self._is_current(ticket):
            return Notice.stale()

        path: RoutePathLonLat = tuple((float(lon), float(lat)) for lon, lat in polyline)
        query = Corridor(polyline=path, corridor_km=self._corridor_km, origin=origin)
        self._apply_spatial_query(query)
        return Notice.success(
            "Route calculated",
            f"Found {len(self._displayed)} fuel stations along the route.",
        )

    # -----------------------------------------------------------------
    # Brand / fuel
    # -----------------------------------------------------------------

    def set_brand(self, brand: str) -> Notice:
        self.state.brand = ALL_BRANDS if is_all_brands(brand) else " ".join(str(brand).split())
        self._displayed = filter_by_brand(self._spatial_matches, self.state.brand)
        return Notice.info("Brand filter", f"{len(self._displayed)} fuel stations shown.")

    def set_fuel_type(self, fuel_type: str) -> Notice:
        try:
            self.state.fuel_type = normalise_fuel_type(fuel_type)
        except ValueError as e:
            return Notice.from_error(
                UnsupportedFuelType(
                    "This fuel type is not supported.",
                    remediation="Choose Gasolina 95, Gasolina 98, Diésel or Diésel Plus.",
                    details=str(e),
                ),
                title="Fuel type",
                level="warning",
            )
        return Notice.info("Fuel type", f"Showing prices for {self.state.fuel_type}.")

    # -----------------------------------------------------------------
    # Selection
    # -----------------------------------------------------------------

    def _find_station(self, station_id: str) -> Optional[StationRecord]:
        for station in self._displayed:
            if station.station_id == station_id:
                return station
        return self._by_id.get(station_id)

    def select_station(self, station_id: str) -> Notice:
        station = self._find_station(station_id)
        if station is None:
            return Notice.from_error(UnknownStation("This station is no longer available.", details=str(station_id)))
        return self.selection.select(station, self.state.reference_point)

    def find_nearest(self) -> Notice:
        reference = self.state.reference_point
        try:
            station = find_nearest_station(self._displayed, reference)
        except AppError as e:
            return Notice.from_error(e)

        success = Notice.success(
            "Nearest station found",
            f"{_station_label(station)} - {station.distance_km:.1f} km away",
        )
        return self.selection.highlight(station, NEAREST, reference, success)  # type: ignore[arg-type]

    def find_cheapest(self) -> Notice:
        reference = self.state.reference_point
        if reference is None:
            return Notice.from_error(
                NoReferencePoint(
                    "Your location is needed to find the cheapest station.",
                    remediation="Use your location or calculate a route first.",
                )
            )
        try:
            station, price = find_cheapest_station(self._displayed, self.state.fuel_type)
        except AppError as e:
            return Notice.from_error(e)

        success = Notice.success(
            "Cheapest station found",
            f"{_station_label(station)} - {price:.3f} €/L",
        )
        return self.selection.highlight(station, CHEAPEST, reference, success)
