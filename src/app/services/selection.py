# src/app/services/selection.py
"""
Selection component: which station is highlighted and the route to it.

Owns `SelectionState`. A selection comes from a manual click (`select`) or
from the extremal selector (`highlight`, which also records the criterion).
Either one requests a point-to-point route from the reference point to the
station; only the result of the most recent route request is applied.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from src.app.app_errors import AppError, NoReferencePoint, Notice, RouteNotFound
from src.app.models import LatLon, RoutePathLonLat, StationRecord
from src.app.services.sequencing import RequestSequence
from src.integration.routing import Router

logger = logging.getLogger(__name__)


@dataclass
class SelectionState:
    selected_station: Optional[StationRecord] = None
    highlight_route: Optional[RoutePathLonLat] = None
    active_criterion: Optional[str] = None  # "nearest" | "cheapest" | None


class StationSelection:
    def __init__(self, router: Router) -> None:
        self._router = router
        self._routes = RequestSequence()
        self.state = SelectionState()

    def clear(self) -> None:
        self.state = SelectionState()
        self._routes.invalidate()

    def _set_selected(self, station: StationRecord) -> None:
        # A route only ever belongs to the station it was computed for.
        current = self.state.selected_station
        if current is None or current.station_id != station.station_id:
            self.state.highlight_route = None
        self.state.selected_station = station

    def select(self, station: StationRecord, reference_point: Optional[LatLon]) -> Notice:
        """Manual selection; routes to the station when the user position is known."""
        self._set_selected(station)
        self.state.active_criterion = None

        if reference_point is None:
            return Notice.from_error(
                NoReferencePoint(
                    "Enable your location to calculate the route to this station.",
                    remediation="Use your location or calculate a route first.",
                ),
                title="Location needed",
                level="warning",
            )
        return self.request_route(
            station,
            reference_point,
            success=Notice.success("Route calculated", f"Route to {station.brand or station.station_id} ready."),
        )

    def highlight(
        self,
        station: StationRecord,
        criterion: str,
        reference_point: LatLon,
        success: Notice,
    ) -> Notice:
        """Selection made by the extremal selector."""
        self._set_selected(station)
        self.state.active_criterion = criterion
        return self.request_route(station, reference_point, success=success)

    # -----------------------------------------------------------------
    # Route requests
    # -----------------------------------------------------------------

    def begin_route_request(self) -> int:
        return self._routes.issue()

    def resolve_route(self, ticket: int, path: RoutePathLonLat) -> bool:
        if not self._routes.is_current(ticket):
            logger.info("Discarding stale route result (ticket %d, latest %d)", ticket, self._routes.latest)
            return False
        self.state.highlight_route = tuple(path)
        return True

    def request_route(self, station: StationRecord, reference_point: LatLon, success: Notice) -> Notice:
        ticket = self.begin_route_request()
        destination = station.lon_lat
        if destination is None:
            return Notice.from_error(
                RouteNotFound("This station has no usable coordinates.", details=station.station_id),
                title="Route error",
            )

        lat0, lon0 = reference_point
        try:
            path = self._router.route((lon0, lat0), destination)
        except AppError as e:
            if not self._routes.is_current(ticket):
                return Notice.stale()
            return Notice.from_error(e, title="Route error")

        if not path:
            if not self._routes.is_current(ticket):
                return Notice.stale()
            return Notice.from_error(
                RouteNotFound(
                    f"No route could be calculated to {station.brand or 'the station'}.",
                    details=f"station={station.station_id}",
                ),
                title="Route error",
            )

        if not self.resolve_route(ticket, path):
            return Notice.stale()
        return success
