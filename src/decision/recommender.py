"""
Decision layer for the fuel station finder.

This module operates purely in-memory on the currently displayed station
list (never on the full dataset).

Responsibilities
----------------
* Select the single nearest station to a reference point.
* Select the single cheapest station for a fuel type, ignoring stations
  that do not report that fuel.
* Order a station list by price or by distance for display.

Tie-break policy
----------------
Both selections keep the first station encountered among equals, so the
result only depends on the input order when values tie exactly.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from src.app.app_errors import NoCandidateStations, NoMatchingFuel, NoReferencePoint
from src.app.models import LatLon, StationRecord
from src.app.services.geo_filter import station_distance_km
from src.app.services.prices import station_price

logger = logging.getLogger(__name__)

NEAREST = "nearest"
CHEAPEST = "cheapest"

ORDER_BY_DISTANCE = "distance"
ORDER_BY_PRICE = "price"
LIST_ORDERS = (ORDER_BY_DISTANCE, ORDER_BY_PRICE)


# ---------------------------------------------------------------------------
# Extremal selection
# ---------------------------------------------------------------------------

def find_nearest_station(
    stations: Sequence[StationRecord],
    reference_point: Optional[LatLon],
) -> StationRecord:
    """
    Nearest station to `reference_point`, annotated with its distance.

    Raises
    ------
    NoReferencePoint
        If no reference point is set.
    NoCandidateStations
        If there is no station (with coordinates) to choose from.
    """
    if reference_point is None:
        raise NoReferencePoint(
            "Your location is needed to find the nearest station.",
            remediation="Use your location or calculate a route first.",
        )
    if not stations:
        raise NoCandidateStations(
            "There are no stations to choose from.",
            remediation="Use your location or calculate a route first.",
        )

    lat0, lon0 = reference_point
    best: Optional[StationRecord] = None
    best_d = 0.0
    for station in stations:
        d_km = station_distance_km(station, lat0, lon0)
        if d_km is None:
            continue
        if best is None or d_km < best_d:
            best, best_d = station, d_km

    if best is None:
        raise NoCandidateStations(
            "None of the listed stations has usable coordinates.",
            details=f"{len(stations)} candidates without coordinates",
        )

    logger.info("Nearest station %s at %.2f km", best.station_id, best_d)
    return best.with_distance(best_d)


def find_cheapest_station(
    stations: Sequence[StationRecord],
    fuel_type: str,
) -> Tuple[StationRecord, float]:
    """
    Cheapest station for `fuel_type` and its numeric price (€/L).

    Stations showing the "not available" sentinel, or a price that cannot be
    parsed, are excluded before comparison.

    Raises
    ------
    NoCandidateStations
        If the station list is empty.
    NoMatchingFuel
        If no station offers the fuel.
    """
    if not stations:
        raise NoCandidateStations(
            "There are no stations to choose from.",
            remediation="Use your location or calculate a route first.",
        )

    best: Optional[StationRecord] = None
    best_price = 0.0
    for station in stations:
        price = station_price(station, fuel_type)
        if price is None:
            continue
        if best is None or price < best_price:
            best, best_price = station, price

    if best is None:
        raise NoMatchingFuel(
            "No station nearby offers the selected fuel.",
            remediation="Choose another fuel type or widen the search.",
            details=f"fuel_type={fuel_type}, candidates={len(stations)}",
        )

    logger.info("Cheapest %s station %s at %.3f €/L", fuel_type, best.station_id, best_price)
    return best, best_price


# ---------------------------------------------------------------------------
# List ordering
# ---------------------------------------------------------------------------

def rank_stations(
    stations: Iterable[StationRecord],
    fuel_type: str,
    order: str = ORDER_BY_DISTANCE,
) -> List[StationRecord]:
    """
    Stable ordering for display.

    - "price": ascending price for the fuel type; stations without it go last.
    - "distance": ascending `distance_km`; stations without distance go last.
    """
    if order == ORDER_BY_PRICE:
        def _price_key(s: StationRecord) -> Tuple[int, float]:
            p = station_price(s, fuel_type)
            return (1, 0.0) if p is None else (0, p)

        return sorted(stations, key=_price_key)

    if order == ORDER_BY_DISTANCE:
        return sorted(
            stations,
            key=lambda s: (1, 0.0) if s.distance_km is None else (0, s.distance_km),
        )

    raise ValueError(f"Unsupported order '{order}'. Expected one of: {', '.join(LIST_ORDERS)}")
