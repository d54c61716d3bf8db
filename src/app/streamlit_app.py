"""
Streamlit UI for the fuel station finder (Spain).

Two ways to search
------------------
1) Near me
   - The user's position (typed coordinates or a geocoded place) is the
     center of a fixed-radius search.

2) Along a route
   - Origin and destination are geocoded, a driving route is requested and
     every station within the corridor around it is shown.

High-level pipeline
-------------------
dataset (Ministry REST service → StationRecord)
    → geo filter (point radius / route corridor)
    → brand facets and brand filter
    → decision layer (nearest / cheapest, list ordering in `src.decision.recommender`)
    → map + list

All state transitions go through `StationFinder`; this module only renders
its read-only views and forwards user actions to it.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Make sure the project root (containing the `src` package) is on sys.path
# ---------------------------------------------------------------------------
import inspect
import logging
import sys
from pathlib import Path
from typing import Optional

import streamlit as st

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.app.app_errors import Notice
from src.app.config.settings import (
    configure_logging,
    ensure_session_state_defaults,
    get_finder_config,
    load_env_once,
)
from src.app.models import Corridor
from src.app.services.brands import normalize_brand
from src.app.services.location import make_locator
from src.app.services.presenters import build_station_dataframe
from src.app.services.prices import fuel_price
from src.app.services.session_store import (
    consume_brand_reset,
    get_finder,
    is_new_map_pick,
    pop_notice,
    reload_stations,
    request_brand_reset,
    set_notice,
)
from src.app.services.station_finder import StationFinder
from src.app.ui.formatting import fmt_km, fmt_price, fuel_type_label, safe_text, station_location, station_title
from src.app.ui.maps import create_station_map, selected_station_from_event
from src.app.ui.sidebar import SidebarState, render_sidebar
from src.app.ui.styles import apply_app_css
from src.decision.recommender import rank_stations

load_env_once()
configure_logging(get_finder_config().log_level)
logger = logging.getLogger(__name__)

MAX_ROUTE_CARDS = 25


def _supports_pydeck_selections() -> bool:
    """Return True if the installed Streamlit supports pydeck selection events."""
    try:
        sig = inspect.signature(st.pydeck_chart)
        return "on_select" in sig.parameters and "selection_mode" in sig.parameters
    except (TypeError, ValueError):
        return False


def _render_notice(notice: Optional[Notice]) -> None:
    if notice is None or notice.discarded:
        return
    text = f"**{notice.title}**"
    if notice.message:
        text += f"  \n{notice.message}"
    if notice.remediation:
        text += f"  \n_{notice.remediation}_"

    if notice.level == "success":
        st.success(text)
    elif notice.level == "warning":
        st.warning(text)
    elif notice.level == "error":
        st.error(text)
    else:
        st.info(text)


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------

def _sync_filters(finder: StationFinder, sidebar: SidebarState) -> None:
    """Apply widget changes made in the previous interaction."""
    if sidebar.fuel_type != finder.state.fuel_type:
        finder.set_fuel_type(sidebar.fuel_type)
    if normalize_brand(sidebar.brand) != normalize_brand(finder.state.brand):
        finder.set_brand(sidebar.brand)


def _handle_actions(finder: StationFinder, sidebar: SidebarState) -> None:
    if sidebar.reload_clicked:
        with st.spinner("Downloading current prices..."):
            set_notice(reload_stations(finder))
        request_brand_reset()
        st.rerun()

    spatial_notice: Optional[Notice] = None
    if sidebar.locate_clicked:
        with st.spinner("Locating..."):
            spatial_notice = finder.set_point_query(make_locator(sidebar.location_query, finder.geocoder))
    elif sidebar.route_clicked:
        with st.spinner("Calculating route..."):
            spatial_notice = finder.set_corridor_query(sidebar.origin_query, sidebar.destination_query)

    if spatial_notice is not None:
        set_notice(spatial_notice)
        if spatial_notice.ok and not spatial_notice.discarded:
            request_brand_reset()
        st.rerun()

    if sidebar.nearest_clicked:
        with st.spinner("Looking for the nearest station..."):
            set_notice(finder.find_nearest())
    elif sidebar.cheapest_clicked:
        with st.spinner("Looking for the cheapest station..."):
            set_notice(finder.find_cheapest())


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def _render_map(finder: StationFinder) -> None:
    query = finder.state.spatial_query
    selected = finder.selection_state.selected_station
    deck = create_station_map(
        finder.displayed_stations,
        finder.state.fuel_type,
        reference_point=finder.reference_point,
        corridor_path=query.polyline if isinstance(query, Corridor) else None,
        highlight_route=finder.selection_state.highlight_route,
        selected_station_id=selected.station_id if selected else None,
    )

    if not _supports_pydeck_selections():
        st.pydeck_chart(deck)
        return

    event = st.pydeck_chart(deck, on_select="rerun", selection_mode="single-object", key="station_map")
    picked = selected_station_from_event(event)
    if is_new_map_pick(picked):
        set_notice(finder.select_station(picked))  # type: ignore[arg-type]
        st.rerun()


def _render_selected_station(finder: StationFinder) -> None:
    selection = finder.selection_state
    station = selection.selected_station
    if station is None:
        st.info("Click a station on the map or in the list to get the route to it.")
        return

    tag = {"nearest": " · nearest", "cheapest": " · cheapest"}.get(selection.active_criterion or "", "")
    st.markdown(f"### {station_title(station)}{tag}")
    st.markdown(station_location(station))
    col_price, col_dist, col_hours = st.columns(3)
    col_price.metric(fuel_type_label(finder.state.fuel_type), fmt_price(fuel_price(station, finder.state.fuel_type)))
    col_dist.metric("Distance", fmt_km(station.distance_km))
    col_hours.markdown(f"**Opening hours**  \n{safe_text(station.opening_hours)}")


def _render_station_list(finder: StationFinder, order: str) -> None:
    stations = finder.displayed_stations
    if finder.state.spatial_query is None:
        st.info("Use your location or calculate a route to see fuel stations.")
        return
    if not stations:
        st.warning("No fuel stations match the current search.")
        return

    st.markdown(f"**{len(stations)} fuel stations**")
    df = build_station_dataframe(stations, finder.state.fuel_type, order)
    st.dataframe(df.drop(columns=["Station ID"]), use_container_width=True, hide_index=True)

    with st.expander("Route to a station", expanded=False):
        for s in rank_stations(stations, finder.state.fuel_type, order)[:MAX_ROUTE_CARDS]:
            col_text, col_btn = st.columns([4, 1])
            col_text.markdown(
                f"**{station_title(s)}** · {fmt_price(fuel_price(s, finder.state.fuel_type))} · "
                f"{fmt_km(s.distance_km)}  \n{station_location(s)}"
            )
            if col_btn.button("Route", key=f"route_{s.station_id}"):
                set_notice(finder.select_station(s.station_id))
                st.rerun()


def main() -> None:
    st.set_page_config(page_title="Fuel station finder", page_icon="⛽", layout="wide")
    ensure_session_state_defaults(st.session_state)
    apply_app_css()

    finder = get_finder()
    if finder is None:
        logger.warning("Station finder unavailable; rendering configuration notice only")
        _render_notice(pop_notice())
        st.stop()
        return

    if consume_brand_reset():
        st.session_state["brand_choice"] = finder.state.brand

    sidebar = render_sidebar(finder.available_brands)
    _sync_filters(finder, sidebar)
    _handle_actions(finder, sidebar)

    st.title("Fuel station finder")
    _render_notice(pop_notice())

    col_map, col_details = st.columns([3, 2])
    with col_map:
        _render_map(finder)
    with col_details:
        _render_selected_station(finder)

    st.markdown("---")
    _render_station_list(finder, sidebar.list_order)


if __name__ == "__main__":
    main()
