# src/app/ui/sidebar.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

import streamlit as st

from src.app.services.brands import ALL_BRANDS
from src.app.services.prices import FUEL_TYPES
from src.app.ui.formatting import fuel_type_label
from src.decision.recommender import LIST_ORDERS

HELP_MD = """
### How it works

**Near me** shows the fuel stations within the search radius of your position.
Type coordinates (`40,4167; -3,7033`) or the place where you are.

**Along a route** shows the stations close to the driving route between two places.

Then narrow the list by brand, pick the fuel you need and let the app
find the **nearest** or **cheapest** station. Click a marker or a list entry
to get the route to that station.

Prices come from the Spanish Ministry for the Ecological Transition and are
refreshed a few times per day.
""".strip()

LIST_ORDER_LABELS = {"distance": "Distance", "price": "Price"}


@dataclass(frozen=True)
class SidebarState:
    # Point query
    location_query: str
    locate_clicked: bool

    # Corridor query
    origin_query: str
    destination_query: str
    route_clicked: bool

    # Filters
    fuel_type: str
    brand: str
    list_order: str

    # Extremal selection
    nearest_clicked: bool
    cheapest_clicked: bool

    # Dataset
    reload_clicked: bool


def _ss(key: str, default: Any) -> Any:
    """Read session_state with a default."""
    return st.session_state.get(key, default)


def render_sidebar(available_brands: Sequence[str]) -> SidebarState:
    """
    Render the search form and return what the user did in this run.

    Widget values live in session_state under the keys of the session-state
    contract (see config.settings), so they survive reruns.
    """
    st.sidebar.title("⛽ Fuel station finder")
    action_tab, help_tab = st.sidebar.tabs(["Search", "Help"])

    with help_tab:
        st.markdown(HELP_MD)

    with action_tab:
        st.markdown("#### Near me")
        st.text_input("My location", key="location_query", placeholder="40,4167; -3,7033 or Madrid")
        locate_clicked = st.button("Use my location", use_container_width=True)

        st.markdown("#### Along a route")
        st.text_input("Origin", key="origin_query", placeholder="Madrid")
        st.text_input("Destination", key="destination_query", placeholder="Zaragoza")
        route_clicked = st.button("Calculate route", use_container_width=True)

        st.markdown("#### Filters")
        st.selectbox("Fuel", options=list(FUEL_TYPES), key="fuel_type", format_func=fuel_type_label)

        brand_options = [ALL_BRANDS, *available_brands]
        if _ss("brand_choice", ALL_BRANDS) not in brand_options:
            st.session_state["brand_choice"] = ALL_BRANDS
        st.selectbox(
            "Brand",
            options=brand_options,
            key="brand_choice",
            format_func=lambda b: "All brands" if b == ALL_BRANDS else b,
        )

        st.radio(
            "Sort list by",
            options=list(LIST_ORDERS),
            key="list_order",
            format_func=lambda o: LIST_ORDER_LABELS.get(o, o),
            horizontal=True,
        )

        col_near, col_cheap = st.columns(2)
        with col_near:
            nearest_clicked = st.button("Nearest", use_container_width=True)
        with col_cheap:
            cheapest_clicked = st.button("Cheapest", use_container_width=True)

        st.markdown("---")
        reload_clicked = st.button("Refresh prices", use_container_width=True)

    return SidebarState(
        location_query=str(_ss("location_query", "")),
        locate_clicked=bool(locate_clicked),
        origin_query=str(_ss("origin_query", "")),
        destination_query=str(_ss("destination_query", "")),
        route_clicked=bool(route_clicked),
        fuel_type=str(_ss("fuel_type", FUEL_TYPES[0])),
        brand=str(_ss("brand_choice", ALL_BRANDS)),
        list_order=str(_ss("list_order", LIST_ORDERS[0])),
        nearest_clicked=bool(nearest_clicked),
        cheapest_clicked=bool(cheapest_clicked),
        reload_clicked=bool(reload_clicked),
    )
