"""
MODULE: Maps — pydeck Map Rendering for the Station Finder
---------------------------------------------------------

Purpose
- Encapsulates all map-generation logic so the app renders one consistent map
  without duplicating layer definitions or viewport calculations.

What this module does
- Viewport/zoom:
  - `calculate_zoom_for_bounds(...)` estimates a Web Mercator zoom level that
    fits a given bounding box (with padding and clamps).
  - `view_for_points(...)` centers the map on everything that is drawn.
- Map rows:
  - `station_map_rows(...)` turns displayed stations into the per-marker
    payload deck.gl needs (position, colors, tooltip text, station id).
- Layers:
  - Corridor route (blue), highlight route to the selected station (green),
    user/reference position, and a pickable station layer with the stable id
    "stations" so click selections can be mapped back to a station.

Inputs and contracts
- Route paths are (lon, lat) pairs; the reference point is (lat, lon).
- Must not trigger external API calls; it only renders what it is given.
"""

from __future__ import annotations

import html
import math
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pydeck as pdk

from src.app.models import LatLon, LonLat, StationRecord
from src.app.services.prices import fuel_price
from src.app.ui.formatting import fmt_km, fmt_price, station_location, station_title

STATIONS_LAYER_ID = "stations"

DEFAULT_CENTER: LatLon = (40.4168, -3.7038)  # Madrid
DEFAULT_ZOOM = 5.5

COLOR_STATION = [255, 165, 0]
COLOR_SELECTED = [0, 200, 0]
COLOR_REFERENCE = [30, 144, 255]
COLOR_CORRIDOR = [30, 144, 255, 255]
COLOR_HIGHLIGHT = [0, 170, 0, 255]

MAP_STYLE = "https://basemaps.cartocdn.com/gl/positron-gl-style/style.json"


def calculate_zoom_for_bounds(
    lon_min: float,
    lon_max: float,
    lat_min: float,
    lat_max: float,
    padding_percent: float = 0.10,
    map_width_px: int = 700,
    map_height_px: int = 500,
) -> float:
    """
    Calculate an approximate Web Mercator zoom level to fit given bounds with padding.

    Returns a zoom clamped to [1, 15].
    """
    lon_range = lon_max - lon_min
    lat_range = lat_max - lat_min

    # Point-like case
    if lon_range < 0.0001 and lat_range < 0.0001:
        return 15.0

    if lon_range < 0.0001:
        lon_range = 0.1
    if lat_range < 0.0001:
        lat_range = 0.1

    lon_min -= lon_range * padding_percent / 2
    lon_max += lon_range * padding_percent / 2
    lat_min -= lat_range * padding_percent / 2
    lat_max += lat_range * padding_percent / 2

    # Clamp to valid Web Mercator latitude range
    lat_min = max(-85.05, min(85.05, lat_min))
    lat_max = max(-85.05, min(85.05, lat_max))

    lon_delta = lon_max - lon_min
    if lon_delta <= 0:
        lon_delta = 0.1
    zoom_lon = math.log2(360 * map_width_px / (256 * lon_delta))

    y_min = math.log(math.tan(math.pi / 4 + math.radians(lat_max) / 2))
    y_max = math.log(math.tan(math.pi / 4 + math.radians(lat_min) / 2))

    y_delta = y_max - y_min
    if abs(y_delta) < 0.0001:
        y_delta = 0.1

    zoom_lat = math.log2(math.pi * map_height_px / (256 * abs(y_delta)))

    zoom = min(zoom_lon, zoom_lat)
    return max(1.0, min(zoom, 15.0))


def view_for_points(points_lonlat: Sequence[LonLat]) -> Tuple[float, float, float]:
    """(center_lat, center_lon, zoom) fitting all points, or the default view."""
    if not points_lonlat:
        return DEFAULT_CENTER[0], DEFAULT_CENTER[1], DEFAULT_ZOOM

    lons = [p[0] for p in points_lonlat]
    lats = [p[1] for p in points_lonlat]
    zoom = calculate_zoom_for_bounds(
        lon_min=min(lons),
        lon_max=max(lons),
        lat_min=min(lats),
        lat_max=max(lats),
    )
    return (min(lats) + max(lats)) / 2, (min(lons) + max(lons)) / 2, zoom


def station_map_rows(
    stations: Sequence[StationRecord],
    fuel_type: str,
    *,
    selected_station_id: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Per-marker payload for the station layer; stations without coordinates are skipped."""
    rows: List[Dict[str, Any]] = []
    for s in stations:
        if s.lon_lat is None:
            continue
        lon, lat = s.lon_lat
        is_selected = bool(selected_station_id) and s.station_id == selected_station_id
        rows.append(
            {
                "lon": lon,
                "lat": lat,
                "station_id": s.station_id,
                # Tooltip text is rendered as HTML by deck.gl.
                "name": html.escape(station_title(s)),
                "address": html.escape(station_location(s)),
                "price": fmt_price(fuel_price(s, fuel_type)),
                "distance": fmt_km(s.distance_km),
                "fill_color": COLOR_SELECTED if is_selected else COLOR_STATION,
                "radius": 9.0 if is_selected else 5.0,
            }
        )
    return rows


def _path_layer(layer_id: str, path: Sequence[LonLat], color: List[int], width_px: int) -> pdk.Layer:
    return pdk.Layer(
        "PathLayer",
        id=layer_id,
        data=[{"path": [list(p) for p in path]}],
        get_path="path",
        get_width=4,
        get_color=color,
        width_min_pixels=width_px,
        pickable=False,
    )


def create_station_map(
    stations: Sequence[StationRecord],
    fuel_type: str,
    *,
    reference_point: Optional[LatLon] = None,
    corridor_path: Optional[Sequence[LonLat]] = None,
    highlight_route: Optional[Sequence[LonLat]] = None,
    selected_station_id: Optional[str] = None,
    map_style: Optional[str] = MAP_STYLE,
) -> pdk.Deck:
    """
    Create a pydeck map showing:
      - the corridor route (if any) and the route to the selected station,
      - the reference position,
      - all displayed stations (selected one highlighted),
      - hover tooltip with brand, address, price and distance.
    """
    station_data = station_map_rows(stations, fuel_type, selected_station_id=selected_station_id)

    layers: List[pdk.Layer] = []
    if corridor_path:
        layers.append(_path_layer("corridor-route", corridor_path, COLOR_CORRIDOR, 3))
    if highlight_route:
        layers.append(_path_layer("highlight-route", highlight_route, COLOR_HIGHLIGHT, 4))

    if reference_point is not None:
        layers.append(
            pdk.Layer(
                "ScatterplotLayer",
                id="reference",
                data=[{"lon": reference_point[1], "lat": reference_point[0]}],
                get_position=["lon", "lat"],
                get_fill_color=COLOR_REFERENCE,
                get_radius=8,
                radius_units="pixels",
                pickable=False,
            )
        )

    layers.append(
        pdk.Layer(
            "ScatterplotLayer",
            id=STATIONS_LAYER_ID,
            data=station_data,
            get_position=["lon", "lat"],
            get_fill_color="fill_color",
            get_line_color=[0, 0, 0],
            get_line_width=1,
            stroked=True,
            filled=True,
            get_radius="radius",
            radius_units="pixels",
            radius_min_pixels=3,
            radius_max_pixels=14,
            pickable=True,
            auto_highlight=True,
        )
    )

    points: List[LonLat] = [(row["lon"], row["lat"]) for row in station_data]
    if corridor_path:
        points.extend(corridor_path)
    if reference_point is not None:
        points.append((reference_point[1], reference_point[0]))
    center_lat, center_lon, zoom = view_for_points(points)

    tooltip = {
        "html": (
            "<div style='font-size: 12px;'>"
            "<div style='font-weight: 600; margin-bottom: 4px;'>{name}</div>"
            "<div style='opacity: 0.85; margin-bottom: 6px;'>{address}</div>"
            "<div><b>Price</b>: {price} &nbsp; <b>Distance</b>: {distance}</div>"
            "</div>"
        ),
        "style": {
            "backgroundColor": "rgba(0, 0, 0, 0.85)",
            "color": "white",
            "padding": "10px",
            "borderRadius": "6px",
            "maxWidth": "320px",
        },
    }

    return pdk.Deck(
        layers=layers,
        initial_view_state=pdk.ViewState(
            latitude=center_lat,
            longitude=center_lon,
            zoom=zoom,
            pitch=0,
            controller=True,
        ),
        tooltip=tooltip,
        map_style=map_style,
    )


def selected_station_from_event(event: Any) -> Optional[str]:
    """Station id of the clicked marker in a `st.pydeck_chart` selection event."""
    selection = getattr(event, "selection", None)
    if selection is None and isinstance(event, dict):
        selection = event.get("selection")
    if selection is None:
        return None

    objects = getattr(selection, "objects", None)
    if objects is None and isinstance(selection, dict):
        objects = selection.get("objects")
    if not objects or not objects.get(STATIONS_LAYER_ID):
        return None
    return objects[STATIONS_LAYER_ID][0].get("station_id") or None
