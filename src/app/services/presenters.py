# src/app/services/presenters.py
from __future__ import annotations

from typing import List, Sequence

import pandas as pd

from src.app.models import StationRecord
from src.app.services.prices import fuel_price
from src.app.ui.formatting import fmt_km, fmt_price, safe_text, station_title
from src.decision.recommender import ORDER_BY_DISTANCE, rank_stations

STATION_COLUMNS: List[str] = [
    "Station ID",
    "Brand",
    "Address",
    "Locality",
    "Province",
    "Price",
    "Distance",
    "Opening hours",
]


def build_station_dataframe(
    stations: Sequence[StationRecord],
    fuel_type: str,
    order: str = ORDER_BY_DISTANCE,
) -> pd.DataFrame:
    """
    Build a DataFrame with the columns shown in the station list.

    Parameters
    ----------
    stations :
        Currently displayed stations (already filtered).
    fuel_type :
        Internal fuel type key, selects the price column.
    order :
        'distance' or 'price'; stations missing the value go last.

    Returns
    -------
    pandas.DataFrame
    """
    if not stations:
        return pd.DataFrame(columns=STATION_COLUMNS)

    rows = []
    for s in rank_stations(stations, fuel_type, order):
        rows.append(
            {
                "Station ID": s.station_id,
                "Brand": station_title(s),
                "Address": safe_text(s.address),
                "Locality": safe_text(s.locality or s.municipality),
                "Province": safe_text(s.province),
                "Price": fmt_price(fuel_price(s, fuel_type)),
                "Distance": fmt_km(s.distance_km),
                "Opening hours": safe_text(s.opening_hours),
            }
        )

    return pd.DataFrame(rows, columns=STATION_COLUMNS)
