"""
MODULE: UI Formatting — Stable, Null-Safe Presentation Helpers
--------------------------------------------------------------

Purpose
- Centralizes formatting and labeling logic used by the Streamlit app so that
  the map tooltips, the station list and the notices read the same way and
  cope with missing fields.

What this module does
- Fuel labels:
  - Maps the internal fuel type keys used by the price lookup to the labels
    shown in the UI (e.g., "Gasolina 95", "Diésel") (`fuel_type_label`).
- Null-safe string handling:
  - Converts arbitrary values to display-safe text with a defined fallback
    (default "—") (`safe_text`).
- Formatting primitives:
  - `fmt_price`: raw dataset price string ("1,459") -> "1.459 €/L", or the
    "No disponible" sentinel when the station does not report the fuel.
  - `fmt_km`: 2 decimals + "km".
- Station labels for cards and tooltips (`station_title`, `station_location`).

Design constraints
- Must remain side-effect free (pure helper module) and safe to import everywhere.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from src.app.models import StationRecord
from src.app.services.prices import PRICE_UNAVAILABLE, parse_price

# -----------------------------------------------------------------------------
# Fuel labels (internal fuel type -> UI label)
# -----------------------------------------------------------------------------

FUEL_TYPE_TO_LABEL: Dict[str, str] = {
    "gasolina95": "Gasolina 95",
    "gasolina98": "Gasolina 98",
    "diesel": "Diésel",
    "dieselplus": "Diésel Plus",
}


def fuel_type_label(fuel_type: str) -> str:
    return FUEL_TYPE_TO_LABEL.get(fuel_type, fuel_type)


# -----------------------------------------------------------------------------
# Safe text
# -----------------------------------------------------------------------------

def safe_text(value: Any, *, fallback: str = "—") -> str:
    if value is None:
        return fallback
    s = str(value).strip()
    return s if s else fallback


# -----------------------------------------------------------------------------
# Formatting primitives
# -----------------------------------------------------------------------------

def _to_float(value: Any) -> Optional[float]:
    try:
        if value is None:
            return None
        return float(value)
    except (TypeError, ValueError):
        return None


def fmt_price(raw: Any) -> str:
    """Dataset price (locale string or number) for display."""
    value = parse_price(raw)
    return f"{value:.3f} €/L" if value is not None else PRICE_UNAVAILABLE


def fmt_km(value: Any) -> str:
    v = _to_float(value)
    return f"{v:.2f} km" if v is not None else "—"


# -----------------------------------------------------------------------------
# Station labels
# -----------------------------------------------------------------------------

def station_title(station: StationRecord) -> str:
    return safe_text(station.brand, fallback="Gasolinera")


def station_location(station: StationRecord) -> str:
    parts = [station.address, station.locality or station.municipality, station.province]
    text = ", ".join(p for p in parts if p)
    return safe_text(text)
