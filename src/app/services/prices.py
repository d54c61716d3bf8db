# src/app/services/prices.py
"""
Fuel-type selector -> price field lookup.

Prices stay raw (locale-formatted strings) until a comparison needs a number;
`parse_price` does that lazily and maps every unusable value to None.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from src.app.models import StationRecord
from src.app.services.geodesy import is_available, parse_locale_decimal

logger = logging.getLogger(__name__)

PRICE_UNAVAILABLE = "No disponible"

DEFAULT_FUEL_TYPE = "gasolina95"

FUEL_PRICE_FIELDS: Dict[str, str] = {
    "gasolina95": "Precio Gasolina 95 E5",
    "gasolina98": "Precio Gasolina 98 E5",
    "diesel": "Precio Gasoleo A",
    "dieselplus": "Precio Gasoleo Premium",
}

FUEL_TYPES = tuple(FUEL_PRICE_FIELDS)


def fuel_price_field(fuel_type: str) -> str:
    # Unrecognized selectors fall back to 95-octane.
    return FUEL_PRICE_FIELDS.get(fuel_type, FUEL_PRICE_FIELDS[DEFAULT_FUEL_TYPE])


def fuel_price(station: StationRecord, fuel_type: str) -> str:
    """Raw price string for the fuel type, or the sentinel when the station has none."""
    return station.prices.get(fuel_price_field(fuel_type), PRICE_UNAVAILABLE)


def is_price_unavailable(raw: Optional[str]) -> bool:
    if raw is None:
        return True
    text = str(raw).strip()
    return not text or text == PRICE_UNAVAILABLE


def parse_price(raw: Optional[str]) -> Optional[float]:
    """Numeric price in €/L, or None when missing, malformed or not positive."""
    if is_price_unavailable(raw):
        return None
    value = parse_locale_decimal(raw)
    if not is_available(value) or value <= 0:
        logger.debug("Ignoring unusable price value %r", raw)
        return None
    return value


def station_price(station: StationRecord, fuel_type: str) -> Optional[float]:
    return parse_price(fuel_price(station, fuel_type))


def normalise_fuel_type(fuel_type: str) -> str:
    """
    Normalise and validate a fuel type selector.

    Returns the canonical lower-case form and raises ValueError for
    unsupported fuel types.
    """
    if fuel_type is None:
        raise ValueError("fuel_type must not be None")

    ft = str(fuel_type).lower().strip()
    if ft not in FUEL_PRICE_FIELDS:
        valid = ", ".join(FUEL_TYPES)
        raise ValueError(f"Unsupported fuel_type '{fuel_type}'. Expected one of: {valid}")
    return ft
