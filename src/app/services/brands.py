# src/app/services/brands.py
"""
Brand facets: the distinct brands present in a station set, and the brand filter.

Matching is case-insensitive exact match after whitespace normalization
("REPSOL", " Repsol " and "repsol" are the same brand; "Repsol Butano" is not).
"""

from __future__ import annotations

import unicodedata
from typing import Iterable, List, Tuple

from src.app.models import StationRecord

ALL_BRANDS = "all"


def normalize_brand(value: object) -> str:
    if value is None:
        return ""
    s = str(value).strip()
    if not s:
        return ""
    return " ".join(s.split()).casefold()


def brand_sort_key(brand: str) -> Tuple[str, str]:
    # Accent- and case-insensitive first, raw spelling as tie-break.
    decomposed = unicodedata.normalize("NFKD", brand)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return (base.casefold(), brand)


def available_brands(stations: Iterable[StationRecord]) -> List[str]:
    """Distinct, sorted brand names of the given stations (first spelling wins)."""
    by_key: dict[str, str] = {}
    for station in stations:
        key = normalize_brand(station.brand)
        if key and key not in by_key:
            by_key[key] = " ".join(station.brand.split())
    return sorted(by_key.values(), key=brand_sort_key)


def is_all_brands(brand: object) -> bool:
    return normalize_brand(brand) in ("", ALL_BRANDS)


def filter_by_brand(stations: Iterable[StationRecord], brand: str) -> List[StationRecord]:
    if is_all_brands(brand):
        return list(stations)
    wanted = normalize_brand(brand)
    return [s for s in stations if normalize_brand(s.brand) == wanted]
