"""
Fuel station dataset (Spanish Ministry "Precios Carburantes" REST service)
=========================================================================

PURPOSE:
--------
Loads the public list of land fuel stations with their current prices and turns
each raw entry into a `StationRecord`:
1. Coordinates ("40,416775") are normalized to float degrees once, at load time
2. Every "Precio ..." field is kept as the raw locale string
3. Empty prices become the "No disponible" sentinel
4. Entries without IDEESS are skipped; duplicate ids keep the first entry

The service answers with one JSON document:

    {"Fecha": "...", "ListaEESSPrecio": [{...}, {...}], "ResultadoConsulta": "OK"}

FAILURE POLICY:
---------------
`fetch_stations()` never raises. Network errors, HTTP errors and malformed
payloads are logged and produce an empty list; the finder reports that to the
user as "data unavailable".

CACHING:
--------
The list holds ~12,000 stations and changes a few times per day, so
`StationRepository` keeps a successful load in memory for `cache_seconds`.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import requests

from src.app.models import StationRecord
from src.app.services.geodesy import parse_locale_decimal
from src.app.services.prices import PRICE_UNAVAILABLE

logger = logging.getLogger(__name__)

DATASET_URL = (
    "https://sedeaplicaciones.minetur.gob.es/ServiciosRESTCarburantes/"
    "PreciosCarburantes/EstacionesTerrestres/"
)
DATASET_LIST_KEY = "ListaEESSPrecio"

FIELD_ID = "IDEESS"
FIELD_LATITUDE = "Latitud"
FIELD_LONGITUDE = "Longitud (WGS84)"
FIELD_BRAND = "Rótulo"
FIELD_ADDRESS = "Dirección"
FIELD_MUNICIPALITY = "Municipio"
FIELD_LOCALITY = "Localidad"
FIELD_PROVINCE = "Provincia"
FIELD_POSTAL_CODE = "C.P."
FIELD_OPENING_HOURS = "Horario"
PRICE_FIELD_PREFIX = "Precio "

StationFetcher = Callable[[], Sequence[StationRecord]]


# =============================================================================
# Record parsing
# =============================================================================

def _text(raw: Dict[str, Any], key: str) -> str:
    value = raw.get(key)
    if value is None:
        return ""
    return " ".join(str(value).split())


def _coordinate(raw: Dict[str, Any], key: str, limit: float) -> Optional[float]:
    value = parse_locale_decimal(raw.get(key))
    if math.isnan(value) or abs(value) > limit:
        return None
    return value


def _prices(raw: Dict[str, Any]) -> Dict[str, str]:
    prices: Dict[str, str] = {}
    for key, value in raw.items():
        if not str(key).startswith(PRICE_FIELD_PREFIX):
            continue
        text = "" if value is None else str(value).strip()
        prices[str(key)] = text if text else PRICE_UNAVAILABLE
    return prices


def parse_station_record(raw: Dict[str, Any]) -> Optional[StationRecord]:
    """
    Convert one raw dataset entry into a StationRecord.

    Returns None when the entry has no identifier. Unparseable coordinates are
    kept as None (the station simply never matches a spatial filter).
    """
    if not isinstance(raw, dict):
        return None

    station_id = _text(raw, FIELD_ID)
    if not station_id:
        return None

    return StationRecord(
        station_id=station_id,
        latitude=_coordinate(raw, FIELD_LATITUDE, 90.0),
        longitude=_coordinate(raw, FIELD_LONGITUDE, 180.0),
        brand=_text(raw, FIELD_BRAND),
        address=_text(raw, FIELD_ADDRESS),
        municipality=_text(raw, FIELD_MUNICIPALITY),
        locality=_text(raw, FIELD_LOCALITY),
        province=_text(raw, FIELD_PROVINCE),
        postal_code=_text(raw, FIELD_POSTAL_CODE),
        opening_hours=_text(raw, FIELD_OPENING_HOURS),
        prices=_prices(raw),
    )


def parse_station_payload(payload: Any) -> List[StationRecord]:
    """
    Extract station records from the service payload.

    Accepts the full document or a bare list of entries. Anything else yields [].
    """
    if isinstance(payload, dict):
        entries = payload.get(DATASET_LIST_KEY)
    else:
        entries = payload

    if not isinstance(entries, list):
        logger.warning("Station payload has no '%s' list; treating as empty", DATASET_LIST_KEY)
        return []

    stations: List[StationRecord] = []
    seen_ids: set[str] = set()
    skipped = 0
    for entry in entries:
        record = parse_station_record(entry)
        if record is None:
            skipped += 1
            continue
        if record.station_id in seen_ids:
            logger.debug("Duplicate station id %s ignored", record.station_id)
            skipped += 1
            continue
        seen_ids.add(record.station_id)
        stations.append(record)

    if skipped:
        logger.info("Skipped %d station entries without id or with duplicate id", skipped)
    return stations


# =============================================================================
# Fetch
# =============================================================================

def fetch_stations(url: str = DATASET_URL, timeout: float = 60.0) -> List[StationRecord]:
    """Download and parse the station list; returns [] on any failure."""
    logger.info("Fetching fuel station dataset from %s", url)
    try:
        resp = requests.get(url, headers={"Accept": "application/json"}, timeout=timeout)
        resp.raise_for_status()
        payload = resp.json()
    except requests.RequestException as e:
        logger.error("Fuel station dataset request failed: %s", e)
        return []
    except ValueError as e:
        logger.error("Fuel station dataset is not valid JSON: %s", e)
        return []

    stations = parse_station_payload(payload)
    logger.info("Loaded %d fuel stations", len(stations))
    return stations


class StationRepository:
    """
    Holds the full station collection for the process.

    The collection is exposed as a tuple and never mutated; derived views are
    always fresh lists built by the services.
    """

    def __init__(
        self,
        fetch: StationFetcher = fetch_stations,
        cache_seconds: float = 3600,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetch = fetch
        self._cache_seconds = cache_seconds
        self._clock = clock
        self._stations: Tuple[StationRecord, ...] = ()
        self._loaded_at: Optional[float] = None
        # Shared across sessions via st.cache_resource; one download at a time.
        self._lock = threading.Lock()

    @property
    def stations(self) -> Tuple[StationRecord, ...]:
        return self._stations

    def _cache_valid(self) -> bool:
        if self._loaded_at is None or not self._stations:
            return False
        return (self._clock() - self._loaded_at) < self._cache_seconds

    def load(self, force_reload: bool = False) -> Tuple[StationRecord, ...]:
        if not force_reload and self._cache_valid():
            return self._stations

        with self._lock:
            # Another session may have finished the download while we waited.
            if not force_reload and self._cache_valid():
                return self._stations

            stations = tuple(self._fetch())
            if stations:
                self._stations = stations
                self._loaded_at = self._clock()
            else:
                # The previous good copy stays in place; an empty answer is never cached.
                logger.warning("Station fetch returned no stations")
            return stations


def index_by_id(stations: Iterable[StationRecord]) -> Dict[str, StationRecord]:
    return {s.station_id: s for s in stations}
