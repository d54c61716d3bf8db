# src/app/config/settings.py
from __future__ import annotations

import logging
import os
from copy import deepcopy
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Iterable, MutableMapping, Optional

import streamlit as st
from dotenv import find_dotenv, load_dotenv

from src.app.app_errors import ConfigError


@lru_cache(maxsize=1)
def load_env_once() -> None:
    """
    Load local .env once for local runs. No-op when no .env is present.

    In production, prefer OS environment variables or Streamlit secrets.
    """
    load_dotenv(find_dotenv(usecwd=True), override=False)


def get_setting(
    key: str,
    default: Optional[Any] = None,
    *,
    required: bool = False,
) -> Any:
    """
    Resolve a setting in this precedence order:
      1) st.secrets (if available)
      2) OS environment variables
      3) default

    If required=True and nothing is found, raises ConfigError.
    """
    # 1) st.secrets
    try:
        if key in st.secrets:
            return st.secrets[key]
    except Exception:
        # No secrets.toml present: Streamlit raises instead of returning empty.
        pass

    # 2) env
    val = os.getenv(key)
    if val is not None and val != "":
        return val

    # 3) default / required
    if required:
        raise ConfigError(
            user_message=f"Setting {key} is not configured.",
            remediation=f"Set {key} in the environment, .env or Streamlit secrets.",
            details=f"Missing setting: {key}",
        )
    return default


def _to_float(val: object, default: float) -> float:
    try:
        return float(str(val).strip())
    except (TypeError, ValueError):
        return default


def _to_int(val: object, default: int) -> int:
    try:
        return int(str(val).strip())
    except (TypeError, ValueError):
        return default


def _to_choice(val: object, choices: Iterable[str], default: str) -> str:
    s = str(val or "").strip().lower()
    return s if s in set(choices) else default


# ---------------------------------------------------------------------------
# Finder configuration
# ---------------------------------------------------------------------------

DEFAULT_DATASET_URL = (
    "https://sedeaplicaciones.minetur.gob.es/ServiciosRESTCarburantes/"
    "PreciosCarburantes/EstacionesTerrestres/"
)
DEFAULT_NOMINATIM_BASE_URL = "https://nominatim.openstreetmap.org"
DEFAULT_OSRM_BASE_URL = "https://router.project-osrm.org"
DEFAULT_USER_AGENT = "fuel-route-finder/0.1"

GEOCODER_PROVIDERS = ("nominatim", "google")
ROUTER_PROVIDERS = ("osrm", "google")


@dataclass(frozen=True)
class FinderConfig:
    dataset_url: str
    dataset_timeout_seconds: float
    dataset_cache_seconds: int
    geocoder_provider: str  # "nominatim" | "google"
    router_provider: str  # "osrm" | "google"
    nominatim_base_url: str
    osrm_base_url: str
    user_agent: str
    country_codes: str
    request_timeout_seconds: float
    point_radius_km: float
    corridor_km: float
    log_level: str


def get_finder_config() -> FinderConfig:
    """Collect the typed settings used to wire the finder and its collaborators."""
    return FinderConfig(
        dataset_url=str(get_setting("FUEL_DATASET_URL", default=DEFAULT_DATASET_URL)).strip(),
        dataset_timeout_seconds=_to_float(get_setting("FUEL_DATASET_TIMEOUT_SECONDS", default="60"), 60.0),
        dataset_cache_seconds=_to_int(get_setting("FUEL_DATASET_CACHE_SECONDS", default="3600"), 3600),
        geocoder_provider=_to_choice(get_setting("GEOCODER_PROVIDER"), GEOCODER_PROVIDERS, "nominatim"),
        router_provider=_to_choice(get_setting("ROUTER_PROVIDER"), ROUTER_PROVIDERS, "osrm"),
        nominatim_base_url=str(get_setting("NOMINATIM_BASE_URL", default=DEFAULT_NOMINATIM_BASE_URL)).rstrip("/"),
        osrm_base_url=str(get_setting("OSRM_BASE_URL", default=DEFAULT_OSRM_BASE_URL)).rstrip("/"),
        user_agent=str(get_setting("GEOLOOKUP_USER_AGENT", default=DEFAULT_USER_AGENT)),
        country_codes=str(get_setting("GEOCODER_COUNTRY_CODES", default="es")),
        request_timeout_seconds=_to_float(get_setting("EXTERNAL_API_TIMEOUT_SECONDS", default="10"), 10.0),
        point_radius_km=_to_float(get_setting("POINT_RADIUS_KM", default="10"), 10.0),
        corridor_km=_to_float(get_setting("CORRIDOR_KM", default="5"), 5.0),
        log_level=str(get_setting("LOG_LEVEL", default="INFO")).upper(),
    )


def google_api_key() -> str:
    """
    Retrieves and validates the Google Maps API key.

    Raises:
        ConfigError: If GOOGLE_MAPS_API_KEY is unset.
    """
    key = get_setting("GOOGLE_MAPS_API_KEY", default=None)
    if not key:
        raise ConfigError(
            user_message="Google Maps API key is not configured.",
            remediation="Set GOOGLE_MAPS_API_KEY or switch GEOCODER_PROVIDER/ROUTER_PROVIDER back to the free providers.",
            details="Missing setting: GOOGLE_MAPS_API_KEY",
        )
    return str(key)


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()],
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Session State Contract
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SessionStateField:
    """
    Defines a session_state key used by the widgets.

    - default: value to apply on first visit (when key absent)
    """
    key: str
    default: Any


SESSION_STATE_FIELDS: Iterable[SessionStateField] = (
    # Search form
    SessionStateField("origin_query", ""),
    SessionStateField("destination_query", ""),
    SessionStateField("location_query", ""),
    SessionStateField("fuel_type", "gasolina95"),
    SessionStateField("brand_choice", "all"),
    # Station list
    SessionStateField("list_order", "distance"),
)

SESSION_STATE_DEFAULTS: Dict[str, Any] = {f.key: f.default for f in SESSION_STATE_FIELDS}


def ensure_session_state_defaults(session_state: MutableMapping[str, Any]) -> None:
    """
    Ensure that all widget keys exist in session_state with safe defaults.

    Side-effect-free for existing keys (uses setdefault).
    """
    for key, default in SESSION_STATE_DEFAULTS.items():
        if isinstance(default, (dict, list)):
            session_state.setdefault(key, deepcopy(default))
        else:
            session_state.setdefault(key, default)
