# src/app/services/session_store.py
"""
Per-browser-session wiring of the station finder.

Streamlit reruns the script on every interaction, so everything that must
survive a rerun lives in `st.session_state`:

- the `StationFinder` instance (filter state, selection, derived lists),
- the last `Notice` to show after a rerun,
- one-shot flags used to sync widgets with finder state.

The station repository is process-wide (`st.cache_resource`), so all sessions
share one download of the dataset.
"""

from __future__ import annotations

import logging
from typing import Any, MutableMapping, Optional

import streamlit as st

from src.app.app_errors import AppError, Notice
from src.app.config.settings import FinderConfig, get_finder_config
from src.app.services.station_finder import StationFinder
from src.integration.fuel_dataset import StationRepository, fetch_stations
from src.integration.geocoding import build_geocoder
from src.integration.routing import build_router

logger = logging.getLogger(__name__)

_FINDER_KEY = "_station_finder"
_NOTICE_KEY = "_last_notice"
_RESET_BRAND_KEY = "_reset_brand_choice"
_MAP_PICK_KEY = "_last_map_pick"


@st.cache_resource(show_spinner=False)
def get_station_repository() -> StationRepository:
    config = get_finder_config()
    return StationRepository(
        fetch=lambda: fetch_stations(config.dataset_url, timeout=config.dataset_timeout_seconds),
        cache_seconds=config.dataset_cache_seconds,
    )


def build_finder(config: FinderConfig) -> StationFinder:
    return StationFinder(
        build_geocoder(config),
        build_router(config),
        point_radius_km=config.point_radius_km,
        corridor_km=config.corridor_km,
    )


def get_finder(session_state: Optional[MutableMapping[str, Any]] = None) -> Optional[StationFinder]:
    """
    Return this session's finder, creating it (and loading stations) on first use.

    Returns None when the finder cannot be wired (e.g. Google provider selected
    without an API key); the reason is stored as the pending notice.
    """
    state = st.session_state if session_state is None else session_state
    finder = state.get(_FINDER_KEY)
    if finder is not None:
        return finder

    try:
        finder = build_finder(get_finder_config())
    except AppError as e:
        logger.error("Could not set up the station finder: %s", e)
        state[_NOTICE_KEY] = Notice.from_error(e, title="Configuration error")
        return None

    repository = get_station_repository()
    notice = finder.load_stations(repository.load)
    state[_FINDER_KEY] = finder
    state[_NOTICE_KEY] = notice
    return finder


def reload_stations(finder: StationFinder) -> Notice:
    repository = get_station_repository()
    return finder.load_stations(lambda: repository.load(force_reload=True))


# ---------------------------------------------------------------------
# Notices and one-shot flags
# ---------------------------------------------------------------------

def set_notice(notice: Notice, session_state: Optional[MutableMapping[str, Any]] = None) -> None:
    state = st.session_state if session_state is None else session_state
    if notice.discarded:
        return
    state[_NOTICE_KEY] = notice


def pop_notice(session_state: Optional[MutableMapping[str, Any]] = None) -> Optional[Notice]:
    state = st.session_state if session_state is None else session_state
    return state.pop(_NOTICE_KEY, None)


def request_brand_reset(session_state: Optional[MutableMapping[str, Any]] = None) -> None:
    state = st.session_state if session_state is None else session_state
    state[_RESET_BRAND_KEY] = True


def consume_brand_reset(session_state: Optional[MutableMapping[str, Any]] = None) -> bool:
    state = st.session_state if session_state is None else session_state
    return bool(state.pop(_RESET_BRAND_KEY, False))


def is_new_map_pick(station_id: Optional[str], session_state: Optional[MutableMapping[str, Any]] = None) -> bool:
    """
    True only the first time a given marker click is seen.

    The pydeck selection survives reruns, so the same click would otherwise be
    replayed on every interaction.
    """
    state = st.session_state if session_state is None else session_state
    previous = state.get(_MAP_PICK_KEY)
    state[_MAP_PICK_KEY] = station_id
    return bool(station_id) and station_id != previous
