import pytest

from src.app.app_errors import ConfigError
from src.app.config.settings import (
    SESSION_STATE_DEFAULTS,
    ensure_session_state_defaults,
    get_finder_config,
    get_setting,
    google_api_key,
)

_KEYS = (
    "FUEL_DATASET_URL",
    "GEOCODER_PROVIDER",
    "ROUTER_PROVIDER",
    "POINT_RADIUS_KM",
    "CORRIDOR_KM",
    "LOG_LEVEL",
    "GOOGLE_MAPS_API_KEY",
    "OSRM_BASE_URL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in _KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults():
    config = get_finder_config()

    assert config.geocoder_provider == "nominatim"
    assert config.router_provider == "osrm"
    assert config.point_radius_km == 10.0
    assert config.corridor_km == 5.0
    assert config.dataset_cache_seconds == 3600
    assert config.log_level == "INFO"
    assert config.dataset_url.startswith("https://sedeaplicaciones.minetur.gob.es/")


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("POINT_RADIUS_KM", "15")
    monkeypatch.setenv("CORRIDOR_KM", "not-a-number")
    monkeypatch.setenv("ROUTER_PROVIDER", "Google")
    monkeypatch.setenv("OSRM_BASE_URL", "http://localhost:5000/")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    config = get_finder_config()

    assert config.point_radius_km == 15.0
    assert config.corridor_km == 5.0
    assert config.router_provider == "google"
    assert config.osrm_base_url == "http://localhost:5000"
    assert config.log_level == "DEBUG"


def test_unknown_provider_falls_back(monkeypatch):
    monkeypatch.setenv("GEOCODER_PROVIDER", "mapquest")
    assert get_finder_config().geocoder_provider == "nominatim"


def test_required_setting_missing():
    with pytest.raises(ConfigError):
        get_setting("GOOGLE_MAPS_API_KEY", required=True)
    assert get_setting("GOOGLE_MAPS_API_KEY", default="fallback") == "fallback"


def test_google_api_key(monkeypatch):
    with pytest.raises(ConfigError) as exc:
        google_api_key()
    assert "GOOGLE_MAPS_API_KEY" in exc.value.details

    monkeypatch.setenv("GOOGLE_MAPS_API_KEY", "key-123")
    assert google_api_key() == "key-123"


def test_session_state_defaults_do_not_overwrite():
    state = {"fuel_type": "diesel"}

    ensure_session_state_defaults(state)

    assert state["fuel_type"] == "diesel"
    assert state["brand_choice"] == "all"
    assert set(SESSION_STATE_DEFAULTS) <= set(state)
