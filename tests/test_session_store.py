from unittest.mock import Mock, patch

from conftest import FakeGeocoder, FakeRouter, make_station
from src.app.app_errors import ConfigError, Notice
from src.app.services import session_store
from src.app.services.station_finder import StationFinder


def _repository(stations):
    repo = Mock()
    repo.load.return_value = tuple(stations)
    return repo


@patch("src.app.services.session_store.get_station_repository")
@patch("src.app.services.session_store.build_finder")
def test_get_finder_creates_once_and_loads_stations(mock_build, mock_repo):
    mock_build.return_value = StationFinder(FakeGeocoder(), FakeRouter(None))
    mock_repo.return_value = _repository([make_station("1", 40.0, -3.0)])
    state = {}

    finder = session_store.get_finder(state)
    again = session_store.get_finder(state)

    assert finder is again
    assert mock_build.call_count == 1
    assert len(finder.stations) == 1
    assert session_store.pop_notice(state).level == "success"
    assert session_store.pop_notice(state) is None


@patch("src.app.services.session_store.build_finder")
def test_get_finder_reports_configuration_errors(mock_build):
    mock_build.side_effect = ConfigError("Google Maps API key is not configured.")
    state = {}

    assert session_store.get_finder(state) is None
    notice = session_store.pop_notice(state)
    assert isinstance(notice.error, ConfigError)


def test_stale_notices_are_not_stored():
    state = {}
    session_store.set_notice(Notice.stale(), state)
    assert session_store.pop_notice(state) is None

    session_store.set_notice(Notice.info("Brand filter"), state)
    assert session_store.pop_notice(state).title == "Brand filter"


def test_brand_reset_flag_is_one_shot():
    state = {}
    assert not session_store.consume_brand_reset(state)

    session_store.request_brand_reset(state)

    assert session_store.consume_brand_reset(state)
    assert not session_store.consume_brand_reset(state)


def test_map_pick_is_only_new_once():
    state = {}
    assert session_store.is_new_map_pick("a", state)
    assert not session_store.is_new_map_pick("a", state)
    assert session_store.is_new_map_pick("b", state)
    assert not session_store.is_new_map_pick(None, state)
    assert session_store.is_new_map_pick("b", state)
