import threading
import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock, patch

import requests

from conftest import make_station
from src.app.services.prices import PRICE_UNAVAILABLE
from src.integration.fuel_dataset import (
    StationRepository,
    fetch_stations,
    index_by_id,
    parse_station_payload,
    parse_station_record,
)

RAW_STATION = {
    "IDEESS": "4375",
    "Latitud": "40,416775",
    "Longitud (WGS84)": "-3,703790",
    "Rótulo": "  REPSOL ",
    "Dirección": "CALLE MAYOR, 1",
    "Municipio": "Madrid",
    "Localidad": "MADRID",
    "Provincia": "MADRID",
    "C.P.": "28013",
    "Horario": "L-D: 24H",
    "Precio Gasolina 95 E5": "1,479",
    "Precio Gasoleo A": "",
    "Precio Hidrogeno": None,
}


def test_parse_station_record_normalizes_fields():
    station = parse_station_record(RAW_STATION)

    assert station is not None
    assert station.station_id == "4375"
    assert station.latitude == 40.416775
    assert station.longitude == -3.70379
    assert station.brand == "REPSOL"
    assert station.postal_code == "28013"
    assert station.prices["Precio Gasolina 95 E5"] == "1,479"
    assert station.prices["Precio Gasoleo A"] == PRICE_UNAVAILABLE
    assert station.prices["Precio Hidrogeno"] == PRICE_UNAVAILABLE
    assert station.distance_km is None


def test_parse_station_record_without_id_is_skipped():
    raw = dict(RAW_STATION, IDEESS="")
    assert parse_station_record(raw) is None
    assert parse_station_record("not a dict") is None  # type: ignore[arg-type]


def test_unparseable_coordinates_become_none():
    station = parse_station_record(dict(RAW_STATION, Latitud="", **{"Longitud (WGS84)": "999,0"}))

    assert station is not None
    assert station.latitude is None
    assert station.longitude is None
    assert not station.has_coordinates


def test_parse_payload_skips_duplicates_and_bad_entries():
    payload = {
        "Fecha": "18/10/2026 10:00:00",
        "ListaEESSPrecio": [RAW_STATION, dict(RAW_STATION, **{"Rótulo": "OTHER"}), {"Rótulo": "NO ID"}],
        "ResultadoConsulta": "OK",
    }

    stations = parse_station_payload(payload)

    assert [s.station_id for s in stations] == ["4375"]
    assert stations[0].brand == "REPSOL"


def test_parse_payload_accepts_bare_list_and_rejects_garbage():
    assert len(parse_station_payload([RAW_STATION])) == 1
    assert parse_station_payload({"unexpected": True}) == []
    assert parse_station_payload("<html>") == []
    assert parse_station_payload(None) == []


@patch("src.integration.fuel_dataset.requests.get")
def test_fetch_stations_parses_response(mock_get):
    response = Mock()
    response.raise_for_status.return_value = None
    response.json.return_value = {"ListaEESSPrecio": [RAW_STATION]}
    mock_get.return_value = response

    stations = fetch_stations("https://dataset.test/", timeout=5)

    assert [s.station_id for s in stations] == ["4375"]
    assert mock_get.call_args.args[0] == "https://dataset.test/"
    assert mock_get.call_args.kwargs["timeout"] == 5


@patch("src.integration.fuel_dataset.requests.get")
def test_fetch_stations_returns_empty_on_network_error(mock_get):
    mock_get.side_effect = requests.ConnectionError("offline")
    assert fetch_stations("https://dataset.test/") == []


@patch("src.integration.fuel_dataset.requests.get")
def test_fetch_stations_returns_empty_on_http_error(mock_get):
    response = Mock()
    response.raise_for_status.side_effect = requests.HTTPError("503")
    mock_get.return_value = response
    assert fetch_stations("https://dataset.test/") == []


@patch("src.integration.fuel_dataset.requests.get")
def test_fetch_stations_returns_empty_on_malformed_json(mock_get):
    response = Mock()
    response.raise_for_status.return_value = None
    response.json.side_effect = ValueError("Expecting value")
    mock_get.return_value = response
    assert fetch_stations("https://dataset.test/") == []


def test_repository_caches_successful_load():
    fetch = Mock(return_value=[make_station("1", 40.0, -3.0)])
    now = [0.0]
    repo = StationRepository(fetch=fetch, cache_seconds=60, clock=lambda: now[0])

    first = repo.load()
    now[0] = 30.0
    second = repo.load()

    assert first == second
    assert fetch.call_count == 1

    now[0] = 61.0
    repo.load()
    assert fetch.call_count == 2


def test_repository_force_reload_and_empty_fetch_keeps_previous_copy():
    good = [make_station("1", 40.0, -3.0)]
    fetch = Mock(side_effect=[good, []])
    repo = StationRepository(fetch=fetch, cache_seconds=60, clock=lambda: 0.0)

    repo.load()
    result = repo.load(force_reload=True)

    assert result == ()
    assert repo.stations == tuple(good)


def test_repository_concurrent_loads_download_once():
    good = (make_station("1", 40.0, -3.0),)
    started = threading.Event()
    release = threading.Event()
    calls = []

    def slow_fetch():
        calls.append(1)
        started.set()
        release.wait(timeout=5)
        return good

    repo = StationRepository(fetch=slow_fetch, cache_seconds=60)

    with ThreadPoolExecutor(max_workers=2) as pool:
        first = pool.submit(repo.load)
        assert started.wait(timeout=5)
        second = pool.submit(repo.load)
        time.sleep(0.05)
        release.set()
        results = [first.result(timeout=5), second.result(timeout=5)]

    assert results == [good, good]
    assert len(calls) == 1


def test_index_by_id():
    stations = [make_station("a", 40.0, -3.0), make_station("b", 41.0, -3.0)]
    assert set(index_by_id(stations)) == {"a", "b"}
