from unittest.mock import Mock

import pytest
import requests
from googlemaps import exceptions as gm_exceptions

from src.app.app_errors import ExternalServiceError
from src.integration.geocoding import GoogleGeocoder, NominatimGeocoder


def _nominatim(payload=None, side_effect=None, cache_size=256):
    session = Mock()
    response = Mock()
    response.raise_for_status.return_value = None
    response.json.return_value = payload
    session.get.return_value = response
    if side_effect is not None:
        session.get.side_effect = side_effect
    geocoder = NominatimGeocoder(
        base_url="https://nominatim.test/",
        user_agent="fuel-route-finder-tests",
        timeout=3,
        country_codes="es",
        session=session,
        cache_size=cache_size,
    )
    return geocoder, session


def test_nominatim_returns_lon_lat_and_sends_expected_request():
    geocoder, session = _nominatim([{"lat": "40.4167", "lon": "-3.7033", "display_name": "Madrid"}])

    point = geocoder.geocode("Madrid")

    assert point == (-3.7033, 40.4167)
    args, kwargs = session.get.call_args
    assert args[0] == "https://nominatim.test/search"
    assert kwargs["params"]["q"] == "Madrid"
    assert kwargs["params"]["countrycodes"] == "es"
    assert kwargs["headers"]["User-Agent"] == "fuel-route-finder-tests"
    assert kwargs["timeout"] == 3


def test_nominatim_memoizes_normalized_queries():
    geocoder, session = _nominatim([{"lat": "41.65", "lon": "-0.88"}])

    geocoder.geocode("Zaragoza")
    geocoder.geocode("  zaragoza ")

    assert session.get.call_count == 1


def test_nominatim_memo_evicts_least_recently_used():
    geocoder, session = _nominatim([{"lat": "41.65", "lon": "-0.88"}], cache_size=2)

    geocoder.geocode("Zaragoza")
    geocoder.geocode("Huesca")
    geocoder.geocode("Zaragoza")
    geocoder.geocode("Teruel")
    assert session.get.call_count == 3

    geocoder.geocode("Zaragoza")
    assert session.get.call_count == 3

    geocoder.geocode("Huesca")
    assert session.get.call_count == 4


def test_nominatim_not_found_is_none():
    geocoder, _ = _nominatim([])
    assert geocoder.geocode("Nowhere at all") is None


def test_nominatim_empty_query_does_not_call_service():
    geocoder, session = _nominatim([])
    assert geocoder.geocode("   ") is None
    session.get.assert_not_called()


def test_nominatim_network_error_raises_external_service_error():
    geocoder, _ = _nominatim(side_effect=requests.Timeout("slow"))
    with pytest.raises(ExternalServiceError):
        geocoder.geocode("Madrid")


def test_google_geocoder_uses_client_result():
    client = Mock()
    client.geocode.return_value = [{"geometry": {"location": {"lat": 39.8628, "lng": -4.0273}}}]
    geocoder = GoogleGeocoder(client, region="es")

    assert geocoder.geocode("Toledo") == (-4.0273, 39.8628)
    client.geocode.assert_called_once_with("Toledo", region="es")


def test_google_geocoder_no_results_is_none():
    client = Mock()
    client.geocode.return_value = []
    assert GoogleGeocoder(client).geocode("Atlantis") is None


def test_google_geocoder_api_error_raises():
    client = Mock()
    client.geocode.side_effect = gm_exceptions.ApiError("REQUEST_DENIED", "bad key")
    with pytest.raises(ExternalServiceError):
        GoogleGeocoder(client).geocode("Madrid")
