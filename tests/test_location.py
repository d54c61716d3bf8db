import pytest

from conftest import FakeGeocoder
from src.app.app_errors import GeocodeNotFound, LocationDenied
from src.app.services.location import make_locator, parse_coordinates


@pytest.mark.parametrize(
    "text, expected",
    [
        ("40,4167; -3,7033", (40.4167, -3.7033)),
        ("40.4167, -3.7033", (40.4167, -3.7033)),
        ("40.4167;-3.7033", (40.4167, -3.7033)),
        ("  40.4167   -3.7033 ", (40.4167, -3.7033)),
    ],
)
def test_parse_coordinates(text, expected):
    assert parse_coordinates(text) == pytest.approx(expected)


@pytest.mark.parametrize("text", ["", "Madrid", "Calle Mayor 1, Madrid", "40,4167, -3,7033"])
def test_non_coordinate_text_is_none(text):
    assert parse_coordinates(text) is None


def test_out_of_range_coordinates_are_denied():
    with pytest.raises(LocationDenied):
        parse_coordinates("95; -3")


def test_locator_prefers_coordinates():
    geocoder = FakeGeocoder()
    assert make_locator("40,4; -3,7", geocoder)() == pytest.approx((40.4, -3.7))
    assert geocoder.calls == []


def test_locator_geocodes_place_names():
    geocoder = FakeGeocoder({"Soria": (-2.4688, 41.7636)})
    assert make_locator("Soria", geocoder)() == (41.7636, -2.4688)


def test_locator_unknown_place():
    with pytest.raises(GeocodeNotFound):
        make_locator("Atlantis", FakeGeocoder())()


def test_locator_without_input_is_denied():
    with pytest.raises(LocationDenied):
        make_locator("   ", FakeGeocoder())()
