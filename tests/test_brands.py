from conftest import make_station
from src.app.services.brands import ALL_BRANDS, available_brands, filter_by_brand, is_all_brands, normalize_brand


def _stations(*brands):
    return [make_station(str(i), 40.0, -3.0, brand=b) for i, b in enumerate(brands)]


def test_available_brands_dedupes_and_sorts():
    assert available_brands(_stations("Cepsa", "BP", "Cepsa")) == ["BP", "Cepsa"]


def test_available_brands_case_insensitive_first_spelling_wins():
    assert available_brands(_stations("REPSOL", "Repsol", " repsol ", "Avia")) == ["Avia", "REPSOL"]


def test_available_brands_accent_insensitive_order():
    assert available_brands(_stations("Zeta", "Élite", "Alcampo")) == ["Alcampo", "Élite", "Zeta"]


def test_available_brands_ignores_empty():
    assert available_brands(_stations("", "  ", "Galp")) == ["Galp"]


def test_filter_by_brand_is_exact_case_insensitive():
    stations = _stations("REPSOL", "Repsol Butano", "repsol", "Cepsa")

    result = filter_by_brand(stations, "Repsol")

    assert [s.brand for s in result] == ["REPSOL", "repsol"]


def test_filter_all_keeps_everything():
    stations = _stations("REPSOL", "Cepsa")
    assert filter_by_brand(stations, ALL_BRANDS) == stations
    assert filter_by_brand(stations, "") == stations


def test_helpers():
    assert normalize_brand("  Shell   Express ") == "shell express"
    assert normalize_brand(None) == ""
    assert is_all_brands("ALL")
    assert not is_all_brands("Shell")
