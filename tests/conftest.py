from typing import Dict, Optional, Sequence

import pytest

from src.app.models import LonLat, RoutePathLonLat, StationRecord
from src.app.services.station_finder import StationFinder

MADRID = (40.4167, -3.7033)


def make_station(
    station_id: str,
    lat: Optional[float],
    lon: Optional[float],
    brand: str = "REPSOL",
    prices: Optional[Dict[str, str]] = None,
    **fields: str,
) -> StationRecord:
    return StationRecord(
        station_id=station_id,
        latitude=lat,
        longitude=lon,
        brand=brand,
        prices=prices or {},
        **fields,
    )


class FakeGeocoder:
    def __init__(self, places: Optional[Dict[str, LonLat]] = None) -> None:
        self.places = places or {}
        self.calls = []

    def geocode(self, place_name: str) -> Optional[LonLat]:
        self.calls.append(place_name)
        return self.places.get(place_name)


class FakeRouter:
    def __init__(self, path: Optional[Sequence[LonLat]] = None) -> None:
        self.path: Optional[RoutePathLonLat] = tuple(path) if path is not None else None
        self.calls = []

    def route(self, origin: LonLat, dest: LonLat) -> Optional[RoutePathLonLat]:
        self.calls.append((origin, dest))
        if self.path is None:
            return None
        return self.path


@pytest.fixture
def madrid_stations():
    # Puerta del Sol area, Getafe (~13 km) and Toledo (~70 km).
    return [
        make_station("1", 40.4200, -3.7000, brand="REPSOL", prices={"Precio Gasolina 95 E5": "1,479"}),
        make_station("2", 40.4100, -3.7100, brand="Cepsa", prices={"Precio Gasolina 95 E5": "No disponible"}),
        make_station("3", 40.4300, -3.6900, brand="BP", prices={"Precio Gasolina 95 E5": "1,399"}),
        make_station("4", 40.3050, -3.7320, brand="Cepsa", prices={"Precio Gasolina 95 E5": "1,359"}),
        make_station("5", 39.8628, -4.0273, brand="Galp", prices={"Precio Gasolina 95 E5": "1,299"}),
    ]


@pytest.fixture
def geocoder():
    return FakeGeocoder(
        {
            "Madrid": (-3.7033, 40.4167),
            "Toledo": (-4.0273, 39.8628),
        }
    )


@pytest.fixture
def router():
    # Madrid -> Toledo, a few vertices along the A-42.
    return FakeRouter(
        [
            (-3.7033, 40.4167),
            (-3.7320, 40.3050),
            (-3.8000, 40.2000),
            (-3.9000, 40.0500),
            (-4.0273, 39.8628),
        ]
    )


@pytest.fixture
def finder(madrid_stations, geocoder, router):
    f = StationFinder(geocoder, router)
    f.load_stations(lambda: madrid_stations)
    return f
