"""Static station list for the Chennai Central - Gummidipundi corridor."""
from typing import List, Optional

from railops.core.models import Coordinates, Station


def _station(code: str, name: str, platforms: int, lat: float, lng: float, distance: float) -> Station:
    return Station(
        id=code,
        code=code,
        name=name,
        platforms=platforms,
        coordinates=Coordinates(lat=lat, lng=lng),
        distance=distance,
    )


STATIONS: List[Station] = [
    _station("MAS", "Chennai Central", 12, 13.0827, 80.2707, 0),
    _station("PER", "Perambur", 4, 13.1185, 80.2324, 8),
    _station("VLK", "Villivakkam", 2, 13.1394, 80.2089, 12),
    _station("KOK", "Korukkupet", 2, 13.1567, 80.1876, 16),
    _station("WST", "Washermanpet", 2, 13.1789, 80.1654, 20),
    _station("TNP", "Tondiarpet", 2, 13.1923, 80.1432, 24),
    _station("KVP", "Kaveri Pakkam", 2, 13.2156, 80.1298, 28),
    _station("ENR", "Ennore", 3, 13.2389, 80.1165, 32),
    _station("AIP", "Athipattu", 2, 13.2634, 80.1023, 36),
    _station("MJR", "Minjur", 2, 13.2789, 80.0876, 40),
    _station("PON", "Ponneri", 3, 13.3345, 80.0654, 44),
    _station("KTM", "Kattupalli", 2, 13.3567, 80.0432, 48),
    _station("TRL", "Tiruvallur", 4, 13.3789, 80.0298, 52),
    _station("GPD", "Gummidipundi", 3, 13.4123, 80.0165, 58),
]

_BY_CODE = {s.code: s for s in STATIONS}

STATION_CODES: List[str] = [s.code for s in STATIONS]


def get_station_by_code(code: str) -> Optional[Station]:
    return _BY_CODE.get(code)


def get_stations_by_route(route: List[str]) -> List[Station]:
    """Stations for the route codes that exist, in route order."""
    return [_BY_CODE[code] for code in route if code in _BY_CODE]
