"""
Static reference data: monitored airports, altitude-to-noise tables and
landing/take-off CO2 figures per aircraft type.

Everything here is immutable and is handed to the pipeline as one
``ReferenceData`` value.
"""
from bisect import bisect_left
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from flight_telemetry.models import VerticalDirection, WakeTurbulenceCategory


@dataclass(frozen=True)
class Airport:
    name: str
    lat: float
    lon: float


class NoiseTable:
    """Sorted altitude (ft) -> noise level (dB) mapping with ceiling lookup."""

    __slots__ = ("_altitudes", "_levels")

    def __init__(self, levels_by_altitude: Mapping[int, int]):
        items = sorted(levels_by_altitude.items())
        self._altitudes: Tuple[int, ...] = tuple(alt for alt, _ in items)
        self._levels: Tuple[int, ...] = tuple(level for _, level in items)

    def ceiling(self, altitude: int) -> Optional[int]:
        """Level at the smallest altitude key >= ``altitude``; None above the table."""
        idx = bisect_left(self._altitudes, altitude)
        if idx == len(self._altitudes):
            return None
        return self._levels[idx]

    def __len__(self) -> int:
        return len(self._altitudes)

    def __repr__(self) -> str:
        return f"NoiseTable({dict(zip(self._altitudes, self._levels))})"


EMPTY_NOISE_TABLE = NoiseTable({})

DEFAULT_AIRPORTS: Tuple[Airport, ...] = (
    Airport("London", 51.470020, -0.454295),
    Airport("Istanbul", 40.982555, 28.820829),
    Airport("Frankfurt", 50.110924, 8.682127),
    Airport("Atlanta", 33.640411, -84.419853),
    Airport("Paris", 49.0096906, 2.54792450),
    Airport("Tokyo", 35.765786, 140.386347),
    Airport("New York", 40.6441666667, -73.7822222222),
)

HEAVY_CLIMB_NOISE_DB = {500: 96, 1000: 92, 1500: 86, 2000: 82, 3000: 72}
MEDIUM_CLIMB_NOISE_DB = {500: 83, 1000: 81, 1500: 74, 2000: 68, 3000: 61}
HEAVY_DESCENT_NOISE_DB = {500: 90, 1000: 85, 1500: 79, 2000: 73, 3000: 66}
MEDIUM_DESCENT_NOISE_DB = {500: 80, 1000: 75, 1500: 70, 2000: 64, 3000: 58}

# Average CO2 (kg) emitted per landing/take-off cycle, by ICAO type designator
LTO_CYCLE_CO2_KG = {
    "A318": 2169.0,
    "A319": 2310.0,
    "A320": 2440.0,
    "A321": 2780.0,
    "A20N": 2250.0,
    "A21N": 2560.0,
    "A332": 6670.0,
    "A333": 6820.0,
    "A343": 6920.0,
    "A346": 10540.0,
    "A359": 6250.0,
    "A388": 13110.0,
    "B736": 2230.0,
    "B737": 2460.0,
    "B738": 2600.0,
    "B739": 2750.0,
    "B38M": 2340.0,
    "B744": 10400.0,
    "B748": 9600.0,
    "B752": 4290.0,
    "B763": 5610.0,
    "B772": 7790.0,
    "B77W": 9700.0,
    "B788": 5940.0,
    "B789": 6510.0,
    "CRJ9": 1450.0,
    "E190": 1860.0,
    "E195": 1980.0,
    "DH8D": 1000.0,
    "AT76": 830.0,
}


@dataclass(frozen=True)
class ReferenceData:
    """Lookup tables the enrichment functions read from."""
    airports: Tuple[Airport, ...] = DEFAULT_AIRPORTS
    noise_tables: Mapping[Tuple[VerticalDirection, bool], NoiseTable] = field(default_factory=dict)
    co2_by_type: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "airports", tuple(self.airports))
        object.__setattr__(self, "noise_tables", MappingProxyType(dict(self.noise_tables)))
        object.__setattr__(self, "co2_by_type", MappingProxyType(dict(self.co2_by_type)))

    def noise_table(self, direction: VerticalDirection, wtc: WakeTurbulenceCategory) -> NoiseTable:
        """Table for the flight phase; non-heavy categories use the medium table."""
        heavy = wtc == WakeTurbulenceCategory.HEAVY
        return self.noise_tables.get((direction, heavy), EMPTY_NOISE_TABLE)


def build_noise_tables(heavy_climb: Mapping[int, int], medium_climb: Mapping[int, int],
                       heavy_descent: Mapping[int, int],
                       medium_descent: Mapping[int, int]) -> Dict[Tuple[VerticalDirection, bool], NoiseTable]:
    return {
        (VerticalDirection.ASCENDING, True): NoiseTable(heavy_climb),
        (VerticalDirection.ASCENDING, False): NoiseTable(medium_climb),
        (VerticalDirection.DESCENDING, True): NoiseTable(heavy_descent),
        (VerticalDirection.DESCENDING, False): NoiseTable(medium_descent),
    }


def default_reference_data() -> ReferenceData:
    return ReferenceData(
        airports=DEFAULT_AIRPORTS,
        noise_tables=build_noise_tables(
            HEAVY_CLIMB_NOISE_DB, MEDIUM_CLIMB_NOISE_DB,
            HEAVY_DESCENT_NOISE_DB, MEDIUM_DESCENT_NOISE_DB,
        ),
        co2_by_type=LTO_CYCLE_CO2_KG,
    )
