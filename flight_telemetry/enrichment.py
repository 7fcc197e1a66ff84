"""
Pure enrichment functions applied between classification and the second
aggregation pass.
"""
import math
from functools import lru_cache
from typing import Iterable, List, NamedTuple, Optional

from flight_telemetry.models import ClassifiedAircraft, PositionReport
from flight_telemetry.processing.trend import direction_of
from flight_telemetry.reference import Airport, ReferenceData

MILES_PER_DEGREE = 69.0


class BoundingBox(NamedTuple):
    max_lon: float
    max_lat: float
    min_lon: float
    min_lat: float

    def contains(self, lon: float, lat: float) -> bool:
        return self.min_lon <= lon <= self.max_lon and self.min_lat <= lat <= self.max_lat


@lru_cache(maxsize=256)
def bounding_box(lon: float, lat: float, radius_miles: float) -> BoundingBox:
    """Box approximating a ``radius_miles`` circle around (lon, lat)."""
    lon_delta = radius_miles / abs(math.cos(math.radians(lat)) * MILES_PER_DEGREE)
    lat_delta = radius_miles / MILES_PER_DEGREE
    return BoundingBox(lon + lon_delta, lat + lat_delta, lon - lon_delta, lat - lat_delta)


def airport_for(lon: float, lat: float, airports: Iterable[Airport], radius_miles: float = 80.0) -> Optional[str]:
    """First airport whose box contains the point, in the order given."""
    for airport in airports:
        if bounding_box(airport.lon, airport.lat, radius_miles).contains(lon, lat):
            return airport.name
    return None


def assign_airport(report: PositionReport, reference: ReferenceData,
                   radius_miles: float = 80.0) -> Optional[ClassifiedAircraft]:
    """Annotate ``report`` with its airport, or return None outside every airport."""
    airport = airport_for(report.lon, report.lat, reference.airports, radius_miles)
    if airport is None:
        return None
    return report.with_airport(airport)


def assign_vertical_direction(events: List[ClassifiedAircraft], slope: float) -> ClassifiedAircraft:
    """
    Combine the window's samples with their altitude trend: the latest
    sample (by position time, ties going to the last arrival) carries the
    direction.
    """
    latest = sorted(events, key=lambda a: a.pos_time)[-1]
    return latest.with_direction(direction_of(slope))


def is_low_altitude(report: PositionReport, ceiling_ft: int) -> bool:
    return not report.gnd and 0 < report.alt < ceiling_ft


def lookup_noise(aircraft: ClassifiedAircraft, reference: ReferenceData) -> int:
    """Noise level (dB) for the aircraft's phase, category and altitude; 0 if unknown."""
    table = reference.noise_table(aircraft.vertical_direction, aircraft.wtc)
    level = table.ceiling(aircraft.alt)
    return 0 if level is None else level


def lookup_co2(aircraft: PositionReport, reference: ReferenceData) -> float:
    return reference.co2_by_type.get(aircraft.type, 0.0)
