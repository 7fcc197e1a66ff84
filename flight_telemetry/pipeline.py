"""
Flight telemetry job.

Low-altitude aircraft are grouped per aircraft into sliding windows and the
linear trend of their altitude tells whether they are ascending or
descending. Each classified aircraft is then enriched with its noise level
and landing/take-off CO2 emission, and both are aggregated per airport in a
second windowed pass. All three result streams are merged into one sink:

    source -> insert watermarks -> low-altitude filter -> assign airport
           -> [window by aircraft id: list + linear trend -> vertical direction]
                  |-> sink
                  |-> noise level -> [window by airport: max]  -> sink
                  |-> CO2 emission -> [window by airport: sum]  -> sink
"""
from functools import partial
from operator import attrgetter
from typing import Optional

from flight_telemetry.connectors.base import Sink, Source
from flight_telemetry.enrichment import (
    assign_airport, assign_vertical_direction, is_low_altitude, lookup_co2, lookup_noise,
)
from flight_telemetry.models import ClassifiedAircraft, TimestampedEntry
from flight_telemetry.operators.aggregations import all_of, linear_trend, max_by, summing, to_list
from flight_telemetry.operators.core import Pipeline
from flight_telemetry.processing.windows import sliding
from flight_telemetry.reference import ReferenceData, default_reference_data
from flight_telemetry.settings import Settings, settings as default_settings

NOISE_SUFFIX = "_AVG_NOISE"
CO2_SUFFIX = "_C02_EMISSION"


def with_noise(entry: TimestampedEntry[int, ClassifiedAircraft], reference: ReferenceData) -> TimestampedEntry:
    aircraft = entry.value
    return TimestampedEntry(entry.timestamp, aircraft, lookup_noise(aircraft, reference))


def with_co2(entry: TimestampedEntry[int, ClassifiedAircraft], reference: ReferenceData) -> TimestampedEntry:
    aircraft = entry.value
    return TimestampedEntry(entry.timestamp, aircraft, lookup_co2(aircraft, reference))


def build_pipeline(source: Source, sink: Sink,
                   reference: Optional[ReferenceData] = None,
                   config: Optional[Settings] = None) -> Pipeline:
    """Wire the telemetry job from ``source`` to ``sink``."""
    reference = reference or default_reference_data()
    config = config or default_settings
    window = sliding(config.WINDOW_SIZE_MS, config.WINDOW_SLIDE_MS)
    lateness = config.WINDOW_ALLOWED_LATENESS_MS
    by_entry_time = attrgetter("timestamp")

    pipeline = Pipeline()

    # (window end, aircraft id, aircraft with vertical direction)
    flights = (
        pipeline.read_from(source)
        .insert_watermarks(attrgetter("pos_time"), config.ALLOWED_LATENESS_MS)
        .filter(partial(is_low_altitude, ceiling_ft=config.LOW_ALTITUDE_CEILING_FT), name="LowAltitudeFilter")
        .map(partial(assign_airport, reference=reference, radius_miles=config.AIRPORT_RADIUS_MILES),
             name="AssignAirport")
        .window(window, attrgetter("pos_time"), lateness)
        .grouping_key(attrgetter("id"))
        .aggregate(
            all_of(to_list(), linear_trend(attrgetter("pos_time"), attrgetter("alt")), assign_vertical_direction),
            name="VerticalDirection",
        )
    )

    # (window end, "<airport>_AVG_NOISE", max noise level)
    max_noise = (
        flights.map(partial(with_noise, reference=reference), name="EnrichNoise")
        .window(window, by_entry_time, lateness)
        .grouping_key(lambda e: f"{e.key.airport}{NOISE_SUFFIX}")
        .aggregate(max_by(attrgetter("value")), name="MaxNoise")
        .map(lambda e: TimestampedEntry(e.timestamp, e.key, e.value.value), name="NoiseLevel")
    )

    # (window end, "<airport>_C02_EMISSION", total CO2)
    co2_emission = (
        flights.map(partial(with_co2, reference=reference), name="EnrichCO2")
        .window(window, by_entry_time, lateness)
        .grouping_key(lambda e: f"{e.key.airport}{CO2_SUFFIX}")
        .aggregate(summing(attrgetter("value")), name="TotalCO2")
    )

    pipeline.write_to(sink, flights, co2_emission, max_noise)
    return pipeline
