from flight_telemetry.models import (
    ClassifiedAircraft,
    PositionReport,
    TimestampedEntry,
    TimestampedMetric,
    VerticalDirection,
    WakeTurbulenceCategory,
)
from flight_telemetry.operators.core import Pipeline
from flight_telemetry.pipeline import build_pipeline
from flight_telemetry.settings import settings

__version__ = "0.1.0"

__all__ = [
    "ClassifiedAircraft",
    "PositionReport",
    "TimestampedEntry",
    "TimestampedMetric",
    "VerticalDirection",
    "WakeTurbulenceCategory",
    "Pipeline",
    "build_pipeline",
    "settings",
]
