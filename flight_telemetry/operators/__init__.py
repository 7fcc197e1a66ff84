# flight_telemetry/operators/__init__.py
from flight_telemetry.operators.core import Operator, Pipeline, Stage, Map, Filter
from flight_telemetry.operators.windowing import InsertWatermarks, WindowAggregator
from flight_telemetry.operators.aggregations import (
    AggregateKind, AggregateOperation, all_of, linear_trend, max_by, summing, to_list,
)

__all__ = [
    "Operator", "Pipeline", "Stage", "Map", "Filter",
    "InsertWatermarks", "WindowAggregator",
    "AggregateKind", "AggregateOperation", "all_of", "linear_trend", "max_by", "summing", "to_list",
]
