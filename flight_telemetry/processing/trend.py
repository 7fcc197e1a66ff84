import math
from typing import Iterable, Tuple, Union

from flight_telemetry.models import VerticalDirection

Number = Union[int, float]


class LinearTrendAccumulator:
    """
    Running sums for an ordinary least-squares fit of ``y`` against ``x``.

    Integer inputs keep the sums as exact Python ints, so epoch-millisecond
    timestamps do not lose precision when squared.
    """
    __slots__ = ("count", "sum_x", "sum_y", "sum_xx", "sum_xy")

    def __init__(self) -> None:
        self.count = 0
        self.sum_x: Number = 0
        self.sum_y: Number = 0
        self.sum_xx: Number = 0
        self.sum_xy: Number = 0

    def accumulate(self, x: Number, y: Number) -> "LinearTrendAccumulator":
        self.count += 1
        self.sum_x += x
        self.sum_y += y
        self.sum_xx += x * x
        self.sum_xy += x * y
        return self

    def slope(self) -> float:
        """
        Closed-form OLS slope; NaN when the x samples have no variance
        (empty, a single sample, or all samples at the same x).
        """
        denominator = self.count * self.sum_xx - self.sum_x * self.sum_x
        if denominator == 0:
            return math.nan
        return (self.count * self.sum_xy - self.sum_x * self.sum_y) / denominator


def direction_of(slope: float) -> VerticalDirection:
    if math.isnan(slope):
        return VerticalDirection.UNKNOWN
    if slope > 0:
        return VerticalDirection.ASCENDING
    if slope == 0:
        return VerticalDirection.CRUISE
    return VerticalDirection.DESCENDING


def classify(samples: Iterable[Tuple[Number, Number]]) -> Tuple[float, VerticalDirection]:
    """
    Fit altitude against time over ``(time, altitude)`` samples and return
    the slope with its direction label.
    """
    acc = LinearTrendAccumulator()
    for time, altitude in samples:
        acc.accumulate(time, altitude)
    slope = acc.slope()
    return slope, direction_of(slope)
