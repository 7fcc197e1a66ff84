from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, List, Optional, Tuple

from flight_telemetry.processing.trend import LinearTrendAccumulator
from flight_telemetry.utils.typing import A, R, T


class AggregateKind(Enum):
    TO_LIST = "to_list"
    LINEAR_TREND = "linear_trend"
    ALL_OF = "all_of"
    MAX_BY = "max_by"
    SUMMING = "summing"


@dataclass(frozen=True)
class AggregateOperation(Generic[T, A, R]):
    """
    A fold over the items of one (window, key) pair.

    ``create`` builds an empty accumulator, ``accumulate`` folds one item
    into it and returns the (possibly new) accumulator, and ``finish``
    turns the accumulator into the window result. Build instances with the
    factory functions below rather than directly.
    """
    kind: AggregateKind
    create: Callable[[], A]
    accumulate: Callable[[A, T], A]
    finish: Callable[[A], R]


def to_list() -> AggregateOperation[T, List[T], List[T]]:
    def accumulate(acc: List[T], item: T) -> List[T]:
        acc.append(item)
        return acc

    return AggregateOperation(AggregateKind.TO_LIST, list, accumulate, lambda acc: acc)


def linear_trend(x_fn: Callable[[T], Any], y_fn: Callable[[T], Any]) -> AggregateOperation[T, LinearTrendAccumulator, float]:
    """Slope of the least-squares line through ``(x_fn(item), y_fn(item))``."""
    def accumulate(acc: LinearTrendAccumulator, item: T) -> LinearTrendAccumulator:
        return acc.accumulate(x_fn(item), y_fn(item))

    return AggregateOperation(
        AggregateKind.LINEAR_TREND,
        LinearTrendAccumulator,
        accumulate,
        LinearTrendAccumulator.slope,
    )


def max_by(key_fn: Callable[[T], Any]) -> AggregateOperation[T, Optional[T], Optional[T]]:
    """Keeps the first item with the greatest ``key_fn`` value."""
    def accumulate(acc: Optional[T], item: T) -> T:
        if acc is None or key_fn(item) > key_fn(acc):
            return item
        return acc

    return AggregateOperation(AggregateKind.MAX_BY, lambda: None, accumulate, lambda acc: acc)


def summing(value_fn: Callable[[T], float]) -> AggregateOperation[T, float, float]:
    return AggregateOperation(
        AggregateKind.SUMMING,
        float,
        lambda acc, item: acc + float(value_fn(item)),
        lambda acc: acc,
    )


def all_of(first: AggregateOperation, second: AggregateOperation,
           combine: Callable[[Any, Any], R]) -> AggregateOperation[T, Tuple[Any, Any], R]:
    """
    Runs two aggregations over the same items and combines their results
    with ``combine(first_result, second_result)``.
    """
    def create() -> Tuple[Any, Any]:
        return first.create(), second.create()

    def accumulate(acc: Tuple[Any, Any], item: T) -> Tuple[Any, Any]:
        return first.accumulate(acc[0], item), second.accumulate(acc[1], item)

    def finish(acc: Tuple[Any, Any]) -> R:
        return combine(first.finish(acc[0]), second.finish(acc[1]))

    return AggregateOperation(AggregateKind.ALL_OF, create, accumulate, finish)
