from typing import Any, Dict, List

from flight_telemetry.models import TimestampedEntry
from flight_telemetry.operators.aggregations import AggregateOperation
from flight_telemetry.operators.core import Operator
from flight_telemetry.processing.watermark import WatermarkTracker
from flight_telemetry.processing.windows import SlidingWindow
from flight_telemetry.utils.metrics import MetricsManager
from flight_telemetry.utils.tracing import get_tracer
from flight_telemetry.utils.typing import T, KeySelector, TimestampExtractor


class InsertWatermarks(Operator[T, T]):
    """Forwards elements and pushes a watermark downstream whenever it advances.

    The watermark trails the highest event time seen by ``allowed_lateness_ms``,
    which is how much out-of-order arrival the downstream windows tolerate.
    """

    def __init__(self, timestamp_fn: TimestampExtractor, allowed_lateness_ms: int,
                 name: str = "InsertWatermarks"):
        super().__init__(name)
        self.timestamp_fn = timestamp_fn
        self.tracker = WatermarkTracker(allowed_lateness_ms)
        self._watermark_gauge = MetricsManager().gauge(
            "watermark_ms", "Current event-time watermark", ["operator"]
        )

    async def _process_captured(self, element: T) -> None:
        await self.emit(element)
        watermark = self.tracker.observe(self.timestamp_fn(element))
        if watermark > self.current_watermark:
            self.current_watermark = watermark
            self._watermark_gauge.labels(operator=self.name).set(watermark)
            await self.emit_watermark(watermark)

    async def _advance_watermark(self) -> None:
        # Upstream watermarks are ignored; this operator is the event-time origin
        pass


class WindowAggregator(Operator[T, TimestampedEntry]):
    """Keyed sliding-window aggregation driven by watermarks.

    Every element is folded into the accumulator of each (window, key) pair
    it belongs to. A window closes once ``end + allowed_lateness_ms`` is at
    or below the watermark: each of its accumulators is finished, emitted
    as ``TimestampedEntry(window_end, key, result)`` and discarded. Closed
    windows are never reopened; an element whose windows have all closed is
    dropped and counted as late.

    Output order: ascending window end, then key insertion order.
    """

    def __init__(self, window: SlidingWindow, key_fn: KeySelector, timestamp_fn: TimestampExtractor,
                 operation: AggregateOperation, allowed_lateness_ms: int = 0,
                 name: str = "WindowAggregator"):
        super().__init__(name)
        self.window = window
        self.key_fn = key_fn
        self.timestamp_fn = timestamp_fn
        self.operation = operation
        self.allowed_lateness_ms = allowed_lateness_ms
        # window start -> key -> accumulator
        self._accumulators: Dict[int, Dict[Any, Any]] = {}
        self.late_events = 0

        metrics = MetricsManager()
        self._late_counter = metrics.counter(
            "late_events_dropped", "Events whose windows had all closed", ["operator"]
        ).labels(operator=self.name)
        self._open_windows = metrics.gauge(
            "open_windows", "Windows holding at least one accumulator", ["operator"]
        ).labels(operator=self.name)
        self._tracer = get_tracer("windowing")

    async def _process_captured(self, element: T) -> None:
        self.accumulate(element)

    async def on_watermark(self, timestamp: float) -> None:
        for entry in self.try_close(timestamp):
            await self.emit(entry)

    async def on_end(self) -> None:
        for entry in self.flush():
            await self.emit(entry)

    def accumulate(self, element: T) -> bool:
        """Fold ``element`` into every open window it belongs to.

        Returns False if the element was late for all of its windows.
        """
        timestamp = self.timestamp_fn(element)
        key = self.key_fn(element)
        folded = False
        for start in self.window.windows_for(timestamp):
            folded = self.fold(start, key, element) or folded

        if not folded:
            self.late_events += 1
            self._late_counter.inc()
            self.logger.debug(
                f"Dropping late event for key {key!r} at {timestamp} (watermark {self.current_watermark})"
            )
        return folded

    def fold(self, window_start: int, key: Any, element: T) -> bool:
        """Fold into one (window, key) accumulator. Closed windows are left alone; returns False."""
        if self.is_closed(window_start):
            return False
        per_key = self._accumulators.get(window_start)
        if per_key is None:
            per_key = self._accumulators[window_start] = {}
            self._open_windows.set(len(self._accumulators))
        acc = per_key[key] if key in per_key else self.operation.create()
        per_key[key] = self.operation.accumulate(acc, element)
        return True

    def is_closed(self, window_start: int) -> bool:
        return self.window.end_of(window_start) + self.allowed_lateness_ms <= self.current_watermark

    def try_close(self, watermark: float) -> List[TimestampedEntry]:
        """Finish and discard every window whose deadline the watermark has reached."""
        if watermark > self.current_watermark:
            self.current_watermark = watermark
        ready = [start for start in self._accumulators if self.is_closed(start)]
        return self._close(sorted(ready))

    def flush(self) -> List[TimestampedEntry]:
        """Finish every open window regardless of the watermark."""
        return self._close(sorted(self._accumulators))

    def _close(self, starts: List[int]) -> List[TimestampedEntry]:
        if not starts:
            return []
        results: List[TimestampedEntry] = []
        with self._tracer.start_as_current_span(
            "close_windows", attributes={"operator": self.name, "windows": len(starts)}
        ):
            for start in starts:
                per_key = self._accumulators.pop(start)
                end = self.window.end_of(start)
                for key, acc in per_key.items():
                    results.append(TimestampedEntry(end, key, self.operation.finish(acc)))
        self._open_windows.set(len(self._accumulators))
        self.logger.debug(f"Closed {len(starts)} window(s), emitting {len(results)} result(s)")
        return results

    @property
    def open_windows(self) -> List[int]:
        return sorted(self._accumulators)

    def accumulator(self, window_start: int, key: Any) -> Any:
        """The live accumulator for (window, key), or None."""
        return self._accumulators.get(window_start, {}).get(key)

    def stats(self) -> Dict[str, Any]:
        stats = super().stats()
        stats.update({
            "open_windows": len(self._accumulators),
            "late_events": self.late_events,
        })
        return stats
