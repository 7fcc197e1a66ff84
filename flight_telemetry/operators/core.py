import asyncio
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, NamedTuple, Optional, Generic, Set, TYPE_CHECKING
from flight_telemetry.utils.typing import T, U, MapFunction, FilterFunction, KeySelector, TimestampExtractor
from flight_telemetry.utils.logging import get_logger
from flight_telemetry.utils.metrics import MetricsManager

if TYPE_CHECKING:
    from flight_telemetry.connectors.base import Source, Sink
    from flight_telemetry.operators.aggregations import AggregateOperation
    from flight_telemetry.processing.windows import SlidingWindow


class _Watermark(NamedTuple):
    timestamp: float
    origin: int


class _EndOfStream(NamedTuple):
    origin: int


class Operator(ABC, Generic[T, U]):
    """Base class for all stream processing operators.

    Operators form the building blocks of a pipeline. Each operator owns a
    bounded queue and a single worker task that drains it, so:
    - producers block when the queue is full (backpressure)
    - elements are processed one at a time, in arrival order
    - watermarks and end-of-stream markers travel through the same queue and
      never overtake the elements emitted before them

    An operator with several upstream inputs advances its watermark to the
    minimum over its inputs and finishes once every input has ended.
    """

    def __init__(self, name: Optional[str] = None, queue_size: int = 100):
        self.name = name or self.__class__.__name__
        self.downstream: List['Operator'] = []
        self.upstream: List['Operator'] = []
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)  # backpressure buffer
        self._work_task: Optional[asyncio.Task] = None
        self._input_watermarks: Dict[int, float] = {}
        self._ended_inputs: Set[int] = set()
        self.current_watermark: float = float('-inf')
        self.logger = get_logger(self.name)
        self._errors = MetricsManager().counter(
            "operator_errors", "Elements skipped after a processing error", ["operator"]
        )

    def connect(self, operator: 'Operator') -> None:
        """Connect this operator to a downstream operator."""
        self.downstream.append(operator)
        operator.upstream.append(self)

    def start(self) -> asyncio.Task:
        """Start the worker task draining this operator's queue."""
        if self._work_task is None or self._work_task.done():
            self._work_task = asyncio.create_task(self._worker_loop(), name=self.name)
        return self._work_task

    async def emit(self, element: U) -> None:
        """Emit an element to all downstream operators.

        Args:
            element: The processed element to send downstream
        """
        for op in self.downstream:
            await op.process(element)

    async def process(self, element: T) -> None:
        """Receive an element. This will block if the internal buffer is full (backpressure).

        Args:
            element: The input element to process
        """
        await self._queue.put(element)

    async def process_watermark(self, timestamp: float, origin: Optional['Operator'] = None) -> None:
        """Receive a watermark from ``origin``. Queued behind any pending elements.

        Args:
            timestamp: The watermark timestamp in event time
            origin: The upstream operator that produced it
        """
        await self._queue.put(_Watermark(timestamp, id(origin)))

    async def process_end(self, origin: Optional['Operator'] = None) -> None:
        """Receive the end-of-stream marker from ``origin``."""
        await self._queue.put(_EndOfStream(id(origin)))

    async def emit_watermark(self, timestamp: float) -> None:
        """Propagate a watermark downstream.

        Args:
            timestamp: The watermark timestamp to propagate
        """
        for op in self.downstream:
            await op.process_watermark(timestamp, self)

    async def emit_end(self) -> None:
        for op in self.downstream:
            await op.process_end(self)

    async def on_watermark(self, timestamp: float) -> None:
        """Hook for operators to respond to a watermark (e.g., close windows).

        Args:
            timestamp: The watermark timestamp in event time
        """
        pass

    async def on_end(self) -> None:
        """Hook called once every input has ended, before the end is propagated."""
        pass

    async def _worker_loop(self) -> None:
        """Process queued items until every input has sent end-of-stream."""
        while True:
            item = await self._queue.get()
            try:
                if isinstance(item, _Watermark):
                    self._input_watermarks[item.origin] = max(
                        item.timestamp, self._input_watermarks.get(item.origin, float('-inf'))
                    )
                    await self._advance_watermark()
                elif isinstance(item, _EndOfStream):
                    self._ended_inputs.add(item.origin)
                    if len(self._ended_inputs) >= self._input_count():
                        await self._call_hook(self.on_end)
                        await self.emit_end()
                        return
                    # A finished input no longer holds the watermark back
                    self._input_watermarks[item.origin] = float('inf')
                    await self._advance_watermark()
                else:
                    await self._process_element(item)
            finally:
                self._queue.task_done()

    async def _process_element(self, element: T) -> None:
        try:
            await self._process_captured(element)
        except Exception as e:
            self._errors.labels(operator=self.name).inc()
            self.logger.error(f"Skipping element in {self.name} after error: {e!r}")

    async def _call_hook(self, hook: Callable[..., Awaitable[None]], *args: Any) -> None:
        # A failing hook must not stop the worker; markers keep flowing downstream
        try:
            await hook(*args)
        except Exception as e:
            self._errors.labels(operator=self.name).inc()
            self.logger.error(f"{hook.__name__} failed in {self.name}: {e!r}")

    async def _advance_watermark(self) -> None:
        if len(self._input_watermarks) < self._input_count():
            return
        combined = min(self._input_watermarks.values())
        if combined <= self.current_watermark:
            return  # Watermark must advance
        self.current_watermark = combined
        await self._call_hook(self.on_watermark, combined)
        await self.emit_watermark(combined)

    def _input_count(self) -> int:
        return max(1, len(self.upstream))

    @abstractmethod
    async def _process_captured(self, element: T) -> None:
        """Process a single element. Must be implemented by subclasses.

        Args:
            element: The element to process
        """
        pass

    def stats(self) -> Dict[str, Any]:
        """Point-in-time view of the operator, served by the admin API."""
        return {
            "name": self.name,
            "watermark": self.current_watermark,
            "queued": self._queue.qsize(),
        }


class Map(Operator[T, U]):
    """Applies a transformation function to each element.

    A ``None`` result drops the element.
    """

    def __init__(self, func: MapFunction[T, U], name: str = "Map"):
        super().__init__(name)
        self.func = func

    async def _process_captured(self, element: T) -> None:
        result = self.func(element)
        if result is not None:
            await self.emit(result)


class Filter(Operator[T, T]):
    """Filters elements based on a predicate."""

    def __init__(self, predicate: FilterFunction[T], name: str = "Filter"):
        super().__init__(name)
        self.predicate = predicate

    async def _process_captured(self, element: T) -> None:
        if self.predicate(element):
            await self.emit(element)


class Stage:
    """One node of a pipeline under construction.

    Every transformation returns a new stage, so calling several
    transformations on the same stage fans the stream out into branches.
    """

    def __init__(self, pipeline: 'Pipeline', operator: Operator):
        self.pipeline = pipeline
        self.operator = operator

    def map(self, func: MapFunction, name: str = "Map") -> 'Stage':
        """Apply a map transformation; ``None`` results are dropped."""
        return self._then(Map(func, name))

    def filter(self, predicate: FilterFunction, name: str = "Filter") -> 'Stage':
        """Apply a filter transformation."""
        return self._then(Filter(predicate, name))

    def insert_watermarks(self, timestamp_fn: TimestampExtractor, allowed_lateness_ms: int,
                          name: str = "InsertWatermarks") -> 'Stage':
        """Derive event-time watermarks from ``timestamp_fn`` of each element."""
        from flight_telemetry.operators.windowing import InsertWatermarks
        return self._then(InsertWatermarks(timestamp_fn, allowed_lateness_ms, name))

    def window(self, definition: 'SlidingWindow', timestamp_fn: TimestampExtractor,
               allowed_lateness_ms: int = 0) -> 'WindowedStage':
        """Start a windowed aggregation; finish it with ``grouping_key(...).aggregate(...)``."""
        return WindowedStage(self, definition, timestamp_fn, allowed_lateness_ms)

    def write_to(self, sink: 'Sink') -> 'Stage':
        """Connect the stage to a sink."""
        return self._then(sink)

    def _then(self, op: Operator) -> 'Stage':
        self.operator.connect(op)
        return Stage(self.pipeline, op)


class WindowedStage:
    """Builder for a keyed, windowed aggregation."""

    def __init__(self, stage: Stage, definition: 'SlidingWindow', timestamp_fn: TimestampExtractor,
                 allowed_lateness_ms: int, key_fn: Optional[KeySelector] = None):
        self.stage = stage
        self.definition = definition
        self.timestamp_fn = timestamp_fn
        self.allowed_lateness_ms = allowed_lateness_ms
        self.key_fn = key_fn

    def grouping_key(self, key_fn: KeySelector) -> 'WindowedStage':
        return WindowedStage(self.stage, self.definition, self.timestamp_fn,
                             self.allowed_lateness_ms, key_fn)

    def aggregate(self, operation: 'AggregateOperation', name: str = "WindowAggregator") -> Stage:
        if self.key_fn is None:
            raise ValueError("Call grouping_key() before aggregate().")
        from flight_telemetry.operators.windowing import WindowAggregator
        op = WindowAggregator(
            self.definition,
            key_fn=self.key_fn,
            timestamp_fn=self.timestamp_fn,
            operation=operation,
            allowed_lateness_ms=self.allowed_lateness_ms,
            name=name,
        )
        return self.stage._then(op)


class Pipeline:
    """Fluent API for building stream processing pipelines."""

    def __init__(self) -> None:
        self.sources: List['Source'] = []

    def read_from(self, source: 'Source') -> Stage:
        """Start a pipeline branch from a source."""
        self.sources.append(source)
        return Stage(self, source)

    def write_to(self, sink: 'Sink', *stages: Stage) -> 'Sink':
        """Merge several stages into one sink."""
        if not stages:
            raise ValueError("write_to needs at least one stage.")
        for stage in stages:
            stage.operator.connect(sink)
        return sink

    def operators(self) -> List[Operator]:
        """Every operator reachable from the sources, each listed once."""
        seen: Set[int] = set()
        ordered: List[Operator] = []
        stack: List[Operator] = list(reversed(self.sources))
        while stack:
            op = stack.pop()
            if id(op) in seen:
                continue
            seen.add(id(op))
            ordered.append(op)
            stack.extend(reversed(op.downstream))
        return ordered

    def run(self) -> None:
        """Run the pipeline using the default runner."""
        from flight_telemetry.runtime.runner import Runner
        runner = Runner()
        runner.run(self)
