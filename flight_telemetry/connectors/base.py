import asyncio
from abc import abstractmethod
from flight_telemetry.utils.typing import T
from flight_telemetry.operators.core import Operator
from flight_telemetry.utils.metrics import MetricsManager


class Source(Operator[None, T]):
    """Base class for data sources.

    Sources do not take input from other operators (T is None) and have no
    worker task: ``run()`` drives ``start()`` and sends end-of-stream
    downstream when it returns, whether it finished, was stopped or failed.
    """

    def __init__(self, name: str = "Source"):
        super().__init__(name)
        self._running = False
        self._stop_event = asyncio.Event()
        self._emitted = MetricsManager().counter(
            "records_emitted", "Records emitted by a source", ["source"]
        ).labels(source=self.name)

    @abstractmethod
    async def start(self) -> None:
        """Start generating data. Long-running sources loop while ``running``."""
        pass

    @property
    def running(self) -> bool:
        return self._running

    async def run(self) -> None:
        self._running = True
        try:
            await self.start()
        finally:
            self._running = False
            await self.emit_end()

    def stop(self) -> None:
        """Ask the source to stop; in-flight windows drain after it returns."""
        self._running = False
        self._stop_event.set()

    async def wait_or_stop(self, seconds: float) -> bool:
        """Sleep for ``seconds`` unless stopped first. Returns True if stopped."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
            return True
        except asyncio.TimeoutError:
            return False

    async def _process_captured(self, element: None) -> None:
        """Sources do not process input from upstream."""
        pass

    async def emit(self, element: T) -> None:
        self._emitted.inc()
        await super().emit(element)


class Sink(Operator[T, None]):
    """Base class for data sinks.

    Sinks receive elements and perform side effects (write to a socket,
    stdout, ...) but do not emit elements downstream.
    """
    pass
