import asyncio
import json
from flight_telemetry.connectors.adsb import parse_report
from flight_telemetry.connectors.base import Source, Sink
from flight_telemetry.connectors.graphite import to_metric
from flight_telemetry.models import PositionReport, TimestampedEntry


class ReplayFileSource(Source[PositionReport]):
    """Replays a recorded feed: one raw aircraft record (JSON object) per line."""

    def __init__(self, path: str, delay: float = 0.0):
        super().__init__(name=f"ReplayFileSource({path})")
        self.path = path
        self.delay = delay

    async def start(self) -> None:
        """Read lines from file and emit the reports they contain."""
        try:
            # Undecodable bytes fall through to the JSON skip below
            with open(self.path, 'r', encoding='utf-8', errors='replace') as f:
                for lineno, line in enumerate(f, start=1):
                    if not self.running:
                        break
                    stripped = line.strip()
                    if not stripped:  # Skip empty lines
                        continue
                    try:
                        raw = json.loads(stripped)
                    except json.JSONDecodeError as e:
                        self.logger.warning(f"Skipping unparseable line {lineno} of {self.path}: {e}")
                        continue
                    report = parse_report(raw)
                    if report is not None:
                        await self.emit(report)
                    if self.delay > 0:
                        await asyncio.sleep(self.delay)
        except FileNotFoundError:
            self.logger.error(f"File not found: {self.path}")
            raise


class ConsoleSink(Sink[TimestampedEntry]):
    """Prints the metrics that would be sent to Graphite."""

    def __init__(self, prefix: str = ""):
        super().__init__("ConsoleSink")
        self.prefix = prefix

    async def _process_captured(self, element: TimestampedEntry) -> None:
        metric = to_metric(element)
        if metric is not None:
            print(f"{self.prefix}{metric.name} {metric.value} {metric.timestamp}")
