import asyncio
import pickle
import struct
from collections import deque
from typing import Any, Deque, Dict, Optional

from flight_telemetry.connectors.base import Sink
from flight_telemetry.models import ClassifiedAircraft, TimestampedEntry, TimestampedMetric
from flight_telemetry.settings import settings
from flight_telemetry.utils.metrics import MetricsManager
from flight_telemetry.utils.tracing import get_tracer

PICKLE_PROTOCOL = 2
HEADER = struct.Struct("!L")


def _metric_name(name: str) -> str:
    return name.replace(" ", "_")


def to_metric(entry: TimestampedEntry) -> Optional[TimestampedMetric]:
    """
    Convert any of the three result shapes into a Graphite metric.

    Classified aircraft become a presence signal named ``<airport>.<direction>``
    at the aircraft's position time; every other entry is named after its key
    and stamped with the window end. Aircraft without an airport have no
    metric and yield None.
    """
    value = entry.value
    if isinstance(value, ClassifiedAircraft):
        if value.airport is None:
            return None
        name = f"{_metric_name(value.airport)}.{value.vertical_direction.value}"
        return TimestampedMetric(name, value.pos_time // 1000, 1.0)
    return TimestampedMetric(_metric_name(str(entry.key)), entry.timestamp // 1000, float(value))


def encode_metric(metric: TimestampedMetric) -> bytes:
    """One pickle-protocol frame: 4-byte big-endian length + pickled ``[(name, (ts, value))]``."""
    payload = pickle.dumps([(metric.name, (int(metric.timestamp), float(metric.value)))], protocol=PICKLE_PROTOCOL)
    return HEADER.pack(len(payload)) + payload


def decode_frame(frame: bytes) -> TimestampedMetric:
    """Inverse of ``encode_metric`` for a single complete frame."""
    if len(frame) < HEADER.size:
        raise ValueError("Frame shorter than its length header")
    (length,) = HEADER.unpack_from(frame)
    payload = frame[HEADER.size:]
    if len(payload) != length:
        raise ValueError(f"Frame declares {length} payload bytes but carries {len(payload)}")
    [(name, (timestamp, value))] = pickle.loads(payload)
    return TimestampedMetric(name, timestamp, value)


class GraphiteSink(Sink[TimestampedEntry]):
    """
    Writes every incoming result to Graphite's pickle receiver over a single
    TCP connection.

    The operator queue is the shared entry point for all upstream stages and
    blocks producers when full. One worker converts and writes each record,
    and writes also hold ``_write_lock``, so frames never interleave on the
    socket.

    While Graphite is unreachable, frames wait in a bounded backlog and the
    connection is retried with exponential backoff when new records arrive.
    The upstream aggregation keeps running. Once the backlog is full the
    oldest frame is dropped with a warning.
    """

    def __init__(self,
                 host: str = settings.GRAPHITE_HOST,
                 port: int = settings.GRAPHITE_PORT,
                 queue_size: int = settings.SINK_QUEUE_SIZE,
                 buffer_size: int = settings.SINK_BUFFER_SIZE,
                 backoff_s: float = settings.SINK_RECONNECT_BACKOFF_S,
                 max_backoff_s: float = settings.SINK_RECONNECT_MAX_BACKOFF_S,
                 connect_timeout_s: float = settings.GRAPHITE_CONNECT_TIMEOUT_S,
                 name: str = "GraphiteSink"):
        super().__init__(name=name, queue_size=queue_size)
        self.host = host
        self.port = port
        self.connect_timeout_s = connect_timeout_s
        self.initial_backoff_s = backoff_s
        self.max_backoff_s = max_backoff_s
        self._backoff_s = backoff_s
        self._next_attempt = 0.0
        self._backlog: Deque[bytes] = deque(maxlen=buffer_size)
        self._writer: Optional[asyncio.StreamWriter] = None
        self._write_lock = asyncio.Lock()
        self._tracer = get_tracer("graphite")

        metrics = MetricsManager()
        self._sent = metrics.counter("sink_metrics_sent", "Metrics written to Graphite")
        self._dropped = metrics.counter("sink_metrics_dropped", "Metrics dropped from a full backlog")
        self._reconnects = metrics.counter("sink_reconnect_failures", "Failed Graphite connection attempts")
        self.sent_count = 0
        self.dropped_count = 0

    @property
    def connected(self) -> bool:
        return self._writer is not None

    @property
    def backlog(self) -> int:
        return len(self._backlog)

    async def _process_captured(self, element: TimestampedEntry) -> None:
        metric = to_metric(element)
        if metric is None:
            self.logger.debug(f"No metric for entry with key {element.key!r}")
            return
        await self.send(metric)

    async def send(self, metric: TimestampedMetric) -> None:
        """Queue one metric for writing and flush whatever the connection allows."""
        frame = encode_metric(metric)
        async with self._write_lock:
            if len(self._backlog) == self._backlog.maxlen:
                self.dropped_count += 1
                self._dropped.inc()
                self.logger.warning(
                    f"Graphite backlog full ({self._backlog.maxlen}); dropping oldest buffered metric"
                )
            self._backlog.append(frame)
            await self._flush_backlog()

    async def on_end(self) -> None:
        async with self._write_lock:
            if self._backlog:
                self._next_attempt = 0.0
                await self._flush_backlog()
            if self._backlog:
                self.logger.warning(f"Discarding {len(self._backlog)} undelivered metric(s) on shutdown")
                self._backlog.clear()
            await self._disconnect()
        self.logger.info(f"Graphite sink closed after sending {self.sent_count} metric(s)")

    async def _flush_backlog(self) -> None:
        if not await self._ensure_connected():
            return
        while self._backlog:
            frame = self._backlog[0]
            try:
                # Header and payload go out in a single write
                self._writer.write(frame)
                await self._writer.drain()
            except (ConnectionError, OSError) as e:
                self.logger.warning(f"Lost connection to Graphite at {self.host}:{self.port}: {e}")
                await self._disconnect()
                self._schedule_retry()
                return
            self._backlog.popleft()
            self.sent_count += 1
            self._sent.inc()

    async def _ensure_connected(self) -> bool:
        if self._writer is not None:
            return True
        loop = asyncio.get_running_loop()
        if loop.time() < self._next_attempt:
            return False

        with self._tracer.start_as_current_span("graphite.connect", attributes={"host": self.host, "port": self.port}):
            try:
                _, self._writer = await asyncio.wait_for(
                    asyncio.open_connection(self.host, self.port), timeout=self.connect_timeout_s
                )
            except (OSError, asyncio.TimeoutError) as e:
                self._reconnects.inc()
                self.logger.warning(
                    f"Cannot connect to Graphite at {self.host}:{self.port} ({e!r}); "
                    f"retrying in {self._backoff_s:.1f}s, {len(self._backlog)} metric(s) buffered"
                )
                self._schedule_retry()
                return False

        self._backoff_s = self.initial_backoff_s
        self.logger.info(f"Connected to Graphite at {self.host}:{self.port}")
        return True

    def _schedule_retry(self) -> None:
        self._next_attempt = asyncio.get_running_loop().time() + self._backoff_s
        self._backoff_s = min(self._backoff_s * 2, self.max_backoff_s)

    async def _disconnect(self) -> None:
        writer, self._writer = self._writer, None
        if writer is None:
            return
        writer.close()
        try:
            await writer.wait_closed()
        except (ConnectionError, OSError) as e:
            self.logger.debug(f"Error while closing Graphite connection: {e}")

    def stats(self) -> Dict[str, Any]:
        stats = super().stats()
        stats.update({
            "connected": self.connected,
            "backlog": self.backlog,
            "sent": self.sent_count,
            "dropped": self.dropped_count,
        })
        return stats
