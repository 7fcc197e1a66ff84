from typing import Any, Dict, Iterable, List, Optional

import httpx
from pydantic import ValidationError

from flight_telemetry.connectors.base import Source
from flight_telemetry.models import PositionReport
from flight_telemetry.settings import settings
from flight_telemetry.utils.logging import get_logger
from flight_telemetry.utils.metrics import MetricsManager

logger = get_logger("adsb")


def parse_report(raw: Dict[str, Any]) -> Optional[PositionReport]:
    """Validate one raw feed record; malformed records are logged, counted and dropped."""
    try:
        return PositionReport.model_validate(raw)
    except ValidationError as e:
        MetricsManager().counter("malformed_records", "Feed records that failed validation").inc()
        record_id = raw.get("Id", "?") if isinstance(raw, dict) else "?"
        logger.warning(f"Dropping malformed aircraft record {record_id}: {e.error_count()} error(s)")
        return None


class ADSBExchangeSource(Source[PositionReport]):
    """
    Polls the ADS-B Exchange ``AircraftList.json`` feed at a fixed interval.

    Each aircraft is emitted again only when its position time is newer than
    the last one emitted for it, so unchanged positions are not repeated
    between polls.
    """

    def __init__(self,
                 url: str = settings.FEED_URL,
                 poll_interval_ms: int = settings.POLL_INTERVAL_MS,
                 timeout: float = settings.HTTP_TIMEOUT_S,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 max_polls: Optional[int] = None):
        super().__init__(name="ADSBExchangeSource")
        self.url = url
        self.poll_interval_ms = poll_interval_ms
        self.timeout = timeout
        self.transport = transport
        self.max_polls = max_polls
        self._last_pos_time: Dict[int, int] = {}

    async def start(self) -> None:
        self.logger.info(f"Polling {self.url} every {self.poll_interval_ms} ms")
        polls = 0
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            while self.running:
                for report in await self.poll(client):
                    await self.emit(report)
                polls += 1
                if self.max_polls is not None and polls >= self.max_polls:
                    break
                if await self.wait_or_stop(self.poll_interval_ms / 1000):
                    break

    async def poll(self, client: httpx.AsyncClient) -> List[PositionReport]:
        """Fetch the feed once and return the reports that moved since the last poll."""
        try:
            response = await client.get(self.url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            self.logger.warning(f"Feed returned HTTP {e.response.status_code}")
            return []
        except httpx.RequestError as e:
            self.logger.warning(f"Feed request failed: {e!r}")
            return []

        try:
            payload = response.json()
        except ValueError as e:
            self.logger.warning(f"Failed to parse feed JSON: {e}")
            return []

        if not isinstance(payload, dict):
            self.logger.warning(f"Unexpected feed payload of type {type(payload).__name__}")
            return []
        records = payload.get("acList")
        if not isinstance(records, list):
            # null or missing acList: no snapshot this poll
            self.logger.warning(f"Feed acList is {type(records).__name__}, skipping poll")
            return []
        return self.fresh_reports(records)

    def fresh_reports(self, records: Iterable[Dict[str, Any]]) -> List[PositionReport]:
        """
        Reports whose position time moved since the last snapshot. Each call
        is a full feed snapshot, so aircraft no longer listed are forgotten.
        """
        fresh = []
        listed: Dict[int, int] = {}
        for raw in records:
            report = parse_report(raw)
            if report is None:
                continue
            last = max(self._last_pos_time.get(report.id, -1), listed.get(report.id, -1))
            if report.pos_time > last:
                fresh.append(report)
            listed[report.id] = max(report.pos_time, last)
        self._last_pos_time = listed
        return fresh
