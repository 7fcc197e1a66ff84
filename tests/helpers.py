from typing import Any, List

from flight_telemetry.connectors.base import Sink, Source
from flight_telemetry.models import PositionReport, WakeTurbulenceCategory

# Inside London's 80-mile box
LONDON_LAT = 51.5
LONDON_LON = -0.4


class ListSource(Source[Any]):
    """Simulated source from a list."""
    def __init__(self, data: List[Any], name: str = "ListSource"):
        super().__init__(name)
        self.data = data

    async def start(self) -> None:
        for item in self.data:
            await self.emit(item)


class ListSink(Sink[Any]):
    """Collects results into a list."""
    def __init__(self, name: str = "ListSink"):
        super().__init__(name)
        self.results: List[Any] = []
        self.watermarks: List[float] = []
        self.ended = False

    async def _process_captured(self, element: Any) -> None:
        self.results.append(element)

    async def on_watermark(self, timestamp: float) -> None:
        self.watermarks.append(timestamp)

    async def on_end(self) -> None:
        self.ended = True


def report(aircraft_id: int = 42, pos_time: int = 0, alt: int = 1000,
           lat: float = LONDON_LAT, lon: float = LONDON_LON, gnd: bool = False,
           wtc: WakeTurbulenceCategory = WakeTurbulenceCategory.MEDIUM,
           type_code: str = "A320") -> PositionReport:
    return PositionReport(
        id=aircraft_id, pos_time=pos_time, lat=lat, lon=lon, alt=alt,
        gnd=gnd, wtc=wtc, type=type_code,
    )
