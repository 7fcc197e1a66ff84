from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Dict, Generic, NamedTuple, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

K = TypeVar("K")
V = TypeVar("V")


class VerticalDirection(Enum):
    ASCENDING = "ASCENDING"
    DESCENDING = "DESCENDING"
    CRUISE = "CRUISE"
    UNKNOWN = "UNKNOWN"


class WakeTurbulenceCategory(IntEnum):
    NONE = 0
    LIGHT = 1
    MEDIUM = 2
    HEAVY = 3


class PositionReport(BaseModel):
    """
    One aircraft observation as published by the ADS-B feed.

    Accepts both the feed's field names (``PosTime``, ``Long``, ``WTC`` ...)
    and the attribute names. Missing or null optional fields fall back to the
    feed defaults (-1 for coordinates and altitude).
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int = Field(alias="Id")
    pos_time: int = Field(alias="PosTime")
    lat: float = Field(default=-1.0, alias="Lat")
    lon: float = Field(default=-1.0, alias="Long")
    alt: int = Field(default=-1, alias="Alt")
    gnd: bool = Field(default=False, alias="Gnd")
    wtc: WakeTurbulenceCategory = Field(default=WakeTurbulenceCategory.NONE, alias="WTC")
    type: str = Field(default="", alias="Type")

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data

    @field_validator("wtc", mode="before")
    @classmethod
    def _coerce_wtc(cls, value: Any) -> WakeTurbulenceCategory:
        try:
            return WakeTurbulenceCategory(int(value))
        except (TypeError, ValueError):
            return WakeTurbulenceCategory.NONE

    def with_airport(self, airport: Optional[str]) -> "ClassifiedAircraft":
        data: Dict[str, Any] = self.model_dump()
        data["airport"] = airport
        return ClassifiedAircraft.model_validate(data)


class ClassifiedAircraft(PositionReport):
    """A position report annotated with its airport and vertical direction."""
    airport: Optional[str] = None
    vertical_direction: VerticalDirection = VerticalDirection.UNKNOWN

    def with_direction(self, direction: VerticalDirection) -> "ClassifiedAircraft":
        return self.model_copy(update={"vertical_direction": direction})


@dataclass(frozen=True)
class TimestampedEntry(Generic[K, V]):
    """Result of a closed window: ``timestamp`` is the window end in epoch millis."""
    timestamp: int
    key: K
    value: V


class TimestampedMetric(NamedTuple):
    """The unit written to the metrics store."""
    name: str
    timestamp: int
    value: float
