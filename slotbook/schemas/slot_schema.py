"""Time range and derived slot models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from slotbook.utils import minutes_to_time_str, time_str_to_minutes


class ReservationStatus(str, Enum):
    """Status shared by derived slots and persisted reservations."""

    AVAILABLE = "available"
    RESERVED = "reserved"
    BOOKED = "booked"
    DISABLED = "disabled"
    EXPIRED = "expired"


ACTIVE_STATUSES = frozenset({ReservationStatus.RESERVED, ReservationStatus.BOOKED})


class TimeRange(BaseModel):
    """A half-open wall-clock span ``[start, end)`` within one day."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def _check_time(cls, value: str) -> str:
        try:
            return minutes_to_time_str(time_str_to_minutes(value))
        except ValueError:
            raise ValueError(f"time must be HH:MM, got {value!r}") from None

    @model_validator(mode="after")
    def _check_order(self) -> "TimeRange":
        if time_str_to_minutes(self.start) >= time_str_to_minutes(self.end):
            raise ValueError(f"start {self.start} must be before end {self.end}")
        return self

    @property
    def start_minutes(self) -> int:
        return time_str_to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return time_str_to_minutes(self.end)

    def same_span(self, other: "TimeRange") -> bool:
        return self.start == other.start and self.end == other.end

    def contains(self, other: "TimeRange") -> bool:
        return self.start_minutes <= other.start_minutes and other.end_minutes <= self.end_minutes


class Slot(TimeRange):
    """One atomic bookable unit derived from availability. Never persisted."""

    status: ReservationStatus = ReservationStatus.AVAILABLE
    provider_ids: list[str] = Field(default_factory=list)
    tooltip: str = ""

    def as_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.end)
