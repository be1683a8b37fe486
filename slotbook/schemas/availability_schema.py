"""Provider and availability window models."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from slotbook.config import settings
from slotbook.schemas.slot_schema import TimeRange
from slotbook.utils import format_date, resolve_timezone


class AvailabilityWindow(TimeRange):
    """
    A contiguous span a provider is open for booking on one date.

    Start and end must fall on the slot grid (whole multiples of
    ``SLOT_STEP_MINUTES`` from midnight), so every window tiles exactly.
    """

    provider_id: Optional[str] = None
    date: str
    timezone: str = Field(default_factory=lambda: settings.scheduling.default_timezone)

    @field_validator("date")
    @classmethod
    def _check_date(cls, value: str) -> str:
        try:
            return format_date(value)
        except ValueError:
            raise ValueError(f"date must be YYYY-MM-DD, got {value!r}") from None

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        resolve_timezone(value)
        return value

    @model_validator(mode="after")
    def _check_grid(self) -> "AvailabilityWindow":
        step = settings.scheduling.slot_step_minutes
        for bound, minutes in (("start", self.start_minutes), ("end", self.end_minutes)):
            if minutes % step:
                raise ValueError(f"{bound} must fall on the {step}-minute slot grid")
        return self


class Provider(BaseModel):
    """A provider and the availability windows they have published."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    availability: list[AvailabilityWindow] = Field(default_factory=list)

    def window_for(self, day: str) -> Optional[AvailabilityWindow]:
        """Return the provider's window on ``day`` (``YYYY-MM-DD``), if any."""
        for window in self.availability:
            if window.date == day:
                return window
        return None
