"""Reservation and user models."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from slotbook.schemas.slot_schema import ACTIVE_STATUSES, ReservationStatus, TimeRange
from slotbook.utils import format_date


class Reservation(BaseModel):
    """A client's claim on one slot of one date.

    ``slot`` is always a single TimeRange. Some stored records wrap it in a
    one-element list; those are unwrapped on load.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: Optional[str] = None
    client_id: str
    provider_id: Optional[str] = None
    date: str
    slot: TimeRange
    status: ReservationStatus = ReservationStatus.RESERVED
    timer: Optional[int] = None
    expiration_time: Optional[str] = None
    eligible_provider_ids: list[str] = Field(default_factory=list)

    @field_validator("date")
    @classmethod
    def _check_date(cls, value: str) -> str:
        try:
            return format_date(value)
        except ValueError:
            raise ValueError(f"date must be YYYY-MM-DD, got {value!r}") from None

    @field_validator("slot", mode="before")
    @classmethod
    def _unwrap_slot(cls, value: Any) -> Any:
        if isinstance(value, list):
            if len(value) != 1:
                raise ValueError(f"reservation must reference exactly one slot, got {len(value)}")
            return value[0]
        return value

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def occupies(self, day: str, slot: TimeRange) -> bool:
        """True if this is an active reservation of exactly ``slot`` on ``day``."""
        return self.is_active and self.date == day and self.slot.same_span(slot)

    def to_payload(self) -> dict[str, Any]:
        """Serialize for the persistence boundary. The hold timer is never persisted."""
        return self.model_dump(by_alias=True, exclude={"timer"}, mode="json")


class UserRole(str, Enum):
    CLIENT = "client"
    PROVIDER = "provider"


class User(BaseModel):
    """An authenticated user as returned by login."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    role: UserRole
    token: Optional[str] = None
