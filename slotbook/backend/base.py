"""
Persistence boundary consumed by the scheduling engine.

Both implementations expose the same async operations as the booking REST
API. The uniqueness rule for active reservations lives here so every
backend enforces it the same way.
"""

from enum import Enum
from typing import Any, Iterable, Optional, Protocol

from pydantic import BaseModel

from slotbook.schemas.availability_schema import AvailabilityWindow, Provider
from slotbook.schemas.reservation_schema import Reservation, User


class BookingBackend(Protocol):
    """Async operations the engine needs from a store."""

    async def list_providers(self) -> list[Provider]: ...

    async def get_availability(self, provider_id: str) -> list[AvailabilityWindow]: ...

    async def put_availability(
        self, provider_id: str, window: AvailabilityWindow
    ) -> list[AvailabilityWindow]: ...

    async def delete_availability(self, provider_id: str, day: str) -> list[AvailabilityWindow]: ...

    async def list_reservations(self, day: Optional[str] = None) -> list[Reservation]: ...

    async def create_reservation(self, reservation: Reservation) -> Reservation: ...

    async def update_reservation(self, reservation_id: str, fields: dict[str, Any]) -> Reservation: ...

    async def delete_reservation(self, reservation_id: str) -> None: ...

    async def login(self, name: str, password: str) -> User: ...


def _field_names() -> dict[str, str]:
    names: dict[str, str] = {}
    for name, info in Reservation.model_fields.items():
        names[name] = name
        if info.alias:
            names[info.alias] = name
    return names


_RESERVATION_FIELDS = _field_names()


def normalize_reservation_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """Map snake_case or camelCase keys onto Reservation field names.

    Raises:
        ValueError: On keys that are not Reservation fields.
    """
    unknown = [key for key in fields if key not in _RESERVATION_FIELDS]
    if unknown:
        raise ValueError(f"Unknown reservation fields: {', '.join(unknown)}")
    return {_RESERVATION_FIELDS[key]: value for key, value in fields.items()}


def reservation_fields_payload(fields: dict[str, Any]) -> dict[str, Any]:
    """Serialize a partial update for the wire, using camelCase keys."""
    payload: dict[str, Any] = {}
    for name, value in normalize_reservation_fields(fields).items():
        alias = Reservation.model_fields[name].alias or name
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, BaseModel):
            value = value.model_dump(by_alias=True, mode="json")
        payload[alias] = value
    return payload


def _claimed_by(reservation: Reservation) -> Optional[set[str]]:
    """Providers ``reservation`` claims on its slot. None means every provider."""
    if reservation.provider_id is not None:
        return {reservation.provider_id}
    if reservation.eligible_provider_ids:
        return set(reservation.eligible_provider_ids)
    return None


def find_conflict(
    reservations: Iterable[Reservation], candidate: Reservation
) -> Optional[Reservation]:
    """
    Return an active reservation that ``candidate`` would double-book, if any.

    Two active reservations on the same date and slot conflict when the
    providers they claim overlap. An assigned reservation claims its
    provider. A hold still waiting for a provider choice claims every
    provider it was offered, or every provider if it was offered none.
    """
    if not candidate.is_active:
        return None
    wanted = _claimed_by(candidate)
    for existing in reservations:
        if existing.id == candidate.id and candidate.id is not None:
            continue
        if not existing.occupies(candidate.date, candidate.slot):
            continue
        held = _claimed_by(existing)
        if wanted is None or held is None or wanted & held:
            return existing
    return None
