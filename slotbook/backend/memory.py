"""
In-memory authoritative booking store.

Mirrors the booking REST API in-process: providers with per-date
availability, reservations with server-assigned ids, and seeded users for
login. Reservation writes use a check-and-insert with no await between
the conflict check and the insert, so concurrent holds on one event loop
cannot both succeed.
"""

import logging
import uuid
from typing import Any, Optional

from slotbook.backend.base import find_conflict, normalize_reservation_fields
from slotbook.errors import (
    AuthError,
    ProviderNotFoundError,
    ReservationNotFoundError,
    SlotUnavailableError,
)
from slotbook.schemas.availability_schema import AvailabilityWindow, Provider
from slotbook.schemas.reservation_schema import Reservation, User, UserRole
from slotbook.utils import format_date

logger = logging.getLogger(__name__)


class InMemoryBackend:
    """Process-local store implementing the BookingBackend operations."""

    def __init__(self) -> None:
        self._providers: dict[str, Provider] = {}
        self._reservations: dict[str, Reservation] = {}
        self._users: dict[str, tuple[str, User]] = {}

    # ------------------------------------------------------------------ #
    # Seeding
    # ------------------------------------------------------------------ #

    def add_provider(self, provider_id: str, name: str) -> Provider:
        provider = Provider(id=provider_id, name=name)
        self._providers[provider_id] = provider
        return provider.model_copy(deep=True)

    def add_user(
        self, name: str, password: str, role: UserRole, user_id: Optional[str] = None
    ) -> User:
        user = User(id=user_id or name, name=name, role=role)
        self._users[name] = (password, user)
        return user.model_copy()

    def reset(self) -> None:
        """Clear all data. Used by test fixtures for isolation."""
        self._providers.clear()
        self._reservations.clear()
        self._users.clear()

    # ------------------------------------------------------------------ #
    # Providers and availability
    # ------------------------------------------------------------------ #

    def _provider(self, provider_id: str) -> Provider:
        provider = self._providers.get(provider_id)
        if provider is None:
            raise ProviderNotFoundError(f"Provider {provider_id} not found")
        return provider

    async def list_providers(self) -> list[Provider]:
        return [p.model_copy(deep=True) for p in self._providers.values()]

    async def get_availability(self, provider_id: str) -> list[AvailabilityWindow]:
        provider = self._provider(provider_id)
        return [w.model_copy() for w in sorted(provider.availability, key=lambda w: w.date)]

    async def put_availability(
        self, provider_id: str, window: AvailabilityWindow
    ) -> list[AvailabilityWindow]:
        """Add a window, replacing any existing window on the same date."""
        provider = self._provider(provider_id)
        window = window.model_copy(update={"provider_id": provider_id})
        kept = [w for w in provider.availability if w.date != window.date]
        provider.availability = sorted([*kept, window], key=lambda w: w.date)
        logger.info(
            "Availability set: %s on %s %s-%s (%s)",
            provider_id, window.date, window.start, window.end, window.timezone,
        )
        return await self.get_availability(provider_id)

    async def delete_availability(self, provider_id: str, day: str) -> list[AvailabilityWindow]:
        provider = self._provider(provider_id)
        day = format_date(day)
        provider.availability = [w for w in provider.availability if w.date != day]
        logger.info("Availability removed: %s on %s", provider_id, day)
        return await self.get_availability(provider_id)

    # ------------------------------------------------------------------ #
    # Reservations
    # ------------------------------------------------------------------ #

    async def list_reservations(self, day: Optional[str] = None) -> list[Reservation]:
        if day is not None:
            day = format_date(day)
        return [
            r.model_copy(deep=True)
            for r in self._reservations.values()
            if day is None or r.date == day
        ]

    async def create_reservation(self, reservation: Reservation) -> Reservation:
        """Insert a reservation, assigning its id.

        Raises:
            SlotUnavailableError: If it would double-book an active reservation.
        """
        candidate = reservation.model_copy(deep=True, update={"id": None, "timer": None})
        conflict = find_conflict(self._reservations.values(), candidate)
        if conflict is not None:
            logger.warning(
                "Rejected reservation on %s %s-%s: conflicts with %s",
                candidate.date, candidate.slot.start, candidate.slot.end, conflict.id,
            )
            raise SlotUnavailableError(
                f"Slot {candidate.date} {candidate.slot.start}-{candidate.slot.end} already taken"
            )
        candidate.id = f"RES-{uuid.uuid4().hex[:8].upper()}"
        self._reservations[candidate.id] = candidate
        logger.info("Reservation created: %s for %s", candidate.id, candidate.client_id)
        return candidate.model_copy(deep=True)

    async def update_reservation(self, reservation_id: str, fields: dict[str, Any]) -> Reservation:
        existing = self._reservations.get(reservation_id)
        if existing is None:
            raise ReservationNotFoundError(f"Reservation {reservation_id} not found")

        merged = Reservation.model_validate(
            {**existing.model_dump(), **normalize_reservation_fields(fields), "id": reservation_id, "timer": None}
        )
        conflict = find_conflict(self._reservations.values(), merged)
        if conflict is not None:
            raise SlotUnavailableError(
                f"Reservation {reservation_id} conflicts with {conflict.id}"
            )
        self._reservations[reservation_id] = merged
        logger.info("Reservation updated: %s (%s)", reservation_id, ", ".join(fields))
        return merged.model_copy(deep=True)

    async def delete_reservation(self, reservation_id: str) -> None:
        if self._reservations.pop(reservation_id, None) is None:
            raise ReservationNotFoundError(f"Reservation {reservation_id} not found")
        logger.info("Reservation deleted: %s", reservation_id)

    # ------------------------------------------------------------------ #
    # Auth
    # ------------------------------------------------------------------ #

    async def login(self, name: str, password: str) -> User:
        entry = self._users.get(name)
        if entry is None or entry[0] != password:
            raise AuthError(f"Login failed for {name!r}")
        return entry[1].model_copy(update={"token": uuid.uuid4().hex})
