"""
Reservation lifecycle: hold -> choose provider -> confirm, or expire / cancel.

Allowed transitions are declared in a table. Every transition is written
through the backend before local state changes, so a failed call leaves
the reservation exactly as it was and raises a typed error.

Usage:
    manager = ReservationLifecycleManager(backend)
    hold = await manager.create_hold("client1", TimeRange(start="08:15", end="08:30"), "2024-06-01")
    await manager.confirm(hold.id)
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Awaitable, Callable, Optional

from slotbook.backend.base import BookingBackend
from slotbook.config import SchedulingConfig, settings
from slotbook.errors import (
    InvalidProviderError,
    InvalidTransitionError,
    ReservationNotFoundError,
    SlotUnavailableError,
)
from slotbook.logging_context import get_session_logger
from slotbook.scheduling.merger import (
    ALL_PROVIDERS,
    DayOverview,
    availability_overview,
    filter_providers,
    find_slot,
    merge_availability,
)
from slotbook.scheduling.timer import HoldTimer
from slotbook.schemas.reservation_schema import Reservation
from slotbook.schemas.slot_schema import ReservationStatus, Slot, TimeRange
from slotbook.utils import format_date, format_date_time

logger = get_session_logger(__name__)


class HoldTrigger(str, Enum):
    """Events that move a reservation through its lifecycle."""

    CHOOSE_PROVIDER = "choose_provider"
    CONFIRM = "confirm"
    CANCEL = "cancel"
    EXPIRE = "expire"


@dataclass(frozen=True)
class Transition:
    """A single valid transition. ``to_status`` None means the reservation is deleted."""

    from_status: ReservationStatus
    trigger: HoldTrigger
    to_status: Optional[ReservationStatus]
    guard: Optional[Callable[[Reservation], bool]] = None
    guard_message: str = ""


TRANSITIONS: list[Transition] = [
    Transition(ReservationStatus.RESERVED, HoldTrigger.CHOOSE_PROVIDER, ReservationStatus.RESERVED,
               guard=lambda r: r.provider_id is None,
               guard_message="a provider is already assigned"),
    Transition(ReservationStatus.RESERVED, HoldTrigger.CONFIRM, ReservationStatus.BOOKED,
               guard=lambda r: r.provider_id is not None,
               guard_message="choose a provider before confirming"),
    Transition(ReservationStatus.RESERVED, HoldTrigger.CANCEL, None),
    Transition(ReservationStatus.BOOKED, HoldTrigger.CANCEL, None),
    Transition(ReservationStatus.RESERVED, HoldTrigger.EXPIRE, ReservationStatus.EXPIRED),
]


def find_transition(reservation: Reservation, trigger: HoldTrigger) -> Transition:
    """
    Look up the transition for ``trigger`` from the reservation's status.

    Raises:
        InvalidTransitionError: If no transition applies or its guard fails.
    """
    blocked: list[str] = []
    for t in TRANSITIONS:
        if t.from_status != reservation.status or t.trigger != trigger:
            continue
        if t.guard is not None and not t.guard(reservation):
            blocked.append(t.guard_message)
            continue
        return t

    reason = f" ({'; '.join(blocked)})" if blocked else ""
    raise InvalidTransitionError(
        f"Cannot {trigger.value} reservation {reservation.id} "
        f"in status '{reservation.status.value}'{reason}",
        user_message=f"Cannot {trigger.value.replace('_', ' ')}: {blocked[0]}." if blocked else None,
    )


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReservationLifecycleManager:
    """
    Owns one session's holds and their countdown timers.

    The manager keeps a local copy of each reservation it created. The
    backend stays authoritative: availability queries always re-read it,
    so a session sees its own writes on the next query.
    """

    def __init__(
        self,
        backend: BookingBackend,
        config: Optional[SchedulingConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
        on_expired: Optional[Callable[[Reservation], Awaitable[None]]] = None,
    ) -> None:
        self._backend = backend
        self._config = config or settings.scheduling
        self._clock = clock or _utc_now
        self._on_expired = on_expired
        self._reservations: dict[str, Reservation] = {}
        self._timers: dict[str, HoldTimer] = {}

    @property
    def reservations(self) -> list[Reservation]:
        """Reservations currently managed by this session."""
        return [r.model_copy(deep=True) for r in self._reservations.values()]

    def get(self, reservation_id: str) -> Reservation:
        return self._local(reservation_id).model_copy(deep=True)

    def has_timer(self, reservation_id: str) -> bool:
        timer = self._timers.get(reservation_id)
        return timer is not None and timer.running

    def _local(self, reservation_id: str) -> Reservation:
        reservation = self._reservations.get(reservation_id)
        if reservation is None:
            raise ReservationNotFoundError(f"Reservation {reservation_id} is not held by this session")
        return reservation

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    async def available_slots(self, day: str, provider_filter: str = ALL_PROVIDERS) -> list[Slot]:
        """Compute the current slot list for ``day`` from the backend."""
        day = format_date(day)
        providers = filter_providers(await self._backend.list_providers(), provider_filter)
        reservations = await self._backend.list_reservations(day)
        return merge_availability(providers, day, reservations, now=self._clock(), config=self._config)

    async def availability_overview(self, provider_filter: str = ALL_PROVIDERS) -> list[DayOverview]:
        """Bookable-slot counts for every date the filtered providers are open on."""
        providers = await self._backend.list_providers()
        reservations = await self._backend.list_reservations()
        return availability_overview(
            providers, reservations, provider_filter, now=self._clock(), config=self._config
        )

    # ------------------------------------------------------------------ #
    # Transitions
    # ------------------------------------------------------------------ #

    async def create_hold(
        self,
        client_id: str,
        slot: TimeRange,
        day: str,
        provider_filter: str = ALL_PROVIDERS,
    ) -> Reservation:
        """
        Place a hold on ``slot`` and start its countdown.

        Availability is checked twice: here against a fresh merge, and
        again by the backend when the reservation is inserted.

        Raises:
            SlotUnavailableError: If the slot is not available at call time.
            NetworkError: If the backend cannot be reached.
        """
        day = format_date(day)
        span = TimeRange(start=slot.start, end=slot.end)
        current = find_slot(await self.available_slots(day, provider_filter), span)
        if current is None or current.status != ReservationStatus.AVAILABLE:
            status = current.status.value if current else "not offered"
            logger.info("Hold rejected on %s %s-%s: %s", day, span.start, span.end, status)
            raise SlotUnavailableError(f"Slot {day} {span.start}-{span.end} is {status}")

        eligible = list(current.provider_ids)
        expires_at = self._clock().astimezone(timezone.utc) + timedelta(
            seconds=self._config.hold_duration_seconds
        )
        draft = Reservation(
            client_id=client_id,
            provider_id=eligible[0] if len(eligible) == 1 else None,
            date=day,
            slot=span,
            status=ReservationStatus.RESERVED,
            expiration_time=format_date_time(expires_at),
            eligible_provider_ids=eligible,
        )
        created = await self._backend.create_reservation(draft)
        created.timer = self._config.hold_duration_seconds
        self._reservations[created.id] = created
        self._start_timer(created.id)

        logger.info(
            "Hold created: %s on %s %s-%s (provider: %s)",
            created.id, day, span.start, span.end, created.provider_id or "to be chosen",
        )
        return created.model_copy(deep=True)

    async def choose_provider(self, reservation_id: str, provider_id: str) -> Reservation:
        """
        Assign the provider of a hold created without one.

        Raises:
            InvalidTransitionError: If the hold is not reserved or already has a provider.
            InvalidProviderError: If ``provider_id`` was not offered for the slot.
        """
        reservation = self._local(reservation_id)
        find_transition(reservation, HoldTrigger.CHOOSE_PROVIDER)
        if provider_id not in reservation.eligible_provider_ids:
            raise InvalidProviderError(
                f"Provider {provider_id} cannot serve {reservation_id}; "
                f"eligible: {reservation.eligible_provider_ids}"
            )

        updated = await self._backend.update_reservation(reservation_id, {"provider_id": provider_id})
        self._replace(reservation, updated)
        logger.info("Provider chosen: %s -> %s", reservation_id, provider_id)
        return self.get(reservation_id)

    async def confirm(self, reservation_id: str) -> Reservation:
        """
        Confirm a hold, booking the slot and stopping its countdown.

        Raises:
            InvalidTransitionError: If the hold is not reserved or has no provider.
        """
        reservation = self._local(reservation_id)
        transition = find_transition(reservation, HoldTrigger.CONFIRM)

        updated = await self._backend.update_reservation(
            reservation_id, {"status": transition.to_status}
        )
        self._stop_timer(reservation_id)
        updated.timer = None
        self._reservations[reservation_id] = updated
        logger.info("Reservation booked: %s", reservation_id)
        return updated.model_copy(deep=True)

    async def cancel(self, reservation_id: str) -> None:
        """
        Delete a held or booked reservation, freeing the slot immediately.

        Raises:
            InvalidTransitionError: If the reservation cannot be cancelled.
        """
        reservation = self._local(reservation_id)
        find_transition(reservation, HoldTrigger.CANCEL)

        await self._backend.delete_reservation(reservation_id)
        self._stop_timer(reservation_id)
        # An expiry tick may have dropped it during the await
        self._reservations.pop(reservation_id, None)
        logger.info("Reservation cancelled: %s", reservation_id)

    async def tick(self, reservation_id: str) -> Reservation:
        """
        Advance a hold's countdown by one second, releasing it at zero.

        Returns:
            The reservation after the tick; status ``expired`` once released.
        """
        reservation = self._local(reservation_id)
        if reservation.status != ReservationStatus.RESERVED or reservation.timer is None:
            raise InvalidTransitionError(
                f"Reservation {reservation_id} has no running hold timer"
            )

        if reservation.timer > 0:
            reservation.timer -= 1
        logger.debug("Hold %s: %ss left", reservation_id, reservation.timer)
        if reservation.timer == 0:
            return await self._expire(reservation)
        return reservation.model_copy(deep=True)

    async def _expire(self, reservation: Reservation) -> Reservation:
        reservation_id = reservation.id
        stored = await self._fetch_stored(reservation)
        if stored is not None and stored.status == ReservationStatus.BOOKED:
            # Confirmed elsewhere (e.g. by the provider) before the timer ran out.
            self._stop_timer(reservation_id)
            self._reservations[reservation_id] = stored
            logger.info("Hold %s was booked before expiry", reservation_id)
            return stored.model_copy(deep=True)

        find_transition(reservation, HoldTrigger.EXPIRE)
        if stored is not None:
            await self._backend.delete_reservation(reservation_id)

        self._stop_timer(reservation_id)
        self._reservations.pop(reservation_id, None)
        expired = reservation.model_copy(
            deep=True, update={"status": ReservationStatus.EXPIRED, "timer": 0}
        )
        logger.info("Hold expired and released: %s", reservation_id)
        if self._on_expired is not None:
            await self._on_expired(expired)
        return expired

    async def _fetch_stored(self, reservation: Reservation) -> Optional[Reservation]:
        for stored in await self._backend.list_reservations(reservation.date):
            if stored.id == reservation.id:
                return stored
        return None

    def _replace(self, reservation: Reservation, updated: Reservation) -> None:
        updated.timer = reservation.timer
        self._reservations[reservation.id] = updated

    # ------------------------------------------------------------------ #
    # Timers
    # ------------------------------------------------------------------ #

    def _start_timer(self, reservation_id: str) -> None:
        timer = HoldTimer(reservation_id, self._on_timer_tick, self._config.tick_interval_seconds)
        self._timers[reservation_id] = timer
        timer.start()

    def _stop_timer(self, reservation_id: str) -> None:
        timer = self._timers.pop(reservation_id, None)
        if timer is not None:
            timer.cancel()

    async def _on_timer_tick(self, reservation_id: str) -> bool:
        current = self._reservations.get(reservation_id)
        if current is None or current.status != ReservationStatus.RESERVED or current.timer is None:
            return False
        reservation = await self.tick(reservation_id)
        return reservation.status == ReservationStatus.RESERVED

    def close(self) -> None:
        """Stop every running countdown. Call on session teardown."""
        for reservation_id in list(self._timers):
            self._stop_timer(reservation_id)
        logger.debug("Lifecycle manager closed")
