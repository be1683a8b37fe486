"""
Client session: browse slots, hold one, pick a provider, confirm or cancel.

Every action returns an ActionResult so UI code never handles a bare
exception. Expired holds are reported through ``notices``.
"""

from datetime import datetime
from typing import Callable, Optional

from slotbook.backend.base import BookingBackend
from slotbook.config import SchedulingConfig
from slotbook.errors import BookingError
from slotbook.logging_context import get_session_logger, session_scope
from slotbook.scheduling.lifecycle import ReservationLifecycleManager
from slotbook.scheduling.merger import ALL_PROVIDERS
from slotbook.schemas.availability_schema import Provider
from slotbook.schemas.reservation_schema import Reservation, User, UserRole
from slotbook.schemas.slot_schema import TimeRange
from slotbook.sessions.results import ActionResult, failure, run_action

logger = get_session_logger(__name__)


def _dump(reservation: Reservation) -> dict:
    return reservation.model_dump(mode="json")


class ClientSession:
    """One client's logical booking session."""

    def __init__(
        self,
        backend: BookingBackend,
        user: User,
        config: Optional[SchedulingConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if user.role != UserRole.CLIENT:
            raise ValueError(f"ClientSession requires a client user, got {user.role.value}")
        self.user = user
        self.session_id = f"SESSION-{user.id}"
        self.provider_filter = ALL_PROVIDERS
        self.notices: list[str] = []
        self._backend = backend
        self._manager = ReservationLifecycleManager(
            backend, config=config, clock=clock, on_expired=self._on_hold_expired
        )

    @property
    def manager(self) -> ReservationLifecycleManager:
        return self._manager

    async def _on_hold_expired(self, reservation: Reservation) -> None:
        self.notices.append(
            f"Your hold on {reservation.date} {reservation.slot.start}-{reservation.slot.end} "
            "expired and the slot was released."
        )

    # ------------------------------------------------------------------ #
    # Browsing
    # ------------------------------------------------------------------ #

    async def list_providers(self) -> list[Provider]:
        return await self._backend.list_providers()

    def select_provider(self, provider_id: str = ALL_PROVIDERS) -> None:
        """Narrow slot queries to one provider, or all of them."""
        self.provider_filter = provider_id
        with session_scope(self.session_id):
            logger.debug("Provider filter set to %s", provider_id)

    async def available_slots(self, day: str) -> ActionResult:
        def _ok(slots: list) -> ActionResult:
            if not slots:
                return {"message": f"No availability on {day}.", "slots": []}
            return {
                "message": f"{len(slots)} time slots on {day}.",
                "slots": [s.model_dump(mode="json") for s in slots],
            }

        return await run_action(
            self._manager.available_slots(day, self.provider_filter),
            _ok,
            "Slot query",
            session_id=self.session_id,
        )

    async def availability_overview(self) -> ActionResult:
        """Dates the selected providers are open on, with bookable-slot counts."""

        def _ok(days: list) -> ActionResult:
            open_days = sum(1 for d in days if d.available_slots)
            return {
                "message": f"{open_days} of {len(days)} dates have free slots.",
                "days": [d._asdict() for d in days],
            }

        return await run_action(
            self._manager.availability_overview(self.provider_filter),
            _ok,
            "Availability overview",
            session_id=self.session_id,
        )

    # ------------------------------------------------------------------ #
    # Hold lifecycle
    # ------------------------------------------------------------------ #

    async def hold_slot(self, day: str, start: str, end: str) -> ActionResult:
        """Hold ``start``-``end`` on ``day`` for this client."""
        try:
            span = TimeRange(start=start, end=end)
        except ValueError:
            return {"success": False, "message": f"Invalid slot {start}-{end}.", "error": "ValidationError"}

        def _ok(reservation: Reservation) -> ActionResult:
            if reservation.provider_id is None:
                message = (
                    f"Slot {start}-{end} on {day} is held. Choose one of: "
                    f"{', '.join(reservation.eligible_provider_ids)}."
                )
            else:
                message = f"Slot {start}-{end} on {day} is held with {reservation.provider_id}."
            return {"message": message, "reservation": _dump(reservation)}

        return await run_action(
            self._manager.create_hold(self.user.id, span, day, self.provider_filter),
            _ok,
            "Hold",
            session_id=self.session_id,
        )

    async def choose_provider(self, reservation_id: str, provider_id: str) -> ActionResult:
        return await run_action(
            self._manager.choose_provider(reservation_id, provider_id),
            lambda r: {"message": f"Provider {provider_id} selected.", "reservation": _dump(r)},
            "Provider choice",
            session_id=self.session_id,
        )

    async def confirm(self, reservation_id: str) -> ActionResult:
        return await run_action(
            self._manager.confirm(reservation_id),
            lambda r: {
                "message": f"Booked {r.date} {r.slot.start}-{r.slot.end} with {r.provider_id}.",
                "reservation": _dump(r),
            },
            "Confirmation",
            session_id=self.session_id,
        )

    async def cancel(self, reservation_id: str) -> ActionResult:
        return await run_action(
            self._manager.cancel(reservation_id),
            lambda _: {"message": f"Reservation {reservation_id} has been cancelled."},
            "Cancellation",
            session_id=self.session_id,
        )

    async def my_reservations(self) -> ActionResult:
        async def _load() -> list[Reservation]:
            stored = await self._backend.list_reservations()
            return [r for r in stored if r.client_id == self.user.id]

        return await run_action(
            _load(),
            lambda rs: {
                "message": f"{len(rs)} reservations.",
                "reservations": [_dump(r) for r in rs],
            },
            "Reservation listing",
            session_id=self.session_id,
        )

    def close(self) -> None:
        """Tear down the session, stopping all hold timers."""
        self._manager.close()


async def login(backend: BookingBackend, name: str, password: str) -> ActionResult:
    """Authenticate against the backend."""
    try:
        user = await backend.login(name, password)
    except BookingError as exc:
        logger.warning("Login failed for %s: %s", name, exc)
        return failure(exc)
    logger.info("User logged in: %s (%s)", user.name, user.role.value)
    return {"success": True, "message": f"Welcome, {user.name}.", "user": user.model_dump(mode="json")}
