"""Provider session: publish availability and manage incoming reservations."""

from typing import Optional

from pydantic import ValidationError

from slotbook.backend.base import BookingBackend
from slotbook.errors import ReservationNotFoundError
from slotbook.logging_context import get_session_logger, session_scope
from slotbook.scheduling.lifecycle import HoldTrigger, find_transition
from slotbook.schemas.availability_schema import AvailabilityWindow
from slotbook.schemas.reservation_schema import Reservation, User, UserRole
from slotbook.sessions.results import ActionResult, run_action

logger = get_session_logger(__name__)


class ProviderSession:
    """One provider's logical session."""

    def __init__(self, backend: BookingBackend, user: User) -> None:
        if user.role != UserRole.PROVIDER:
            raise ValueError(f"ProviderSession requires a provider user, got {user.role.value}")
        self.user = user
        self.session_id = f"SESSION-{user.id}"
        self._backend = backend

    # ------------------------------------------------------------------ #
    # Availability
    # ------------------------------------------------------------------ #

    async def publish_availability(
        self, day: str, start: str, end: str, timezone: Optional[str] = None
    ) -> ActionResult:
        """Publish (or replace) this provider's window on ``day``."""
        fields = {"provider_id": self.user.id, "date": day, "start": start, "end": end}
        if timezone is not None:
            fields["timezone"] = timezone
        try:
            window = AvailabilityWindow(**fields)
        except ValidationError as exc:
            with session_scope(self.session_id):
                logger.info("Rejected availability %s %s-%s: %s", day, start, end, exc.errors()[0]["msg"])
            return {
                "success": False,
                "message": f"Invalid availability {day} {start}-{end}.",
                "error": "ValidationError",
            }

        return await run_action(
            self._backend.put_availability(self.user.id, window),
            lambda windows: {
                "message": "Availability submitted successfully.",
                "windows": [w.model_dump(mode="json") for w in windows],
            },
            "Availability update",
            session_id=self.session_id,
        )

    async def remove_availability(self, day: str) -> ActionResult:
        return await run_action(
            self._backend.delete_availability(self.user.id, day),
            lambda windows: {
                "message": "Availability deleted successfully.",
                "windows": [w.model_dump(mode="json") for w in windows],
            },
            "Availability removal",
            session_id=self.session_id,
        )

    async def my_availability(self) -> list[AvailabilityWindow]:
        return await self._backend.get_availability(self.user.id)

    # ------------------------------------------------------------------ #
    # Reservations
    # ------------------------------------------------------------------ #

    async def reservations(self, day: Optional[str] = None) -> list[Reservation]:
        """Reservations assigned to, or still open to, this provider."""
        stored = await self._backend.list_reservations(day)
        return [
            r for r in stored
            if r.provider_id == self.user.id
            or (r.provider_id is None and self.user.id in r.eligible_provider_ids)
        ]

    async def _own(self, reservation_id: str) -> Reservation:
        for reservation in await self.reservations():
            if reservation.id == reservation_id and reservation.provider_id == self.user.id:
                return reservation
        raise ReservationNotFoundError(
            f"Reservation {reservation_id} is not assigned to {self.user.id}"
        )

    async def confirm_reservation(self, reservation_id: str) -> ActionResult:
        """Book a client's hold on this provider."""

        async def _confirm() -> Reservation:
            reservation = await self._own(reservation_id)
            transition = find_transition(reservation, HoldTrigger.CONFIRM)
            return await self._backend.update_reservation(
                reservation_id, {"status": transition.to_status}
            )

        return await run_action(
            _confirm(),
            lambda r: {
                "message": f"Reservation {r.id} confirmed.",
                "reservation": r.model_dump(mode="json"),
            },
            "Provider confirmation",
            session_id=self.session_id,
        )

    async def cancel_reservation(self, reservation_id: str) -> ActionResult:
        async def _cancel() -> None:
            reservation = await self._own(reservation_id)
            find_transition(reservation, HoldTrigger.CANCEL)
            await self._backend.delete_reservation(reservation_id)

        return await run_action(
            _cancel(),
            lambda _: {"message": f"Reservation {reservation_id} has been cancelled."},
            "Provider cancellation",
            session_id=self.session_id,
        )
