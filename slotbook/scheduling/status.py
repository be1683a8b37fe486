"""
Slot status resolution.

Decision order (first match wins):
  1. starts before ``now + lead_time_hours``   -> disabled
  2. at least one provider is still free       -> available
  3. an active booked reservation on the slot  -> booked
  4. an active reserved (held) reservation     -> reserved
  5. otherwise                                 -> available

A slot built without a provider list skips rule 2, so standalone callers
get the plain lead-time / booked / reserved / available order.
"""

from datetime import datetime, timedelta
from typing import Iterable, NamedTuple

from slotbook.schemas.reservation_schema import Reservation
from slotbook.schemas.slot_schema import ReservationStatus, Slot
from slotbook.utils import local_datetime, resolve_timezone

DEFAULT_LEAD_TIME_HOURS = 24

TOOLTIP_TEXTS: dict[ReservationStatus, str] = {
    ReservationStatus.DISABLED: "Please book at least 24 hours ahead",
    ReservationStatus.RESERVED: "This slot is already reserved",
    ReservationStatus.BOOKED: "This slot is already booked",
    ReservationStatus.AVAILABLE: "Click to book",
}


class SlotStatusResult(NamedTuple):
    status: ReservationStatus
    tooltip: str


def _result(status: ReservationStatus) -> SlotStatusResult:
    return SlotStatusResult(status=status, tooltip=TOOLTIP_TEXTS[status])


def is_within_lead_time(
    day: str,
    start: str,
    now: datetime,
    lead_time_hours: int = DEFAULT_LEAD_TIME_HOURS,
    timezone: str = "UTC",
) -> bool:
    """True if a slot starting at ``start`` on ``day`` is too soon to book.

    A slot starting exactly ``lead_time_hours`` from now is bookable.
    A naive ``now`` is read as wall-clock time in ``timezone``.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=resolve_timezone(timezone))
    slot_start = local_datetime(day, start, timezone)
    return slot_start < now + timedelta(hours=lead_time_hours)


def resolve_slot_status(
    slot: Slot,
    reservations: Iterable[Reservation],
    day: str,
    now: datetime,
    lead_time_hours: int = DEFAULT_LEAD_TIME_HOURS,
    timezone: str = "UTC",
) -> SlotStatusResult:
    """Resolve the display status and tooltip of ``slot`` on ``day``.

    Pure: identical inputs always produce identical output.
    """
    if is_within_lead_time(day, slot.start, now, lead_time_hours, timezone):
        return _result(ReservationStatus.DISABLED)

    if slot.provider_ids:
        return _result(ReservationStatus.AVAILABLE)

    occupying = [r for r in reservations if r.occupies(day, slot)]
    if any(r.status == ReservationStatus.BOOKED for r in occupying):
        return _result(ReservationStatus.BOOKED)
    if any(r.status == ReservationStatus.RESERVED for r in occupying):
        return _result(ReservationStatus.RESERVED)
    return _result(ReservationStatus.AVAILABLE)
