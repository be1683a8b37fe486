"""
Availability merging across a filtered set of providers.

The reference grid is the union of every filtered provider's own slot
tiling for the date, so a client asking for "any provider" sees every
slot any provider offers, with the same boundaries as that provider's
own view. Windows on one date must share a timezone.

For each slot the free providers are those whose window contains it,
minus providers already holding an active reservation on it. A hold that
is still waiting for its client to choose a provider claims the slot for
all of the providers it was offered.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, NamedTuple, Optional

from slotbook.config import SchedulingConfig, settings
from slotbook.errors import MixedTimezoneError
from slotbook.scheduling.intervals import generate_intervals
from slotbook.scheduling.status import resolve_slot_status
from slotbook.schemas.availability_schema import AvailabilityWindow, Provider
from slotbook.schemas.reservation_schema import Reservation
from slotbook.schemas.slot_schema import ReservationStatus, Slot, TimeRange
from slotbook.utils import format_date, resolve_timezone

logger = logging.getLogger(__name__)

ALL_PROVIDERS = "all_providers"


def filter_providers(providers: Iterable[Provider], selection: str = ALL_PROVIDERS) -> list[Provider]:
    """Apply a client's provider filter: every provider, or one by id."""
    if selection == ALL_PROVIDERS:
        return list(providers)
    return [p for p in providers if p.id == selection]


def _windows_for_day(providers: Iterable[Provider], day: str) -> dict[str, AvailabilityWindow]:
    windows: dict[str, AvailabilityWindow] = {}
    for provider in providers:
        window = provider.window_for(day)
        if window is not None:
            windows[provider.id] = window
    return windows


def _claimed_providers(active: list[Reservation], span: TimeRange, eligible: list[str]) -> set[str]:
    """Provider ids on ``span`` already claimed by active reservations."""
    claimed: set[str] = set()
    for reservation in active:
        if not reservation.slot.same_span(span):
            continue
        if reservation.provider_id is not None:
            claimed.add(reservation.provider_id)
        else:
            claimed.update(reservation.eligible_provider_ids or eligible)
    return claimed


def _day_timezone(windows: dict[str, AvailabilityWindow], day: str) -> str:
    """
    The timezone shared by every window on ``day``.

    Windows are compared by wall-clock ``HH:MM``, so windows published in
    different zones cannot share a grid. Aliases such as ``PST`` count as
    the zone they name.

    Raises:
        MixedTimezoneError: If the windows name different zones.
    """
    zones = {resolve_timezone(w.timezone).key for w in windows.values()}
    if len(zones) > 1:
        raise MixedTimezoneError(f"Windows on {day} span timezones {sorted(zones)}")
    return next(iter(windows.values())).timezone


def _grid(windows: Iterable[AvailabilityWindow], step_minutes: int) -> list[TimeRange]:
    """Every window's own tiling, merged. A span overlapping an earlier one is skipped."""
    spans: set[tuple[str, str]] = set()
    for window in windows:
        spans.update(generate_intervals(window.start, window.end, step_minutes))

    grid: list[TimeRange] = []
    for start, end in sorted(spans):
        span = TimeRange(start=start, end=end)
        if grid and span.start_minutes < grid[-1].end_minutes:
            continue
        grid.append(span)
    return grid


def merge_availability(
    providers: Iterable[Provider],
    day: str,
    reservations: Iterable[Reservation],
    now: Optional[datetime] = None,
    config: Optional[SchedulingConfig] = None,
) -> list[Slot]:
    """
    Compute the bookable slots for ``day`` across ``providers``.

    Args:
        providers: Providers already narrowed by the client's filter.
        day: Date as ``YYYY-MM-DD``.
        reservations: Existing reservations; inactive ones and other dates are ignored.
        now: Current time for the lead-time rule. Defaults to UTC now.
        config: Scheduling settings. Defaults to the global settings.

    Returns:
        Slots sorted by start time. Empty when no provider is open on ``day``.

    Raises:
        MixedTimezoneError: If the providers' windows on ``day`` are in different zones.
    """
    config = config or settings.scheduling
    now = now or datetime.now(timezone.utc)
    day = format_date(day)

    windows = _windows_for_day(providers, day)
    if not windows:
        logger.debug("No availability on %s", day)
        return []

    active = [r for r in reservations if r.is_active and r.date == day]
    query_timezone = _day_timezone(windows, day)

    result: list[Slot] = []
    for span in _grid(windows.values(), config.slot_step_minutes):
        eligible = [pid for pid, window in windows.items() if window.contains(span)]
        claimed = _claimed_providers(active, span, eligible)
        slot = Slot(start=span.start, end=span.end, provider_ids=[pid for pid in eligible if pid not in claimed])
        status, tooltip = resolve_slot_status(
            slot, active, day, now, config.lead_time_hours, query_timezone
        )
        slot.status = status
        slot.tooltip = tooltip

        if slot.provider_ids or slot.status != ReservationStatus.AVAILABLE:
            result.append(slot)

    logger.debug("Merged %d slots for %s across %d providers", len(result), day, len(windows))
    return result


class DayOverview(NamedTuple):
    date: str
    available_slots: int


def availability_overview(
    providers: Iterable[Provider],
    reservations: Iterable[Reservation],
    provider_filter: str = ALL_PROVIDERS,
    now: Optional[datetime] = None,
    config: Optional[SchedulingConfig] = None,
) -> list[DayOverview]:
    """
    Summarize every date the filtered providers are open on.

    Each entry counts the slots still bookable on that date. Dates where
    everything is taken or too soon to book are kept with a zero count,
    so a calendar can mark them busy.
    """
    config = config or settings.scheduling
    now = now or datetime.now(timezone.utc)
    selected = filter_providers(providers, provider_filter)
    reservations = list(reservations)

    days = sorted({w.date for p in selected for w in p.availability})
    overview: list[DayOverview] = []
    for day in days:
        slots = merge_availability(selected, day, reservations, now=now, config=config)
        bookable = sum(1 for s in slots if s.status == ReservationStatus.AVAILABLE)
        overview.append(DayOverview(date=day, available_slots=bookable))
    return overview


def find_slot(slots: Iterable[Slot], span: TimeRange) -> Optional[Slot]:
    """Return the slot matching ``span`` exactly, if present."""
    for slot in slots:
        if slot.same_span(span):
            return slot
    return None
