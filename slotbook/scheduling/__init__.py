from slotbook.scheduling.intervals import generate_intervals
from slotbook.scheduling.lifecycle import (
    HoldTrigger,
    ReservationLifecycleManager,
    find_transition,
)
from slotbook.scheduling.merger import (
    ALL_PROVIDERS,
    DayOverview,
    availability_overview,
    filter_providers,
    merge_availability,
)
from slotbook.scheduling.status import TOOLTIP_TEXTS, SlotStatusResult, resolve_slot_status
from slotbook.scheduling.timer import HoldTimer

__all__ = [
    "generate_intervals",
    "merge_availability",
    "filter_providers",
    "availability_overview",
    "DayOverview",
    "ALL_PROVIDERS",
    "resolve_slot_status",
    "SlotStatusResult",
    "TOOLTIP_TEXTS",
    "ReservationLifecycleManager",
    "HoldTrigger",
    "find_transition",
    "HoldTimer",
]
