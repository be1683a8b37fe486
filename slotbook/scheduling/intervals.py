"""
Interval generation: split an availability span into fixed-size slots.

Boundary policy: only full-length intervals are emitted. If the span is
not a multiple of the step, the trailing remainder is dropped.
"""

from slotbook.errors import InvalidRangeError
from slotbook.utils import MINUTES_PER_DAY, TimeLike, minutes_to_time_str, time_str_to_minutes

DEFAULT_STEP_MINUTES = 15


def generate_intervals(
    start: TimeLike, end: TimeLike, step_minutes: int = DEFAULT_STEP_MINUTES
) -> list[tuple[str, str]]:
    """
    Tile ``[start, end)`` with consecutive ``step_minutes`` intervals.

    Args:
        start: Span start, ``HH:MM`` or ``datetime.time``.
        end: Span end, ``HH:MM`` or ``datetime.time``.
        step_minutes: Interval length in minutes.

    Returns:
        Ordered ``(start, end)`` pairs of ``HH:MM`` strings.

    Raises:
        InvalidRangeError: If the bounds are unparseable, ``start >= end``,
            or ``step_minutes`` is not positive.
    """
    if step_minutes <= 0:
        raise InvalidRangeError(f"step_minutes must be positive, got {step_minutes}")
    try:
        start_min = time_str_to_minutes(start)
        end_min = time_str_to_minutes(end)
    except (ValueError, AttributeError):
        raise InvalidRangeError(f"Invalid time bounds: {start!r} - {end!r}") from None

    if start_min >= end_min:
        raise InvalidRangeError(f"start {start!r} must be before end {end!r}")
    if end_min > MINUTES_PER_DAY:
        raise InvalidRangeError(f"end {end!r} falls outside the calendar day")

    intervals = []
    t = start_min
    while t + step_minutes <= end_min:
        intervals.append((minutes_to_time_str(t), minutes_to_time_str(t + step_minutes)))
        t += step_minutes
    return intervals
