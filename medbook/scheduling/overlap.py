"""Overlap filter: marks generated slots available or unavailable.

Ranges are half-open. ``[s1, e1)`` and ``[s2, e2)`` overlap iff
``s1 < e2 and s2 < e1``, so a slot ending exactly when a booking starts
is still free.
"""

from typing import Iterable, Optional, Protocol, Sequence

from medbook.scheduling.models import SlotRange, TimeSlot
from medbook.scheduling.slots import parse_hhmm


class TimeRange(Protocol):
    start_time: str
    end_time: str


def times_overlap(start1: int, end1: int, start2: int, end2: int) -> bool:
    """Check if two half-open minute ranges overlap."""
    return start1 < end2 and start2 < end1


def _to_minutes(ranges: Iterable[TimeRange]) -> list[tuple[int, int]]:
    return [(parse_hhmm(r.start_time), parse_hhmm(r.end_time)) for r in ranges]


def mark_availability(
    slots: Sequence[SlotRange],
    booked: Iterable[TimeRange] = (),
    blocked: Iterable[TimeRange] = (),
    now_minutes: Optional[int] = None,
) -> list[TimeSlot]:
    """Annotate *slots* with ``is_available``, preserving their order.

    A slot is unavailable when it starts at or before *now_minutes* (pass
    ``None`` for any day other than today), overlaps a booked range, or
    overlaps a blocked range.
    """
    booked_ranges = _to_minutes(booked)
    blocked_ranges = _to_minutes(blocked)

    result: list[TimeSlot] = []
    for slot in slots:
        start = parse_hhmm(slot.start_time)
        end = parse_hhmm(slot.end_time)

        if now_minutes is not None and start <= now_minutes:
            is_available = False
        elif any(times_overlap(start, end, b_start, b_end) for b_start, b_end in booked_ranges):
            is_available = False
        elif any(times_overlap(start, end, b_start, b_end) for b_start, b_end in blocked_ranges):
            is_available = False
        else:
            is_available = True

        result.append(
            TimeSlot(start_time=slot.start_time, end_time=slot.end_time, is_available=is_available)
        )
    return result
