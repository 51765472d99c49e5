"""Slot generation from a weekly schedule window.

Times are wall-clock ``HH:MM`` strings with minute resolution. No time
zone is attached and none is applied.
"""

import re

from medbook.scheduling.errors import ValidationError
from medbook.scheduling.models import SlotRange

MINUTES_PER_DAY = 24 * 60

_HHMM = re.compile(r"^(\d{2}):(\d{2})$")


def parse_hhmm(value: str) -> int:
    """Parse ``HH:MM`` into minutes since midnight.

    ``24:00`` is accepted as the end of the day.
    """
    m = _HHMM.match(value or "")
    if not m:
        raise ValidationError(f"Invalid time {value!r}. Use HH:MM")
    hours, minutes = int(m.group(1)), int(m.group(2))
    if minutes > 59 or hours > 24 or (hours == 24 and minutes != 0):
        raise ValidationError(f"Invalid time {value!r}. Use HH:MM")
    return hours * 60 + minutes


def format_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def validate_window(start_time: str, end_time: str) -> tuple[int, int]:
    """Return (start, end) in minutes, requiring start < end."""
    start = parse_hhmm(start_time)
    end = parse_hhmm(end_time)
    if start >= end:
        raise ValidationError(f"Start time {start_time} must be before end time {end_time}")
    return start, end


def generate_slots(start_time: str, end_time: str, slot_duration: int) -> list[SlotRange]:
    """Split ``[start_time, end_time)`` into contiguous slots of *slot_duration* minutes.

    A trailing remainder shorter than *slot_duration* is dropped, so a
    window of W minutes yields exactly ``W // slot_duration`` slots.
    """
    if slot_duration is None or slot_duration <= 0:
        raise ValidationError(f"Slot duration must be a positive number of minutes, got {slot_duration}")
    start, end = validate_window(start_time, end_time)

    slots: list[SlotRange] = []
    current = start
    while current + slot_duration <= end:
        slots.append(
            SlotRange(
                start_time=format_hhmm(current),
                end_time=format_hhmm(current + slot_duration),
            )
        )
        current += slot_duration
    return slots
