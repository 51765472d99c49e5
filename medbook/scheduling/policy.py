"""Time-window rules for cancelling and rescheduling.

``hours_until`` combines the stored calendar date with the stored
wall-clock start time and subtracts the current instant. Both cutoffs are
inclusive: a request exactly at the threshold is still allowed.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from medbook.scheduling.errors import PolicyViolationError
from medbook.scheduling.slots import parse_hhmm

CANCEL_WINDOW_HOURS = 2
RESCHEDULE_WINDOW_HOURS = 24


def appointment_start(day: date, start_time: str) -> datetime:
    """Naive local datetime at which the appointment starts."""
    return datetime.combine(day, time()) + timedelta(minutes=parse_hhmm(start_time))


def hours_until(day: date, start_time: str, now: datetime) -> float:
    return (appointment_start(day, start_time) - now).total_seconds() / 3600


def can_cancel(day: date, start_time: str, now: datetime, window_hours: float = CANCEL_WINDOW_HOURS) -> bool:
    return hours_until(day, start_time, now) >= window_hours


def can_reschedule(
    day: date, start_time: str, now: datetime, window_hours: float = RESCHEDULE_WINDOW_HOURS
) -> bool:
    return hours_until(day, start_time, now) >= window_hours


@dataclass(frozen=True)
class BookingPolicy:
    """Cancel/reschedule windows, in hours before the scheduled start."""

    cancel_window_hours: float = CANCEL_WINDOW_HOURS
    reschedule_window_hours: float = RESCHEDULE_WINDOW_HOURS

    def check_cancel(self, day: date, start_time: str, now: datetime) -> None:
        if not can_cancel(day, start_time, now, self.cancel_window_hours):
            raise PolicyViolationError(
                f"Cannot cancel within {self.cancel_window_hours:g} hours of appointment time"
            )

    def check_reschedule(self, day: date, start_time: str, now: datetime) -> None:
        if not can_reschedule(day, start_time, now, self.reschedule_window_hours):
            raise PolicyViolationError(
                f"Cannot reschedule within {self.reschedule_window_hours:g} hours of appointment time"
            )
