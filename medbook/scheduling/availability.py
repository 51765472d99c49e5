"""Availability service.

Loads a doctor's active schedule rules, the day's PENDING/CONFIRMED
appointments and blocked ranges, then runs the slot generator and the
overlap filter. Results are computed per call and never cached, since
bookings and blocks change between reads.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta
from typing import Callable, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from medbook.core.repository import AppointmentRepository, BlockedSlotRepository, ScheduleRepository
from medbook.scheduling.errors import ValidationError
from medbook.scheduling.models import DayAvailability, SlotRange, TimeSlot, WeekEntry
from medbook.scheduling.overlap import mark_availability
from medbook.scheduling.slots import MINUTES_PER_DAY, generate_slots

logger = logging.getLogger(__name__)

# Indexed by day_of_week (0=Sunday)
DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


def day_of_week(day: date) -> int:
    """Weekday number with 0=Sunday..6=Saturday."""
    return day.isoweekday() % 7


def coerce_date(value: Union[date, str]) -> date:
    """Accept a ``date`` or a ``YYYY-MM-DD`` string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date {value!r}. Use YYYY-MM-DD")


def coerce_uuid(value: Union[uuid.UUID, str], name: str = "id") -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValidationError(f"Invalid {name}: {value}")


class AvailabilityService:
    """Derives bookable slots for a doctor and date."""

    def __init__(
        self,
        clock: Callable[[], datetime] = datetime.now,
        week_days: int = 7,
    ) -> None:
        self._clock = clock
        self.week_days = week_days

    def now(self) -> datetime:
        """Current local wall-clock time."""
        return self._clock()

    def _now_cutoff(self, day: date) -> Optional[int]:
        """Minute-of-day at or before which slots on *day* count as past."""
        now = self.now()
        today = now.date()
        if day == today:
            return now.hour * 60 + now.minute
        if day < today:
            return MINUTES_PER_DAY
        return None

    async def get_available_slots(
        self,
        session: AsyncSession,
        doctor_id: Union[uuid.UUID, str],
        day: Union[date, str],
        exclude_appointment_id: uuid.UUID | None = None,
    ) -> list[TimeSlot]:
        """Return every slot for *day*, each flagged available or not.

        A doctor with no active rule on that weekday (including an unknown
        doctor) yields an empty list.
        """
        day = coerce_date(day)
        doctor_id = coerce_uuid(doctor_id, "doctor_id")

        rules = await ScheduleRepository(session).list_active_for_day(doctor_id, day_of_week(day))
        if not rules:
            return []

        candidates: list[SlotRange] = []
        for rule in rules:
            candidates.extend(generate_slots(rule.start_time, rule.end_time, rule.slot_duration))

        booked = await AppointmentRepository(session).list_active_for_date(
            doctor_id, day, exclude_id=exclude_appointment_id
        )
        blocked = await BlockedSlotRepository(session).list_for_date(doctor_id, day)

        slots = mark_availability(
            candidates,
            booked=booked,
            blocked=blocked,
            now_minutes=self._now_cutoff(day),
        )
        logger.debug(
            "Availability doctor=%s date=%s rules=%d slots=%d booked=%d blocked=%d",
            doctor_id, day, len(rules), len(slots), len(booked), len(blocked),
        )
        return slots

    async def get_day(
        self,
        session: AsyncSession,
        doctor_id: Union[uuid.UUID, str],
        day: Union[date, str],
    ) -> DayAvailability:
        """Slots for one day plus the total/available counts."""
        day = coerce_date(day)
        doctor_id = coerce_uuid(doctor_id, "doctor_id")
        slots = await self.get_available_slots(session, doctor_id, day)
        return DayAvailability(
            doctor_id=doctor_id,
            date=day,
            slots=slots,
            total_slots=len(slots),
            available_slots=sum(1 for s in slots if s.is_available),
        )

    async def get_week_availability(
        self,
        session: AsyncSession,
        doctor_id: Union[uuid.UUID, str],
    ) -> list[WeekEntry]:
        """One entry per day starting today, each derived from the single-day result."""
        doctor_id = coerce_uuid(doctor_id, "doctor_id")
        today = self.now().date()

        week: list[WeekEntry] = []
        for i in range(self.week_days):
            day = today + timedelta(days=i)
            slots = await self.get_available_slots(session, doctor_id, day)
            week.append(
                WeekEntry(
                    date=day,
                    day_name="Today" if i == 0 else DAY_NAMES[day_of_week(day)],
                    total_slots=len(slots),
                    available_slots=sum(1 for s in slots if s.is_available),
                )
            )
        return week
