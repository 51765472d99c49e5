"""Tests for the availability service against async SQLite."""

import uuid
from datetime import date, datetime

import pytest

from medbook.core.models import Appointment, BlockedSlot, Schedule
from medbook.scheduling.availability import AvailabilityService, coerce_date, day_of_week
from medbook.scheduling.errors import ValidationError

SUNDAY = date(2026, 3, 1)
MONDAY = date(2026, 3, 2)


async def _book_row(session, seed, start: str, end: str, status: str = "PENDING") -> Appointment:
    appt = Appointment(
        doctor_id=seed.doctor_id,
        patient_id=seed.patient_id,
        date=MONDAY,
        start_time=start,
        end_time=end,
        status=status,
    )
    session.add(appt)
    await session.commit()
    return appt


class TestHelpers:
    def test_day_of_week_starts_on_sunday(self):
        assert day_of_week(SUNDAY) == 0
        assert day_of_week(MONDAY) == 1
        assert day_of_week(date(2026, 3, 7)) == 6

    def test_coerce_date(self):
        assert coerce_date("2026-03-02") == MONDAY
        assert coerce_date(datetime(2026, 3, 2, 9, 0)) == MONDAY
        with pytest.raises(ValidationError):
            coerce_date("03/02/2026")


class TestDayAvailability:
    async def test_all_slots_free(self, session, seed, availability):
        slots = await availability.get_available_slots(session, seed.doctor_id, MONDAY)

        assert len(slots) == 8
        assert slots[0].start_time == "09:00"
        assert slots[-1].end_time == "13:00"
        assert all(s.is_available for s in slots)

    async def test_active_bookings_taken(self, session, seed, availability):
        await _book_row(session, seed, "09:30", "10:00")
        await _book_row(session, seed, "11:00", "11:30", status="CONFIRMED")

        day = await availability.get_day(session, seed.doctor_id, MONDAY)

        assert day.total_slots == 8
        assert day.available_slots == 6
        assert [s.start_time for s in day.slots if not s.is_available] == ["09:30", "11:00"]

    async def test_inactive_statuses_do_not_hold_slots(self, session, seed, availability):
        await _book_row(session, seed, "09:00", "09:30", status="CANCELLED")
        await _book_row(session, seed, "09:30", "10:00", status="COMPLETED")
        await _book_row(session, seed, "10:00", "10:30", status="NO_SHOW")

        day = await availability.get_day(session, seed.doctor_id, MONDAY)

        assert day.available_slots == 8

    async def test_no_rule_for_weekday(self, session, seed, availability):
        assert await availability.get_available_slots(session, seed.doctor_id, SUNDAY) == []

    async def test_unknown_doctor_is_empty(self, session, seed, availability):
        assert await availability.get_available_slots(session, uuid.uuid4(), MONDAY) == []

    async def test_inactive_rule_ignored(self, session, seed, availability):
        rule = await session.get(Schedule, seed.schedule_id)
        rule.is_active = False
        await session.commit()

        assert await availability.get_available_slots(session, seed.doctor_id, MONDAY) == []

    async def test_full_day_block(self, session, seed, availability):
        session.add(BlockedSlot(doctor_id=seed.doctor_id, date=MONDAY, start_time="00:00", end_time="24:00"))
        await session.commit()

        day = await availability.get_day(session, seed.doctor_id, MONDAY)

        assert day.total_slots == 8
        assert day.available_slots == 0

    async def test_partial_block(self, session, seed, availability):
        session.add(
            BlockedSlot(doctor_id=seed.doctor_id, date=MONDAY, start_time="12:00", end_time="13:00", reason="Lunch")
        )
        await session.commit()

        day = await availability.get_day(session, seed.doctor_id, MONDAY)

        assert day.available_slots == 6

    async def test_multiple_rules_concatenated_in_order(self, session, seed, availability):
        session.add(
            Schedule(doctor_id=seed.doctor_id, day_of_week=1, start_time="14:00", end_time="15:00", slot_duration=20)
        )
        await session.commit()

        slots = await availability.get_available_slots(session, seed.doctor_id, MONDAY)

        assert len(slots) == 11
        assert [s.start_time for s in slots[-3:]] == ["14:00", "14:20", "14:40"]

    async def test_past_slots_today(self, session, seed, clock, availability):
        clock.current = datetime(2026, 3, 2, 10, 15)

        slots = await availability.get_available_slots(session, seed.doctor_id, MONDAY)

        assert [s.start_time for s in slots if s.is_available] == ["10:30", "11:00", "11:30", "12:00", "12:30"]

    async def test_past_date_fully_unavailable(self, session, seed, clock, availability):
        clock.current = datetime(2026, 3, 10, 8, 0)

        day = await availability.get_day(session, seed.doctor_id, MONDAY)

        assert day.total_slots == 8
        assert day.available_slots == 0

    async def test_exclude_appointment(self, session, seed, availability):
        appt = await _book_row(session, seed, "10:00", "10:30")

        slots = await availability.get_available_slots(
            session, seed.doctor_id, MONDAY, exclude_appointment_id=appt.id
        )

        assert all(s.is_available for s in slots)

    async def test_reads_are_idempotent(self, session, seed, availability):
        await _book_row(session, seed, "09:00", "09:30")

        first = await availability.get_available_slots(session, seed.doctor_id, MONDAY)
        second = await availability.get_available_slots(session, seed.doctor_id, MONDAY)

        assert first == second

    async def test_accepts_string_inputs(self, session, seed, availability):
        slots = await availability.get_available_slots(session, str(seed.doctor_id), "2026-03-02")

        assert len(slots) == 8

    async def test_invalid_date(self, session, seed, availability):
        with pytest.raises(ValidationError):
            await availability.get_available_slots(session, seed.doctor_id, "next monday")


class TestWeekAvailability:
    async def test_seven_entries_starting_today(self, session, seed, availability):
        week = await availability.get_week_availability(session, seed.doctor_id)

        assert len(week) == 7
        assert week[0].date == SUNDAY
        assert week[0].day_name == "Today"
        assert [w.day_name for w in week[1:]] == ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

    async def test_counts_match_single_day(self, session, seed, availability):
        await _book_row(session, seed, "09:00", "09:30")

        week = await availability.get_week_availability(session, seed.doctor_id)
        monday = await availability.get_day(session, seed.doctor_id, MONDAY)

        assert week[1].total_slots == monday.total_slots == 8
        assert week[1].available_slots == monday.available_slots == 7
        assert all(w.total_slots == 0 for i, w in enumerate(week) if i != 1)

    async def test_configurable_length(self, session, seed, clock):
        service = AvailabilityService(clock=clock, week_days=3)

        week = await service.get_week_availability(session, seed.doctor_id)

        assert [w.date for w in week] == [date(2026, 3, 1), date(2026, 3, 2), date(2026, 3, 3)]
