"""CRUD repositories for doctors, patients, schedules and appointments."""

from __future__ import annotations

import uuid
from datetime import date
from typing import Any, Optional, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from medbook.core.models import (
    ACTIVE_STATUSES,
    Appointment,
    BlockedSlot,
    Doctor,
    FamilyMember,
    Patient,
    Schedule,
)


class DoctorRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **kwargs) -> Doctor:
        doctor = Doctor(**kwargs)
        self.session.add(doctor)
        await self.session.flush()
        return doctor

    async def get_by_id(self, doctor_id: uuid.UUID) -> Optional[Doctor]:
        return await self.session.get(Doctor, doctor_id)

    async def get_by_user_id(self, user_id: str) -> Optional[Doctor]:
        result = await self.session.execute(select(Doctor).where(Doctor.user_id == user_id))
        return result.scalar_one_or_none()


class PatientRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **kwargs) -> Patient:
        patient = Patient(**kwargs)
        self.session.add(patient)
        await self.session.flush()
        return patient

    async def get_by_id(self, patient_id: uuid.UUID) -> Optional[Patient]:
        return await self.session.get(Patient, patient_id)

    async def get_by_user_id(self, user_id: str) -> Optional[Patient]:
        result = await self.session.execute(select(Patient).where(Patient.user_id == user_id))
        return result.scalar_one_or_none()


class FamilyMemberRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **kwargs) -> FamilyMember:
        member = FamilyMember(**kwargs)
        self.session.add(member)
        await self.session.flush()
        return member

    async def get_for_patient(self, member_id: uuid.UUID, patient_id: uuid.UUID) -> Optional[FamilyMember]:
        stmt = select(FamilyMember).where(
            FamilyMember.id == member_id,
            FamilyMember.patient_id == patient_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()


class ScheduleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **kwargs) -> Schedule:
        schedule = Schedule(**kwargs)
        self.session.add(schedule)
        await self.session.flush()
        return schedule

    async def get_by_id(self, schedule_id: uuid.UUID) -> Optional[Schedule]:
        return await self.session.get(Schedule, schedule_id)

    async def list_by_doctor(self, doctor_id: uuid.UUID) -> Sequence[Schedule]:
        stmt = (
            select(Schedule)
            .where(Schedule.doctor_id == doctor_id)
            .order_by(Schedule.day_of_week, Schedule.start_time)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def list_active_for_day(self, doctor_id: uuid.UUID, day_of_week: int) -> Sequence[Schedule]:
        """Active rules for one weekday, in rule order (start time, then creation)."""
        stmt = (
            select(Schedule)
            .where(
                Schedule.doctor_id == doctor_id,
                Schedule.day_of_week == day_of_week,
                Schedule.is_active.is_(True),
            )
            .order_by(Schedule.start_time, Schedule.created_at)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def update(self, schedule_id: uuid.UUID, **kwargs) -> Optional[Schedule]:
        schedule = await self.get_by_id(schedule_id)
        if not schedule:
            return None
        for k, v in kwargs.items():
            if v is not None:
                setattr(schedule, k, v)
        await self.session.flush()
        return schedule


class BlockedSlotRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **kwargs) -> BlockedSlot:
        blocked = BlockedSlot(**kwargs)
        self.session.add(blocked)
        await self.session.flush()
        return blocked

    async def get_by_id(self, blocked_id: uuid.UUID) -> Optional[BlockedSlot]:
        return await self.session.get(BlockedSlot, blocked_id)

    async def list_for_date(self, doctor_id: uuid.UUID, day: date) -> Sequence[BlockedSlot]:
        stmt = select(BlockedSlot).where(BlockedSlot.doctor_id == doctor_id, BlockedSlot.date == day)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def list_range(self, doctor_id: uuid.UUID, start: date, end: date) -> Sequence[BlockedSlot]:
        stmt = (
            select(BlockedSlot)
            .where(
                BlockedSlot.doctor_id == doctor_id,
                BlockedSlot.date >= start,
                BlockedSlot.date <= end,
            )
            .order_by(BlockedSlot.date, BlockedSlot.start_time)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def delete(self, blocked_id: uuid.UUID) -> bool:
        result = await self.session.execute(delete(BlockedSlot).where(BlockedSlot.id == blocked_id))
        return result.rowcount > 0


class AppointmentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **kwargs) -> Appointment:
        appt = Appointment(**kwargs)
        self.session.add(appt)
        await self.session.flush()
        return appt

    async def get_by_id(self, appointment_id: uuid.UUID) -> Optional[Appointment]:
        """Load the row fresh from the database, overwriting any cached state."""
        return await self.session.get(Appointment, appointment_id, populate_existing=True)

    async def list_active_for_date(
        self,
        doctor_id: uuid.UUID,
        day: date,
        exclude_id: uuid.UUID | None = None,
    ) -> Sequence[Appointment]:
        """PENDING/CONFIRMED appointments for one doctor on one date."""
        stmt = select(Appointment).where(
            Appointment.doctor_id == doctor_id,
            Appointment.date == day,
            Appointment.status.in_(ACTIVE_STATUSES),
        )
        if exclude_id is not None:
            stmt = stmt.where(Appointment.id != exclude_id)
        result = await self.session.execute(stmt.order_by(Appointment.start_time))
        return result.scalars().all()

    async def find_active_at(
        self,
        doctor_id: uuid.UUID,
        day: date,
        start_time: str,
        exclude_id: uuid.UUID | None = None,
    ) -> Optional[Appointment]:
        """Return the PENDING/CONFIRMED appointment holding the exact (doctor, date, start) slot."""
        stmt = select(Appointment).where(
            Appointment.doctor_id == doctor_id,
            Appointment.date == day,
            Appointment.start_time == start_time,
            Appointment.status.in_(ACTIVE_STATUSES),
        )
        if exclude_id is not None:
            stmt = stmt.where(Appointment.id != exclude_id)
        result = await self.session.execute(stmt.limit(1))
        return result.scalars().first()

    async def compare_and_set(
        self,
        appointment_id: uuid.UUID,
        expected_status: str,
        **values: Any,
    ) -> bool:
        """Update the row only if its status is still *expected_status*.

        Returns False when the row changed underneath the caller.
        """
        stmt = (
            update(Appointment)
            .where(Appointment.id == appointment_id, Appointment.status == expected_status)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1
