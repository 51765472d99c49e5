"""Booking state machine.

    PENDING --(doctor)--> CONFIRMED --(doctor)--> COMPLETED | NO_SHOW
    PENDING | CONFIRMED --(patient or doctor)--> CANCELLED

Booking re-runs the availability check and the exact-slot conflict check
inside the same transaction that inserts the row. The partial unique
index on (doctor_id, date, start_time) over active statuses backs this up:
when two bookers race, the loser's INSERT fails and surfaces as a
``ConflictError``. Nothing is retried here.

Lifecycle events go out only after the transaction holding the change
commits; a rolled-back request notifies nobody.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from medbook.core.database import after_commit, unit_of_work
from medbook.core.models import ACTIVE_STATUSES, Appointment
from medbook.core.repository import (
    AppointmentRepository,
    DoctorRepository,
    FamilyMemberRepository,
    PatientRepository,
)
from medbook.scheduling.availability import AvailabilityService, coerce_date, coerce_uuid
from medbook.scheduling.errors import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from medbook.scheduling.events import AppointmentEvent, AppointmentEventType, EventDispatcher
from medbook.scheduling.models import (
    Actor,
    ActorRole,
    AppointmentStatus,
    BookingRequest,
    BookingType,
)
from medbook.scheduling.policy import BookingPolicy
from medbook.scheduling.slots import validate_window

logger = logging.getLogger(__name__)

# target status -> statuses it may be reached from (doctor only)
DOCTOR_TRANSITIONS: dict[AppointmentStatus, frozenset[str]] = {
    AppointmentStatus.CONFIRMED: frozenset({AppointmentStatus.PENDING.value}),
    AppointmentStatus.COMPLETED: frozenset({AppointmentStatus.CONFIRMED.value}),
    AppointmentStatus.NO_SHOW: frozenset({AppointmentStatus.CONFIRMED.value}),
}

_STATUS_EVENTS = {
    AppointmentStatus.CONFIRMED: AppointmentEventType.CONFIRMED,
    AppointmentStatus.COMPLETED: AppointmentEventType.COMPLETED,
    AppointmentStatus.NO_SHOW: AppointmentEventType.NO_SHOW,
}


def _parse_status(value: Union[AppointmentStatus, str]) -> AppointmentStatus:
    try:
        return AppointmentStatus(value)
    except ValueError:
        raise ValidationError(f"Invalid status: {value}")


class BookingService:
    """Books, confirms, completes, cancels and reschedules appointments."""

    def __init__(
        self,
        availability: Optional[AvailabilityService] = None,
        policy: Optional[BookingPolicy] = None,
        events: Optional[EventDispatcher] = None,
    ) -> None:
        self.availability = availability or AvailabilityService()
        self.policy = policy or BookingPolicy()
        self.events = events or EventDispatcher()

    # ------------------------------------------------------------------
    # Book
    # ------------------------------------------------------------------

    async def book(
        self,
        session: AsyncSession,
        request: BookingRequest,
        patient_id: Union[uuid.UUID, str],
    ) -> Appointment:
        """Create a PENDING appointment, or raise ``ConflictError`` if the slot is taken."""
        patient_id = coerce_uuid(patient_id, "patient_id")
        validate_window(request.start_time, request.end_time)
        if request.booking_type == BookingType.FAMILY_MEMBER and not request.family_member_id:
            raise ValidationError("Family member ID required for family booking")

        try:
            async with unit_of_work(session):
                doctor = await DoctorRepository(session).get_by_id(request.doctor_id)
                if not doctor or not doctor.is_active or not doctor.is_verified:
                    raise NotFoundError("Doctor not found or unavailable")

                patient = await PatientRepository(session).get_by_id(patient_id)
                if not patient:
                    raise NotFoundError("Patient profile not found")

                family_member_id = None
                if request.booking_type == BookingType.FAMILY_MEMBER:
                    member = await FamilyMemberRepository(session).get_for_patient(
                        request.family_member_id, patient.id
                    )
                    if not member:
                        raise NotFoundError("Family member not found")
                    family_member_id = member.id

                await self._ensure_slot_free(session, doctor.id, request.date, request.start_time, request.end_time)
                appt = await AppointmentRepository(session).create(
                    doctor_id=doctor.id,
                    patient_id=patient.id,
                    family_member_id=family_member_id,
                    date=request.date,
                    start_time=request.start_time,
                    end_time=request.end_time,
                    reason=request.reason,
                    booking_type=request.booking_type.value,
                    status=AppointmentStatus.PENDING.value,
                )
        except IntegrityError:
            logger.info(
                "Booking lost race doctor=%s date=%s start=%s", request.doctor_id, request.date, request.start_time
            )
            raise ConflictError()

        logger.info(
            "Booked appointment=%s doctor=%s patient=%s date=%s %s-%s",
            appt.id, appt.doctor_id, appt.patient_id, appt.date, appt.start_time, appt.end_time,
        )
        self._emit(session, AppointmentEventType.BOOKED, appt, actor=None)
        return appt

    async def _ensure_slot_free(
        self,
        session: AsyncSession,
        doctor_id: uuid.UUID,
        day: date,
        start_time: str,
        end_time: str,
        exclude_id: uuid.UUID | None = None,
    ) -> None:
        """Availability recheck plus the exact-slot conflict check."""
        slots = await self.availability.get_available_slots(
            session, doctor_id, day, exclude_appointment_id=exclude_id
        )
        selected = next(
            (s for s in slots if s.start_time == start_time and s.end_time == end_time),
            None,
        )
        if selected is None or not selected.is_available:
            logger.info("Slot unavailable doctor=%s date=%s start=%s", doctor_id, day, start_time)
            raise ConflictError()

        conflict = await AppointmentRepository(session).find_active_at(
            doctor_id, day, start_time, exclude_id=exclude_id
        )
        if conflict:
            logger.info("Slot already held doctor=%s date=%s start=%s", doctor_id, day, start_time)
            raise ConflictError()

    # ------------------------------------------------------------------
    # Status changes
    # ------------------------------------------------------------------

    async def change_status(
        self,
        session: AsyncSession,
        appointment_id: Union[uuid.UUID, str],
        actor: Actor,
        new_status: Union[AppointmentStatus, str],
        reason: Optional[str] = None,
    ) -> Appointment:
        """Single entry for confirm/complete/no-show (doctor) and cancel (patient or doctor)."""
        new_status = _parse_status(new_status)
        if new_status == AppointmentStatus.CANCELLED:
            return await self.cancel(session, appointment_id, actor, reason=reason)
        return await self.update_status(session, appointment_id, actor, new_status)

    async def update_status(
        self,
        session: AsyncSession,
        appointment_id: Union[uuid.UUID, str],
        actor: Actor,
        new_status: Union[AppointmentStatus, str],
    ) -> Appointment:
        new_status = _parse_status(new_status)
        if new_status not in DOCTOR_TRANSITIONS:
            raise ValidationError("Invalid status. Must be CONFIRMED, COMPLETED, or NO_SHOW")

        async with unit_of_work(session):
            appt = await self._load(session, appointment_id)
            if actor.role != ActorRole.DOCTOR or appt.doctor.user_id != actor.user_id:
                raise ForbiddenError("Only the doctor can update appointment status")
            if appt.status not in DOCTOR_TRANSITIONS[new_status]:
                raise InvalidTransitionError(
                    f"Cannot change appointment from {appt.status} to {new_status.value}"
                )
            await self._compare_and_set(session, appt, status=new_status.value)

        logger.info("Appointment %s marked %s by doctor=%s", appt.id, new_status.value, actor.user_id)
        self._emit(session, _STATUS_EVENTS[new_status], appt, actor)
        return appt

    async def cancel(
        self,
        session: AsyncSession,
        appointment_id: Union[uuid.UUID, str],
        actor: Actor,
        reason: Optional[str] = None,
    ) -> Appointment:
        async with unit_of_work(session):
            appt = await self._load(session, appointment_id)
            if not (self._is_patient_owner(appt, actor) or self._is_doctor_owner(appt, actor)):
                raise ForbiddenError("Forbidden")
            if appt.status not in ACTIVE_STATUSES:
                raise InvalidTransitionError("Only pending or confirmed appointments can be cancelled")
            self.policy.check_cancel(appt.date, appt.start_time, self.availability.now())
            await self._compare_and_set(
                session, appt, status=AppointmentStatus.CANCELLED.value, cancel_reason=reason
            )

        logger.info("Appointment %s cancelled by %s=%s", appt.id, actor.role.value, actor.user_id)
        self._emit(session, AppointmentEventType.CANCELLED, appt, actor, cancelled_by=actor.role.value)
        return appt

    async def reschedule(
        self,
        session: AsyncSession,
        appointment_id: Union[uuid.UUID, str],
        actor: Actor,
        new_date: Union[date, str],
        start_time: str,
        end_time: str,
    ) -> Appointment:
        """Move an appointment to another free slot; it returns to PENDING."""
        new_date = coerce_date(new_date)
        validate_window(start_time, end_time)

        try:
            async with unit_of_work(session):
                appt = await self._load(session, appointment_id)
                if not self._is_patient_owner(appt, actor):
                    raise ForbiddenError("Forbidden")
                if appt.status not in ACTIVE_STATUSES:
                    raise InvalidTransitionError("Only pending or confirmed appointments can be rescheduled")
                self.policy.check_reschedule(appt.date, appt.start_time, self.availability.now())

                previous = {"date": appt.date.isoformat(), "start_time": appt.start_time}
                await self._ensure_slot_free(
                    session, appt.doctor_id, new_date, start_time, end_time, exclude_id=appt.id
                )
                await self._compare_and_set(
                    session,
                    appt,
                    date=new_date,
                    start_time=start_time,
                    end_time=end_time,
                    status=AppointmentStatus.PENDING.value,
                )
        except IntegrityError:
            logger.info("Reschedule lost race appointment=%s date=%s start=%s", appointment_id, new_date, start_time)
            raise ConflictError("Selected time slot is not available")

        logger.info(
            "Appointment %s rescheduled from %s %s to %s %s",
            appt.id, previous["date"], previous["start_time"], new_date, start_time,
        )
        self._emit(session, AppointmentEventType.RESCHEDULED, appt, actor, previous=previous)
        return appt

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def get_for_actor(
        self,
        session: AsyncSession,
        appointment_id: Union[uuid.UUID, str],
        actor: Actor,
    ) -> Appointment:
        """Load an appointment visible to its patient, its doctor, or an admin."""
        appt = await self._load(session, appointment_id)
        if actor.role != ActorRole.ADMIN and not (
            self._is_patient_owner(appt, actor) or self._is_doctor_owner(appt, actor)
        ):
            raise ForbiddenError("Forbidden")
        return appt

    async def _load(self, session: AsyncSession, appointment_id: Union[uuid.UUID, str]) -> Appointment:
        aid = coerce_uuid(appointment_id, "appointment_id")
        appt = await AppointmentRepository(session).get_by_id(aid)
        if not appt:
            raise NotFoundError("Appointment not found")
        return appt

    @staticmethod
    async def _compare_and_set(session: AsyncSession, appt: Appointment, **values) -> None:
        """Apply *values* only if the row still has the status we read."""
        updated = await AppointmentRepository(session).compare_and_set(appt.id, appt.status, **values)
        if not updated:
            raise ConflictError("Appointment was modified by another request. Reload and try again.")
        await session.refresh(appt)

    @staticmethod
    def _is_patient_owner(appt: Appointment, actor: Actor) -> bool:
        return actor.role == ActorRole.PATIENT and appt.patient.user_id == actor.user_id

    @staticmethod
    def _is_doctor_owner(appt: Appointment, actor: Actor) -> bool:
        return actor.role == ActorRole.DOCTOR and appt.doctor.user_id == actor.user_id

    def _emit(
        self,
        session: AsyncSession,
        event_type: AppointmentEventType,
        appt: Appointment,
        actor: Optional[Actor],
        **metadata,
    ) -> None:
        """Send the event once the surrounding transaction has committed."""
        event = AppointmentEvent(
            event_type=event_type,
            appointment_id=appt.id,
            doctor_id=appt.doctor_id,
            patient_id=appt.patient_id,
            date=appt.date,
            start_time=appt.start_time,
            end_time=appt.end_time,
            actor_user_id=actor.user_id if actor else None,
            actor_role=actor.role.value if actor else None,
            metadata=metadata,
        )
        after_commit(session, lambda: self.events.emit(event))
