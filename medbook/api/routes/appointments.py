"""Appointment booking and lifecycle endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from medbook.api.dependencies import get_booking_service, get_current_actor, require_patient
from medbook.core.database import get_db
from medbook.core.repository import PatientRepository
from medbook.scheduling.booking import BookingService
from medbook.scheduling.errors import NotFoundError
from medbook.scheduling.models import (
    Actor,
    AppointmentRead,
    BookingRequest,
    CancelRequest,
    RescheduleRequest,
    StatusUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments")


@router.post("", response_model=AppointmentRead, status_code=201)
async def book_appointment(
    body: BookingRequest,
    actor: Actor = Depends(require_patient),
    booking: BookingService = Depends(get_booking_service),
    db: AsyncSession = Depends(get_db),
) -> AppointmentRead:
    """Book a slot for the calling patient (or one of their family members)."""
    patient = await PatientRepository(db).get_by_user_id(actor.user_id)
    if not patient:
        raise NotFoundError("Patient profile not found")
    appt = await booking.book(db, body, patient.id)
    return AppointmentRead.model_validate(appt)


@router.get("/{appointment_id}", response_model=AppointmentRead)
async def get_appointment(
    appointment_id: str,
    actor: Actor = Depends(get_current_actor),
    booking: BookingService = Depends(get_booking_service),
    db: AsyncSession = Depends(get_db),
) -> AppointmentRead:
    appt = await booking.get_for_actor(db, appointment_id, actor)
    return AppointmentRead.model_validate(appt)


@router.patch("/{appointment_id}/status", response_model=AppointmentRead)
async def update_status(
    appointment_id: str,
    body: StatusUpdate,
    actor: Actor = Depends(get_current_actor),
    booking: BookingService = Depends(get_booking_service),
    db: AsyncSession = Depends(get_db),
) -> AppointmentRead:
    """Doctor confirms, completes or marks no-show; CANCELLED routes to cancel."""
    appt = await booking.change_status(db, appointment_id, actor, body.status)
    return AppointmentRead.model_validate(appt)


@router.patch("/{appointment_id}/cancel", response_model=AppointmentRead)
async def cancel_appointment(
    appointment_id: str,
    body: Optional[CancelRequest] = None,
    actor: Actor = Depends(get_current_actor),
    booking: BookingService = Depends(get_booking_service),
    db: AsyncSession = Depends(get_db),
) -> AppointmentRead:
    reason = body.reason if body else None
    appt = await booking.cancel(db, appointment_id, actor, reason=reason)
    return AppointmentRead.model_validate(appt)


@router.patch("/{appointment_id}/reschedule", response_model=AppointmentRead)
async def reschedule_appointment(
    appointment_id: str,
    body: RescheduleRequest,
    actor: Actor = Depends(get_current_actor),
    booking: BookingService = Depends(get_booking_service),
    db: AsyncSession = Depends(get_db),
) -> AppointmentRead:
    """Move to another free slot; the appointment returns to PENDING."""
    appt = await booking.reschedule(
        db, appointment_id, actor, body.date, body.start_time, body.end_time
    )
    return AppointmentRead.model_validate(appt)
