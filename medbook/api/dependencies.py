"""FastAPI dependencies: the acting user and the scheduling services."""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, HTTPException

from medbook.config import Settings, get_settings
from medbook.scheduling.availability import AvailabilityService
from medbook.scheduling.booking import BookingService
from medbook.scheduling.events import EventDispatcher
from medbook.scheduling.models import Actor, ActorRole
from medbook.scheduling.policy import BookingPolicy
from medbook.scheduling.schedules import ScheduleService


async def get_current_actor(
    x_user_id: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
) -> Actor:
    """Resolve the caller from the ``X-User-Id`` / ``X-User-Role`` headers.

    Token verification happens upstream; this service trusts the gateway.
    """
    if not x_user_id or not x_user_role:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        role = ActorRole(x_user_role.upper())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid X-User-Role: {x_user_role}")
    return Actor(user_id=x_user_id, role=role)


async def require_doctor(actor: Actor = Depends(get_current_actor)) -> Actor:
    if actor.role != ActorRole.DOCTOR:
        raise HTTPException(status_code=403, detail="Doctor access required")
    return actor


async def require_patient(actor: Actor = Depends(get_current_actor)) -> Actor:
    if actor.role != ActorRole.PATIENT:
        raise HTTPException(status_code=403, detail="Patient access required")
    return actor


@lru_cache
def get_event_dispatcher() -> EventDispatcher:
    """Process-wide dispatcher; notification hooks subscribe here."""
    return EventDispatcher()


def get_availability_service(settings: Settings = Depends(get_settings)) -> AvailabilityService:
    return AvailabilityService(week_days=settings.week_days)


def get_booking_service(
    settings: Settings = Depends(get_settings),
    availability: AvailabilityService = Depends(get_availability_service),
) -> BookingService:
    return BookingService(
        availability=availability,
        policy=BookingPolicy(
            cancel_window_hours=settings.cancel_window_hours,
            reschedule_window_hours=settings.reschedule_window_hours,
        ),
        events=get_event_dispatcher(),
    )


def get_schedule_service(settings: Settings = Depends(get_settings)) -> ScheduleService:
    return ScheduleService(
        min_slot_duration=settings.min_slot_duration,
        max_slot_duration=settings.max_slot_duration,
    )
