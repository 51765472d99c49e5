"""Slot availability and booking engine for MedBook."""

from medbook.scheduling.availability import AvailabilityService
from medbook.scheduling.booking import BookingService
from medbook.scheduling.errors import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    PolicyViolationError,
    SchedulingError,
    ValidationError,
)
from medbook.scheduling.events import AppointmentEvent, AppointmentEventType, EventDispatcher
from medbook.scheduling.models import (
    Actor,
    ActorRole,
    AppointmentStatus,
    BookingRequest,
    BookingType,
    DayAvailability,
    TimeSlot,
    WeekEntry,
)
from medbook.scheduling.policy import BookingPolicy
from medbook.scheduling.schedules import ScheduleService

__all__ = [
    "Actor",
    "ActorRole",
    "AppointmentEvent",
    "AppointmentEventType",
    "AppointmentStatus",
    "AvailabilityService",
    "BookingPolicy",
    "BookingRequest",
    "BookingService",
    "BookingType",
    "ConflictError",
    "DayAvailability",
    "EventDispatcher",
    "ForbiddenError",
    "InvalidTransitionError",
    "NotFoundError",
    "PolicyViolationError",
    "ScheduleService",
    "SchedulingError",
    "TimeSlot",
    "ValidationError",
    "WeekEntry",
]
