"""Appointment lifecycle events for downstream collaborators.

Notification delivery and the waitlist live outside this package; they
subscribe callbacks here and are told about bookings and status changes.
"""

from __future__ import annotations

import datetime as dt
import enum
import logging
import uuid
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class AppointmentEventType(str, enum.Enum):
    BOOKED = "booked"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    NO_SHOW = "no_show"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"


class AppointmentEvent(BaseModel):
    event_type: AppointmentEventType
    appointment_id: uuid.UUID
    doctor_id: uuid.UUID
    patient_id: uuid.UUID
    date: dt.date
    start_time: str
    end_time: str
    actor_user_id: Optional[str] = None
    actor_role: Optional[str] = None
    timestamp: dt.datetime = Field(default_factory=lambda: dt.datetime.now(dt.timezone.utc))
    metadata: dict[str, Any] = Field(default_factory=dict)


EventCallback = Callable[[AppointmentEvent], None]


class EventDispatcher:
    """Fan-out of appointment events to subscribed callbacks."""

    def __init__(self) -> None:
        self._callbacks: list[EventCallback] = []

    def subscribe(self, callback: EventCallback) -> None:
        self._callbacks.append(callback)

    def unsubscribe(self, callback: EventCallback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def emit(self, event: AppointmentEvent) -> None:
        logger.info(
            "Appointment event %s appointment=%s doctor=%s date=%s %s",
            event.event_type.value, event.appointment_id, event.doctor_id, event.date, event.start_time,
        )
        for callback in self._callbacks:
            try:
                callback(event)
            except Exception as e:
                # Collaborator failures never undo a committed booking
                logger.warning(f"Appointment event callback failed: {e}")
