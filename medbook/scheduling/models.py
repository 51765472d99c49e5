"""Pydantic models for the availability and booking engine."""

from __future__ import annotations

import datetime as dt
import enum
import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from medbook.core.models import AppointmentStatus, BookingType

__all__ = [
    "Actor",
    "ActorRole",
    "AppointmentRead",
    "AppointmentStatus",
    "BookingRequest",
    "BookingType",
    "CancelRequest",
    "DayAvailability",
    "RescheduleRequest",
    "SlotRange",
    "StatusUpdate",
    "TimeSlot",
    "WeekEntry",
]


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys, accepting either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ActorRole(str, enum.Enum):
    PATIENT = "PATIENT"
    DOCTOR = "DOCTOR"
    ADMIN = "ADMIN"


class Actor(BaseModel):
    """The authenticated caller acting on an appointment."""

    user_id: str
    role: ActorRole


class SlotRange(CamelModel):
    """A generated ``[start_time, end_time)`` window, ``HH:MM`` wall-clock."""

    start_time: str
    end_time: str


class TimeSlot(SlotRange):
    """A candidate slot annotated with its availability."""

    is_available: bool


class DayAvailability(CamelModel):
    doctor_id: uuid.UUID
    date: dt.date
    slots: list[TimeSlot] = []
    total_slots: int = 0
    available_slots: int = 0


class WeekEntry(CamelModel):
    date: dt.date
    day_name: str
    total_slots: int
    available_slots: int


class BookingRequest(CamelModel):
    doctor_id: uuid.UUID
    date: dt.date
    start_time: str
    end_time: str
    reason: Optional[str] = None
    booking_type: BookingType = BookingType.SELF
    family_member_id: Optional[uuid.UUID] = None


class RescheduleRequest(CamelModel):
    date: dt.date
    start_time: str
    end_time: str


class StatusUpdate(CamelModel):
    status: AppointmentStatus


class CancelRequest(CamelModel):
    reason: Optional[str] = Field(default=None, max_length=1000)


class AppointmentRead(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: uuid.UUID
    doctor_id: uuid.UUID
    patient_id: uuid.UUID
    family_member_id: Optional[uuid.UUID] = None
    date: dt.date
    start_time: str
    end_time: str
    status: AppointmentStatus
    booking_type: BookingType
    reason: Optional[str] = None
    cancel_reason: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None
