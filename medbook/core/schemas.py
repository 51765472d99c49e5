"""Pydantic schemas for doctor-owned schedule configuration."""

from __future__ import annotations

import datetime as dt
import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Schema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# --- Schedule rules ---

class ScheduleCreate(_Schema):
    day_of_week: int = Field(ge=0, le=6)
    start_time: str
    end_time: str
    slot_duration: int = 30
    is_active: bool = True


class ScheduleUpdate(_Schema):
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    slot_duration: Optional[int] = None
    is_active: Optional[bool] = None


class ScheduleRead(_Schema):
    id: uuid.UUID
    doctor_id: uuid.UUID
    day_of_week: int
    start_time: str
    end_time: str
    slot_duration: int
    is_active: bool


# --- Blocked ranges ---

class BlockedSlotCreate(_Schema):
    date: dt.date
    start_time: str
    end_time: str
    reason: Optional[str] = None


class BlockedSlotRead(_Schema):
    id: uuid.UUID
    doctor_id: uuid.UUID
    date: dt.date
    start_time: str
    end_time: str
    reason: Optional[str] = None
