"""Doctor-owned schedule rules and blocked ranges."""

from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from medbook.api.dependencies import get_schedule_service, require_doctor
from medbook.core.database import get_db
from medbook.core.schemas import (
    BlockedSlotCreate,
    BlockedSlotRead,
    ScheduleCreate,
    ScheduleRead,
    ScheduleUpdate,
)
from medbook.scheduling.availability import coerce_date
from medbook.scheduling.models import Actor
from medbook.scheduling.schedules import ScheduleService

router = APIRouter(prefix="/doctor")

DEFAULT_BLOCKED_RANGE_DAYS = 30


# ---------------------------------------------------------------------------
# Weekly schedule rules
# ---------------------------------------------------------------------------

@router.get("/schedule", response_model=list[ScheduleRead])
async def list_schedule(
    actor: Actor = Depends(require_doctor),
    schedules: ScheduleService = Depends(get_schedule_service),
    db: AsyncSession = Depends(get_db),
) -> list[ScheduleRead]:
    rules = await schedules.list_rules(db, actor)
    return [ScheduleRead.model_validate(r) for r in rules]


@router.post("/schedule", response_model=ScheduleRead, status_code=201)
async def create_schedule(
    body: ScheduleCreate,
    actor: Actor = Depends(require_doctor),
    schedules: ScheduleService = Depends(get_schedule_service),
    db: AsyncSession = Depends(get_db),
) -> ScheduleRead:
    rule = await schedules.create_rule(db, actor, body)
    return ScheduleRead.model_validate(rule)


@router.put("/schedule/{schedule_id}", response_model=ScheduleRead)
async def update_schedule(
    schedule_id: str,
    body: ScheduleUpdate,
    actor: Actor = Depends(require_doctor),
    schedules: ScheduleService = Depends(get_schedule_service),
    db: AsyncSession = Depends(get_db),
) -> ScheduleRead:
    rule = await schedules.update_rule(db, actor, schedule_id, body)
    return ScheduleRead.model_validate(rule)


@router.delete("/schedule/{schedule_id}", response_model=ScheduleRead)
async def disable_schedule(
    schedule_id: str,
    actor: Actor = Depends(require_doctor),
    schedules: ScheduleService = Depends(get_schedule_service),
    db: AsyncSession = Depends(get_db),
) -> ScheduleRead:
    """Deactivate the rule; existing appointments are untouched."""
    rule = await schedules.disable_rule(db, actor, schedule_id)
    return ScheduleRead.model_validate(rule)


# ---------------------------------------------------------------------------
# Blocked ranges
# ---------------------------------------------------------------------------

@router.get("/blocked-slots", response_model=list[BlockedSlotRead])
async def list_blocked_slots(
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    actor: Actor = Depends(require_doctor),
    schedules: ScheduleService = Depends(get_schedule_service),
    db: AsyncSession = Depends(get_db),
) -> list[BlockedSlotRead]:
    start = coerce_date(date_from) if date_from else date.today()
    end = coerce_date(date_to) if date_to else start + timedelta(days=DEFAULT_BLOCKED_RANGE_DAYS)
    blocked = await schedules.list_blocked(db, actor, start, end)
    return [BlockedSlotRead.model_validate(b) for b in blocked]


@router.post("/blocked-slots", response_model=BlockedSlotRead, status_code=201)
async def create_blocked_slot(
    body: BlockedSlotCreate,
    actor: Actor = Depends(require_doctor),
    schedules: ScheduleService = Depends(get_schedule_service),
    db: AsyncSession = Depends(get_db),
) -> BlockedSlotRead:
    blocked = await schedules.create_blocked(db, actor, body)
    return BlockedSlotRead.model_validate(blocked)


@router.delete("/blocked-slots/{blocked_id}", status_code=204)
async def delete_blocked_slot(
    blocked_id: str,
    actor: Actor = Depends(require_doctor),
    schedules: ScheduleService = Depends(get_schedule_service),
    db: AsyncSession = Depends(get_db),
) -> Response:
    await schedules.delete_blocked(db, actor, blocked_id)
    return Response(status_code=204)
