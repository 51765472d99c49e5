"""Slot availability endpoints (read-only, open to any authenticated caller)."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from medbook.api.dependencies import get_availability_service, get_current_actor
from medbook.core.database import get_db
from medbook.scheduling.availability import AvailabilityService
from medbook.scheduling.models import Actor, DayAvailability, WeekEntry

router = APIRouter(prefix="/doctors/{doctor_id}")


@router.get("/availability", response_model=DayAvailability)
async def get_availability(
    doctor_id: str,
    day: str = Query(..., alias="date", description="YYYY-MM-DD"),
    actor: Actor = Depends(get_current_actor),
    availability: AvailabilityService = Depends(get_availability_service),
    db: AsyncSession = Depends(get_db),
) -> DayAvailability:
    """Every slot for the date, each flagged available or not."""
    return await availability.get_day(db, doctor_id, day)


@router.get("/availability/week", response_model=list[WeekEntry])
async def get_week_availability(
    doctor_id: str,
    actor: Actor = Depends(get_current_actor),
    availability: AvailabilityService = Depends(get_availability_service),
    db: AsyncSession = Depends(get_db),
) -> list[WeekEntry]:
    return await availability.get_week_availability(db, doctor_id)
