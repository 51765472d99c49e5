"""Doctor-owned schedule configuration: weekly rules and blocked ranges."""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Sequence, Union

from sqlalchemy.ext.asyncio import AsyncSession

from medbook.core.database import unit_of_work
from medbook.core.models import BlockedSlot, Doctor, Schedule
from medbook.core.repository import BlockedSlotRepository, DoctorRepository, ScheduleRepository
from medbook.core.schemas import BlockedSlotCreate, ScheduleCreate, ScheduleUpdate
from medbook.scheduling.availability import coerce_uuid
from medbook.scheduling.errors import ForbiddenError, NotFoundError, ValidationError
from medbook.scheduling.models import Actor, ActorRole
from medbook.scheduling.slots import validate_window

logger = logging.getLogger(__name__)


class ScheduleService:
    """Create, edit and disable schedule rules; add and remove blocked ranges."""

    def __init__(self, min_slot_duration: int = 10, max_slot_duration: int = 120) -> None:
        self.min_slot_duration = min_slot_duration
        self.max_slot_duration = max_slot_duration

    def _check_duration(self, slot_duration: int) -> None:
        if not self.min_slot_duration <= slot_duration <= self.max_slot_duration:
            raise ValidationError(
                f"Slot duration must be between {self.min_slot_duration} and "
                f"{self.max_slot_duration} minutes"
            )

    async def doctor_for_actor(self, session: AsyncSession, actor: Actor) -> Doctor:
        if actor.role != ActorRole.DOCTOR:
            raise ForbiddenError("Only doctors can manage schedules")
        doctor = await DoctorRepository(session).get_by_user_id(actor.user_id)
        if not doctor:
            raise NotFoundError("Doctor not found")
        return doctor

    # --- Schedule rules ---

    async def list_rules(self, session: AsyncSession, actor: Actor) -> Sequence[Schedule]:
        doctor = await self.doctor_for_actor(session, actor)
        return await ScheduleRepository(session).list_by_doctor(doctor.id)

    async def create_rule(self, session: AsyncSession, actor: Actor, data: ScheduleCreate) -> Schedule:
        validate_window(data.start_time, data.end_time)
        self._check_duration(data.slot_duration)
        async with unit_of_work(session):
            doctor = await self.doctor_for_actor(session, actor)
            rule = await ScheduleRepository(session).create(doctor_id=doctor.id, **data.model_dump())
        logger.info(
            "Schedule rule %s created doctor=%s day=%d %s-%s/%dmin",
            rule.id, doctor.id, rule.day_of_week, rule.start_time, rule.end_time, rule.slot_duration,
        )
        return rule

    async def update_rule(
        self,
        session: AsyncSession,
        actor: Actor,
        schedule_id: Union[uuid.UUID, str],
        data: ScheduleUpdate,
    ) -> Schedule:
        sid = coerce_uuid(schedule_id, "schedule_id")
        if data.slot_duration is not None:
            self._check_duration(data.slot_duration)
        async with unit_of_work(session):
            rule = await self._owned_rule(session, actor, sid)
            validate_window(data.start_time or rule.start_time, data.end_time or rule.end_time)
            rule = await ScheduleRepository(session).update(sid, **data.model_dump())
        logger.info("Schedule rule %s updated", sid)
        return rule

    async def disable_rule(self, session: AsyncSession, actor: Actor, schedule_id: Union[uuid.UUID, str]) -> Schedule:
        """Soft delete: past appointments may still refer to the window."""
        sid = coerce_uuid(schedule_id, "schedule_id")
        async with unit_of_work(session):
            await self._owned_rule(session, actor, sid)
            rule = await ScheduleRepository(session).update(sid, is_active=False)
        logger.info("Schedule rule %s disabled", sid)
        return rule

    async def _owned_rule(self, session: AsyncSession, actor: Actor, schedule_id: uuid.UUID) -> Schedule:
        rule = await ScheduleRepository(session).get_by_id(schedule_id)
        if not rule:
            raise NotFoundError("Schedule not found")
        doctor = await self.doctor_for_actor(session, actor)
        if rule.doctor_id != doctor.id:
            raise ForbiddenError("Forbidden")
        return rule

    # --- Blocked ranges ---

    async def list_blocked(
        self, session: AsyncSession, actor: Actor, start: date, end: date
    ) -> Sequence[BlockedSlot]:
        if start > end:
            raise ValidationError("Start date must not be after end date")
        doctor = await self.doctor_for_actor(session, actor)
        return await BlockedSlotRepository(session).list_range(doctor.id, start, end)

    async def create_blocked(self, session: AsyncSession, actor: Actor, data: BlockedSlotCreate) -> BlockedSlot:
        validate_window(data.start_time, data.end_time)
        async with unit_of_work(session):
            doctor = await self.doctor_for_actor(session, actor)
            blocked = await BlockedSlotRepository(session).create(doctor_id=doctor.id, **data.model_dump())
        logger.info(
            "Blocked %s %s-%s for doctor=%s", blocked.date, blocked.start_time, blocked.end_time, doctor.id
        )
        return blocked

    async def delete_blocked(self, session: AsyncSession, actor: Actor, blocked_id: Union[uuid.UUID, str]) -> None:
        bid = coerce_uuid(blocked_id, "blocked_id")
        async with unit_of_work(session):
            repo = BlockedSlotRepository(session)
            blocked = await repo.get_by_id(bid)
            if not blocked:
                raise NotFoundError("Blocked slot not found")
            doctor = await self.doctor_for_actor(session, actor)
            if blocked.doctor_id != doctor.id:
                raise ForbiddenError("Forbidden")
            await repo.delete(bid)
        logger.info("Blocked slot %s removed", bid)
