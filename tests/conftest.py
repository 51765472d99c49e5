"""Pytest configuration and fixtures."""

from datetime import date, datetime
from types import SimpleNamespace

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from medbook.core.models import Base, Doctor, FamilyMember, Patient, Schedule
from medbook.scheduling.availability import AvailabilityService
from medbook.scheduling.booking import BookingService
from medbook.scheduling.events import EventDispatcher
from medbook.scheduling.models import Actor, ActorRole

# 2026-03-01 is a Sunday; the seeded doctor works Mondays 09:00-13:00.
SUNDAY = date(2026, 3, 1)
MONDAY = date(2026, 3, 2)
NOW = datetime(2026, 3, 1, 8, 0)


class FrozenClock:
    """Callable clock whose time tests can move."""

    def __init__(self, now: datetime):
        self.current = now

    def __call__(self) -> datetime:
        return self.current


@pytest.fixture
def clock():
    return FrozenClock(NOW)


# ---------------------------------------------------------------------------
# Database: in-memory SQLite per test
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite://", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as sess:
        yield sess


@pytest_asyncio.fixture
async def seed(session: AsyncSession):
    """Two doctors, two patients and one family member; ids only.

    Only ids are returned: a failed transaction later in a test expires
    every loaded instance.
    """
    doctor = Doctor(user_id="doc-1", name="Dr. Ada Okafor", specialty="Cardiology", is_verified=True)
    other_doctor = Doctor(user_id="doc-2", name="Dr. Lena Park", specialty="Dermatology", is_verified=True)
    unverified = Doctor(user_id="doc-3", name="Dr. Sam Reed", is_verified=False)
    patient = Patient(user_id="pat-1", name="Jane Doe", phone="555-0101")
    other_patient = Patient(user_id="pat-2", name="John Roe")
    session.add_all([doctor, other_doctor, unverified, patient, other_patient])
    await session.flush()

    member = FamilyMember(patient_id=patient.id, name="Tobi Doe", relationship_type="child")
    schedule = Schedule(
        doctor_id=doctor.id, day_of_week=1, start_time="09:00", end_time="13:00", slot_duration=30
    )
    session.add_all([member, schedule])
    await session.commit()

    return SimpleNamespace(
        doctor_id=doctor.id,
        other_doctor_id=other_doctor.id,
        unverified_doctor_id=unverified.id,
        patient_id=patient.id,
        other_patient_id=other_patient.id,
        member_id=member.id,
        schedule_id=schedule.id,
    )


# ---------------------------------------------------------------------------
# Actors and services
# ---------------------------------------------------------------------------

@pytest.fixture
def patient_actor():
    return Actor(user_id="pat-1", role=ActorRole.PATIENT)


@pytest.fixture
def other_patient_actor():
    return Actor(user_id="pat-2", role=ActorRole.PATIENT)


@pytest.fixture
def doctor_actor():
    return Actor(user_id="doc-1", role=ActorRole.DOCTOR)


@pytest.fixture
def other_doctor_actor():
    return Actor(user_id="doc-2", role=ActorRole.DOCTOR)


@pytest.fixture
def events():
    return EventDispatcher()


@pytest.fixture
def availability(clock):
    return AvailabilityService(clock=clock)


@pytest.fixture
def booking(availability, events):
    return BookingService(availability=availability, events=events)
