"""DB-backed integration tests for the availability, booking and schedule endpoints."""

from datetime import datetime

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from medbook.api.app import create_app
from medbook.api.dependencies import get_availability_service
from medbook.core.database import get_db
from medbook.scheduling.availability import AvailabilityService

PATIENT = {"X-User-Id": "pat-1", "X-User-Role": "PATIENT"}
OTHER_PATIENT = {"X-User-Id": "pat-2", "X-User-Role": "PATIENT"}
DOCTOR = {"X-User-Id": "doc-1", "X-User-Role": "DOCTOR"}
OTHER_DOCTOR = {"X-User-Id": "doc-2", "X-User-Role": "DOCTOR"}
ADMIN = {"X-User-Id": "admin-1", "X-User-Role": "ADMIN"}


# ---------------------------------------------------------------------------
# Fixtures: app over the in-memory SQLite engine with a frozen clock
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def client(session_factory, seed, clock):
    async def _override_get_db():
        async with session_factory() as sess:
            try:
                yield sess
                await sess.commit()
            except Exception:
                await sess.rollback()
                raise

    app = create_app()
    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_availability_service] = lambda: AvailabilityService(clock=clock)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def _book_body(seed, start: str = "10:00", end: str = "10:30", **extra) -> dict:
    body = {
        "doctorId": str(seed.doctor_id),
        "date": "2026-03-02",
        "startTime": start,
        "endTime": end,
    }
    body.update(extra)
    return body


async def _book(client: AsyncClient, seed, headers=PATIENT, **kwargs) -> dict:
    resp = await client.post("/api/v1/appointments", json=_book_body(seed, **kwargs), headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


# ---------------------------------------------------------------------------
# Availability
# ---------------------------------------------------------------------------

class TestAvailabilityEndpoints:
    @pytest.mark.asyncio
    async def test_day(self, client: AsyncClient, seed):
        resp = await client.get(
            f"/api/v1/doctors/{seed.doctor_id}/availability", params={"date": "2026-03-02"}, headers=PATIENT
        )

        assert resp.status_code == 200
        data = resp.json()
        assert data["doctorId"] == str(seed.doctor_id)
        assert data["date"] == "2026-03-02"
        assert data["totalSlots"] == 8
        assert data["availableSlots"] == 8
        assert data["slots"][0] == {"startTime": "09:00", "endTime": "09:30", "isAvailable": True}

    @pytest.mark.asyncio
    async def test_day_reflects_booking(self, client: AsyncClient, seed):
        await _book(client, seed)

        resp = await client.get(
            f"/api/v1/doctors/{seed.doctor_id}/availability", params={"date": "2026-03-02"}, headers=PATIENT
        )

        assert resp.json()["availableSlots"] == 7

    @pytest.mark.asyncio
    async def test_bad_date(self, client: AsyncClient, seed):
        resp = await client.get(
            f"/api/v1/doctors/{seed.doctor_id}/availability", params={"date": "tomorrow"}, headers=PATIENT
        )

        assert resp.status_code == 400
        assert resp.json()["error"] == "validation"

    @pytest.mark.asyncio
    async def test_missing_date(self, client: AsyncClient, seed):
        resp = await client.get(f"/api/v1/doctors/{seed.doctor_id}/availability", headers=PATIENT)

        assert resp.status_code == 400
        assert resp.json()["error"] == "validation"

    @pytest.mark.asyncio
    async def test_requires_actor(self, client: AsyncClient, seed):
        resp = await client.get(
            f"/api/v1/doctors/{seed.doctor_id}/availability", params={"date": "2026-03-02"}
        )

        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_week(self, client: AsyncClient, seed):
        resp = await client.get(f"/api/v1/doctors/{seed.doctor_id}/availability/week", headers=PATIENT)

        assert resp.status_code == 200
        week = resp.json()
        assert len(week) == 7
        assert week[0]["dayName"] == "Today"
        assert week[1] == {"date": "2026-03-02", "dayName": "Mon", "totalSlots": 8, "availableSlots": 8}


# ---------------------------------------------------------------------------
# Booking
# ---------------------------------------------------------------------------

class TestBookingEndpoints:
    @pytest.mark.asyncio
    async def test_book(self, client: AsyncClient, seed):
        data = await _book(client, seed, reason="Follow-up")

        assert data["status"] == "PENDING"
        assert data["bookingType"] == "SELF"
        assert data["patientId"] == str(seed.patient_id)
        assert data["startTime"] == "10:00"
        assert data["reason"] == "Follow-up"

    @pytest.mark.asyncio
    async def test_double_booking(self, client: AsyncClient, seed):
        await _book(client, seed)

        resp = await client.post("/api/v1/appointments", json=_book_body(seed), headers=OTHER_PATIENT)

        assert resp.status_code == 409
        assert resp.json()["error"] == "conflict"

    @pytest.mark.asyncio
    async def test_family_booking(self, client: AsyncClient, seed):
        data = await _book(
            client, seed, bookingType="FAMILY_MEMBER", familyMemberId=str(seed.member_id)
        )

        assert data["familyMemberId"] == str(seed.member_id)

    @pytest.mark.asyncio
    async def test_doctor_cannot_book(self, client: AsyncClient, seed):
        resp = await client.post("/api/v1/appointments", json=_book_body(seed), headers=DOCTOR)

        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_unverified_doctor(self, client: AsyncClient, seed):
        body = _book_body(seed)
        body["doctorId"] = str(seed.unverified_doctor_id)

        resp = await client.post("/api/v1/appointments", json=body, headers=PATIENT)

        assert resp.status_code == 404
        assert resp.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_no_patient_profile(self, client: AsyncClient, seed):
        resp = await client.post(
            "/api/v1/appointments",
            json=_book_body(seed),
            headers={"X-User-Id": "pat-404", "X-User-Role": "PATIENT"},
        )

        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_malformed_body(self, client: AsyncClient, seed):
        resp = await client.post("/api/v1/appointments", json={"doctorId": "x"}, headers=PATIENT)

        assert resp.status_code == 400
        assert resp.json()["error"] == "validation"

    @pytest.mark.asyncio
    async def test_bad_role_header(self, client: AsyncClient, seed):
        resp = await client.post(
            "/api/v1/appointments",
            json=_book_body(seed),
            headers={"X-User-Id": "pat-1", "X-User-Role": "NURSE"},
        )

        assert resp.status_code == 400


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

class TestLifecycleEndpoints:
    @pytest.mark.asyncio
    async def test_confirm_and_complete(self, client: AsyncClient, seed):
        appt = await _book(client, seed)
        url = f"/api/v1/appointments/{appt['id']}/status"

        resp = await client.patch(url, json={"status": "CONFIRMED"}, headers=DOCTOR)
        assert resp.status_code == 200
        assert resp.json()["status"] == "CONFIRMED"

        resp = await client.patch(url, json={"status": "COMPLETED"}, headers=DOCTOR)
        assert resp.status_code == 200
        assert resp.json()["status"] == "COMPLETED"

    @pytest.mark.asyncio
    async def test_invalid_transition(self, client: AsyncClient, seed):
        appt = await _book(client, seed)

        resp = await client.patch(
            f"/api/v1/appointments/{appt['id']}/status", json={"status": "NO_SHOW"}, headers=DOCTOR
        )

        assert resp.status_code == 400
        assert resp.json()["error"] == "invalid_transition"

    @pytest.mark.asyncio
    async def test_patient_cannot_confirm(self, client: AsyncClient, seed):
        appt = await _book(client, seed)

        resp = await client.patch(
            f"/api/v1/appointments/{appt['id']}/status", json={"status": "CONFIRMED"}, headers=PATIENT
        )

        assert resp.status_code == 403
        assert resp.json()["error"] == "forbidden"

    @pytest.mark.asyncio
    async def test_cancel_with_reason(self, client: AsyncClient, seed):
        appt = await _book(client, seed)

        resp = await client.patch(
            f"/api/v1/appointments/{appt['id']}/cancel", json={"reason": "Conflict at work"}, headers=PATIENT
        )

        assert resp.status_code == 200
        assert resp.json()["status"] == "CANCELLED"
        assert resp.json()["cancelReason"] == "Conflict at work"

    @pytest.mark.asyncio
    async def test_doctor_cancels_without_body(self, client: AsyncClient, seed):
        appt = await _book(client, seed)

        resp = await client.patch(f"/api/v1/appointments/{appt['id']}/cancel", headers=DOCTOR)

        assert resp.status_code == 200
        assert resp.json()["status"] == "CANCELLED"

    @pytest.mark.asyncio
    async def test_cancel_inside_window(self, client: AsyncClient, seed, clock):
        appt = await _book(client, seed)
        clock.current = datetime(2026, 3, 2, 9, 0)

        resp = await client.patch(f"/api/v1/appointments/{appt['id']}/cancel", json={}, headers=PATIENT)

        assert resp.status_code == 400
        assert resp.json()["error"] == "policy_violation"

    @pytest.mark.asyncio
    async def test_reschedule(self, client: AsyncClient, seed):
        appt = await _book(client, seed)

        resp = await client.patch(
            f"/api/v1/appointments/{appt['id']}/reschedule",
            json={"date": "2026-03-02", "startTime": "11:00", "endTime": "11:30"},
            headers=PATIENT,
        )

        assert resp.status_code == 200
        assert resp.json()["startTime"] == "11:00"
        assert resp.json()["status"] == "PENDING"

    @pytest.mark.asyncio
    async def test_reschedule_into_taken_slot(self, client: AsyncClient, seed):
        appt = await _book(client, seed)
        await _book(client, seed, headers=OTHER_PATIENT, start="11:00", end="11:30")

        resp = await client.patch(
            f"/api/v1/appointments/{appt['id']}/reschedule",
            json={"date": "2026-03-02", "startTime": "11:00", "endTime": "11:30"},
            headers=PATIENT,
        )

        assert resp.status_code == 409

    @pytest.mark.asyncio
    async def test_get_visibility(self, client: AsyncClient, seed):
        appt = await _book(client, seed)
        url = f"/api/v1/appointments/{appt['id']}"

        assert (await client.get(url, headers=PATIENT)).status_code == 200
        assert (await client.get(url, headers=DOCTOR)).status_code == 200
        assert (await client.get(url, headers=ADMIN)).status_code == 200
        assert (await client.get(url, headers=OTHER_PATIENT)).status_code == 403
        assert (await client.get(url, headers=OTHER_DOCTOR)).status_code == 403

    @pytest.mark.asyncio
    async def test_get_unknown_and_malformed(self, client: AsyncClient, seed):
        resp = await client.get("/api/v1/appointments/00000000-0000-0000-0000-000000000000", headers=PATIENT)
        assert resp.status_code == 404

        resp = await client.get("/api/v1/appointments/not-a-uuid", headers=PATIENT)
        assert resp.status_code == 400


# ---------------------------------------------------------------------------
# Doctor schedule and blocked ranges
# ---------------------------------------------------------------------------

class TestScheduleEndpoints:
    @pytest.mark.asyncio
    async def test_list_rules(self, client: AsyncClient, seed):
        resp = await client.get("/api/v1/doctor/schedule", headers=DOCTOR)

        assert resp.status_code == 200
        rules = resp.json()
        assert len(rules) == 1
        assert rules[0]["dayOfWeek"] == 1
        assert rules[0]["slotDuration"] == 30

    @pytest.mark.asyncio
    async def test_patient_forbidden(self, client: AsyncClient, seed):
        resp = await client.get("/api/v1/doctor/schedule", headers=PATIENT)

        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_create_update_disable(self, client: AsyncClient, seed):
        resp = await client.post(
            "/api/v1/doctor/schedule",
            json={"dayOfWeek": 2, "startTime": "09:00", "endTime": "12:00", "slotDuration": 45},
            headers=DOCTOR,
        )
        assert resp.status_code == 201
        rule_id = resp.json()["id"]

        resp = await client.put(f"/api/v1/doctor/schedule/{rule_id}", json={"endTime": "13:00"}, headers=DOCTOR)
        assert resp.status_code == 200
        assert resp.json()["endTime"] == "13:00"

        resp = await client.get(
            f"/api/v1/doctors/{seed.doctor_id}/availability", params={"date": "2026-03-03"}, headers=PATIENT
        )
        assert resp.json()["totalSlots"] == 5

        resp = await client.delete(f"/api/v1/doctor/schedule/{rule_id}", headers=DOCTOR)
        assert resp.status_code == 200
        assert resp.json()["isActive"] is False

    @pytest.mark.asyncio
    async def test_create_rejects_bad_duration(self, client: AsyncClient, seed):
        resp = await client.post(
            "/api/v1/doctor/schedule",
            json={"dayOfWeek": 2, "startTime": "09:00", "endTime": "12:00", "slotDuration": 500},
            headers=DOCTOR,
        )

        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_other_doctor_cannot_edit(self, client: AsyncClient, seed):
        resp = await client.put(
            f"/api/v1/doctor/schedule/{seed.schedule_id}", json={"endTime": "12:00"}, headers=OTHER_DOCTOR
        )

        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_blocked_slots(self, client: AsyncClient, seed):
        resp = await client.post(
            "/api/v1/doctor/blocked-slots",
            json={"date": "2026-03-02", "startTime": "00:00", "endTime": "24:00", "reason": "Conference"},
            headers=DOCTOR,
        )
        assert resp.status_code == 201
        blocked_id = resp.json()["id"]

        resp = await client.get(
            "/api/v1/doctor/blocked-slots", params={"from": "2026-03-01", "to": "2026-03-31"}, headers=DOCTOR
        )
        assert [b["id"] for b in resp.json()] == [blocked_id]

        resp = await client.get(
            f"/api/v1/doctors/{seed.doctor_id}/availability", params={"date": "2026-03-02"}, headers=PATIENT
        )
        assert resp.json()["availableSlots"] == 0

        resp = await client.delete(f"/api/v1/doctor/blocked-slots/{blocked_id}", headers=DOCTOR)
        assert resp.status_code == 204

        resp = await client.get(
            f"/api/v1/doctors/{seed.doctor_id}/availability", params={"date": "2026-03-02"}, headers=PATIENT
        )
        assert resp.json()["availableSlots"] == 8
