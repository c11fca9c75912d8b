import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from careflow.core.db import get_db
from careflow.core.security import create_access_token
from careflow.main import app
from careflow.models import RoleEnum, User


@pytest_asyncio.fixture
async def client(session_factory):
    async def _get_test_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_test_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


def auth(user):
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


def booking(seed, start="09:00", end="09:30", patient=None):
    return {
        "patient_id": (patient or seed.patient).id,
        "doctor_id": seed.doctor.id,
        "date": "2030-03-04",
        "start_time": start,
        "end_time": end,
        "reason": "Check-up",
    }


@pytest.mark.asyncio
async def test_health(client):
    res = await client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_requires_valid_token(client, seed):
    res = await client.get("/appointments")
    assert res.status_code in (401, 403)

    res = await client.get("/appointments", headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 401

    res = await client.get("/appointments", headers=auth(User(id="ghost")))
    assert res.status_code == 401


@pytest.mark.asyncio
async def test_inactive_user_is_rejected(client, seed, session_factory):
    async with session_factory() as session:
        user = User(email="gone@clinic.test", full_name="Gone", role=RoleEnum.nurse, is_active=False)
        session.add(user)
        await session.commit()

    res = await client.get("/appointments", headers=auth(user))
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_booking_workflow_over_http(client, seed):
    res = await client.post("/appointments", json=booking(seed), headers=auth(seed.users.patient))
    assert res.status_code == 201, res.text
    body = res.json()
    assert body["status"] == "PENDING_APPROVAL"
    assert body["doctor"]["name"] == "Dana Doctor"
    ap_id = body["id"]

    res = await client.post("/appointments", json=booking(seed, "09:15", "09:45", seed.other_patient),
                            headers=auth(seed.users.other_patient))
    assert res.status_code == 409
    assert res.json() == {"detail": "Doctor already has an appointment at this time", "code": "conflict"}

    res = await client.post(f"/appointments/{ap_id}/approve", headers=auth(seed.users.other_doctor))
    assert res.status_code == 403
    assert res.json()["code"] == "forbidden"

    res = await client.post(f"/appointments/{ap_id}/approve", headers=auth(seed.users.doctor))
    assert res.status_code == 200
    assert res.json()["status"] == "APPROVED"

    res = await client.post(f"/appointments/{ap_id}/cancel", json={"reason": "Feeling better"},
                            headers=auth(seed.users.patient))
    assert res.status_code == 200
    assert res.json()["cancel_reason"] == "Feeling better"

    res = await client.post(f"/appointments/{ap_id}/cancel", headers=auth(seed.users.patient))
    assert res.status_code == 412
    assert res.json()["code"] == "precondition_failed"

    res = await client.get(f"/appointments/{ap_id}/history", headers=auth(seed.users.admin))
    assert [h["to_status"] for h in res.json()] == ["PENDING_APPROVAL", "APPROVED", "CANCELLED"]


@pytest.mark.asyncio
async def test_reject_and_force_status(client, seed):
    res = await client.post("/appointments", json=booking(seed), headers=auth(seed.users.admin))
    ap_id = res.json()["id"]

    res = await client.post(f"/appointments/{ap_id}/reject", json={"reason": ""}, headers=auth(seed.users.doctor))
    assert res.status_code == 422

    res = await client.post(f"/appointments/{ap_id}/force-status", json={"status": "COMPLETED"},
                            headers=auth(seed.users.doctor))
    assert res.status_code == 403

    res = await client.post(f"/appointments/{ap_id}/force-status", json={"status": "COMPLETED"},
                            headers=auth(seed.users.admin))
    assert res.status_code == 200
    assert res.json()["status"] == "COMPLETED"


@pytest.mark.asyncio
async def test_admin_patch_cannot_touch_status(client, seed):
    res = await client.post("/appointments", json=booking(seed), headers=auth(seed.users.admin))
    ap_id = res.json()["id"]

    res = await client.patch(f"/appointments/{ap_id}", json={"status": "APPROVED"}, headers=auth(seed.users.admin))
    assert res.status_code == 422

    res = await client.patch(f"/appointments/{ap_id}", json={"start_time": "08:00"}, headers=auth(seed.users.admin))
    assert res.status_code == 200
    assert res.json()["start_time"] == "08:00"


@pytest.mark.asyncio
async def test_unknown_appointment(client, seed):
    res = await client.get("/appointments/nope", headers=auth(seed.users.admin))
    assert res.status_code == 404
    assert res.json()["code"] == "not_found"


@pytest.mark.asyncio
async def test_lists_by_person(client, seed):
    await client.post("/appointments", json=booking(seed), headers=auth(seed.users.patient))

    res = await client.get(f"/appointments/doctor/{seed.doctor.id}", headers=auth(seed.users.doctor))
    assert len(res.json()) == 1
    res = await client.get(f"/appointments/doctor/{seed.doctor.id}", headers=auth(seed.users.patient))
    assert res.status_code == 403
    res = await client.get("/appointments", headers=auth(seed.users.patient))
    assert len(res.json()) == 1


@pytest.mark.asyncio
async def test_doctor_schedule_routes(client, seed):
    slot = {
        "doctor_id": seed.doctor.id,
        "day_of_week": "Monday",
        "shift": "Morning",
        "start_time": "07:00",
        "end_time": "13:00",
    }
    res = await client.post("/schedules/doctors", json=slot, headers=auth(seed.users.doctor))
    assert res.status_code == 201, res.text
    assert res.json()["is_available"] is False
    slot_id = res.json()["id"]

    res = await client.post("/schedules/doctors", json=slot, headers=auth(seed.users.doctor))
    assert res.status_code == 409

    res = await client.patch(f"/schedules/doctors/{slot_id}", json={"is_available": True},
                             headers=auth(seed.users.doctor))
    assert res.json()["is_available"] is True

    res = await client.get(f"/schedules/doctors/doctor/{seed.doctor.id}", headers=auth(seed.users.nurse))
    assert [s["id"] for s in res.json()] == [slot_id]

    res = await client.delete(f"/schedules/doctors/{slot_id}", headers=auth(seed.users.doctor))
    assert res.status_code == 204


@pytest.mark.asyncio
async def test_clinical_record_routes(client, seed):
    res = await client.post("/appointments", json=booking(seed), headers=auth(seed.users.patient))
    ap_id = res.json()["id"]

    rx = {
        "patient_id": seed.patient.id,
        "doctor_id": seed.doctor.id,
        "appointment_id": "ghost",
        "medication_name": "Amoxicillin",
        "dosage": "500 mg",
        "frequency": "every 8h",
        "duration": "7 days",
    }
    res = await client.post("/clinical/prescriptions", json=rx, headers=auth(seed.users.doctor))
    assert res.status_code == 404

    rx["appointment_id"] = ap_id
    res = await client.post("/clinical/prescriptions", json=rx, headers=auth(seed.users.doctor))
    assert res.status_code == 201
    rx_id = res.json()["id"]

    res = await client.patch(f"/clinical/prescriptions/{rx_id}/status", json={"status": "fulfilled"},
                             headers=auth(seed.users.nurse))
    assert res.json()["fulfilled_by"] == seed.nurse.id

    res = await client.delete(f"/clinical/prescriptions/{rx_id}", headers=auth(seed.users.doctor))
    assert res.status_code == 412

    res = await client.get("/clinical/prescriptions", params={"appointment_id": ap_id},
                           headers=auth(seed.users.patient))
    assert [p["id"] for p in res.json()] == [rx_id]


@pytest.mark.asyncio
async def test_dashboard_route(client, seed):
    await client.post("/appointments", json=booking(seed), headers=auth(seed.users.patient))
    res = await client.get("/dashboard/stats", headers=auth(seed.users.admin))
    assert res.status_code == 200
    assert res.json()["appointments"]["total"] == 1
