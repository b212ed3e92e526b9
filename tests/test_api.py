"""
API tests: token registration, staff actions behind HTTP Basic, queue displays
and the {data, message} envelope, against a seeded SQLite database.
"""
import pytest
from sqlalchemy import func, select

from src.models.models import Token

# Seeded reference data (see src/seed/seed_database.py)
OPD, CARD = 1, 2
DR_SHARMA, DR_PATEL, DR_NAIR = 1, 2, 6
RAVI, LAKSHMI, ANJALI, KARAN, FARAH = 1, 2, 3, 4, 5


async def register(client, patient_id, department_id=OPD, doctor_id=DR_SHARMA, priority=None):
    payload = {"patient_id": patient_id, "department_id": department_id, "doctor_id": doctor_id}
    if priority is not None:
        payload["priority"] = priority
    response = await client.post("/tokens", json=payload)
    assert response.status_code == 200, response.text
    return response.json()["data"]


# ============================================================================
# Tokens
# ============================================================================

async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_generate_token(client):
    response = await client.post("/tokens", json={"patient_id": RAVI, "department_id": OPD, "doctor_id": DR_SHARMA})

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Token generated successfully"
    token = body["data"]
    assert token["token_number"] == "OPD-20261019-0001"
    assert token["status"] == "WAITING"
    assert token["priority"] == "NORMAL"
    assert token["patient_name"] == "Ravi Verma"
    assert token["department_name"] == "General Medicine"
    assert token["doctor_name"] == "Rajesh Sharma"
    assert token["room_number"] == "101"
    assert token["queue_position"] == 1
    assert token["estimated_wait_minutes"] == 0


async def test_token_is_persisted(client, session_factory):
    token = await register(client, RAVI)

    async with session_factory() as session:
        row = await session.get(Token, token["id"])
        count = await session.scalar(select(func.count()).select_from(Token))

    assert count == 1
    assert row.token_number == token["token_number"]


async def test_priority_is_derived_from_patient_flags(client):
    senior = await register(client, LAKSHMI)
    pregnant = await register(client, ANJALI, priority="NORMAL")
    emergency = await register(client, ANJALI, priority="EMERGENCY")

    assert senior["priority"] == "SENIOR_CITIZEN"
    assert pregnant["priority"] == "PREGNANT"
    assert emergency["priority"] == "EMERGENCY"


async def test_invalid_priority_is_rejected(client):
    response = await client.post(
        "/tokens", json={"patient_id": RAVI, "department_id": OPD, "priority": "VIP"}
    )

    assert response.status_code == 422
    assert response.json() == {"data": None, "message": "Invalid priority: VIP"}


async def test_unknown_patient(client):
    response = await client.post("/tokens", json={"patient_id": 999, "department_id": OPD})

    assert response.status_code == 404
    assert response.json()["message"] == "Patient not found with id: 999"


async def test_doctor_from_another_department(client):
    response = await client.post(
        "/tokens", json={"patient_id": RAVI, "department_id": OPD, "doctor_id": DR_PATEL}
    )

    assert response.status_code == 422


async def test_pooled_token_without_doctor(client):
    token = await register(client, KARAN, doctor_id=None)

    assert token["doctor_id"] is None
    assert token["queue_position"] == 1


async def test_lookup_by_number_and_queue_position(client):
    await register(client, RAVI)
    second = await register(client, KARAN)

    by_number = await client.get(f"/tokens/number/{second['token_number']}")
    position = await client.get(f"/tokens/queue-position/{second['token_number']}")

    assert by_number.json()["data"]["id"] == second["id"]
    data = position.json()["data"]
    assert data["queue_position"] == 2
    assert data["patients_ahead"] == 1
    assert data["estimated_wait_minutes"] == 10  # Dr. Sharma's default consultation time


async def test_lookup_unknown_number(client):
    response = await client.get("/tokens/number/OPD-20261019-0042")

    assert response.status_code == 404
    assert response.json()["data"] is None


async def test_get_token_and_waiting_time(client):
    await register(client, RAVI)
    second = await register(client, KARAN)

    token = await client.get(f"/tokens/{second['id']}")
    waiting = await client.get(f"/tokens/waiting-time/{second['id']}")

    assert token.json()["data"]["token_number"] == second["token_number"]
    assert waiting.json()["data"] == 10


async def test_cancel_token(client):
    first = await register(client, RAVI)
    second = await register(client, KARAN)

    response = await client.post(f"/tokens/{first['id']}/cancel")

    assert response.status_code == 200
    assert response.json()["message"] == "Token cancelled"
    assert response.json()["data"]["status"] == "CANCELLED"
    assert response.json()["data"]["queue_position"] is None

    again = await client.post(f"/tokens/{first['id']}/cancel")
    assert again.status_code == 409

    refreshed = await client.get(f"/tokens/{second['id']}")
    assert refreshed.json()["data"]["queue_position"] == 1


async def test_patient_and_today_tokens(client):
    await register(client, RAVI)
    await register(client, KARAN)
    await register(client, RAVI, department_id=CARD, doctor_id=DR_PATEL)

    mine = await client.get(f"/tokens/patient/{RAVI}")
    today = await client.get("/tokens/today")

    assert [token["department_code"] for token in mine.json()["data"]] == ["OPD", "CARD"]
    assert len(today.json()["data"]) == 3


# ============================================================================
# Staff
# ============================================================================

async def test_staff_routes_require_credentials(client):
    response = await client.post(f"/staff/call-next/{DR_SHARMA}")

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Basic"
    assert response.json()["data"] is None


async def test_staff_routes_reject_wrong_password(client):
    response = await client.get("/staff/dashboard", auth=("admin", "wrong"))

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid credentials provided."


async def test_auth_me(client, staff_auth):
    response = await client.get("/auth/me", auth=staff_auth)

    assert response.status_code == 200
    assert response.json()["data"]["username"] == "admin"


async def test_consultation_flow(client, staff_auth, clock):
    first = await register(client, RAVI)
    second = await register(client, KARAN)

    called = await client.post(f"/staff/call-next/{DR_SHARMA}", auth=staff_auth)
    assert called.status_code == 200
    assert called.json()["message"] == "Patient called"
    assert called.json()["data"]["id"] == first["id"]
    assert called.json()["data"]["status"] == "CALLED"

    busy = await client.post(f"/staff/call-next/{DR_SHARMA}", auth=staff_auth)
    assert busy.status_code == 409
    assert busy.json() == {
        "data": None,
        "message": "Please end current consultation before calling next patient",
    }

    clock.advance(minutes=1)
    started = await client.post(f"/staff/start-consultation/{first['id']}", auth=staff_auth)
    assert started.json()["data"]["status"] == "IN_CONSULTATION"

    clock.advance(minutes=11)
    ended = await client.post(f"/staff/end-consultation/{first['id']}", auth=staff_auth)
    assert ended.json()["message"] == "Consultation completed"
    completed = ended.json()["data"]
    assert completed["status"] == "COMPLETED"
    assert completed["called_at"] <= completed["consultation_started_at"] <= completed["consultation_ended_at"]

    next_called = await client.post(f"/staff/call-next/{DR_SHARMA}", auth=staff_auth)
    assert next_called.json()["data"]["id"] == second["id"]


async def test_invalid_transition_is_conflict(client, staff_auth):
    token = await register(client, RAVI)

    response = await client.post(f"/staff/end-consultation/{token['id']}", auth=staff_auth)

    assert response.status_code == 409
    assert response.json()["data"] is None


async def test_call_next_on_empty_queue(client, staff_auth):
    response = await client.post(f"/staff/call-next/{DR_NAIR}", auth=staff_auth)

    assert response.status_code == 404


async def test_call_next_unknown_doctor(client, staff_auth):
    response = await client.post("/staff/call-next/999", auth=staff_auth)

    assert response.status_code == 404
    assert response.json()["message"] == "Doctor not found with id: 999"


async def test_skip_no_show_and_cancel(client, staff_auth):
    first = await register(client, RAVI)
    second = await register(client, KARAN)

    await client.post(f"/staff/call-next/{DR_SHARMA}", auth=staff_auth)
    skipped = await client.post(f"/staff/skip/{first['id']}", auth=staff_auth)
    assert skipped.json()["message"] == "Patient skipped"
    assert skipped.json()["data"]["status"] == "WAITING"
    assert skipped.json()["data"]["queue_position"] == 2

    called = await client.post(f"/staff/call-next/{DR_SHARMA}", auth=staff_auth)
    assert called.json()["data"]["id"] == second["id"]
    no_show = await client.post(f"/staff/no-show/{second['id']}", auth=staff_auth)
    assert no_show.json()["data"]["status"] == "NO_SHOW"

    await client.post(f"/staff/call-next/{DR_SHARMA}", auth=staff_auth)
    cancelled = await client.post(f"/staff/cancel-consultation/{first['id']}", auth=staff_auth)
    assert cancelled.json()["message"] == "Consultation cancelled"
    assert cancelled.json()["data"]["status"] == "CANCELLED"


async def test_mark_priority(client, staff_auth):
    first = await register(client, RAVI)
    second = await register(client, KARAN)

    response = await client.post(
        f"/staff/mark-priority/{second['id']}", params={"priority": "EMERGENCY"}, auth=staff_auth
    )

    assert response.json()["data"]["priority"] == "EMERGENCY"
    assert response.json()["data"]["queue_position"] == 1
    refreshed = await client.get(f"/tokens/{first['id']}")
    assert refreshed.json()["data"]["queue_position"] == 2


async def test_dashboard_and_active_consultations(client, staff_auth):
    first = await register(client, RAVI)
    await register(client, KARAN)
    await register(client, LAKSHMI, department_id=CARD, doctor_id=DR_PATEL)
    await client.post(f"/staff/call-next/{DR_SHARMA}", auth=staff_auth)
    await client.post(f"/staff/start-consultation/{first['id']}", auth=staff_auth)

    active = await client.get("/staff/active-consultations", auth=staff_auth)
    dashboard = await client.get("/staff/dashboard", auth=staff_auth)
    scoped = await client.get("/staff/dashboard", params={"doctor_id": DR_PATEL}, auth=staff_auth)

    assert [token["id"] for token in active.json()["data"]] == [first["id"]]
    stats = dashboard.json()["data"]
    assert stats["total_patients_today"] == 3
    assert stats["total_waiting"] == 2
    assert stats["total_in_consultation"] == 1
    assert stats["department_wise_count"] == {"General Medicine": 2, "Cardiology": 1}
    assert stats["status_wise_count"] == {"IN_CONSULTATION": 1, "WAITING": 2}
    assert scoped.json()["data"]["total_patients_today"] == 1


async def test_doctor_queue(client, staff_auth):
    first = await register(client, RAVI)
    second = await register(client, KARAN)
    await client.post(f"/staff/call-next/{DR_SHARMA}", auth=staff_auth)

    response = await client.get(f"/staff/doctor-queue/{DR_SHARMA}", auth=staff_auth)

    assert [token["id"] for token in response.json()["data"]] == [first["id"], second["id"]]


# ============================================================================
# Queue displays
# ============================================================================

async def test_queue_by_doctor(client, staff_auth):
    first = await register(client, RAVI)
    await register(client, KARAN)
    await client.post(f"/staff/call-next/{DR_SHARMA}", auth=staff_auth)

    response = await client.get(f"/queue/doctor/{DR_SHARMA}")

    data = response.json()["data"]
    assert data["doctor_name"] == "Rajesh Sharma"
    assert data["department_name"] == "General Medicine"
    assert data["current_token"]["id"] == first["id"]
    assert data["total_waiting"] == 1
    assert data["average_wait_time_minutes"] == 10


async def test_queue_by_department_includes_shared_queue(client):
    await register(client, RAVI)
    await register(client, KARAN, doctor_id=None)

    response = await client.get(f"/queue/department/{OPD}")

    queues = response.json()["data"]
    assert [queue["doctor_id"] for queue in queues] == [DR_SHARMA, DR_NAIR, None]
    assert queues[-1]["total_waiting"] == 1


async def test_current_and_waiting(client, staff_auth):
    first = await register(client, RAVI)
    second = await register(client, KARAN)

    empty = await client.get(f"/queue/current/{DR_SHARMA}")
    await client.post(f"/staff/call-next/{DR_SHARMA}", auth=staff_auth)
    current = await client.get(f"/queue/current/{DR_SHARMA}")
    waiting = await client.get(f"/queue/waiting/{DR_SHARMA}")

    assert empty.json()["data"] is None
    assert current.json()["data"]["id"] == first["id"]
    assert [token["id"] for token in waiting.json()["data"]] == [second["id"]]


async def test_all_queues_and_live_board(client, staff_auth):
    await register(client, RAVI)
    await register(client, LAKSHMI, department_id=CARD, doctor_id=DR_PATEL)
    await client.post(f"/staff/call-next/{DR_PATEL}", auth=staff_auth)

    queues = await client.get("/queue/all")
    board = await client.get("/queue/live-board")

    assert sorted(queue["doctor_id"] for queue in queues.json()["data"]) == [DR_SHARMA, DR_PATEL]
    statuses = sorted(token["status"] for token in board.json()["data"])
    assert statuses == ["CALLED", "WAITING"]


async def test_engine_restores_from_database(client, session_factory, clock, staff_auth):
    from src.common.queue.bootstrap import create_queue_engine

    first = await register(client, RAVI)
    second = await register(client, KARAN)
    await client.post(f"/staff/call-next/{DR_SHARMA}", auth=staff_auth)

    restored = await create_queue_engine(session_factory, clock=clock)

    assert restored.active_token(DR_SHARMA).id == first["id"]
    assert [token.id for token in restored.waiting_list(DR_SHARMA)] == [second["id"]]
    third = await restored.create_token(LAKSHMI, OPD, "OPD", doctor_id=DR_SHARMA)
    assert third.token_number == "OPD-20261019-0003"
