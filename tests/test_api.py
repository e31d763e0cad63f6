from datetime import time

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from slotqueue.database import get_session
from slotqueue.db.models import TimeSlot
from slotqueue.main import app

from conftest import DAY


@pytest.fixture
def client(sql_engine):
    def override_session():
        with Session(sql_engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _seed_slot(sql_engine, clinic_id=1, max_capacity=2, start=time(9, 0), end=time(12, 0)):
    with Session(sql_engine) as session:
        slot = TimeSlot(
            clinic_id=clinic_id,
            doctor_id=7,
            slot_name="Morning",
            slot_date=DAY,
            start_time=start,
            end_time=end,
            max_capacity=max_capacity,
        )
        session.add(slot)
        session.commit()
        return slot.id


def _submit(client, phone="9000000001", when="2025-01-15T09:00:00", clinic_id=1):
    return client.post("/appointment-requests/", json={
        "clinic_id": clinic_id,
        "doctor_id": 7,
        "patient_name": "Asha Rao",
        "patient_phone": phone,
        "requested_datetime": when,
    })


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] in ("healthy", "degraded")


def test_submit_and_approve_flow(client, sql_engine):
    slot_id = _seed_slot(sql_engine)
    res = _submit(client)
    assert res.status_code == 201
    body = res.json()
    assert body["target_slot_id"] == slot_id
    assert body["assigned_time"] == "2025-01-15T09:00:00"
    assert body["ordinal_position"] == 0

    approved = client.post(f"/appointment-requests/{body['id']}/approve", json={"actor": "desk"})
    assert approved.status_code == 200
    data = approved.json()
    assert data["status"] == "approved"
    assert data["already_processed"] is False
    assert data["appointment"]["appointment_datetime"] == "2025-01-15T09:00:00"

    again = client.post(f"/appointment-requests/{body['id']}/approve")
    assert again.status_code == 200
    assert again.json()["already_processed"] is True
    assert again.json()["status"] == "approved"


def test_submit_with_offset_is_converted_to_clinic_time(client, sql_engine):
    _seed_slot(sql_engine)
    res = _submit(client, when="2025-01-15T04:10:00Z")
    assert res.status_code == 201
    assert res.json()["assigned_time"] == "2025-01-15T09:00:00"


def test_capacity_error_carries_slot_details(client, sql_engine):
    _seed_slot(sql_engine, max_capacity=1)
    assert _submit(client).status_code == 201
    res = _submit(client, phone="9000000002")
    assert res.status_code == 409
    body = res.json()
    assert body["success"] is False
    assert body["code"] == "slot_at_capacity"
    assert body["context"]["slot_name"] == "Morning"
    assert body["context"]["window"] == "09:00-12:00"


def test_unknown_slot_is_unprocessable(client, sql_engine):
    _seed_slot(sql_engine)
    res = _submit(client, when="2025-01-15T18:00:00")
    assert res.status_code == 422
    assert res.json()["code"] == "slot_resolution_error"


def test_reject_requires_reason(client, sql_engine):
    _seed_slot(sql_engine)
    request_id = _submit(client).json()["id"]
    res = client.post(f"/appointment-requests/{request_id}/reject", json={"reason": " "})
    assert res.status_code == 400
    assert res.json()["code"] == "missing_reason"

    ok = client.post(f"/appointment-requests/{request_id}/reject", json={"reason": "Doctor unavailable"})
    assert ok.status_code == 200
    assert ok.json()["request"]["rejection_reason"] == "Doctor unavailable"


def test_unknown_request_is_not_found(client):
    res = client.post("/appointment-requests/999/approve")
    assert res.status_code == 404
    assert res.json()["code"] == "request_not_found"


def test_pending_list_and_count(client, sql_engine):
    _seed_slot(sql_engine, clinic_id=42, max_capacity=3)
    _submit(client, clinic_id=42)
    _submit(client, phone="9000000002", clinic_id=42)
    listed = client.get("/appointment-requests/pending", params={"doctor_id": 7})
    assert listed.status_code == 200
    assert len(listed.json()) == 2
    count = client.get("/appointment-requests/pending/count", params={"clinic_id": 42})
    assert count.json() == {"clinic_id": 42, "pending_count": 2}


def test_availability_and_recalculation(client, sql_engine):
    slot_id = _seed_slot(sql_engine, max_capacity=2)
    _submit(client)
    res = client.get("/slots/availability", params={"doctor_id": 7, "date": "2025-01-15"})
    assert res.status_code == 200
    [slot] = res.json()
    assert slot["slot_id"] == slot_id
    assert slot["pending_count"] == 1
    assert slot["available_capacity"] == 1
    assert slot["next_free_time"] == "2025-01-15T09:00:00"

    recalculated = client.post(f"/slots/{slot_id}/recalculate")
    assert recalculated.status_code == 200
    assert recalculated.json()["unassigned_count"] == 0
    assert len(client.post("/slots/recalculate", params={"clinic_id": 1}).json()) == 1


def test_cancel_and_status_updates(client, sql_engine):
    _seed_slot(sql_engine)
    request_id = _submit(client).json()["id"]
    appointment_id = client.post(f"/appointment-requests/{request_id}/approve").json()["appointment"]["id"]

    checked_in = client.put(f"/appointments/{appointment_id}/status", json={"status": "checked-in"})
    assert checked_in.status_code == 200
    assert checked_in.json()["status"] == "checked-in"

    cancelled = client.put(f"/appointments/{appointment_id}/cancel", json={"reason": "Patient unwell"})
    assert cancelled.json()["status"] == "cancelled"

    invalid = client.put(f"/appointments/{appointment_id}/status", json={"status": "scheduled"})
    assert invalid.status_code == 400
    assert invalid.json()["code"] == "invalid_status_transition"
