from datetime import datetime

import pytest

from slotqueue.exceptions import AppointmentNotFound, InvalidStatusTransition

from conftest import at


def test_cancel_frees_time_for_pending_request(store, appointments_service, notifier):
    slot = store.add_slot("09:00", "10:00", max_capacity=2)
    appt = store.add_appointment(slot, "09:00")
    req = store.add_request(slot, "09:40", datetime(2025, 1, 10), assigned_time=at("09:40"), ordinal_position=0)

    cancelled = appointments_service.cancel(appt.id, reason="Patient called")

    assert cancelled.status == "cancelled"
    assert store.requests[req.id].assigned_time == at("09:00")
    assert store.requests[req.id].ordinal_position == 0
    assert store.slots[slot.id].current_bookings == 1
    assert notifier.events == [("cancelled", appt.id, "Patient called")]


def test_no_show_also_frees_the_slot(store, repos, appointments_service):
    slot = store.add_slot("09:00", "12:00")
    appt = store.add_appointment(slot, "09:00")
    req = store.add_request(slot, "09:40", datetime(2025, 1, 10))
    appointments_service.update_status(appt.id, "no-show")
    assert store.requests[req.id].assigned_time == at("09:00")


def test_progress_within_active_set_keeps_queue(store, repos, appointments_service):
    slot = store.add_slot("09:00", "12:00")
    appt = store.add_appointment(slot, "09:00")
    store.add_request(slot, "09:40", datetime(2025, 1, 10), assigned_time=at("09:40"), ordinal_position=0)
    appointments_service.update_status(appt.id, "checked-in")
    appointments_service.update_status(appt.id, "in-progress")
    assert repos["requests"].assignment_writes == 0
    assert store.appointments[appt.id].status == "in-progress"


def test_terminal_status_cannot_change(store, appointments_service):
    slot = store.add_slot()
    appt = store.add_appointment(slot, "09:00", status="completed")
    with pytest.raises(InvalidStatusTransition):
        appointments_service.cancel(appt.id)
    assert store.appointments[appt.id].status == "completed"


def test_unknown_status_rejected(store, appointments_service):
    slot = store.add_slot()
    appt = store.add_appointment(slot, "09:00")
    with pytest.raises(InvalidStatusTransition):
        appointments_service.update_status(appt.id, "postponed")


def test_missing_appointment(appointments_service):
    with pytest.raises(AppointmentNotFound):
        appointments_service.cancel(12345)
