import copy
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime, time, timedelta

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from slotqueue.database import create_db_and_tables, enable_sqlite_savepoints
from slotqueue.constants import ACTIVE_APPOINTMENT_STATUSES, APPROVED, PENDING, REJECTED
from slotqueue.exceptions import TimeConflict
from slotqueue.application.ports.appointments_repo import AppointmentDto
from slotqueue.application.ports.requests_repo import AppointmentRequestDto
from slotqueue.application.ports.slots_repo import SlotDto
from slotqueue.application.services.appointments_service import AppointmentsService
from slotqueue.application.services.request_lifecycle import RequestLifecycleService


DAY = date(2025, 1, 15)


def at(hhmm: str, on: date = DAY) -> datetime:
    h, m = hhmm.split(":")
    return datetime.combine(on, time(int(h), int(m)))


class FakeStore:
    """In-memory tables shared by the fake repositories."""

    def __init__(self):
        self.slots = {}
        self.appointments = {}
        self.requests = {}
        self.patients = {}
        self.clinic_patients = {}
        self.next_id = 1
        self.committed = self.snapshot()

    def seeded(self, record):
        # Seed data counts as already committed
        self.committed = self.snapshot()
        return record

    def new_id(self) -> int:
        value = self.next_id
        self.next_id += 1
        return value

    def snapshot(self):
        return copy.deepcopy((self.slots, self.appointments, self.requests, self.patients, self.clinic_patients, self.next_id))

    def restore(self, state) -> None:
        (self.slots, self.appointments, self.requests, self.patients, self.clinic_patients, self.next_id) = copy.deepcopy(state)

    def add_slot(self, start="09:00", end="12:00", max_capacity=3, doctor_id=7, clinic_id=1, on=DAY, name="Morning", is_active=True) -> SlotDto:
        h1, m1 = start.split(":")
        h2, m2 = end.split(":")
        slot = SlotDto(
            id=self.new_id(),
            clinic_id=clinic_id,
            doctor_id=doctor_id,
            slot_name=name,
            slot_date=on,
            start_time=time(int(h1), int(m1)),
            end_time=time(int(h2), int(m2)),
            max_capacity=max_capacity,
            is_active=is_active,
        )
        self.slots[slot.id] = slot
        return self.seeded(slot)

    def add_appointment(self, slot: SlotDto, hhmm: str, status="scheduled", booking_order=0) -> AppointmentDto:
        appt = AppointmentDto(
            id=self.new_id(),
            clinic_id=slot.clinic_id,
            doctor_id=slot.doctor_id,
            patient_id=99,
            slot_id=slot.id,
            appointment_datetime=at(hhmm, slot.slot_date),
            booking_order=booking_order,
            status=status,
        )
        self.appointments[appt.id] = appt
        return self.seeded(appt)

    def add_request(self, slot: SlotDto, hhmm: str, created_at: datetime, name="Asha", phone="9000000001", email=None, status=PENDING, **extra) -> AppointmentRequestDto:
        req = AppointmentRequestDto(
            id=self.new_id(),
            clinic_id=slot.clinic_id,
            doctor_id=slot.doctor_id,
            patient_name=name,
            status=status,
            created_at=created_at,
            requested_datetime=at(hhmm, slot.slot_date) if hhmm else None,
            target_slot_id=slot.id,
            patient_phone=phone,
            patient_email=email,
            **extra,
        )
        self.requests[req.id] = req
        return self.seeded(req)


class FakeSlotsRepo:
    def __init__(self, store: FakeStore):
        self.store = store
        self.fail_reads = False

    def get(self, slot_id):
        if self.fail_reads:
            return None
        s = self.store.slots.get(slot_id)
        return replace(s) if s else None

    def list_active(self, doctor_id, on_date):
        return [replace(s) for s in self.store.slots.values() if s.doctor_id == doctor_id and s.slot_date == on_date and s.is_active]

    def list_active_for_clinic(self, clinic_id):
        return [replace(s) for s in self.store.slots.values() if s.clinic_id == clinic_id and s.is_active]

    def set_current_bookings(self, slot_id, count):
        s = self.store.slots.get(slot_id)
        if s:
            self.store.slots[slot_id] = replace(s, current_bookings=count)


class FakeAppointmentsRepo:
    def __init__(self, store: FakeStore):
        self.store = store

    def get(self, appointment_id):
        a = self.store.appointments.get(appointment_id)
        return replace(a) if a else None

    def list_active_in_slot(self, slot_id):
        return [replace(a) for a in self.store.appointments.values() if a.slot_id == slot_id and a.status in ACTIVE_APPOINTMENT_STATUSES]

    def create(self, data):
        # Mirrors the partial unique index on active (slot_id, appointment_datetime)
        for a in self.list_active_in_slot(data.slot_id):
            if a.appointment_datetime == data.appointment_datetime:
                raise TimeConflict("taken")
        appt = AppointmentDto(
            id=self.store.new_id(),
            clinic_id=data.clinic_id,
            doctor_id=data.doctor_id,
            patient_id=data.patient_id,
            slot_id=data.slot_id,
            appointment_datetime=data.appointment_datetime,
            booking_order=data.booking_order,
            status="scheduled",
            duration_minutes=data.duration_minutes,
            appointment_type=data.appointment_type,
        )
        self.store.appointments[appt.id] = appt
        return replace(appt)

    def update_status(self, appointment_id, status):
        a = self.store.appointments.get(appointment_id)
        if a:
            self.store.appointments[appointment_id] = replace(a, status=status)


class FakeRequestsRepo:
    def __init__(self, store: FakeStore):
        self.store = store
        self.fail_assignment_for = set()
        self.fail_mark_approved = False
        self.assignment_writes = 0

    def get(self, request_id):
        r = self.store.requests.get(request_id)
        return replace(r) if r else None

    def create(self, data):
        req = AppointmentRequestDto(
            id=self.store.new_id(),
            clinic_id=data.clinic_id,
            doctor_id=data.doctor_id,
            patient_name=data.patient_name,
            status=PENDING,
            created_at=data.created_at,
            requested_datetime=data.requested_datetime,
            target_slot_id=data.target_slot_id,
            patient_phone=data.patient_phone,
            patient_email=data.patient_email,
            appointment_type=data.appointment_type,
            priority=data.priority,
            symptoms=data.symptoms,
            notes=data.notes,
        )
        self.store.requests[req.id] = req
        return replace(req)

    def list_pending_for_doctor(self, doctor_id, start, end, exclude_id=None):
        return [
            replace(r) for r in self.store.requests.values()
            if r.doctor_id == doctor_id and r.status == PENDING
            and r.requested_datetime is not None and start <= r.requested_datetime <= end
            and r.id != exclude_id
        ]

    def list_pending_in_slot(self, slot_id):
        rows = [replace(r) for r in self.store.requests.values() if r.target_slot_id == slot_id and r.status == PENDING]
        return sorted(rows, key=lambda r: (r.created_at, r.id))

    def list_pending(self, doctor_id, filters):
        rows = [r for r in self.store.requests.values() if r.doctor_id == doctor_id and r.status == PENDING]
        if filters.date_from:
            rows = [r for r in rows if r.requested_datetime and r.requested_datetime >= filters.date_from]
        if filters.date_to:
            rows = [r for r in rows if r.requested_datetime and r.requested_datetime <= filters.date_to]
        if filters.priority:
            rows = [r for r in rows if r.priority == filters.priority]
        if filters.search_term:
            term = filters.search_term.lower()
            rows = [r for r in rows if term in r.patient_name.lower() or term in (r.patient_phone or "") or term in r.appointment_type.lower()]
        rows.sort(key=lambda r: (r.created_at, r.id), reverse=True)
        return [replace(r) for r in rows[filters.offset:filters.offset + filters.limit]]

    def count_pending(self, clinic_id):
        return sum(1 for r in self.store.requests.values() if r.clinic_id == clinic_id and r.status == PENDING)

    def update_assignment(self, request_id, assigned_time, ordinal_position):
        r = self.store.requests[request_id]
        self.store.requests[request_id] = replace(r, assigned_time=None, ordinal_position=None)
        if request_id in self.fail_assignment_for:
            raise RuntimeError("write conflict")
        self.assignment_writes += 1
        changes = {"assigned_time": assigned_time, "ordinal_position": ordinal_position}
        if assigned_time is not None:
            changes["requested_datetime"] = assigned_time
        self.store.requests[request_id] = replace(r, **changes)

    def mark_approved(self, request_id, appointment_id, processed_at):
        if self.fail_mark_approved:
            raise RuntimeError("request row locked")
        r = self.store.requests[request_id]
        self.store.requests[request_id] = replace(r, status=APPROVED, appointment_id=appointment_id, processed_at=processed_at)

    def mark_rejected(self, request_id, reason, processed_at):
        r = self.store.requests[request_id]
        self.store.requests[request_id] = replace(
            r, status=REJECTED, rejection_reason=reason, assigned_time=None, ordinal_position=None, processed_at=processed_at
        )


class FakePatientDirectory:
    def __init__(self, store: FakeStore):
        self.store = store
        self.calls = 0

    def find_or_create_patient(self, name, phone, email):
        self.calls += 1
        for pid, p in self.store.patients.items():
            if (phone and p["phone"] == phone) or (email and p["email"] == email):
                return pid
        pid = self.store.new_id()
        self.store.patients[pid] = {"name": name, "phone": phone, "email": email}
        return pid

    def ensure_clinic_patient(self, clinic_id, patient_id):
        key = (clinic_id, patient_id)
        if key not in self.store.clinic_patients:
            self.store.clinic_patients[key] = self.store.new_id()
        return self.store.clinic_patients[key]


class FakeUnitOfWork:
    def __init__(self, store: FakeStore):
        self.store = store
        self.commits = 0
        self.rollbacks = 0

    def commit(self):
        self.commits += 1
        self.store.committed = self.store.snapshot()

    def rollback(self):
        self.rollbacks += 1
        self.store.restore(self.store.committed)

    @contextmanager
    def savepoint(self):
        state = self.store.snapshot()
        try:
            yield
        except Exception:
            self.store.restore(state)
            raise


class FakeLocker:
    def __init__(self):
        self.held = []
        self.active = set()

    @contextmanager
    def hold(self, slot_id):
        assert slot_id not in self.active
        self.active.add(slot_id)
        self.held.append(slot_id)
        try:
            yield
        finally:
            self.active.discard(slot_id)


class RecordingNotifier:
    def __init__(self, fail=False):
        self.events = []
        self.fail = fail

    def _record(self, *event):
        if self.fail:
            raise RuntimeError("sms gateway down")
        self.events.append(event)

    def request_approved(self, request, appointment):
        self._record("approved", request.id, appointment.id)

    def request_rejected(self, request, reason):
        self._record("rejected", request.id, reason)

    def appointment_cancelled(self, appointment, reason=None):
        self._record("cancelled", appointment.id, reason)


class RecordingAudit:
    def __init__(self):
        self.entries = []

    def log(self, action, entity_type, entity_id=None, actor=None, success=True, details=None):
        self.entries.append((action, entity_id, success))


class Clock:
    """Strictly increasing timestamps so FIFO order is unambiguous."""

    def __init__(self, start=datetime(2025, 1, 14, 8, 0)):
        self.current = start

    def __call__(self):
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def repos(store):
    return {
        "slots": FakeSlotsRepo(store),
        "appointments": FakeAppointmentsRepo(store),
        "requests": FakeRequestsRepo(store),
        "patients": FakePatientDirectory(store),
    }


@pytest.fixture
def uow(store):
    return FakeUnitOfWork(store)


@pytest.fixture
def locker():
    return FakeLocker()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def audit():
    return RecordingAudit()


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def lifecycle(repos, uow, locker, notifier, audit, clock):
    return RequestLifecycleService(
        requests=repos["requests"],
        appointments=repos["appointments"],
        slots=repos["slots"],
        patients=repos["patients"],
        uow=uow,
        locker=locker,
        notifier=notifier,
        audit=audit,
        interval_minutes=40,
        now=clock,
    )


@pytest.fixture
def appointments_service(repos, uow, locker, notifier, audit):
    return AppointmentsService(
        appointments=repos["appointments"],
        requests=repos["requests"],
        slots=repos["slots"],
        uow=uow,
        locker=locker,
        notifier=notifier,
        audit=audit,
        interval_minutes=40,
    )


@pytest.fixture
def sql_engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    enable_sqlite_savepoints(engine)
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(sql_engine):
    with Session(sql_engine) as session:
        yield session
