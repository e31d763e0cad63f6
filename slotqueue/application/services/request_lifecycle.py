from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional
import logging

from ...constants import PENDING, PRIORITIES
from ...core.config import settings
from ...exceptions import (
    InvalidRequest,
    MissingAssignedTime,
    MissingReason,
    PatientResolutionError,
    RequestAlreadyProcessed,
    RequestNotFound,
    SlotAtCapacity,
    SlotResolutionError,
    TimeConflict,
    slot_context,
)
from ...utils import to_clinic_local
from ..ports.appointments_repo import AppointmentsRepository, AppointmentDto, NewAppointment
from ..ports.audit_logger import AuditLogger
from ..ports.notifier import Notifier
from ..ports.patient_directory import PatientDirectory
from ..ports.requests_repo import (
    AppointmentRequestsRepository,
    AppointmentRequestDto,
    NewAppointmentRequest,
    RequestFilters,
)
from ..ports.slot_locker import SlotLocker
from ..ports.slots_repo import SlotsRepository, SlotDto
from ..ports.unit_of_work import UnitOfWork
from .occupancy import OccupancyCalculator
from .queue_recalculation import QueueRecalculationEngine, RecalculationResult
from .slot_directory import SlotDirectory
from .slot_transaction import SlotTransaction
from .time_assignment import iterate_slot_offsets

logger = logging.getLogger(__name__)


@dataclass
class RequestDraft:
    clinic_id: int
    doctor_id: int
    patient_name: str
    requested_datetime: Optional[datetime]
    patient_phone: Optional[str] = None
    patient_email: Optional[str] = None
    appointment_type: str = "consultation"
    priority: str = "normal"
    symptoms: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class RequestLifecycleService:
    """pending -> approved | rejected, plus submission and queue maintenance."""
    requests: AppointmentRequestsRepository
    appointments: AppointmentsRepository
    slots: SlotsRepository
    patients: PatientDirectory
    uow: UnitOfWork
    locker: SlotLocker
    notifier: Optional[Notifier] = None
    audit: Optional[AuditLogger] = None
    interval_minutes: Optional[int] = None
    now: Callable[[], datetime] = field(default_factory=lambda: datetime.utcnow)

    def __post_init__(self) -> None:
        self.directory = SlotDirectory(self.slots)
        self.occupancy = OccupancyCalculator(self.slots, self.appointments, self.requests)
        self.recalculator = QueueRecalculationEngine(
            self.slots, self.appointments, self.requests, self.uow, self.interval_minutes
        )
        self.transaction = SlotTransaction(self.locker, self.uow, self.occupancy)

    # ------------------------
    # Submission
    # ------------------------
    def submit(self, draft: RequestDraft) -> AppointmentRequestDto:
        self._validate_draft(draft)
        requested = to_clinic_local(draft.requested_datetime)
        slot = self.directory.slot_for_datetime(draft.doctor_id, requested)
        if slot.clinic_id != draft.clinic_id:
            raise SlotResolutionError(
                f"Slot {slot.id} does not belong to clinic {draft.clinic_id}",
                context=slot_context(slot),
            )

        def work() -> int:
            fresh = self.occupancy.load_slot(slot.id)
            occ = self.occupancy.occupancy(fresh)
            if occ.is_full(fresh.max_capacity):
                raise SlotAtCapacity(
                    f"Slot {fresh.slot_name or fresh.id} is at full capacity ({occ.used}/{fresh.max_capacity}); please choose another time",
                    context=slot_context(fresh, occ),
                )
            created = self.requests.create(NewAppointmentRequest(
                clinic_id=draft.clinic_id,
                doctor_id=draft.doctor_id,
                patient_name=draft.patient_name.strip(),
                requested_datetime=requested,
                target_slot_id=fresh.id,
                created_at=self.now(),
                patient_phone=_clean(draft.patient_phone),
                patient_email=_clean(draft.patient_email),
                appointment_type=draft.appointment_type,
                priority=draft.priority,
                symptoms=draft.symptoms,
                notes=draft.notes,
            ))
            self.recalculator.recalculate(fresh.id)
            return created.id

        request_id = self.transaction.run(slot.id, work)
        self._audit("request.submitted", request_id, details={"slot_id": slot.id})
        return self._load(request_id)

    # ------------------------
    # Approval
    # ------------------------
    def approve(self, request_id: int, actor: Optional[str] = None) -> AppointmentDto:
        request = self._load(request_id)
        self._require_pending(request)
        if request.requested_datetime is None:
            raise MissingAssignedTime(
                f"No appointment time assigned to request {request_id}",
                context={"request_id": request_id},
            )
        slot = self.directory.slot_for_datetime(request.doctor_id, request.requested_datetime)

        try:
            appointment = self.transaction.run(slot.id, lambda: self._approve_locked(request_id, slot.id))
        except Exception as e:
            self._audit("request.approved", request_id, actor=actor, success=False, details={"error": str(e)})
            raise

        approved = self._load(request_id)
        self._audit("request.approved", request_id, actor=actor, details={"appointment_id": appointment.id, "slot_id": slot.id})
        self._notify("request_approved", approved, appointment)
        return appointment

    def _approve_locked(self, request_id: int, slot_id: int) -> AppointmentDto:
        # Everything below reads state after the slot lock was taken
        request = self._load(request_id)
        self._require_pending(request)
        slot = self.occupancy.load_slot(slot_id)
        self._require_bookable_time(request, slot)

        patient_id = self._resolve_patient(request)

        occ = self.occupancy.occupancy(slot, exclude_request_id=request.id)
        if occ.is_full(slot.max_capacity):
            raise SlotAtCapacity(
                f"Slot {slot.slot_name or slot.id} is at full capacity ({occ.used}/{slot.max_capacity}); please choose another time",
                context=slot_context(slot, occ),
            )
        if request.requested_datetime in occ.occupied_timestamps:
            raise TimeConflict(
                f"{request.requested_datetime:%Y-%m-%d %H:%M} was just taken in slot {slot.slot_name or slot.id}; please retry",
                context={**slot_context(slot, occ), "requested_datetime": request.requested_datetime.isoformat()},
            )

        booking_order = request.ordinal_position if request.ordinal_position is not None else occ.pending_count
        appointment = self.appointments.create(NewAppointment(
            clinic_id=request.clinic_id,
            doctor_id=request.doctor_id,
            patient_id=patient_id,
            slot_id=slot.id,
            appointment_datetime=request.requested_datetime,
            booking_order=booking_order,
            duration_minutes=settings.APPOINTMENT_DURATION_MINUTES,
            appointment_type=request.appointment_type,
        ))
        self.requests.mark_approved(request.id, appointment.id, self.now())
        self.recalculator.recalculate(slot.id)
        return appointment

    def _require_bookable_time(self, request: AppointmentRequestDto, slot: SlotDto) -> None:
        # Only a queue-assigned offset of this slot may be booked
        context = {
            **slot_context(slot),
            "request_id": request.id,
            "requested_datetime": request.requested_datetime.isoformat() if request.requested_datetime else None,
        }
        if request.assigned_time is None:
            raise MissingAssignedTime(
                f"Request {request.id} has no assigned time in slot {slot.slot_name or slot.id}; recalculate the queue or choose another slot",
                context=context,
            )
        if (
            request.requested_datetime != request.assigned_time
            or request.assigned_time not in set(iterate_slot_offsets(slot, self.interval_minutes))
        ):
            raise MissingAssignedTime(
                f"Request {request.id} is not at a bookable time in slot {slot.slot_name or slot.id}; recalculate the queue",
                context={**context, "assigned_time": request.assigned_time.isoformat()},
            )

    def _resolve_patient(self, request: AppointmentRequestDto) -> int:
        if not request.patient_name or not request.patient_name.strip():
            raise PatientResolutionError("Patient name is required", context={"request_id": request.id})
        if not _clean(request.patient_phone) and not _clean(request.patient_email):
            raise PatientResolutionError("Patient phone or email is required", context={"request_id": request.id})
        patient_id = self.patients.find_or_create_patient(
            request.patient_name.strip(), _clean(request.patient_phone), _clean(request.patient_email)
        )
        if patient_id is None:
            raise PatientResolutionError("Patient record could not be resolved", context={"request_id": request.id})
        clinic_patient_id = self.patients.ensure_clinic_patient(request.clinic_id, patient_id)
        if clinic_patient_id is None:
            raise PatientResolutionError("Clinic patient record could not be resolved", context={"request_id": request.id})
        return clinic_patient_id

    # ------------------------
    # Rejection
    # ------------------------
    def reject(self, request_id: int, reason: str, actor: Optional[str] = None) -> AppointmentRequestDto:
        request = self._load(request_id)
        self._require_pending(request)
        if not reason or not reason.strip():
            raise MissingReason("A rejection reason is required", context={"request_id": request_id})
        reason = reason.strip()

        slot_id = self._slot_id_for(request)

        def work() -> Optional[RecalculationResult]:
            fresh = self._load(request_id)
            self._require_pending(fresh)
            self.requests.mark_rejected(request_id, reason, self.now())
            if slot_id is None:
                return None
            return self.recalculator.recalculate(slot_id)

        if slot_id is None:
            logger.warning(f"Rejecting request {request_id} without a resolvable slot; no queue to recalculate")
            try:
                work()
                self.uow.commit()
            except Exception:
                self.uow.rollback()
                raise
        else:
            self.transaction.run(slot_id, work)

        rejected = self._load(request_id)
        self._audit("request.rejected", request_id, actor=actor, details={"reason": reason, "slot_id": slot_id})
        self._notify("request_rejected", rejected, reason)
        return rejected

    def _slot_id_for(self, request: AppointmentRequestDto) -> Optional[int]:
        if request.requested_datetime is not None:
            try:
                return self.directory.slot_for_datetime(request.doctor_id, request.requested_datetime).id
            except SlotResolutionError as e:
                logger.warning(f"Request {request.id}: {e}")
        return request.target_slot_id

    # ------------------------
    # Queue maintenance
    # ------------------------
    def recalculate_slot(self, slot_id: int) -> RecalculationResult:
        return self.transaction.run(slot_id, lambda: self.recalculator.recalculate(slot_id))

    def recalculate_all(self, clinic_id: int) -> List[RecalculationResult]:
        results = []
        for slot in self.slots.list_active_for_clinic(clinic_id):
            results.append(self.recalculate_slot(slot.id))
        logger.info(f"Recalculated {len(results)} slot(s) for clinic {clinic_id}")
        return results

    # ------------------------
    # Staff console queries
    # ------------------------
    def list_pending(self, doctor_id: int, filters: Optional[RequestFilters] = None) -> List[AppointmentRequestDto]:
        filters = filters or RequestFilters()
        if filters.priority and filters.priority not in PRIORITIES:
            raise InvalidRequest(f"Invalid priority. Must be one of: {PRIORITIES}")
        if filters.date_from is not None:
            filters.date_from = to_clinic_local(filters.date_from)
        if filters.date_to is not None:
            filters.date_to = to_clinic_local(filters.date_to)
        return self.requests.list_pending(doctor_id, filters)

    # ------------------------
    # Helpers
    # ------------------------
    def _load(self, request_id: int) -> AppointmentRequestDto:
        request = self.requests.get(request_id)
        if not request:
            raise RequestNotFound(f"Appointment request {request_id} not found", context={"request_id": request_id})
        return request

    @staticmethod
    def _require_pending(request: AppointmentRequestDto) -> None:
        if request.status != PENDING:
            raise RequestAlreadyProcessed(
                f"Request {request.id} has already been {request.status}",
                context={"request_id": request.id, "status": request.status},
            )

    @staticmethod
    def _validate_draft(draft: RequestDraft) -> None:
        if not draft.patient_name or not draft.patient_name.strip():
            raise InvalidRequest("Patient name is required")
        if not _clean(draft.patient_phone) and not _clean(draft.patient_email):
            raise InvalidRequest("Patient phone or email is required")
        if draft.requested_datetime is None:
            raise MissingAssignedTime("A requested date and time is required")
        if draft.priority not in PRIORITIES:
            raise InvalidRequest(f"Invalid priority. Must be one of: {PRIORITIES}")

    def _notify(self, event: str, *args) -> None:
        if not self.notifier:
            return
        try:
            getattr(self.notifier, event)(*args)
        except Exception as e:
            logger.warning(f"Notification {event} failed: {e}")

    def _audit(self, action: str, request_id: int, actor: Optional[str] = None, success: bool = True, details: Optional[dict] = None) -> None:
        if not self.audit:
            return
        try:
            self.audit.log(action, "appointment_request", entity_id=request_id, actor=actor, success=success, details=details)
        except Exception as e:
            logger.warning(f"Audit log failed: {e}")


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None
