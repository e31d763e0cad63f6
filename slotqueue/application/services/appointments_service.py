from dataclasses import dataclass
from typing import Optional
import logging

from ...constants import (
    ACTIVE_APPOINTMENT_STATUSES,
    APPOINTMENT_STATUSES,
    CANCELLED,
    CHECKED_IN,
    COMPLETED,
    IN_PROGRESS,
    NO_SHOW,
    SCHEDULED,
)
from ...exceptions import AppointmentNotFound, InvalidStatusTransition
from ..ports.appointments_repo import AppointmentsRepository, AppointmentDto
from ..ports.audit_logger import AuditLogger
from ..ports.notifier import Notifier
from ..ports.requests_repo import AppointmentRequestsRepository
from ..ports.slot_locker import SlotLocker
from ..ports.slots_repo import SlotsRepository
from ..ports.unit_of_work import UnitOfWork
from .occupancy import OccupancyCalculator
from .queue_recalculation import QueueRecalculationEngine
from .slot_transaction import SlotTransaction

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    SCHEDULED: {CHECKED_IN, IN_PROGRESS, COMPLETED, CANCELLED, NO_SHOW},
    CHECKED_IN: {IN_PROGRESS, COMPLETED, CANCELLED, NO_SHOW},
    IN_PROGRESS: {COMPLETED, CANCELLED},
    COMPLETED: set(),
    CANCELLED: set(),
    NO_SHOW: set(),
}


@dataclass
class AppointmentsService:
    """Operational status changes; leaving the active set frees the slot."""
    appointments: AppointmentsRepository
    requests: AppointmentRequestsRepository
    slots: SlotsRepository
    uow: UnitOfWork
    locker: SlotLocker
    notifier: Optional[Notifier] = None
    audit: Optional[AuditLogger] = None
    interval_minutes: Optional[int] = None

    def __post_init__(self) -> None:
        self.occupancy = OccupancyCalculator(self.slots, self.appointments, self.requests)
        self.recalculator = QueueRecalculationEngine(
            self.slots, self.appointments, self.requests, self.uow, self.interval_minutes
        )
        self.transaction = SlotTransaction(self.locker, self.uow, self.occupancy)

    def get(self, appointment_id: int) -> AppointmentDto:
        appt = self.appointments.get(appointment_id)
        if not appt:
            raise AppointmentNotFound(f"Appointment {appointment_id} not found", context={"appointment_id": appointment_id})
        return appt

    def cancel(self, appointment_id: int, reason: Optional[str] = None) -> AppointmentDto:
        return self.update_status(appointment_id, CANCELLED, reason=reason)

    def update_status(self, appointment_id: int, status: str, reason: Optional[str] = None) -> AppointmentDto:
        if status not in APPOINTMENT_STATUSES:
            raise InvalidStatusTransition(f"Invalid status. Must be one of: {APPOINTMENT_STATUSES}")
        appt = self.get(appointment_id)

        def work() -> AppointmentDto:
            current = self.get(appointment_id)
            if status not in ALLOWED_TRANSITIONS.get(current.status, set()):
                raise InvalidStatusTransition(
                    f"Cannot change appointment {appointment_id} from {current.status} to {status}",
                    context={"appointment_id": appointment_id, "status": current.status},
                )
            self.appointments.update_status(appointment_id, status)
            if current.status in ACTIVE_APPOINTMENT_STATUSES and status not in ACTIVE_APPOINTMENT_STATUSES:
                # The freed timestamp goes back to the pending queue
                self.recalculator.recalculate(current.slot_id)
            return self.get(appointment_id)

        updated = self.transaction.run(appt.slot_id, work)
        self._audit(f"appointment.{status}", appointment_id, {"slot_id": appt.slot_id, "reason": reason})
        if status == CANCELLED:
            self._notify_cancelled(updated, reason)
        return updated

    def _notify_cancelled(self, appointment: AppointmentDto, reason: Optional[str]) -> None:
        if not self.notifier:
            return
        try:
            self.notifier.appointment_cancelled(appointment, reason)
        except Exception as e:
            logger.warning(f"Cancellation notification failed: {e}")

    def _audit(self, action: str, appointment_id: int, details: dict) -> None:
        if not self.audit:
            return
        try:
            self.audit.log(action, "appointment", entity_id=appointment_id, details=details)
        except Exception as e:
            logger.warning(f"Audit log failed: {e}")
