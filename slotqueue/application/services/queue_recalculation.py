from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple
import logging

from ..ports.slots_repo import SlotsRepository
from ..ports.appointments_repo import AppointmentsRepository
from ..ports.requests_repo import AppointmentRequestsRepository
from ..ports.unit_of_work import UnitOfWork
from .occupancy import OccupancyCalculator
from .time_assignment import candidate_times

logger = logging.getLogger(__name__)


@dataclass
class RecalculationResult:
    slot_id: int
    assignments: List[Tuple[int, datetime, int]] = field(default_factory=list)
    unassignable: List[int] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)

    @property
    def unassigned_count(self) -> int:
        return len(self.unassignable) + len(self.failed)


@dataclass
class QueueRecalculationEngine:
    """Gap-filling: re-derive every pending request's time from scratch.

    Callers must hold the slot lock and own the surrounding transaction.
    """
    slots: SlotsRepository
    appointments: AppointmentsRepository
    requests: AppointmentRequestsRepository
    uow: UnitOfWork
    interval_minutes: Optional[int] = None

    def recalculate(self, slot_id: int) -> RecalculationResult:
        calculator = OccupancyCalculator(self.slots, self.appointments, self.requests)
        slot = calculator.load_slot(slot_id)
        occupied = {a.appointment_datetime for a in self.appointments.list_active_in_slot(slot_id)}
        # FIFO by submission; priority never reorders the queue
        pending = sorted(
            self.requests.list_pending_in_slot(slot_id),
            key=lambda r: (r.created_at, r.id),
        )
        result = RecalculationResult(slot_id=slot_id)
        if not pending:
            return result

        free = candidate_times(slot, occupied, slot.max_capacity, self.interval_minutes)

        for index, request in enumerate(pending):
            if index < len(free):
                assigned_time, ordinal = free[index], index
            else:
                assigned_time, ordinal = None, None
            unchanged = (
                request.assigned_time == assigned_time
                and request.ordinal_position == ordinal
                and (assigned_time is None or request.requested_datetime == assigned_time)
            )
            if unchanged:
                self._record(result, request.id, assigned_time, ordinal)
                continue
            try:
                with self.uow.savepoint():
                    self.requests.update_assignment(request.id, assigned_time, ordinal)
            except Exception:
                logger.exception(f"Failed to reassign pending request {request.id} in slot {slot_id}")
                result.failed.append(request.id)
                continue
            self._record(result, request.id, assigned_time, ordinal)

        if result.unassigned_count:
            logger.warning(
                f"Slot {slot_id} ({slot.window_label}): {len(result.unassignable)} pending request(s) "
                f"cannot be assigned a time, {len(result.failed)} failed to update"
            )
        else:
            logger.info(f"Recalculated {len(result.assignments)} pending request(s) in slot {slot_id}")
        return result

    @staticmethod
    def _record(result: RecalculationResult, request_id: int, assigned_time: Optional[datetime], ordinal: Optional[int]) -> None:
        if assigned_time is None:
            result.unassignable.append(request_id)
        else:
            result.assignments.append((request_id, assigned_time, ordinal))
