from dataclasses import dataclass, field
from datetime import datetime
from typing import FrozenSet, Optional
import logging

from ...exceptions import SlotUnavailable
from ..ports.slots_repo import SlotsRepository, SlotDto
from ..ports.appointments_repo import AppointmentsRepository
from ..ports.requests_repo import AppointmentRequestsRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotOccupancy:
    active_count: int
    pending_count: int
    occupied_timestamps: FrozenSet[datetime] = field(default_factory=frozenset)

    @property
    def used(self) -> int:
        return self.active_count + self.pending_count

    def available(self, max_capacity: int) -> int:
        return max(0, max_capacity - self.used)

    def is_full(self, max_capacity: int) -> bool:
        return self.used >= max_capacity


@dataclass
class OccupancyCalculator:
    """Single source of truth for how loaded a slot is."""
    slots: SlotsRepository
    appointments: AppointmentsRepository
    requests: AppointmentRequestsRepository

    def load_slot(self, slot_id: int) -> SlotDto:
        slot = self.slots.get(slot_id)
        if not slot:
            raise SlotUnavailable(f"Slot {slot_id} could not be read", context={"slot_id": slot_id})
        return slot

    def occupancy(self, slot: SlotDto, exclude_request_id: Optional[int] = None) -> SlotOccupancy:
        active = self.appointments.list_active_in_slot(slot.id)
        pending = self.requests.list_pending_for_doctor(
            slot.doctor_id, slot.starts_at, slot.ends_at, exclude_id=exclude_request_id
        )
        return SlotOccupancy(
            active_count=len(active),
            pending_count=len(pending),
            occupied_timestamps=frozenset(a.appointment_datetime for a in active),
        )

    def resync(self, slot_id: int) -> SlotOccupancy:
        """Overwrite the slot's cached booking counter with the computed figure."""
        slot = self.load_slot(slot_id)
        occ = self.occupancy(slot)
        if slot.current_bookings != occ.used:
            logger.info(
                f"Resynced slot {slot_id} bookings {slot.current_bookings} -> {occ.used} "
                f"({occ.active_count} active + {occ.pending_count} pending)"
            )
        self.slots.set_current_bookings(slot_id, occ.used)
        return occ
