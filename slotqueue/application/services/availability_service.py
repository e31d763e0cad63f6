from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional

from ...exceptions import SlotFull
from ..ports.appointments_repo import AppointmentsRepository
from ..ports.requests_repo import AppointmentRequestsRepository
from ..ports.slots_repo import SlotsRepository, SlotDto
from .occupancy import OccupancyCalculator, SlotOccupancy
from .slot_directory import SlotDirectory
from .time_assignment import next_free_time


@dataclass
class SlotAvailability:
    slot: SlotDto
    occupancy: SlotOccupancy
    available_capacity: int
    is_full: bool
    next_free_time: Optional[datetime]


@dataclass
class AvailabilityService:
    slots: SlotsRepository
    appointments: AppointmentsRepository
    requests: AppointmentRequestsRepository
    interval_minutes: Optional[int] = None

    def for_doctor(self, doctor_id: int, on_date: date) -> List[SlotAvailability]:
        directory = SlotDirectory(self.slots)
        calculator = OccupancyCalculator(self.slots, self.appointments, self.requests)
        out = []
        for slot in directory.list_slots(doctor_id, on_date):
            occ = calculator.occupancy(slot)
            try:
                free_at = next_free_time(slot, occ.occupied_timestamps, self.interval_minutes)
            except SlotFull:
                free_at = None
            full = occ.is_full(slot.max_capacity) or free_at is None
            out.append(SlotAvailability(
                slot=slot,
                occupancy=occ,
                available_capacity=0 if full else occ.available(slot.max_capacity),
                is_full=full,
                next_free_time=free_at,
            ))
        return out
