from dataclasses import dataclass
from typing import List, Optional
from datetime import datetime


@dataclass
class AppointmentDto:
    id: int
    clinic_id: int
    doctor_id: int
    patient_id: int
    slot_id: int
    appointment_datetime: datetime
    booking_order: int
    status: str
    duration_minutes: int = 30
    appointment_type: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class NewAppointment:
    clinic_id: int
    doctor_id: int
    patient_id: int
    slot_id: int
    appointment_datetime: datetime
    booking_order: int
    duration_minutes: int
    appointment_type: Optional[str] = None


class AppointmentsRepository:
    def get(self, appointment_id: int) -> Optional[AppointmentDto]:
        ...

    def list_active_in_slot(self, slot_id: int) -> List[AppointmentDto]:
        ...

    def create(self, data: NewAppointment) -> AppointmentDto:
        ...

    def update_status(self, appointment_id: int, status: str) -> None:
        ...
