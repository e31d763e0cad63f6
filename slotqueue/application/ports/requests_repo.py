from dataclasses import dataclass
from typing import List, Optional
from datetime import datetime


@dataclass
class AppointmentRequestDto:
    id: int
    clinic_id: int
    doctor_id: int
    patient_name: str
    status: str
    created_at: datetime
    requested_datetime: Optional[datetime] = None
    target_slot_id: Optional[int] = None
    assigned_time: Optional[datetime] = None
    ordinal_position: Optional[int] = None
    patient_phone: Optional[str] = None
    patient_email: Optional[str] = None
    appointment_type: str = "consultation"
    priority: str = "normal"
    symptoms: Optional[str] = None
    notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    appointment_id: Optional[int] = None
    processed_at: Optional[datetime] = None


@dataclass
class NewAppointmentRequest:
    clinic_id: int
    doctor_id: int
    patient_name: str
    requested_datetime: datetime
    target_slot_id: int
    created_at: datetime
    patient_phone: Optional[str] = None
    patient_email: Optional[str] = None
    appointment_type: str = "consultation"
    priority: str = "normal"
    symptoms: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class RequestFilters:
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    priority: Optional[str] = None
    search_term: Optional[str] = None
    limit: int = 50
    offset: int = 0


class AppointmentRequestsRepository:
    def get(self, request_id: int) -> Optional[AppointmentRequestDto]:
        ...

    def create(self, data: NewAppointmentRequest) -> AppointmentRequestDto:
        ...

    def list_pending_for_doctor(self, doctor_id: int, start: datetime, end: datetime, exclude_id: Optional[int] = None) -> List[AppointmentRequestDto]:
        """Pending requests whose requested_datetime lies within [start, end]."""
        ...

    def list_pending_in_slot(self, slot_id: int) -> List[AppointmentRequestDto]:
        """Pending requests attached to the slot, oldest submission first."""
        ...

    def list_pending(self, doctor_id: int, filters: RequestFilters) -> List[AppointmentRequestDto]:
        ...

    def count_pending(self, clinic_id: int) -> int:
        ...

    def update_assignment(self, request_id: int, assigned_time: Optional[datetime], ordinal_position: Optional[int]) -> None:
        """Store the queue slot; an assigned time also becomes the requested_datetime."""
        ...

    def mark_approved(self, request_id: int, appointment_id: int, processed_at: datetime) -> None:
        ...

    def mark_rejected(self, request_id: int, reason: str, processed_at: datetime) -> None:
        ...
