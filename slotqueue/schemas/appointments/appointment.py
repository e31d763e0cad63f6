# slotqueue/schemas/appointments/appointment.py
from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime


class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    clinic_id: int
    doctor_id: int
    patient_id: int
    slot_id: int
    appointment_datetime: datetime
    booking_order: int
    duration_minutes: int
    appointment_type: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None


class AppointmentStatusUpdate(BaseModel):
    status: str
    reason: Optional[str] = None


class AppointmentCancel(BaseModel):
    reason: Optional[str] = None
