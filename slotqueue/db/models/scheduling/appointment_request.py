# slotqueue/db/models/scheduling/appointment_request.py
from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime

class AppointmentRequest(SQLModel, table=True):
    __tablename__ = "appointment_requests"
    id: Optional[int] = Field(default=None, primary_key=True)
    clinic_id: int = Field(index=True)
    doctor_id: int = Field(index=True)
    target_slot_id: Optional[int] = Field(default=None, foreign_key="time_slots.id", index=True)
    patient_name: str
    patient_phone: Optional[str] = None
    patient_email: Optional[str] = None
    requested_datetime: Optional[datetime] = None
    assigned_time: Optional[datetime] = None
    ordinal_position: Optional[int] = None
    appointment_type: str = Field(default="consultation")
    priority: str = Field(default="normal")
    symptoms: Optional[str] = None
    notes: Optional[str] = None
    status: str = Field(default="pending", index=True)
    rejection_reason: Optional[str] = None
    appointment_id: Optional[int] = Field(default=None, foreign_key="appointments.id")
    processed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
