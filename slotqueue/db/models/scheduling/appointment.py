# slotqueue/db/models/scheduling/appointment.py
from typing import Optional
from sqlalchemy import Index, text
from sqlmodel import SQLModel, Field
from datetime import datetime

_ACTIVE = "status IN ('scheduled', 'checked-in', 'in-progress')"

class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    __table_args__ = (
        # No two active appointments in one slot may share a timestamp
        Index(
            "uq_appointments_active_slot_time",
            "slot_id",
            "appointment_datetime",
            unique=True,
            sqlite_where=text(_ACTIVE),
            postgresql_where=text(_ACTIVE),
        ),
    )
    id: Optional[int] = Field(default=None, primary_key=True)
    clinic_id: int = Field(index=True)
    doctor_id: int = Field(index=True)
    patient_id: int = Field(foreign_key="clinic_patients.id")
    slot_id: int = Field(foreign_key="time_slots.id", index=True)
    appointment_datetime: datetime
    booking_order: int = Field(default=0)
    duration_minutes: int = Field(default=30)
    appointment_type: Optional[str] = None
    status: str = Field(default="scheduled", index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
