# slotqueue/db/models/scheduling/time_slot.py
from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime, date, time

class TimeSlot(SQLModel, table=True):
    __tablename__ = "time_slots"
    id: Optional[int] = Field(default=None, primary_key=True)
    clinic_id: int = Field(index=True)
    doctor_id: int = Field(index=True)
    slot_name: str = Field(default="")
    slot_date: date = Field(index=True)
    start_time: time
    end_time: time
    max_capacity: int = Field(default=1, ge=1)
    # Denormalized hint, refreshed after every mutation; never read for capacity decisions
    current_bookings: int = Field(default=0)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
