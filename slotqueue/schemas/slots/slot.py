# slotqueue/schemas/slots/slot.py
from pydantic import BaseModel
from typing import List, Optional
from datetime import date, datetime


class SlotAvailabilityResponse(BaseModel):
    slot_id: int
    slot_name: Optional[str] = None
    slot_date: date
    start_time: str  # HH:MM
    end_time: str  # HH:MM
    max_capacity: int
    current_bookings: int
    active_count: int
    pending_count: int
    available_capacity: int
    is_full: bool
    next_free_time: Optional[datetime] = None


class QueueAssignment(BaseModel):
    request_id: int
    assigned_time: datetime
    ordinal_position: int


class RecalculationResponse(BaseModel):
    slot_id: int
    assignments: List[QueueAssignment]
    unassignable: List[int]
    failed: List[int]
    unassigned_count: int
