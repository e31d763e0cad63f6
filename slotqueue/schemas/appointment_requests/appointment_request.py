# slotqueue/schemas/appointment_requests/appointment_request.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime

from ..appointments.appointment import AppointmentResponse


class AppointmentRequestCreate(BaseModel):
    clinic_id: int
    doctor_id: int
    patient_name: str = Field(min_length=1, max_length=200)
    patient_phone: Optional[str] = None
    patient_email: Optional[str] = None
    requested_datetime: datetime
    appointment_type: str = "consultation"
    priority: str = "normal"
    symptoms: Optional[str] = None
    notes: Optional[str] = None


class AppointmentRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    clinic_id: int
    doctor_id: int
    target_slot_id: Optional[int] = None
    patient_name: str
    patient_phone: Optional[str] = None
    patient_email: Optional[str] = None
    requested_datetime: Optional[datetime] = None
    assigned_time: Optional[datetime] = None
    ordinal_position: Optional[int] = None
    appointment_type: str
    priority: str
    symptoms: Optional[str] = None
    notes: Optional[str] = None
    status: str
    rejection_reason: Optional[str] = None
    appointment_id: Optional[int] = None
    processed_at: Optional[datetime] = None
    created_at: datetime


class ApproveRequestBody(BaseModel):
    actor: Optional[str] = None


class RejectRequestBody(BaseModel):
    reason: Optional[str] = None
    actor: Optional[str] = None


class ApprovalResponse(BaseModel):
    request_id: int
    status: str
    already_processed: bool = False
    appointment: Optional[AppointmentResponse] = None


class RejectionResponse(BaseModel):
    request_id: int
    status: str
    already_processed: bool = False
    request: Optional[AppointmentRequestResponse] = None


class PendingCountResponse(BaseModel):
    clinic_id: int
    pending_count: int
