from fastapi import APIRouter, Body, Depends, HTTPException
from typing import Optional
import logging

from ..application.services.appointments_service import AppointmentsService
from ..schemas.appointments.appointment import AppointmentCancel, AppointmentResponse, AppointmentStatusUpdate
from .deps import get_appointments_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


@router.get("/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    service: AppointmentsService = Depends(get_appointments_service),
):
    return AppointmentResponse.model_validate(service.get(appointment_id))


@router.put("/{appointment_id}/cancel", response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    payload: Optional[AppointmentCancel] = Body(default=None),
    service: AppointmentsService = Depends(get_appointments_service),
):
    try:
        appt = service.cancel(appointment_id, reason=payload.reason if payload else None)
        return AppointmentResponse.model_validate(appt)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error cancelling appointment {appointment_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to cancel appointment")


@router.put("/{appointment_id}/status", response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    payload: AppointmentStatusUpdate,
    service: AppointmentsService = Depends(get_appointments_service),
):
    try:
        appt = service.update_status(appointment_id, payload.status, reason=payload.reason)
        return AppointmentResponse.model_validate(appt)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating appointment {appointment_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update appointment status")
