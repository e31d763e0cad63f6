from typing import List, Optional
from fastapi import APIRouter, Body, Depends, HTTPException, Query
from datetime import datetime
import logging

from ..application.ports.requests_repo import RequestFilters
from ..application.services.pending_count_service import PendingCountService
from ..application.services.request_lifecycle import RequestDraft, RequestLifecycleService
from ..exceptions import RequestAlreadyProcessed
from ..schemas.appointment_requests.appointment_request import (
    AppointmentRequestCreate,
    AppointmentRequestResponse,
    ApprovalResponse,
    ApproveRequestBody,
    PendingCountResponse,
    RejectionResponse,
    RejectRequestBody,
)
from ..schemas.appointments.appointment import AppointmentResponse
from .deps import get_pending_count_service, get_request_lifecycle_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointment-requests", tags=["Appointment Requests"])


@router.post("/", response_model=AppointmentRequestResponse, status_code=201)
def submit_request(
    payload: AppointmentRequestCreate,
    service: RequestLifecycleService = Depends(get_request_lifecycle_service),
):
    try:
        created = service.submit(RequestDraft(**payload.model_dump()))
        return AppointmentRequestResponse.model_validate(created)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error submitting appointment request: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to submit appointment request")


@router.get("/pending", response_model=List[AppointmentRequestResponse])
def list_pending_requests(
    doctor_id: int,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    priority: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    service: RequestLifecycleService = Depends(get_request_lifecycle_service),
):
    filters = RequestFilters(
        date_from=date_from,
        date_to=date_to,
        priority=priority,
        search_term=search,
        limit=limit,
        offset=offset,
    )
    try:
        return [AppointmentRequestResponse.model_validate(r) for r in service.list_pending(doctor_id, filters)]
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing pending requests: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to retrieve pending requests")


@router.get("/pending/count", response_model=PendingCountResponse)
def pending_request_count(
    clinic_id: int,
    service: PendingCountService = Depends(get_pending_count_service),
):
    return PendingCountResponse(clinic_id=clinic_id, pending_count=service.get_pending_count(clinic_id))


@router.post("/{request_id}/approve", response_model=ApprovalResponse)
def approve_request(
    request_id: int,
    payload: Optional[ApproveRequestBody] = Body(default=None),
    service: RequestLifecycleService = Depends(get_request_lifecycle_service),
):
    actor = payload.actor if payload else None
    try:
        appointment = service.approve(request_id, actor=actor)
    except RequestAlreadyProcessed as e:
        # Double clicks from the console are not errors
        logger.info(f"Approve on request {request_id} ignored: {e}")
        return ApprovalResponse(request_id=request_id, status=e.context.get("status", "processed"), already_processed=True)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error approving request {request_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to approve appointment request")
    return ApprovalResponse(
        request_id=request_id,
        status="approved",
        appointment=AppointmentResponse.model_validate(appointment),
    )


@router.post("/{request_id}/reject", response_model=RejectionResponse)
def reject_request(
    request_id: int,
    payload: RejectRequestBody,
    service: RequestLifecycleService = Depends(get_request_lifecycle_service),
):
    try:
        rejected = service.reject(request_id, payload.reason or "", actor=payload.actor)
    except RequestAlreadyProcessed as e:
        logger.info(f"Reject on request {request_id} ignored: {e}")
        return RejectionResponse(request_id=request_id, status=e.context.get("status", "processed"), already_processed=True)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error rejecting request {request_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to reject appointment request")
    return RejectionResponse(
        request_id=request_id,
        status=rejected.status,
        request=AppointmentRequestResponse.model_validate(rejected),
    )
