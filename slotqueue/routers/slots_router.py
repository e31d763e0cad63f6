from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query
from datetime import date
import logging

from ..application.services.availability_service import AvailabilityService
from ..application.services.queue_recalculation import RecalculationResult
from ..application.services.request_lifecycle import RequestLifecycleService
from ..schemas.slots.slot import QueueAssignment, RecalculationResponse, SlotAvailabilityResponse
from ..utils import format_hhmm
from .deps import get_availability_service, get_request_lifecycle_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/slots", tags=["Slots"])


def _recalculation_response(result: RecalculationResult) -> RecalculationResponse:
    return RecalculationResponse(
        slot_id=result.slot_id,
        assignments=[
            QueueAssignment(request_id=rid, assigned_time=at, ordinal_position=pos)
            for rid, at, pos in result.assignments
        ],
        unassignable=result.unassignable,
        failed=result.failed,
        unassigned_count=result.unassigned_count,
    )


@router.get("/availability", response_model=List[SlotAvailabilityResponse])
def slot_availability(
    doctor_id: int,
    on_date: date = Query(..., alias="date"),
    service: AvailabilityService = Depends(get_availability_service),
):
    try:
        out = []
        for item in service.for_doctor(doctor_id, on_date):
            out.append(SlotAvailabilityResponse(
                slot_id=item.slot.id,
                slot_name=item.slot.slot_name,
                slot_date=item.slot.slot_date,
                start_time=format_hhmm(item.slot.start_time),
                end_time=format_hhmm(item.slot.end_time),
                max_capacity=item.slot.max_capacity,
                current_bookings=item.slot.current_bookings,
                active_count=item.occupancy.active_count,
                pending_count=item.occupancy.pending_count,
                available_capacity=item.available_capacity,
                is_full=item.is_full,
                next_free_time=item.next_free_time,
            ))
        return out
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error computing slot availability: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to retrieve slot availability")


@router.post("/recalculate", response_model=List[RecalculationResponse])
def recalculate_clinic(
    clinic_id: int,
    service: RequestLifecycleService = Depends(get_request_lifecycle_service),
):
    return [_recalculation_response(r) for r in service.recalculate_all(clinic_id)]


@router.post("/{slot_id}/recalculate", response_model=RecalculationResponse)
def recalculate_slot(
    slot_id: int,
    service: RequestLifecycleService = Depends(get_request_lifecycle_service),
):
    return _recalculation_response(service.recalculate_slot(slot_id))
