from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from typing import Any, Dict, Optional

class APIException(HTTPException):
    def __init__(self, status_code: int, detail: str):
        super().__init__(status_code=status_code, detail=detail)


class SchedulingError(APIException):
    """Base class for slot allocation and request queue failures.

    ``code`` is a stable machine-readable identifier; ``context`` carries what
    staff need to act on the failure (slot name, window, occupancy).
    """
    status_code = 400
    code = "scheduling_error"
    retryable = False

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(status_code=type(self).status_code, detail=message)
        self.context = context or {}

    def __str__(self) -> str:
        return self.detail


def slot_context(slot, occupancy=None) -> Dict[str, Any]:
    """Describe a slot (and optionally its load) for error payloads."""
    ctx: Dict[str, Any] = {
        "slot_id": slot.id,
        "slot_name": slot.slot_name,
        "date": slot.slot_date.isoformat(),
        "window": slot.window_label,
        "max_capacity": slot.max_capacity,
    }
    if occupancy is not None:
        ctx.update({
            "active_count": occupancy.active_count,
            "pending_count": occupancy.pending_count,
            "used_capacity": occupancy.used,
        })
    return ctx


class SlotResolutionError(SchedulingError):
    status_code = 422
    code = "slot_resolution_error"


class SlotUnavailable(SchedulingError):
    status_code = 503
    code = "slot_unavailable"
    retryable = True


class SlotAtCapacity(SchedulingError):
    status_code = 409
    code = "slot_at_capacity"


class SlotFull(SchedulingError):
    status_code = 409
    code = "slot_full"


class TimeConflict(SchedulingError):
    status_code = 409
    code = "time_conflict"
    retryable = True


class RequestAlreadyProcessed(SchedulingError):
    status_code = 409
    code = "request_already_processed"


class RequestNotFound(SchedulingError):
    status_code = 404
    code = "request_not_found"


class AppointmentNotFound(SchedulingError):
    status_code = 404
    code = "appointment_not_found"


class MissingAssignedTime(SchedulingError):
    code = "missing_assigned_time"


class MissingReason(SchedulingError):
    code = "missing_reason"


class InvalidRequest(SchedulingError):
    code = "invalid_request"


class PatientResolutionError(SchedulingError):
    status_code = 422
    code = "patient_resolution_error"


class InvalidStatusTransition(SchedulingError):
    code = "invalid_status_transition"


def create_error_response(error_message: str, status_code: int = 400, code: Optional[str] = None, context: Optional[dict] = None) -> dict:
    """Create a standardized error response"""
    body = {
        "success": False,
        "data": None,
        "error": error_message
    }
    if code:
        body["code"] = code
    if context:
        body["context"] = context
    return body

async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Custom exception handler for HTTPException"""
    if isinstance(exc, SchedulingError):
        return JSONResponse(
            status_code=exc.status_code,
            content=create_error_response(exc.detail, exc.status_code, code=exc.code, context=exc.context)
        )

    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.detail, exc.status_code)
    )
