from datetime import datetime
from typing import List, Optional
from sqlalchemy import func, or_
from sqlmodel import Session, select

from .....constants import APPROVED, PENDING, REJECTED
from .....db.models import AppointmentRequest
from .....application.ports.requests_repo import (
    AppointmentRequestsRepository,
    AppointmentRequestDto,
    NewAppointmentRequest,
    RequestFilters,
)


class SqlAppointmentRequestsRepository(AppointmentRequestsRepository):
    def __init__(self, session: Session):
        self.session = session

    def _req_to_dto(self, r: AppointmentRequest) -> AppointmentRequestDto:
        return AppointmentRequestDto(
            id=r.id,
            clinic_id=r.clinic_id,
            doctor_id=r.doctor_id,
            patient_name=r.patient_name,
            status=r.status,
            created_at=r.created_at,
            requested_datetime=r.requested_datetime,
            target_slot_id=r.target_slot_id,
            assigned_time=r.assigned_time,
            ordinal_position=r.ordinal_position,
            patient_phone=r.patient_phone,
            patient_email=r.patient_email,
            appointment_type=r.appointment_type,
            priority=r.priority,
            symptoms=r.symptoms,
            notes=r.notes,
            rejection_reason=r.rejection_reason,
            appointment_id=r.appointment_id,
            processed_at=r.processed_at,
        )

    def get(self, request_id: int) -> Optional[AppointmentRequestDto]:
        r = self.session.exec(
            select(AppointmentRequest)
            .where(AppointmentRequest.id == request_id)
            .execution_options(populate_existing=True)
        ).first()
        return self._req_to_dto(r) if r else None

    def create(self, data: NewAppointmentRequest) -> AppointmentRequestDto:
        req = AppointmentRequest(
            clinic_id=data.clinic_id,
            doctor_id=data.doctor_id,
            target_slot_id=data.target_slot_id,
            patient_name=data.patient_name,
            patient_phone=data.patient_phone,
            patient_email=data.patient_email,
            requested_datetime=data.requested_datetime,
            appointment_type=data.appointment_type,
            priority=data.priority,
            symptoms=data.symptoms,
            notes=data.notes,
            status=PENDING,
            created_at=data.created_at,
            updated_at=data.created_at,
        )
        self.session.add(req)
        self.session.flush()
        return self._req_to_dto(req)

    def list_pending_for_doctor(self, doctor_id: int, start: datetime, end: datetime, exclude_id: Optional[int] = None) -> List[AppointmentRequestDto]:
        query = (
            select(AppointmentRequest)
            .where(AppointmentRequest.doctor_id == doctor_id)
            .where(AppointmentRequest.status == PENDING)
            .where(AppointmentRequest.requested_datetime >= start)
            .where(AppointmentRequest.requested_datetime <= end)
        )
        if exclude_id is not None:
            query = query.where(AppointmentRequest.id != exclude_id)
        return [self._req_to_dto(r) for r in self.session.exec(query).all()]

    def list_pending_in_slot(self, slot_id: int) -> List[AppointmentRequestDto]:
        rows = self.session.exec(
            select(AppointmentRequest)
            .where(AppointmentRequest.target_slot_id == slot_id)
            .where(AppointmentRequest.status == PENDING)
            .order_by(AppointmentRequest.created_at.asc(), AppointmentRequest.id.asc())
        ).all()
        return [self._req_to_dto(r) for r in rows]

    def list_pending(self, doctor_id: int, filters: RequestFilters) -> List[AppointmentRequestDto]:
        query = (
            select(AppointmentRequest)
            .where(AppointmentRequest.doctor_id == doctor_id)
            .where(AppointmentRequest.status == PENDING)
        )
        if filters.date_from:
            query = query.where(AppointmentRequest.requested_datetime >= filters.date_from)
        if filters.date_to:
            query = query.where(AppointmentRequest.requested_datetime <= filters.date_to)
        if filters.priority:
            query = query.where(AppointmentRequest.priority == filters.priority)
        if filters.search_term:
            term = f"%{filters.search_term.strip()}%"
            query = query.where(or_(
                AppointmentRequest.patient_name.ilike(term),
                AppointmentRequest.patient_phone.ilike(term),
                AppointmentRequest.appointment_type.ilike(term),
            ))
        rows = self.session.exec(
            query
            .order_by(AppointmentRequest.created_at.desc(), AppointmentRequest.id.desc())
            .offset(filters.offset)
            .limit(filters.limit)
        ).all()
        return [self._req_to_dto(r) for r in rows]

    def count_pending(self, clinic_id: int) -> int:
        return self.session.exec(
            select(func.count(AppointmentRequest.id))
            .where(AppointmentRequest.clinic_id == clinic_id)
            .where(AppointmentRequest.status == PENDING)
        ).one()

    def update_assignment(self, request_id: int, assigned_time: Optional[datetime], ordinal_position: Optional[int]) -> None:
        r = self.session.get(AppointmentRequest, request_id)
        if not r:
            return
        r.assigned_time = assigned_time
        r.ordinal_position = ordinal_position
        if assigned_time is not None:
            r.requested_datetime = assigned_time
        r.updated_at = datetime.utcnow()
        self.session.add(r)
        self.session.flush()

    def mark_approved(self, request_id: int, appointment_id: int, processed_at: datetime) -> None:
        r = self.session.get(AppointmentRequest, request_id)
        if not r:
            return
        r.status = APPROVED
        r.appointment_id = appointment_id
        r.processed_at = processed_at
        r.updated_at = processed_at
        self.session.add(r)
        self.session.flush()

    def mark_rejected(self, request_id: int, reason: str, processed_at: datetime) -> None:
        r = self.session.get(AppointmentRequest, request_id)
        if not r:
            return
        r.status = REJECTED
        r.rejection_reason = reason
        r.assigned_time = None
        r.ordinal_position = None
        r.processed_at = processed_at
        r.updated_at = processed_at
        self.session.add(r)
        self.session.flush()
