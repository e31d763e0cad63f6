from datetime import datetime
from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .....constants import ACTIVE_APPOINTMENT_STATUSES
from .....db.models import Appointment
from .....exceptions import TimeConflict
from .....application.ports.appointments_repo import (
    AppointmentsRepository,
    AppointmentDto,
    NewAppointment,
)


class SqlAppointmentsRepository(AppointmentsRepository):
    def __init__(self, session: Session):
        self.session = session

    def _appt_to_dto(self, a: Appointment) -> AppointmentDto:
        return AppointmentDto(
            id=a.id,
            clinic_id=a.clinic_id,
            doctor_id=a.doctor_id,
            patient_id=a.patient_id,
            slot_id=a.slot_id,
            appointment_datetime=a.appointment_datetime,
            booking_order=a.booking_order,
            status=a.status,
            duration_minutes=a.duration_minutes,
            appointment_type=a.appointment_type,
            created_at=a.created_at,
        )

    def get(self, appointment_id: int) -> Optional[AppointmentDto]:
        a = self.session.exec(
            select(Appointment)
            .where(Appointment.id == appointment_id)
            .execution_options(populate_existing=True)
        ).first()
        return self._appt_to_dto(a) if a else None

    def list_active_in_slot(self, slot_id: int) -> List[AppointmentDto]:
        rows = self.session.exec(
            select(Appointment)
            .where(Appointment.slot_id == slot_id)
            .where(Appointment.status.in_(ACTIVE_APPOINTMENT_STATUSES))
            .order_by(Appointment.appointment_datetime.asc())
        ).all()
        return [self._appt_to_dto(r) for r in rows]

    def create(self, data: NewAppointment) -> AppointmentDto:
        appt = Appointment(
            clinic_id=data.clinic_id,
            doctor_id=data.doctor_id,
            patient_id=data.patient_id,
            slot_id=data.slot_id,
            appointment_datetime=data.appointment_datetime,
            booking_order=data.booking_order,
            duration_minutes=data.duration_minutes,
            appointment_type=data.appointment_type,
            status="scheduled",
        )
        self.session.add(appt)
        try:
            self.session.flush()
        except IntegrityError as e:
            # The partial unique index caught a concurrent booking of the same time
            raise TimeConflict(
                f"{data.appointment_datetime:%Y-%m-%d %H:%M} is already booked in slot {data.slot_id}; please retry",
                context={"slot_id": data.slot_id, "requested_datetime": data.appointment_datetime.isoformat()},
            ) from e
        return self._appt_to_dto(appt)

    def update_status(self, appointment_id: int, status: str) -> None:
        a = self.session.get(Appointment, appointment_id)
        if not a:
            return
        a.status = status
        a.updated_at = datetime.utcnow()
        self.session.add(a)
        self.session.flush()
