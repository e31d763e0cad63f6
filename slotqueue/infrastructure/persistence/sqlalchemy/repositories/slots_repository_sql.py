from datetime import date, datetime
from typing import List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from .....db.models import TimeSlot
from .....exceptions import SlotUnavailable
from .....application.ports.slots_repo import SlotsRepository, SlotDto


class SqlSlotsRepository(SlotsRepository):
    def __init__(self, session: Session):
        self.session = session

    def _slot_to_dto(self, s: TimeSlot) -> SlotDto:
        return SlotDto(
            id=s.id,
            clinic_id=s.clinic_id,
            doctor_id=s.doctor_id,
            slot_name=s.slot_name,
            slot_date=s.slot_date,
            start_time=s.start_time,
            end_time=s.end_time,
            max_capacity=s.max_capacity,
            is_active=s.is_active,
            current_bookings=s.current_bookings,
        )

    def get(self, slot_id: int) -> Optional[SlotDto]:
        try:
            s = self.session.exec(
                select(TimeSlot)
                .where(TimeSlot.id == slot_id)
                .execution_options(populate_existing=True)
            ).first()
        except SQLAlchemyError as e:
            raise SlotUnavailable(f"Slot {slot_id} could not be read", context={"slot_id": slot_id}) from e
        return self._slot_to_dto(s) if s else None

    def list_active(self, doctor_id: int, on_date: date) -> List[SlotDto]:
        try:
            rows = self.session.exec(
                select(TimeSlot)
                .where(TimeSlot.doctor_id == doctor_id)
                .where(TimeSlot.slot_date == on_date)
                .where(TimeSlot.is_active == True)  # noqa: E712
                .order_by(TimeSlot.start_time.asc())
            ).all()
        except SQLAlchemyError as e:
            raise SlotUnavailable(f"Slots for doctor {doctor_id} could not be read") from e
        return [self._slot_to_dto(r) for r in rows]

    def list_active_for_clinic(self, clinic_id: int) -> List[SlotDto]:
        try:
            rows = self.session.exec(
                select(TimeSlot)
                .where(TimeSlot.clinic_id == clinic_id)
                .where(TimeSlot.is_active == True)  # noqa: E712
                .order_by(TimeSlot.slot_date.asc(), TimeSlot.start_time.asc())
            ).all()
        except SQLAlchemyError as e:
            raise SlotUnavailable(f"Slots for clinic {clinic_id} could not be read") from e
        return [self._slot_to_dto(r) for r in rows]

    def set_current_bookings(self, slot_id: int, count: int) -> None:
        s = self.session.get(TimeSlot, slot_id)
        if not s:
            return
        s.current_bookings = count
        s.updated_at = datetime.utcnow()
        self.session.add(s)
        self.session.flush()
