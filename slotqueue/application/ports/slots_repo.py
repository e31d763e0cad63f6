from dataclasses import dataclass
from typing import List, Optional
from datetime import date, datetime, time

from ...utils import combine, format_hhmm


@dataclass
class SlotDto:
    id: int
    clinic_id: int
    doctor_id: int
    slot_name: str
    slot_date: date
    start_time: time
    end_time: time
    max_capacity: int
    is_active: bool = True
    current_bookings: int = 0

    @property
    def starts_at(self) -> datetime:
        return combine(self.slot_date, self.start_time)

    @property
    def ends_at(self) -> datetime:
        return combine(self.slot_date, self.end_time)

    @property
    def window_label(self) -> str:
        return f"{format_hhmm(self.start_time)}-{format_hhmm(self.end_time)}"

    def contains(self, moment: datetime) -> bool:
        """Inclusive of both window bounds."""
        return self.starts_at <= moment <= self.ends_at


class SlotsRepository:
    def get(self, slot_id: int) -> Optional[SlotDto]:
        ...

    def list_active(self, doctor_id: int, on_date: date) -> List[SlotDto]:
        ...

    def list_active_for_clinic(self, clinic_id: int) -> List[SlotDto]:
        ...

    def set_current_bookings(self, slot_id: int, count: int) -> None:
        ...
