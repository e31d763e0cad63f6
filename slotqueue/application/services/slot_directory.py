from dataclasses import dataclass
from datetime import date, datetime, time
from typing import List

from ...exceptions import SlotResolutionError
from ...utils import combine, format_hhmm, to_clinic_local
from ..ports.slots_repo import SlotsRepository, SlotDto


@dataclass
class SlotDirectory:
    repo: SlotsRepository

    def list_slots(self, doctor_id: int, on_date: date) -> List[SlotDto]:
        slots = self.repo.list_active(doctor_id, on_date)
        return sorted(slots, key=lambda s: (s.start_time, s.id))

    def find_slot(self, doctor_id: int, on_date: date, at_time: time) -> SlotDto:
        moment = combine(on_date, at_time)
        matches = [s for s in self.repo.list_active(doctor_id, on_date) if s.is_active and s.contains(moment)]
        if len(matches) == 1:
            return matches[0]

        context = {
            "doctor_id": doctor_id,
            "date": on_date.isoformat(),
            "time": format_hhmm(at_time),
            "matching_slot_ids": [s.id for s in matches],
        }
        if not matches:
            raise SlotResolutionError(
                f"No active slot for doctor {doctor_id} covers {on_date.isoformat()} {format_hhmm(at_time)}",
                context=context,
            )
        raise SlotResolutionError(
            f"{len(matches)} active slots for doctor {doctor_id} overlap {on_date.isoformat()} {format_hhmm(at_time)}",
            context=context,
        )

    def slot_for_datetime(self, doctor_id: int, moment: datetime) -> SlotDto:
        local = to_clinic_local(moment)
        return self.find_slot(doctor_id, local.date(), local.time())
