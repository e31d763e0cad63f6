from contextlib import contextmanager
from typing import Iterator
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ...db.models import TimeSlot
from ...exceptions import SlotUnavailable
from ...application.ports.slot_locker import SlotLocker


class DatabaseSlotLocker(SlotLocker):
    """Row lock on the slot, held until the session commits or rolls back.

    SQLite ignores FOR UPDATE; there the database-wide write lock applies.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    @contextmanager
    def hold(self, slot_id: int) -> Iterator[None]:
        try:
            self.session.exec(
                select(TimeSlot.id).where(TimeSlot.id == slot_id).with_for_update()
            ).first()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise SlotUnavailable(f"Slot {slot_id} could not be locked; please retry", context={"slot_id": slot_id}) from e
        yield
