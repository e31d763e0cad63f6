from dataclasses import dataclass
from typing import Callable, TypeVar
import logging

from ..ports.slot_locker import SlotLocker
from ..ports.unit_of_work import UnitOfWork
from .occupancy import OccupancyCalculator

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class SlotTransaction:
    """Run a mutation of one slot under its lock, in one commit.

    The slot's cached booking counter is refreshed whatever the outcome: inside
    the transaction on success, in a fresh one after a rollback.
    """
    locker: SlotLocker
    uow: UnitOfWork
    occupancy: OccupancyCalculator

    def run(self, slot_id: int, work: Callable[[], T]) -> T:
        with self.locker.hold(slot_id):
            try:
                outcome = work()
                self.occupancy.resync(slot_id)
                self.uow.commit()
            except Exception:
                self.uow.rollback()
                self.resync(slot_id)
                raise
        return outcome

    def resync(self, slot_id: int) -> None:
        try:
            self.occupancy.resync(slot_id)
            self.uow.commit()
        except Exception:
            self.uow.rollback()
            logger.exception(f"Failed to resync booking counter for slot {slot_id}")
