import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

from ...exceptions import SlotUnavailable
from ...application.ports.slot_locker import SlotLocker


class _SlotLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.users = 0


class InMemorySlotLocker(SlotLocker):
    """Process-local locks; only safe with a single worker.

    A slot's lock lives only while some caller holds or waits on it.
    """

    def __init__(self, timeout_seconds: Optional[float] = None) -> None:
        self.timeout_seconds = timeout_seconds
        self._locks: Dict[int, _SlotLock] = {}
        self._guard = threading.Lock()

    def _checkout(self, slot_id: int) -> _SlotLock:
        with self._guard:
            entry = self._locks.get(slot_id)
            if entry is None:
                entry = _SlotLock()
                self._locks[slot_id] = entry
            entry.users += 1
            return entry

    def _checkin(self, slot_id: int, entry: _SlotLock) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[slot_id]

    @contextmanager
    def hold(self, slot_id: int) -> Iterator[None]:
        entry = self._checkout(slot_id)
        try:
            timeout = self.timeout_seconds if self.timeout_seconds else -1
            if not entry.lock.acquire(timeout=timeout):
                raise SlotUnavailable(f"Slot {slot_id} is busy; please retry", context={"slot_id": slot_id})
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            self._checkin(slot_id, entry)
