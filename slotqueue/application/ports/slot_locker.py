from typing import ContextManager, Protocol


class SlotLocker(Protocol):
    def hold(self, slot_id: int) -> ContextManager[None]:
        """Serialize every read-then-write sequence touching one slot."""
        ...
