import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import redis
from redis.exceptions import LockError, RedisError

from ...exceptions import SlotUnavailable
from ...application.ports.slot_locker import SlotLocker

logger = logging.getLogger(__name__)


class RedisSlotLocker(SlotLocker):
    def __init__(self, url: Optional[str] = None, prefix: str = "slot-lock:", timeout_seconds: int = 30, client=None) -> None:
        self.client = client if client is not None else redis.Redis.from_url(url)
        self.prefix = prefix
        self.timeout_seconds = timeout_seconds

    @contextmanager
    def hold(self, slot_id: int) -> Iterator[None]:
        lock = self.client.lock(
            f"{self.prefix}{slot_id}",
            timeout=self.timeout_seconds,
            blocking_timeout=self.timeout_seconds,
        )
        try:
            acquired = lock.acquire()
        except RedisError as e:
            raise SlotUnavailable(f"Lock service unavailable for slot {slot_id}", context={"slot_id": slot_id}) from e
        if not acquired:
            raise SlotUnavailable(f"Slot {slot_id} is busy; please retry", context={"slot_id": slot_id})
        try:
            yield
        finally:
            try:
                lock.release()
            except LockError:
                # Held past its timeout; another worker may already own it
                logger.warning(f"Lock for slot {slot_id} expired before release")
