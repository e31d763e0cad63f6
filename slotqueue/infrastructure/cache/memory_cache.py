import time
import threading
from typing import Any, Dict, Optional, Tuple

from ...application.ports.cache import Cache


class InMemoryTTLCache(Cache):
    def __init__(self, ttl_seconds: int) -> None:
        self.ttl_seconds = ttl_seconds
        self._store: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        now = time.monotonic()
        with self._lock:
            rec = self._store.get(key)
            if not rec:
                return None
            expires_at, value = rec
            if expires_at <= now:
                # prune
                del self._store[key]
                return None
            return value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._store[key] = (time.monotonic() + self.ttl_seconds, value)
