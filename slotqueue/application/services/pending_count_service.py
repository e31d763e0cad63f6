from dataclasses import dataclass

from ..ports.requests_repo import AppointmentRequestsRepository
from ..ports.cache import Cache


@dataclass
class PendingCountService:
    """Badge counts; may lag the datastore by the cache window."""
    requests: AppointmentRequestsRepository
    cache: Cache

    def get_pending_count(self, clinic_id: int) -> int:
        key = f"pending:{clinic_id}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        count = self.requests.count_pending(clinic_id)
        self.cache.set(key, count)
        return count
