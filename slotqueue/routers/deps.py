from functools import lru_cache
from fastapi import Depends
from sqlmodel import Session

from ..core.config import settings
from ..database import get_session
from ..application.ports.slot_locker import SlotLocker
from ..application.services.appointments_service import AppointmentsService
from ..application.services.availability_service import AvailabilityService
from ..application.services.pending_count_service import PendingCountService
from ..application.services.request_lifecycle import RequestLifecycleService
from ..infrastructure.audit.std_logger import StdAuditLogger
from ..infrastructure.cache.memory_cache import InMemoryTTLCache
from ..infrastructure.locking.database_slot_locker import DatabaseSlotLocker
from ..infrastructure.locking.memory_slot_locker import InMemorySlotLocker
from ..infrastructure.locking.redis_slot_locker import RedisSlotLocker
from ..infrastructure.notifications.log_notifier import LogNotifier
from ..infrastructure.persistence.sqlalchemy.repositories.appointments_repository_sql import SqlAppointmentsRepository
from ..infrastructure.persistence.sqlalchemy.repositories.patient_directory_sql import SqlPatientDirectory
from ..infrastructure.persistence.sqlalchemy.repositories.requests_repository_sql import SqlAppointmentRequestsRepository
from ..infrastructure.persistence.sqlalchemy.repositories.slots_repository_sql import SqlSlotsRepository
from ..infrastructure.persistence.sqlalchemy.repositories.unit_of_work_sql import SqlUnitOfWork

# Process-wide singletons
_memory_locker = InMemorySlotLocker(timeout_seconds=settings.SLOT_LOCK_TIMEOUT_SECONDS)
_pending_cache = InMemoryTTLCache(settings.PENDING_COUNT_CACHE_SECONDS)


@lru_cache()
def _redis_locker() -> RedisSlotLocker:
    return RedisSlotLocker(settings.REDIS_URL, timeout_seconds=settings.SLOT_LOCK_TIMEOUT_SECONDS)


def get_slot_locker(session: Session = Depends(get_session)) -> SlotLocker:
    backend = settings.SLOT_LOCK_BACKEND.lower()
    if backend == "database":
        return DatabaseSlotLocker(session)
    if backend == "redis":
        return _redis_locker()
    return _memory_locker


def get_request_lifecycle_service(
    session: Session = Depends(get_session),
    locker: SlotLocker = Depends(get_slot_locker),
) -> RequestLifecycleService:
    return RequestLifecycleService(
        requests=SqlAppointmentRequestsRepository(session),
        appointments=SqlAppointmentsRepository(session),
        slots=SqlSlotsRepository(session),
        patients=SqlPatientDirectory(session),
        uow=SqlUnitOfWork(session),
        locker=locker,
        notifier=LogNotifier(),
        audit=StdAuditLogger(),
    )


def get_appointments_service(
    session: Session = Depends(get_session),
    locker: SlotLocker = Depends(get_slot_locker),
) -> AppointmentsService:
    return AppointmentsService(
        appointments=SqlAppointmentsRepository(session),
        requests=SqlAppointmentRequestsRepository(session),
        slots=SqlSlotsRepository(session),
        uow=SqlUnitOfWork(session),
        locker=locker,
        notifier=LogNotifier(),
        audit=StdAuditLogger(),
    )


def get_availability_service(session: Session = Depends(get_session)) -> AvailabilityService:
    return AvailabilityService(
        slots=SqlSlotsRepository(session),
        appointments=SqlAppointmentsRepository(session),
        requests=SqlAppointmentRequestsRepository(session),
    )


def get_pending_count_service(session: Session = Depends(get_session)) -> PendingCountService:
    return PendingCountService(SqlAppointmentRequestsRepository(session), _pending_cache)
