from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from .core.config import settings


# =========================
# Clinic-local time handling
# =========================
# All scheduling arithmetic happens on naive datetimes expressed in the
# clinic's wall-clock time. Aware datetimes coming from clients are converted
# here and nowhere else.

def clinic_zone() -> ZoneInfo:
    return ZoneInfo(settings.CLINIC_TIMEZONE)


def to_clinic_local(value: datetime) -> datetime:
    """Convert an aware datetime to naive clinic-local time; naive values pass through."""
    if value.tzinfo is None:
        return value.replace(second=0, microsecond=0)
    local = value.astimezone(clinic_zone())
    return local.replace(tzinfo=None, second=0, microsecond=0)


def combine(on_date: date, at_time: time) -> datetime:
    return datetime.combine(on_date, at_time.replace(second=0, microsecond=0))


def format_hhmm(value) -> str:
    return value.strftime("%H:%M")
