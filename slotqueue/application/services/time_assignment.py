"""Deterministic appointment time assignment inside a slot window.

Candidates are ``slot start + k * interval`` for k = 0, 1, 2, ... and are
bookable only while strictly before the slot end. The interval does not have
to divide the window evenly; a shorter trailing gap is simply left unused.
Nothing here depends on call order, so the queue engine can re-run it from
scratch whenever occupancy changes.
"""
from datetime import datetime, timedelta
from typing import AbstractSet, Iterator, List, Optional

from ...core.config import settings
from ...exceptions import SlotFull, slot_context
from ..ports.slots_repo import SlotDto


def _interval(interval_minutes: Optional[int]) -> timedelta:
    minutes = interval_minutes if interval_minutes is not None else settings.APPOINTMENT_INTERVAL_MINUTES
    if minutes <= 0:
        raise ValueError("Appointment interval must be positive")
    return timedelta(minutes=minutes)


def iterate_slot_offsets(slot: SlotDto, interval_minutes: Optional[int] = None) -> Iterator[datetime]:
    step = _interval(interval_minutes)
    current = slot.starts_at
    end = slot.ends_at
    while current < end:
        yield current
        current += step


def next_free_time(slot: SlotDto, occupied: AbstractSet[datetime], interval_minutes: Optional[int] = None) -> datetime:
    """Return the first offset in the slot that is not already occupied.

    Raises :class:`SlotFull` when every offset before the slot end is taken.
    """
    for candidate in iterate_slot_offsets(slot, interval_minutes):
        if candidate not in occupied:
            return candidate
    raise SlotFull(
        f"No free time left in slot {slot.slot_name or slot.id} ({slot.window_label})",
        context=slot_context(slot),
    )


def candidate_times(slot: SlotDto, occupied: AbstractSet[datetime], limit: int, interval_minutes: Optional[int] = None) -> List[datetime]:
    """Up to ``limit`` free offsets in ascending order."""
    free: List[datetime] = []
    if limit <= 0:
        return free
    for candidate in iterate_slot_offsets(slot, interval_minutes):
        if candidate in occupied:
            continue
        free.append(candidate)
        if len(free) >= limit:
            break
    return free
