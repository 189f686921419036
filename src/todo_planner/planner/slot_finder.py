# src/todo_planner/planner/slot_finder.py

from __future__ import annotations

"""
Slot finder.

Scans a user's bookings inside a short lookahead window and proposes start times
for a todo of a given duration.

Window: day_start_hour on the target date .. day_end_hour on the last horizon day.
A cursor walks forward through the gaps between bookings; every time the todo fits
before the next booking (or the window end), the cursor becomes a candidate and
moves on by one duration. The cursor always stays inside working hours: passing
day_end_hour jumps to day_start_hour of the next day.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from ..todos.todo_models import AvailableTimeSlots, Booking

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SlotPolicy:
    day_start_hour: int = 10
    day_end_hour: int = 21
    horizon_days: int = 3
    slot_limit: int = 3

    def __post_init__(self) -> None:
        if not 0 <= self.day_start_hour < self.day_end_hour <= 24:
            raise ValueError("working hours must satisfy 0 <= start < end <= 24")
        if self.horizon_days < 1:
            raise ValueError("horizon_days must be >= 1")
        if self.slot_limit < 1:
            raise ValueError("slot_limit must be >= 1")


DEFAULT_SLOT_POLICY = SlotPolicy()


def search_window(target_date: date, policy: SlotPolicy = DEFAULT_SLOT_POLICY) -> tuple[datetime, datetime]:
    start = datetime.combine(target_date, time(policy.day_start_hour, 0))
    last_day = target_date + timedelta(days=policy.horizon_days - 1)
    if policy.day_end_hour >= 24:
        end = datetime.combine(last_day + timedelta(days=1), time(0, 0))
    else:
        end = datetime.combine(last_day, time(policy.day_end_hour, 0))
    return start, end


def _clamp_to_working_hours(cursor: datetime, policy: SlotPolicy) -> datetime:
    if cursor.hour >= policy.day_end_hour:
        return datetime.combine(cursor.date() + timedelta(days=1), time(policy.day_start_hour, 0))
    if cursor.hour < policy.day_start_hour:
        return datetime.combine(cursor.date(), time(policy.day_start_hour, 0))
    return cursor


def find_available_slots(
        target_date: date,
        duration_minutes: int,
        existing_bookings: Iterable[Booking],
        policy: SlotPolicy = DEFAULT_SLOT_POLICY,
) -> AvailableTimeSlots:
    """
    Return up to policy.slot_limit chronological start times that fit the duration.

    Bookings whose start falls outside the search window are ignored. Running out of
    window before the limit is reached is a normal result (possibly zero slots).
    """
    if int(duration_minutes) <= 0:
        raise ValueError("duration_minutes must be positive")

    step = timedelta(minutes=int(duration_minutes))
    window_start, window_end = search_window(target_date, policy)

    bookings = sorted(
        (b for b in existing_bookings if window_start <= b.start <= window_end),
        key=lambda b: (b.start, b.end),
    )

    slots: list[datetime] = []
    cursor = window_start

    def fill_until(limit: datetime) -> bool:
        nonlocal cursor
        while cursor + step < limit and cursor.hour < policy.day_end_hour:
            slots.append(cursor)
            if len(slots) >= policy.slot_limit:
                return True
            cursor = _clamp_to_working_hours(cursor + step, policy)
        return False

    for booking in bookings:
        if fill_until(booking.start):
            return AvailableTimeSlots(tuple(slots))
        if booking.end > cursor:
            cursor = _clamp_to_working_hours(booking.end, policy)

    fill_until(window_end)

    logger.debug(
        "Slot search date=%s duration=%dmin bookings=%d -> %d slot(s)",
        target_date,
        duration_minutes,
        len(bookings),
        len(slots),
    )
    return AvailableTimeSlots(tuple(slots))
