"""Fixed hourly slots and weekdays that make up the weekly timetable grid."""

from __future__ import annotations

import re
from dataclasses import dataclass

DAY_ORDER = [
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
]
DAY_RANK = {name: i + 1 for i, name in enumerate(DAY_ORDER)}
UNKNOWN_DAY_RANK = 99

CLOCK_RE = re.compile(r"^(\d{1,2})(?::(\d{2}))?$")


@dataclass(frozen=True)
class TimeSlot:
    start: str
    end: str
    label: str | None = None

    @property
    def start_min(self) -> int:
        return clock_to_minutes(self.start)

    @property
    def end_min(self) -> int:
        return clock_to_minutes(self.end)


def _hourly_slots(first_hour: int, last_hour: int, labels: dict[int, str]) -> tuple[TimeSlot, ...]:
    return tuple(
        TimeSlot(f"{hour:02d}:00", f"{hour + 1:02d}:00", labels.get(hour))
        for hour in range(first_hour, last_hour)
    )


TIME_SLOTS = _hourly_slots(7, 17, {12: "LUNCH"})


def day_rank(day: str | None) -> int:
    if not day:
        return UNKNOWN_DAY_RANK
    return DAY_RANK.get(day.strip().capitalize(), UNKNOWN_DAY_RANK)


def day_index(day: str | None) -> int | None:
    rank = day_rank(day)
    if rank == UNKNOWN_DAY_RANK:
        return None
    return rank - 1


def to_24_hour(hour: int, period: str | None) -> int:
    period = (period or "").strip().upper()
    if period == "AM":
        return 0 if hour == 12 else hour
    if period == "PM":
        return hour if hour == 12 else hour + 12
    return hour


def clock_to_minutes(clock: str | None, period: str | None = None) -> int | None:
    if clock is None:
        return None
    match = CLOCK_RE.match(str(clock).strip())
    if not match:
        return None
    hour = int(match.group(1))
    minute = int(match.group(2) or 0)
    if minute >= 60:
        return None
    if period and period.strip() and not 1 <= hour <= 12:
        return None
    hour = to_24_hour(hour, period)
    if hour > 23:
        return None
    return hour * 60 + minute


def minutes_to_clock(minutes: int) -> str:
    hour = minutes // 60
    minute = minutes % 60
    display_hour = hour % 12
    if display_hour == 0:
        display_hour = 12
    return f"{display_hour}:{minute:02d}"


def slot_index_for(minutes: int | None) -> int | None:
    """Return the slot containing ``minutes`` or ``None`` when outside the grid.

    Slot boundaries are half-open, so the final end boundary (17:00) is not
    part of any slot.
    """
    if minutes is None:
        return None
    for index, slot in enumerate(TIME_SLOTS):
        if slot.start_min <= minutes < slot.end_min:
            return index
    return None


def slot_range_label(slot: TimeSlot) -> str:
    return f"{minutes_to_clock(slot.start_min)}-{minutes_to_clock(slot.end_min)}"


def slot_label(slot: TimeSlot) -> str:
    return slot.label or slot_range_label(slot)
