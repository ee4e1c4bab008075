"""Slot arithmetic over a restaurant's opening hours.

Slots are derived, never stored. A slot is identified by its index, which is
``start_minute // width``; with the default 60 minute width that is the hour of
day the slot starts in.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, time

from ..utils.time import local_today
from .errors import InvalidInputError

MINUTES_PER_DAY = 24 * 60
DEFAULT_SLOT_WIDTH = 60

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class TimeSlot:
    index: int
    start_minute: int
    width: int

    @property
    def end_minute(self) -> int:
        return self.start_minute + self.width

    @property
    def label(self) -> str:
        return format_minute(self.start_minute)


def minutes_of(value: time) -> int:
    return value.hour * 60 + value.minute


def generate_slots(opening: time, closing: time, width: int = DEFAULT_SLOT_WIDTH) -> list[TimeSlot]:
    """
    Consecutive slots of ``width`` minutes starting at ``opening``.
    A slot is kept only if it ends at or before ``closing``; equal or inverted
    hours give an empty list.
    """
    if width <= 0:
        raise ValueError("slot width must be positive")
    start = minutes_of(opening)
    close = minutes_of(closing)
    slots: list[TimeSlot] = []
    while start + width <= close:
        slots.append(TimeSlot(index=start // width, start_minute=start, width=width))
        start += width
    return slots


def max_slot_index(width: int = DEFAULT_SLOT_WIDTH) -> int:
    return MINUTES_PER_DAY // width - 1


def slot_start_minute(slot_index: int, opening: time, width: int = DEFAULT_SLOT_WIDTH) -> int:
    return slot_index * width + minutes_of(opening) % width


def format_minute(minute_of_day: int) -> str:
    hour, minute = divmod(minute_of_day % MINUTES_PER_DAY, 60)
    display_hour = hour % 12 or 12
    suffix = "AM" if hour < 12 else "PM"
    return f"{display_hour}:{minute:02d} {suffix}"


def display_label(slot_index: int, opening: time, width: int = DEFAULT_SLOT_WIDTH) -> str:
    return format_minute(slot_start_minute(slot_index, opening, width))


def is_past(value: date, *, today: date | None = None) -> bool:
    return value < (today or local_today())


def parse_calendar_date(value: str) -> date:
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise InvalidInputError("Invalid date format")
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise InvalidInputError("Invalid date format") from exc
