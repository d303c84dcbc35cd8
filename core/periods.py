"""Period and active-hours selectors.

A period selector says which calendar span to look at; an hours selector
says which part of each day. Both are plain frozen values so they can be
compared, hashed and echoed back to the client.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time, timedelta
from typing import Optional, Union

from core.exceptions import InvalidSelector
from core.festival import FESTIVAL_LABELS, FRIDAY, SATURDAY


FULL_DAY_START = time(0, 0)
FULL_DAY_END = time(23, 59)

HOURS_PERIOD = "period"
HOURS_ALL = "all"
HOURS_FRIDAY = FRIDAY
HOURS_SATURDAY = SATURDAY
HOURS_CUSTOM = "custom"
HOURS_MODES = (HOURS_PERIOD, HOURS_ALL, HOURS_FRIDAY, HOURS_SATURDAY, HOURS_CUSTOM)


def decimal_hours(value: time) -> float:
    return value.hour + value.minute / 60


def parse_time_of_day(value: object) -> time:
    """Parse ``"HH:MM"`` (seconds are accepted and ignored)."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    text = str(value or "").strip()
    parts = text.split(":")
    if len(parts) not in (2, 3):
        raise InvalidSelector(f"expected HH:MM, got {value!r}")
    try:
        hour, minute = int(parts[0]), int(parts[1])
        return time(hour, minute)
    except ValueError as exc:
        raise InvalidSelector(f"expected HH:MM, got {value!r}") from exc


@dataclass(frozen=True)
class TimeOfDayWindow:
    """Half-open time-of-day window ``[start, end)``.

    When ``start`` is later than ``end`` the window wraps past midnight and
    matches anything at or after ``start`` or before ``end``.
    """

    start: time
    end: time

    @property
    def start_hours(self) -> float:
        return decimal_hours(self.start)

    @property
    def end_hours(self) -> float:
        return decimal_hours(self.end)

    @property
    def overnight(self) -> bool:
        return self.start_hours > self.end_hours

    def contains(self, hours):
        """Membership test on decimal hours; works on floats and pandas Series alike."""
        if self.overnight:
            return (hours >= self.start_hours) | (hours < self.end_hours)
        return (hours >= self.start_hours) & (hours < self.end_hours)

    @property
    def label(self) -> str:
        return f"{self.start:%H:%M}-{self.end:%H:%M}"


def window_from_times(start: Optional[time], end: Optional[time]) -> Optional[TimeOfDayWindow]:
    """A window for a user supplied pair, or None for a missing pair or the full-day default."""
    if start is None or end is None:
        return None
    if start == FULL_DAY_START and end == FULL_DAY_END:
        return None
    return TimeOfDayWindow(start=start, end=end)


@dataclass(frozen=True)
class AllTime:
    key: str = "all"


@dataclass(frozen=True)
class CalendarPeriod:
    year: int
    label: str

    def __post_init__(self) -> None:
        if self.label not in FESTIVAL_LABELS:
            raise InvalidSelector(f"unknown festival label {self.label!r}")

    @property
    def key(self) -> str:
        return f"{self.year}-{self.label}"


@dataclass(frozen=True)
class RecentWindow:
    duration: timedelta

    @property
    def key(self) -> str:
        seconds = int(self.duration.total_seconds())
        if seconds % 86400 == 0:
            return f"last-{seconds // 86400}d"
        if seconds % 3600 == 0:
            return f"last-{seconds // 3600}h"
        return f"last-{seconds // 60}m"


@dataclass(frozen=True)
class CustomRange:
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    key: str = "custom"


PeriodSelector = Union[AllTime, CalendarPeriod, RecentWindow, CustomRange]


@dataclass(frozen=True)
class HoursSelector:
    """Active-hours choice. ``period`` (no explicit choice) keeps the period's own window."""

    mode: str = HOURS_PERIOD
    start: Optional[time] = None
    end: Optional[time] = None

    def __post_init__(self) -> None:
        if self.mode not in HOURS_MODES:
            raise InvalidSelector(f"unknown hours mode {self.mode!r}")
