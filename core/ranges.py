from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, time
from typing import Any, Dict, Optional

import pandas as pd

from core.data import DEFAULT_TIMEZONE
from core.festival import FULL, FestivalCalendar
from core.periods import (
    HOURS_ALL,
    HOURS_CUSTOM,
    HOURS_PERIOD,
    AllTime,
    CalendarPeriod,
    CustomRange,
    HoursSelector,
    PeriodSelector,
    RecentWindow,
    TimeOfDayWindow,
    window_from_times,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedRange:
    """Concrete local wall-clock span plus an optional time-of-day window.

    ``start``/``end`` are naive local datetimes, both inclusive. Either is None
    only for an unbounded period that still carries an hours window.
    """

    start: Optional[datetime]
    end: Optional[datetime]
    window: Optional[TimeOfDayWindow] = None

    @property
    def start_date(self) -> Optional[date]:
        return self.start.date() if self.start is not None else None

    @property
    def end_date(self) -> Optional[date]:
        return self.end.date() if self.end is not None else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start.isoformat() if self.start is not None else None,
            "end": self.end.isoformat() if self.end is not None else None,
            "window": (
                {"start": f"{self.window.start:%H:%M}", "end": f"{self.window.end:%H:%M}", "overnight": self.window.overnight}
                if self.window is not None
                else None
            ),
        }


def _day_span(first: date, last: date, window: Optional[TimeOfDayWindow] = None) -> ResolvedRange:
    return ResolvedRange(
        start=datetime.combine(first, time.min),
        end=datetime.combine(last, time.max),
        window=window,
    )


def local_wall_clock(moment: object, tz: str = DEFAULT_TIMEZONE) -> datetime:
    """Naive local datetime for ``moment``; naive inputs are taken as already local."""
    ts = pd.Timestamp(moment)
    if ts.tzinfo is not None:
        ts = ts.tz_convert(tz).tz_localize(None)
    return ts.to_pydatetime()


def resolve_range(
    selector: PeriodSelector,
    now: object,
    *,
    calendar: Optional[FestivalCalendar] = None,
    tz: str = DEFAULT_TIMEZONE,
) -> Optional[ResolvedRange]:
    """Map a period selector to a concrete range, or None for "no constraint"."""
    calendar = calendar or FestivalCalendar()

    if isinstance(selector, AllTime):
        return None

    if isinstance(selector, CalendarPeriod):
        days = calendar.days(selector.year)
        if days is None:
            logger.warning("No festival dates configured for %s; showing all data", selector.year)
            return None
        if selector.label == FULL:
            return _day_span(days.friday, days.saturday)
        day = days.day_for(selector.label)
        hours = calendar.hours_for(selector.label)
        window = TimeOfDayWindow(start=hours.start, end=hours.end) if hours is not None else None
        return _day_span(day, day, window)

    if isinstance(selector, RecentWindow):
        end = local_wall_clock(now, tz)
        return ResolvedRange(start=end - selector.duration, end=end)

    if isinstance(selector, CustomRange):
        if selector.start_date is None or selector.end_date is None:
            logger.debug("Custom range without both dates; ignoring date filter")
            return None
        return _day_span(selector.start_date, selector.end_date, window_from_times(selector.start_time, selector.end_time))

    logger.warning("Unsupported period selector %r; showing all data", selector)
    return None


def _without_window(resolved: Optional[ResolvedRange]) -> Optional[ResolvedRange]:
    if resolved is None or (resolved.start is None and resolved.end is None):
        return None
    return replace(resolved, window=None)


def apply_hours(
    resolved: Optional[ResolvedRange],
    hours: HoursSelector,
    *,
    calendar: Optional[FestivalCalendar] = None,
) -> Optional[ResolvedRange]:
    """Overlay an active-hours selection on a resolved range.

    ``period`` keeps whatever window the period carried and ``all`` drops it.
    Anything else replaces it, and applies even when the period itself is
    unbounded.
    """
    calendar = calendar or FestivalCalendar()
    if hours.mode == HOURS_PERIOD:
        return resolved
    if hours.mode == HOURS_ALL:
        return _without_window(resolved)

    if hours.mode == HOURS_CUSTOM:
        if hours.start is None or hours.end is None:
            return resolved
        window = window_from_times(hours.start, hours.end)
        if window is None:
            # explicit 00:00-23:59 means whole days
            return _without_window(resolved)
    else:
        festival_hours = calendar.hours_for(hours.mode)
        if festival_hours is None:
            return resolved
        window = TimeOfDayWindow(start=festival_hours.start, end=festival_hours.end)

    if resolved is None:
        return ResolvedRange(start=None, end=None, window=window)
    return replace(resolved, window=window)
