"""Event filter: device, then date range, then time of day.

Every stage returns a new frame; the input is never modified. The stages are
independent masks, so applying them in a different order selects the same rows.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional

import pandas as pd

from core.data import sort_by_timestamp_desc
from core.filters import DashboardFilters
from core.ranges import ResolvedRange, apply_hours, resolve_range
from core.settings import DashboardSettings


logger = logging.getLogger(__name__)

# Events before this local hour may belong to the previous day's night.
OVERNIGHT_TAIL_HOURS = 6


def local_times(frame: pd.DataFrame) -> pd.Series:
    """Naive local wall-clock timestamps (frame timestamps are already in the dashboard tz)."""
    ts = frame["timestamp"]
    if getattr(ts.dt, "tz", None) is not None:
        return ts.dt.tz_localize(None)
    return ts


def decimal_hours(frame: pd.DataFrame) -> pd.Series:
    local = local_times(frame)
    return local.dt.hour + local.dt.minute / 60


def _between(values: pd.Series, start: Optional[datetime], end: Optional[datetime]) -> pd.Series:
    mask = values.notna()
    if start is not None:
        mask &= values >= pd.Timestamp(start)
    if end is not None:
        mask &= values <= pd.Timestamp(end)
    return mask


def device_mask(frame: pd.DataFrame, device: Optional[str]) -> pd.Series:
    if device is None:
        return pd.Series(True, index=frame.index)
    return frame["device_id"] == device


def date_mask(frame: pd.DataFrame, resolved: Optional[ResolvedRange]) -> pd.Series:
    if resolved is None or (resolved.start is None and resolved.end is None):
        return pd.Series(True, index=frame.index)

    local = local_times(frame)
    mask = _between(local, resolved.start, resolved.end)
    if resolved.window is not None:
        # 00:00-06:00 rows count toward the previous day's night when that day is in range.
        previous_day = local.dt.normalize() - pd.Timedelta(days=1)
        start_day = datetime.combine(resolved.start_date, datetime.min.time()) if resolved.start is not None else None
        end_day = datetime.combine(resolved.end_date, datetime.min.time()) if resolved.end is not None else None
        tail = (local.dt.hour < OVERNIGHT_TAIL_HOURS) & _between(previous_day, start_day, end_day)
        mask = mask | tail
    return mask


def time_of_day_mask(frame: pd.DataFrame, resolved: Optional[ResolvedRange]) -> pd.Series:
    if resolved is None or resolved.window is None:
        return pd.Series(True, index=frame.index)
    return resolved.window.contains(decimal_hours(frame)).fillna(False).astype(bool)


def filter_by_device(frame: pd.DataFrame, device: Optional[str]) -> pd.DataFrame:
    return frame[device_mask(frame, device)]


def filter_by_date_range(frame: pd.DataFrame, resolved: Optional[ResolvedRange]) -> pd.DataFrame:
    return frame[date_mask(frame, resolved)]


def filter_by_time_of_day(frame: pd.DataFrame, resolved: Optional[ResolvedRange]) -> pd.DataFrame:
    return frame[time_of_day_mask(frame, resolved)]


def filter_events(
    frame: pd.DataFrame,
    device: Optional[str] = None,
    resolved: Optional[ResolvedRange] = None,
) -> pd.DataFrame:
    """Apply the device, date and time-of-day stages and return newest first."""
    filtered = filter_by_device(frame, device)
    filtered = filter_by_date_range(filtered, resolved)
    filtered = filter_by_time_of_day(filtered, resolved)
    return sort_by_timestamp_desc(filtered)


def resolve_filters(filters: DashboardFilters, settings: DashboardSettings, now: object) -> Optional[ResolvedRange]:
    calendar = settings.festival_calendar
    resolved = resolve_range(filters.period, now, calendar=calendar, tz=settings.timezone)
    return apply_hours(resolved, filters.hours, calendar=calendar)


def prepare_context(
    filters: DashboardFilters,
    events: pd.DataFrame,
    settings: DashboardSettings,
    now: object,
) -> Dict[str, Any]:
    resolved = resolve_filters(filters, settings, now)
    filtered = filter_events(events, filters.device, resolved)
    logger.debug("Filtered %d of %d events (device=%s, range=%s)", len(filtered), len(events), filters.device, resolved)
    return {
        "events": events,
        "range": resolved,
        "filtered_events": filtered,
    }
