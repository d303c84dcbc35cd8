from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, time, timedelta
from typing import Iterable, List, Optional, Tuple

from core.exceptions import InvalidSelector
from core.festival import FESTIVAL_LABELS, FRIDAY, FULL, SATURDAY, FestivalCalendar, period_choices
from core.periods import (
    HOURS_ALL,
    HOURS_CUSTOM,
    HOURS_FRIDAY,
    HOURS_PERIOD,
    HOURS_SATURDAY,
    AllTime,
    CalendarPeriod,
    CustomRange,
    HoursSelector,
    PeriodSelector,
    RecentWindow,
    parse_time_of_day,
)


logger = logging.getLogger(__name__)

DEVICE_ALL = "all"
PERIOD_ALL = "all"
PERIOD_CUSTOM = "custom"

# Wire values for the active-hours dropdown.
HOURS_VALUES = {
    "period-hours": HOURS_PERIOD,
    "all-hours": HOURS_ALL,
    "friday-hours": HOURS_FRIDAY,
    "saturday-hours": HOURS_SATURDAY,
    "custom-hours": HOURS_CUSTOM,
}

RECENT_PRESETS = {
    "last-1h": timedelta(hours=1),
    "last-6h": timedelta(hours=6),
    "last-24h": timedelta(hours=24),
    "last-7d": timedelta(days=7),
}

_PERIOD_TITLES = {
    FULL: "Festival {year} (Full)",
    FRIDAY: "Festival {year} Friday",
    SATURDAY: "Festival {year} Saturday",
}

_FESTIVAL_KEY = re.compile(r"^(\d{4})-(" + "|".join(FESTIVAL_LABELS) + r")$")
_RECENT_KEY = re.compile(r"^last-(\d+)([mhd])$")


@dataclass(frozen=True)
class DashboardFilters:
    device: Optional[str] = None
    period: PeriodSelector = field(default_factory=AllTime)
    hours: HoursSelector = field(default_factory=HoursSelector)


def _as_date(value: object) -> Optional[date]:
    if not value:
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        logger.debug("Ignoring unparseable date %r", value)
        return None


def _as_time(value: object) -> Optional[time]:
    if value in (None, ""):
        return None
    try:
        return parse_time_of_day(value)
    except InvalidSelector:
        logger.debug("Ignoring unparseable time %r", value)
        return None


def parse_period(raw: dict) -> PeriodSelector:
    key = str(raw.get("period") or PERIOD_ALL).strip().lower()

    if key == PERIOD_ALL:
        return AllTime()
    if key == PERIOD_CUSTOM:
        return CustomRange(
            start_date=_as_date(raw.get("start_date")),
            end_date=_as_date(raw.get("end_date")),
            start_time=_as_time(raw.get("start_time")),
            end_time=_as_time(raw.get("end_time")),
        )

    match = _FESTIVAL_KEY.match(key)
    if match:
        return CalendarPeriod(year=int(match.group(1)), label=match.group(2))

    match = _RECENT_KEY.match(key)
    if match:
        amount, unit = int(match.group(1)), match.group(2)
        unit_kw = {"m": "minutes", "h": "hours", "d": "days"}[unit]
        if amount > 0:
            return RecentWindow(duration=timedelta(**{unit_kw: amount}))

    logger.warning("Unknown period %r; showing all data", key)
    return AllTime()


def parse_hours(raw: dict) -> HoursSelector:
    if not raw.get("hours"):
        return HoursSelector()
    value = str(raw["hours"]).strip().lower()
    mode = HOURS_VALUES.get(value, value)
    try:
        if mode == HOURS_CUSTOM:
            return HoursSelector(mode=mode, start=_as_time(raw.get("start_hour")), end=_as_time(raw.get("end_hour")))
        return HoursSelector(mode=mode)
    except InvalidSelector:
        logger.warning("Unknown hours filter %r; keeping the period's hours", value)
        return HoursSelector()


def normalize_filters(raw: dict, *, available_devices: Optional[List[str]] = None) -> DashboardFilters:
    device = raw.get("device")
    device = str(device).strip() if device not in (None, "") else None
    if device is not None and device.lower() == DEVICE_ALL:
        device = None
    if device is not None and available_devices is not None and device not in available_devices:
        logger.info("Device %r not present in current data", device)

    return DashboardFilters(device=device, period=parse_period(raw), hours=parse_hours(raw))


def hours_options_for(period: PeriodSelector) -> List[Tuple[str, str]]:
    """Active-hours choices that make sense for the selected period."""
    options = [("all-hours", "All Hours")]
    label = period.label if isinstance(period, CalendarPeriod) else None
    if label == FRIDAY:
        options.append(("friday-hours", "Festival Hours (18:00-02:00) - Recommended"))
    elif label == SATURDAY:
        options.append(("saturday-hours", "Festival Hours (13:00-02:00) - Recommended"))
    elif label == FULL:
        options.append(("friday-hours", "Friday Hours (18:00-02:00)"))
        options.append(("saturday-hours", "Saturday Hours (13:00-02:00)"))
    else:
        options.append(("friday-hours", "Friday Festival Hours (18:00-02:00)"))
        options.append(("saturday-hours", "Saturday Festival Hours (13:00-02:00)"))
    options.append(("custom-hours", "Custom Time Range"))
    return options


def suggested_hours(period: PeriodSelector, current: str = "all-hours") -> str:
    """Hours value to preselect after the period changes."""
    if isinstance(period, CalendarPeriod):
        if period.label == FRIDAY:
            return "friday-hours"
        if period.label == SATURDAY:
            return "saturday-hours"
        return current if current in ("friday-hours", "saturday-hours") else "all-hours"
    valid = {value for value, _ in hours_options_for(period)}
    return current if current in valid else "all-hours"


def period_options(calendar: FestivalCalendar) -> List[Tuple[str, str]]:
    options = [(PERIOD_ALL, "All Time")]
    options.extend((key, f"Last {key.split('-', 1)[1]}") for key in RECENT_PRESETS)
    for year, label in period_choices(calendar):
        options.append((f"{year}-{label}", _PERIOD_TITLES[label].format(year=year)))
    options.append((PERIOD_CUSTOM, "Custom Range"))
    return options


def device_choices(canonical: Iterable[str], available: Iterable[str]) -> List[str]:
    """Device dropdown values: the in/out counters first, then whatever else reported."""
    return [DEVICE_ALL, *dict.fromkeys([*canonical, *available])]
