"""Festival calendar: which dates belong to which year, and their active hours.

Adding a festival year is a change to ``FESTIVAL_DATES`` (or to the
``PCD_FESTIVAL_DATES`` setting), never a change to the resolver.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time
from typing import Dict, Iterable, List, Mapping, Optional, Tuple


FULL = "full"
FRIDAY = "friday"
SATURDAY = "saturday"
FESTIVAL_LABELS = (FULL, FRIDAY, SATURDAY)


@dataclass(frozen=True)
class FestivalDays:
    friday: date
    saturday: date

    def day_for(self, label: str) -> Optional[date]:
        if label == FRIDAY:
            return self.friday
        if label == SATURDAY:
            return self.saturday
        return None


@dataclass(frozen=True)
class FestivalHours:
    start: time
    end: time


FESTIVAL_DATES: Dict[int, FestivalDays] = {
    2024: FestivalDays(friday=date(2024, 8, 2), saturday=date(2024, 8, 3)),
    2025: FestivalDays(friday=date(2025, 8, 1), saturday=date(2025, 8, 2)),
}

FESTIVAL_HOURS: Dict[str, FestivalHours] = {
    FRIDAY: FestivalHours(start=time(18, 0), end=time(2, 0)),
    SATURDAY: FestivalHours(start=time(13, 0), end=time(2, 0)),
}


@dataclass(frozen=True)
class FestivalCalendar:
    dates: Mapping[int, FestivalDays] = field(default_factory=lambda: dict(FESTIVAL_DATES))
    hours: Mapping[str, FestivalHours] = field(default_factory=lambda: dict(FESTIVAL_HOURS))

    def years(self) -> List[int]:
        return sorted(self.dates)

    def days(self, year: int) -> Optional[FestivalDays]:
        return self.dates.get(year)

    def hours_for(self, label: str) -> Optional[FestivalHours]:
        return self.hours.get(label)

    def with_years(self, extra: Mapping[int, FestivalDays]) -> "FestivalCalendar":
        merged = dict(self.dates)
        merged.update(extra)
        return FestivalCalendar(dates=merged, hours=dict(self.hours))


def parse_festival_dates(value: str) -> Dict[int, FestivalDays]:
    """Parse ``"2026=2026-07-31/2026-08-01;2027=..."`` into calendar entries."""
    out: Dict[int, FestivalDays] = {}
    for chunk in (value or "").split(";"):
        chunk = chunk.strip()
        if not chunk:
            continue
        year_part, _, days_part = chunk.partition("=")
        friday_s, _, saturday_s = days_part.partition("/")
        out[int(year_part)] = FestivalDays(
            friday=date.fromisoformat(friday_s.strip()),
            saturday=date.fromisoformat(saturday_s.strip()),
        )
    return out


def period_choices(calendar: FestivalCalendar) -> Iterable[Tuple[int, str]]:
    for year in calendar.years():
        for label in FESTIVAL_LABELS:
            yield year, label
