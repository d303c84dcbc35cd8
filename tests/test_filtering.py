from __future__ import annotations

from datetime import date, datetime, time, timezone

import pandas as pd

from core.data import normalize_payload, sort_by_timestamp_desc
from core.filtering import (
    date_mask,
    device_mask,
    filter_events,
    prepare_context,
    time_of_day_mask,
)
from core.filters import DashboardFilters, normalize_filters
from core.periods import CalendarPeriod, CustomRange, HoursSelector
from core.ranges import resolve_range
from tests.conftest import event


NOW = datetime(2024, 8, 10, 12, 0, tzinfo=timezone.utc)


def _frame():
    return normalize_payload(
        [
            event("IN", "2024-08-01T23:00:00", delta=1),
            event("IN", "2024-08-02T10:00:00", delta=2),
            event("OUT", "2024-08-02T19:15:00", delta=3),
            event("IN", "2024-08-03T01:30:00", delta=4),
            event("IN", "2024-08-03T03:00:00", delta=5),
            event("OUT", "2024-08-03T14:00:00", delta=6),
            event("IN", "2024-08-04T01:00:00", delta=7),
            event("OTHER", "not a date", delta=8),
        ]
    )


def test_no_filters_is_identity_up_to_ordering() -> None:
    frame = _frame()

    pd.testing.assert_frame_equal(filter_events(frame, None, None), sort_by_timestamp_desc(frame))


def test_device_stage() -> None:
    filtered = filter_events(_frame(), "OUT", None)

    assert filtered["delta"].tolist() == [6, 3]


def test_festival_friday_includes_overnight_tail() -> None:
    resolved = resolve_range(CalendarPeriod(2024, "friday"), NOW)

    filtered = filter_events(_frame(), None, resolved)

    # 19:15 on Friday and the 01:30 tail on Saturday morning
    assert filtered["delta"].tolist() == [4, 3]


def test_festival_tail_concrete_case() -> None:
    frame = normalize_payload([event("IN", "2024-08-03T01:30:00")])
    resolved = resolve_range(CalendarPeriod(2024, "friday"), NOW)

    assert len(filter_events(frame, None, resolved)) == 1


def test_festival_saturday_tail_reaches_sunday_night() -> None:
    resolved = resolve_range(CalendarPeriod(2024, "saturday"), NOW)

    filtered = filter_events(_frame(), None, resolved)

    # Saturday 01:30 matches the window on its own calendar day as well
    assert filtered["delta"].tolist() == [7, 6, 4]


def test_full_festival_is_whole_calendar_days() -> None:
    resolved = resolve_range(CalendarPeriod(2024, "full"), NOW)

    filtered = filter_events(_frame(), None, resolved)

    assert sorted(filtered["delta"].tolist()) == [2, 3, 4, 5, 6]


def test_custom_range_end_date_is_inclusive() -> None:
    resolved = resolve_range(CustomRange(date(2024, 8, 1), date(2024, 8, 1)), NOW)

    filtered = filter_events(_frame(), None, resolved)

    assert filtered["delta"].tolist() == [1]


def test_custom_daytime_window() -> None:
    resolved = resolve_range(CustomRange(date(2024, 8, 2), date(2024, 8, 3), time(9, 0), time(15, 0)), NOW)

    filtered = filter_events(_frame(), None, resolved)

    assert filtered["delta"].tolist() == [6, 2]


def test_unparseable_timestamps_never_pass_a_date_range() -> None:
    resolved = resolve_range(CustomRange(date(2000, 1, 1), date(2100, 1, 1)), NOW)

    filtered = filter_events(_frame(), None, resolved)

    assert "OTHER" not in filtered["device_id"].tolist()
    assert "OTHER" in filter_events(_frame(), None, None)["device_id"].tolist()


def test_input_frame_is_not_mutated() -> None:
    frame = _frame()
    before = frame.copy()
    resolved = resolve_range(CalendarPeriod(2024, "friday"), NOW)

    filter_events(frame, "IN", resolved)

    pd.testing.assert_frame_equal(frame, before)


def test_stage_masks_compose_in_any_order() -> None:
    frame = _frame()
    resolved = resolve_range(CalendarPeriod(2024, "full"), NOW)
    combined = device_mask(frame, "IN") & date_mask(frame, resolved) & time_of_day_mask(frame, resolved)

    reordered = frame[time_of_day_mask(frame, resolved)]
    reordered = reordered[date_mask(reordered, resolved)]
    reordered = reordered[device_mask(reordered, "IN")]

    assert sorted(frame[combined].index) == sorted(reordered.index)
    assert sorted(filter_events(frame, "IN", resolved).index) == sorted(reordered.index)


def test_prepare_context_applies_hours_override(settings) -> None:
    filters = DashboardFilters(hours=HoursSelector(mode="friday"))

    ctx = prepare_context(filters, _frame(), settings, NOW)

    assert ctx["range"].window.start == time(18, 0)
    assert ctx["filtered_events"]["delta"].tolist() == [7, 4, 3, 1]


def test_all_hours_shows_whole_festival_day(settings) -> None:
    frame = normalize_payload([event("IN", "2024-08-02T10:00:00", delta=1), event("IN", "2024-08-02T19:00:00", delta=2)])

    default = prepare_context(normalize_filters({"period": "2024-friday"}), frame, settings, NOW)
    all_hours = prepare_context(normalize_filters({"period": "2024-friday", "hours": "all-hours"}), frame, settings, NOW)

    assert default["filtered_events"]["delta"].tolist() == [2]
    assert all_hours["range"].window is None
    assert all_hours["filtered_events"]["delta"].tolist() == [2, 1]
