from __future__ import annotations

import pandas as pd
import pytest

from core.data import normalize_payload, parse_timestamp, sort_by_timestamp_desc, take_top
from core.exceptions import MalformedPayload
from tests.conftest import event


def test_flat_list_is_used_as_is() -> None:
    raw = [event("A", "2024-08-02T18:00:00"), event("B", "2024-08-02T18:05:00")]

    frame = normalize_payload(raw)

    assert frame["device_id"].tolist() == ["A", "B"]
    assert list(frame.columns) == ["device_id", "timestamp", "timestamp_raw", "in_count", "out_count", "delta", "total"]


def test_grouped_mapping_is_concatenated_in_iteration_order() -> None:
    raw = {"A": [event("A", "2024-08-02T18:00:00")], "B": [event("B", "2024-08-02T17:00:00")]}

    frame = normalize_payload(raw)

    assert frame["device_id"].tolist() == ["A", "B"]


def test_excluded_devices_are_dropped() -> None:
    raw = {"A": [event("A", "2024-08-02T18:00:00")], "B": [event("B", "2024-08-02T17:00:00")]}

    frame = normalize_payload(raw, excluded_devices={"B"})

    assert frame["device_id"].tolist() == ["A"]


@pytest.mark.parametrize("raw", ["not json array or object", 42, None, 3.5])
def test_scalar_payload_is_malformed(raw) -> None:
    with pytest.raises(MalformedPayload):
        normalize_payload(raw)


def test_empty_payload_gives_empty_frame() -> None:
    frame = normalize_payload({})

    assert frame.empty
    assert "timestamp" in frame.columns


def test_missing_counts_default_to_zero() -> None:
    frame = normalize_payload([{"apparaat": "A", "timestamp": "2024-08-02T18:00:00", "delta": -3}])

    row = frame.iloc[0]
    assert row["in_count"] == 0
    assert row["out_count"] == 0
    assert row["total"] == 0
    assert row["delta"] == -3


@pytest.mark.parametrize("value", [5, 1722621600.0, True, None, ["2024-08-02"]])
def test_non_string_timestamps_become_nat(value) -> None:
    assert pd.isna(parse_timestamp(value, "Europe/Brussels"))


def test_unparseable_timestamp_becomes_nat() -> None:
    frame = normalize_payload([event("A", "yesterday-ish"), event("A", "2024-08-02T18:00:00")])

    assert pd.isna(frame["timestamp"].iloc[0])
    assert frame["timestamp_raw"].iloc[0] == "yesterday-ish"
    assert frame["timestamp"].iloc[1].hour == 18


def test_naive_timestamps_are_local_and_offsets_are_converted() -> None:
    naive = parse_timestamp("2024-08-02T18:00:00", "Europe/Brussels")
    utc = parse_timestamp("2024-08-02T18:00:00+00:00", "Europe/Brussels")

    assert naive.hour == 18
    assert utc.hour == 20
    assert str(utc.tz) == "Europe/Brussels"


def test_sort_is_newest_first_and_stable_for_ties() -> None:
    frame = normalize_payload(
        [
            event("first", "2024-08-02T18:00:00"),
            event("broken", "garbage"),
            event("second", "2024-08-02T18:00:00"),
            event("newest", "2024-08-02T19:00:00"),
        ]
    )

    ordered = sort_by_timestamp_desc(frame)

    assert ordered["device_id"].tolist() == ["newest", "first", "second", "broken"]


def test_take_top_is_a_noop_for_short_frames() -> None:
    frame = normalize_payload([event("A", "2024-08-02T18:00:00")])

    assert len(take_top(frame, 50)) == 1
    assert len(take_top(frame, 0)) == 0
