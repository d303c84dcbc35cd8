from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

import pandas as pd

from core.data import round_half_up, take_top
from core.filtering import local_times
from core.settings import DashboardSettings


TIMELINE_COLUMNS = ["bucket", "label", "inside", "outside", "sum_in", "sum_out", "count"]


@dataclass(frozen=True)
class Stats:
    total_inside: int
    total_outside: int
    net_movement: int
    active_device_count: int


def _delta_sum(frame: pd.DataFrame, device: str) -> int:
    return int(frame.loc[frame["device_id"] == device, "delta"].sum())


def compute_stats(frame: pd.DataFrame, settings: DashboardSettings) -> Stats:
    """Directional totals from the canonical in/out counters.

    Only ``settings.in_device`` and ``settings.out_device`` feed the totals; the
    device count covers every id left in ``frame``.
    """
    inside = _delta_sum(frame, settings.in_device)
    outside = _delta_sum(frame, settings.out_device)
    if settings.net_movement_mode == "sum":
        net = inside + outside
    else:
        net = inside - outside
    active = int(frame["device_id"].nunique(dropna=False)) if not frame.empty else 0
    return Stats(total_inside=inside, total_outside=outside, net_movement=net, active_device_count=active)


def latest_by_device(frame: pd.DataFrame) -> Dict[Any, Dict[str, Any]]:
    """Most recent event per device, keyed in order of first appearance.

    Equal timestamps resolve to the one that comes last in ``frame``.
    """
    if frame.empty:
        return {}
    ordered = frame.sort_values("timestamp", kind="mergesort", na_position="first")
    latest = ordered.groupby("device_id", sort=False, dropna=False).tail(1)
    by_device = {rec["device_id"]: rec for rec in latest.to_dict(orient="records")}
    return {device: by_device[device] for device in frame["device_id"].drop_duplicates().tolist()}


def _bucket_value(total: object, count: object) -> int:
    if not count:
        return 0
    return int(round_half_up(float(total) / float(count)))


def build_timeline(frame: pd.DataFrame, interval_minutes: int, max_points: int) -> pd.DataFrame:
    """Average in/out counts per ``interval_minutes`` slot of each local hour.

    Buckets come out oldest first and only the newest ``max_points`` are kept.
    Averages use round-half-up, so 2.5 displays as 3.
    """
    valid = frame[frame["timestamp"].notna()]
    if valid.empty or max_points <= 0:
        return pd.DataFrame(columns=TIMELINE_COLUMNS)

    interval = int(interval_minutes)
    local = local_times(valid).dt.floor("min")
    bucket = local - pd.to_timedelta(local.dt.minute % interval, unit="m")

    grouped = (
        pd.DataFrame({"bucket": bucket, "in_count": valid["in_count"], "out_count": valid["out_count"]})
        .groupby("bucket", sort=True)
        .agg(sum_in=("in_count", "sum"), sum_out=("out_count", "sum"), count=("in_count", "size"))
        .reset_index()
        .tail(int(max_points))
        .reset_index(drop=True)
    )
    grouped["inside"] = [_bucket_value(s, c) for s, c in zip(grouped["sum_in"], grouped["count"])]
    grouped["outside"] = [_bucket_value(s, c) for s, c in zip(grouped["sum_out"], grouped["count"])]
    grouped["label"] = grouped["bucket"].dt.strftime("%a %H:%M")
    return grouped[TIMELINE_COLUMNS]


def recent_deltas(frame: pd.DataFrame, n: int) -> pd.DataFrame:
    """The first ``n`` rows of an already newest-first frame with their deltas."""
    top = take_top(frame, n)
    return pd.DataFrame(
        {
            "device_id": top["device_id"].tolist(),
            "label": [f"{t:%H:%M:%S}" if pd.notna(t) else None for t in top["timestamp"]],
            "delta": top["delta"].astype("int64").tolist(),
        },
        columns=["device_id", "label", "delta"],
    )
