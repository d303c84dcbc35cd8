from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import pandas as pd

from core.charts import delta_chart, device_chart, distribution_chart, timeline_chart, to_vega_spec
from core.data import event_records, take_top
from core.filters import DashboardFilters, hours_options_for
from core.metrics import build_timeline, compute_stats, latest_by_device, recent_deltas
from core.settings import DashboardSettings


def _device_frame(latest: Dict[Any, Dict[str, Any]]) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "device": [str(d) for d in latest],
            "inside": [int(rec.get("in_count") or 0) for rec in latest.values()],
            "outside": [int(rec.get("out_count") or 0) for rec in latest.values()],
        },
        columns=["device", "inside", "outside"],
    )


def compute_overview(filters: DashboardFilters, ctx: Dict[str, Any], settings: DashboardSettings) -> Dict[str, Any]:
    filtered: pd.DataFrame = ctx.get("filtered_events", pd.DataFrame())
    resolved = ctx.get("range")

    stats = compute_stats(filtered, settings)
    timeline = build_timeline(filtered, settings.interval_minutes, settings.timeline_points)
    devices = _device_frame(latest_by_device(filtered))
    deltas = recent_deltas(filtered, settings.delta_points)

    timeline_rows = []
    if not timeline.empty:
        timeline_rows = timeline.assign(bucket=timeline["bucket"].map(lambda b: b.isoformat())).to_dict(orient="records")

    charts: Dict[str, Any] = {
        "distribution": to_vega_spec(distribution_chart(stats.total_inside, stats.total_outside, settings.colors)),
    }
    if not timeline.empty:
        charts["timeline"] = to_vega_spec(timeline_chart(timeline, settings.colors))
    if not devices.empty:
        charts["devices"] = to_vega_spec(device_chart(devices, settings.colors))
    if not deltas.empty:
        charts["deltas"] = to_vega_spec(delta_chart(deltas, settings.colors))

    return {
        "filters": asdict(filters),
        "period_key": filters.period.key,
        "hours_options": [{"value": v, "label": label} for v, label in hours_options_for(filters.period)],
        "range": resolved.to_dict() if resolved is not None else None,
        "row_counts": {"events": int(len(ctx.get("events", []))), "filtered": int(len(filtered))},
        "stats": asdict(stats),
        "distribution": {"inside": stats.total_inside, "outside": stats.total_outside},
        "activity": event_records(take_top(filtered, settings.table_max_rows)),
        "timeline": timeline_rows,
        "devices": devices.to_dict(orient="records"),
        "deltas": deltas.to_dict(orient="records"),
        "charts": charts,
    }
