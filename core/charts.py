from __future__ import annotations

from typing import Any, Dict

import altair as alt
import pandas as pd

from core.settings import ChartColors

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def timeline_chart(timeline: pd.DataFrame, colors: ChartColors) -> alt.Chart:
    long_df = (
        timeline.assign(order=range(len(timeline)))
        .melt(id_vars=["order", "label"], value_vars=["inside", "outside"], var_name="series", value_name="people")
    )
    hover = alt.selection_point(fields=["series"], on="mouseover", empty="all")
    return (
        alt.Chart(long_df)
        .mark_line(interpolate="monotone", point={"filled": True, "size": 30})
        .encode(
            x=alt.X("label:N", title=None, sort=alt.EncodingSortField(field="order", op="min"), axis=alt.Axis(labelOverlap=True, grid=False)),
            y=alt.Y("people:Q", title="People", axis=alt.Axis(gridDash=[4, 4], domain=False, ticks=False)),
            color=alt.Color(
                "series:N",
                title=None,
                scale=alt.Scale(domain=["inside", "outside"], range=[colors.primary, colors.secondary]),
            ),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.2)),
            tooltip=["label", "series", alt.Tooltip("people:Q", format=",")],
        )
        .add_params(hover)
        .properties(height=300)
    )


def distribution_chart(total_inside: int, total_outside: int, colors: ChartColors) -> alt.Chart:
    df = pd.DataFrame({"side": ["Inside", "Outside"], "people": [total_inside, total_outside]})
    return (
        alt.Chart(df)
        .mark_arc(innerRadius=60)
        .encode(
            theta=alt.Theta("people:Q"),
            color=alt.Color(
                "side:N",
                title=None,
                scale=alt.Scale(domain=["Inside", "Outside"], range=[colors.primary, colors.secondary]),
            ),
            tooltip=["side", alt.Tooltip("people:Q", format=",")],
        )
        .properties(height=300)
    )


def device_chart(devices: pd.DataFrame, colors: ChartColors) -> alt.Chart:
    long_df = devices.melt(id_vars="device", value_vars=["inside", "outside"], var_name="series", value_name="people")
    return (
        alt.Chart(long_df)
        .mark_bar()
        .encode(
            x=alt.X("device:N", title="Device"),
            xOffset="series:N",
            y=alt.Y("people:Q", title="People"),
            color=alt.Color(
                "series:N",
                title=None,
                scale=alt.Scale(domain=["inside", "outside"], range=[colors.primary, colors.secondary]),
            ),
            tooltip=["device", "series", alt.Tooltip("people:Q", format=",")],
        )
        .properties(height=300)
    )


def delta_chart(deltas: pd.DataFrame, colors: ChartColors) -> alt.Chart:
    df = deltas.assign(order=range(len(deltas)), sign=deltas["delta"].map(lambda d: "up" if d >= 0 else "down"))
    return (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X("label:N", title=None, sort=alt.EncodingSortField(field="order", op="min")),
            y=alt.Y("delta:Q", title="Delta"),
            color=alt.Color(
                "sign:N",
                legend=None,
                scale=alt.Scale(domain=["up", "down"], range=[colors.primary, colors.secondary]),
            ),
            tooltip=["device_id", "label", "delta"],
        )
        .properties(height=300)
    )
