import altair as alt
import pandas as pd
import streamlit as st
from contextlib import contextmanager
from datetime import time
from typing import Optional

from streamlit_autorefresh import st_autorefresh

from core.charts import delta_chart, device_chart, distribution_chart, timeline_chart
from core.exceptions import FetchError, MalformedPayload
from core.filters import (
    device_choices,
    hours_options_for,
    normalize_filters,
    parse_period,
    period_options,
    suggested_hours,
)
from core.metrics_overview import compute_overview
from core.filtering import prepare_context
from core.settings import DashboardSettings
from core.state import DashboardController

alt.data_transformers.disable_max_rows()


# ---------- UI / layout helpers ----------
def inject_base_styles(settings: DashboardSettings):
    if st.session_state.get("_base_css_injected"):
        return
    c = settings.colors
    st.markdown(
        f"""
        <style>
        .app-top-bar {{padding: 6px 0 4px;border-bottom: 1px solid {c.secondary}33;margin-bottom: 10px;}}
        .app-top-bar .breadcrumb {{color: {c.secondary}b3;font-size: 0.9rem;margin-bottom: 2px;}}
        .app-top-bar .page-title {{font-size: 1.4rem;font-weight: 700;color: {c.primary};}}
        .card {{border: 1px solid {c.secondary}33;border-radius: 12px;padding: 16px;background: {c.background};
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}}
        .card-title {{font-weight: 600;font-size: 1.0rem;color: {c.secondary};}}
        .chip-row {{display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}}
        .chip {{background: {c.background};border: 1px solid {c.primary};border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: {c.secondary};}}
        .chip-ok {{border-color: {c.success};color: {c.success};}}
        .chip-error {{border-color: {c.error};color: {c.error};}}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def format_filter_summary(device: Optional[str], period_label: str, hours_label: str) -> str:
    chips = [f"Device: {device or 'All'}", f"Period: {period_label}", f"Hours: {hours_label}"]
    return "".join([f"<span class='chip'>{txt}</span>" for txt in chips])


@st.cache_resource
def get_controller() -> DashboardController:
    return DashboardController(DashboardSettings.from_env())


def _on_period_change():
    period = parse_period({"period": st.session_state["period"]})
    st.session_state["hours"] = suggested_hours(period, st.session_state.get("hours", "all-hours"))


# ---------- UI setup ----------
st.set_page_config(page_title="People Counter Dashboard", layout="wide")
controller = get_controller()
settings = controller.settings
inject_base_styles(settings)

if settings.auto_refresh:
    st_autorefresh(interval=int(settings.refresh_interval * 1000), key="auto_refresh")

failure = controller.refresh_if_stale()
if failure is not None:
    st.toast(f"Failed to load data. Showing the last loaded counts. ({failure})", icon="⚠️")

# ----- Sidebar: filters -----
period_labels = dict(period_options(settings.festival_calendar))
with st.sidebar:
    st.markdown("### Filters")
    device_options = device_choices(settings.device_options, controller.available_devices())
    device_value = st.selectbox("Device", options=device_options, format_func=lambda d: "All Devices" if d == "all" else d)
    period_value = st.selectbox(
        "Time Range",
        options=list(period_labels),
        format_func=lambda k: period_labels[k],
        key="period",
        on_change=_on_period_change,
    )

    raw_filters = {"device": device_value, "period": period_value}
    if period_value == "custom":
        cols = st.columns(2)
        raw_filters["start_date"] = cols[0].date_input("Start date", value=None)
        raw_filters["end_date"] = cols[1].date_input("End date", value=None)
        cols = st.columns(2)
        raw_filters["start_time"] = cols[0].time_input("From", value=time(0, 0))
        raw_filters["end_time"] = cols[1].time_input("To", value=time(23, 59))

    hours_opts = dict(hours_options_for(parse_period(raw_filters)))
    if st.session_state.get("hours") not in hours_opts:
        st.session_state["hours"] = "all-hours"
    hours_value = st.selectbox("Active Hours", options=list(hours_opts), format_func=lambda k: hours_opts[k], key="hours")
    raw_filters["hours"] = hours_value
    if hours_value == "custom-hours":
        cols = st.columns(2)
        raw_filters["start_hour"] = cols[0].time_input("Start hour", value=time(18, 0))
        raw_filters["end_hour"] = cols[1].time_input("End hour", value=time(2, 0))

    st.markdown("---")
    if st.button("Refresh now"):
        try:
            controller.refresh()
        except (FetchError, MalformedPayload) as exc:
            st.toast(f"Failed to refresh data automatically. ({exc})", icon="⚠️")
        st.rerun()

filters = normalize_filters(raw_filters, available_devices=controller.available_devices())
ctx = prepare_context(filters, controller.state.events, settings, pd.Timestamp.now(tz="UTC"))
payload = compute_overview(filters, ctx, settings)
stats = payload["stats"]


# ----- Page -----
st.markdown(
    "<div class='app-top-bar'><div class='breadcrumb'>Live / Occupancy</div>"
    "<div class='page-title'>People Counter Dashboard</div></div>",
    unsafe_allow_html=True,
)
st.markdown(
    f"<div class='chip-row'>{format_filter_summary(filters.device, period_labels.get(period_value, period_value), hours_opts.get(hours_value, hours_value))}</div>",
    unsafe_allow_html=True,
)

last_updated = controller.state.last_updated
if last_updated is not None:
    local = pd.Timestamp(last_updated).tz_convert(settings.timezone)
    st.caption(f"Last updated {local:%a %d %b %Y} at {local:%H:%M:%S}")
else:
    st.caption("No data loaded yet.")

last_error = controller.state.last_error
if last_error:
    status = "<span class='chip chip-error'>Last refresh failed, showing previous data</span>"
else:
    status = "<span class='chip chip-ok'>Live</span>"
st.markdown(f"<div class='chip-row'>{status}</div>", unsafe_allow_html=True)

cols = st.columns(4)
cols[0].metric("Total Inside", f"{stats['total_inside']:,}", help=f"Sum of delta for {settings.in_device}.")
cols[1].metric("Total Outside", f"{stats['total_outside']:,}", help=f"Sum of delta for {settings.out_device}.")
cols[2].metric("Net Movement", f"{stats['net_movement']:,}", help=f"Mode: {settings.net_movement_mode}.")
cols[3].metric("Active Devices", stats["active_device_count"])

timeline = pd.DataFrame(payload["timeline"])
devices = pd.DataFrame(payload["devices"])
deltas = pd.DataFrame(payload["deltas"])

chart_cols = st.columns([2, 1])
with chart_cols[0]:
    with card("People over time"):
        if timeline.empty:
            st.info("No events in the selected period.")
        else:
            st.altair_chart(timeline_chart(timeline, settings.colors), use_container_width=True)
with chart_cols[1]:
    with card("Inside vs outside"):
        st.altair_chart(
            distribution_chart(stats["total_inside"], stats["total_outside"], settings.colors), use_container_width=True
        )

chart_cols = st.columns(2)
with chart_cols[0]:
    with card("Latest count per device"):
        if devices.empty:
            st.info("No devices reported in the selected period.")
        else:
            st.altair_chart(device_chart(devices, settings.colors), use_container_width=True)
with chart_cols[1]:
    with card(f"Last {settings.delta_points} deltas"):
        if deltas.empty:
            st.info("No deltas in the selected period.")
        else:
            st.altair_chart(delta_chart(deltas, settings.colors), use_container_width=True)

with card("Recent activity"):
    activity = pd.DataFrame(payload["activity"])
    if activity.empty:
        st.info("No activity for the selected filters.")
    else:
        table = activity[["device_id", "date_label", "time_label", "in_count", "out_count", "delta", "total"]].rename(
            columns={
                "device_id": "Device",
                "date_label": "Date",
                "time_label": "Time",
                "in_count": "Inside",
                "out_count": "Outside",
                "delta": "Delta",
                "total": "Total",
            }
        )
        st.dataframe(table, hide_index=True, use_container_width=True)
        st.download_button(
            "Export CSV",
            data=table.to_csv(index=False).encode("utf-8"),
            file_name="activity.csv",
            mime="text/csv",
        )
