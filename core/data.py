from __future__ import annotations

import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from core.exceptions import MalformedPayload


logger = logging.getLogger(__name__)


DEFAULT_TIMEZONE = "Europe/Brussels"

EVENT_COLUMNS = {
    "apparaat": "device_id",
    "timestamp": "timestamp_raw",
    "binnen": "in_count",
    "buiten": "out_count",
    "delta": "delta",
    "totaal": "total",
}
COUNT_COLUMNS = ["in_count", "out_count", "delta", "total"]
FRAME_COLUMNS = ["device_id", "timestamp", "timestamp_raw", *COUNT_COLUMNS]


def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


def normalize_device(value: object) -> Optional[str]:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    s = str(value).strip()
    return s or None


def numericize(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0).astype("int64")
        else:
            df[col] = pd.Series(0, index=df.index, dtype="int64")
    return df


def parse_timestamp(value: object, tz: str = DEFAULT_TIMEZONE) -> pd.Timestamp:
    """Parse one wire timestamp into the dashboard timezone; NaT when unparseable.

    Offset-less strings are local wall-clock time in ``tz``. Only strings and
    datetimes are read; numbers and other values give NaT.
    """
    if not isinstance(value, (str, datetime)):
        return pd.NaT
    try:
        ts = pd.Timestamp(value)
    except (TypeError, ValueError, OverflowError):
        return pd.NaT
    if pd.isna(ts):
        return pd.NaT
    if ts.tzinfo is None:
        return ts.tz_localize(tz, ambiguous=True, nonexistent="shift_forward")
    return ts.tz_convert(tz)


def parse_timestamps(values: pd.Series, tz: str = DEFAULT_TIMEZONE) -> pd.Series:
    parsed = pd.Series([parse_timestamp(v, tz) for v in values], index=values.index, dtype=object)
    return pd.to_datetime(parsed, utc=True).dt.tz_convert(tz)


def empty_events(tz: str = DEFAULT_TIMEZONE) -> pd.DataFrame:
    frame = pd.DataFrame({col: pd.Series(dtype="int64") for col in COUNT_COLUMNS})
    frame.insert(0, "device_id", pd.Series(dtype=object))
    frame.insert(1, "timestamp", pd.Series(dtype=f"datetime64[ns, {tz}]"))
    frame.insert(2, "timestamp_raw", pd.Series(dtype=object))
    return frame


def flatten_payload(raw: Any) -> List[Dict[str, Any]]:
    """Turn a flat list or a device-grouped mapping into one list of records."""
    if isinstance(raw, (list, tuple)):
        items = list(raw)
    elif isinstance(raw, dict):
        items = []
        for group in raw.values():
            if isinstance(group, (list, tuple)):
                items.extend(group)
            else:
                items.append(group)
    else:
        raise MalformedPayload(f"Invalid data format received: expected list or object, got {type(raw).__name__}")

    records = [item for item in items if isinstance(item, dict)]
    skipped = len(items) - len(records)
    if skipped:
        logger.warning("Skipped %d payload entries that are not event objects", skipped)
    return records


def normalize_payload(
    raw: Any,
    excluded_devices: Iterable[str] = (),
    *,
    tz: str = DEFAULT_TIMEZONE,
) -> pd.DataFrame:
    """Flatten an upstream payload into an events frame and drop excluded devices.

    Row order follows the payload (mapping iteration order for grouped
    payloads). Counts default to 0; unparseable timestamps become NaT.
    """
    records = flatten_payload(raw)
    if not records:
        return empty_events(tz)

    frame = pd.DataFrame.from_records(records).rename(columns=EVENT_COLUMNS)
    if "device_id" not in frame.columns:
        frame["device_id"] = None
    if "timestamp_raw" not in frame.columns:
        frame["timestamp_raw"] = None

    frame["device_id"] = frame["device_id"].map(normalize_device).astype(object)
    frame = numericize(frame, COUNT_COLUMNS)
    frame["timestamp"] = parse_timestamps(frame["timestamp_raw"], tz)

    excluded = set(excluded_devices or ())
    if excluded:
        frame = frame[~frame["device_id"].isin(excluded)]

    bad = int(frame["timestamp"].isna().sum())
    if bad:
        logger.warning("%d events have an unparseable timestamp", bad)
    return frame[FRAME_COLUMNS].reset_index(drop=True)


def sort_by_timestamp_desc(frame: pd.DataFrame) -> pd.DataFrame:
    """Newest first; equal timestamps keep their input order, NaT rows go last."""
    return frame.sort_values("timestamp", ascending=False, kind="mergesort", na_position="last")


def take_top(frame: pd.DataFrame, n: int) -> pd.DataFrame:
    return frame.head(max(0, int(n)))


def event_records(frame: pd.DataFrame) -> List[Dict[str, Any]]:
    """Rows for the activity table, in frame order."""
    if frame.empty:
        return []
    out = frame[["device_id", "timestamp_raw", *COUNT_COLUMNS]].copy()
    ts = frame["timestamp"]
    out["timestamp"] = ts.map(lambda t: t.isoformat() if pd.notna(t) else None)
    out["date_label"] = ts.map(lambda t: f"{t:%a} {t.day} {t:%b}" if pd.notna(t) else None)
    out["time_label"] = ts.map(lambda t: f"{t:%H:%M:%S}" if pd.notna(t) else None)
    out["direction"] = out["delta"].map(lambda d: "positive" if d >= 0 else "negative")
    return out.to_dict(orient="records")
