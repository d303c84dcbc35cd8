"""Core (UI-agnostic) people counter dashboard logic.

This package contains:
- payload normalization (API JSON -> pandas)
- period selectors, range resolution and the event filter
- aggregations (stats, timeline buckets, per-device snapshot, deltas)
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
"""
