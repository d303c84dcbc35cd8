from __future__ import annotations

import logging
import math
from functools import lru_cache

import numpy as np
import pandas as pd
from fastapi import FastAPI, Query
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import DashboardFiltersModel, MetaDevicesResponse, MetaPeriodsResponse, OptionModel, RefreshResponse
from core.data import event_records
from core.exceptions import FetchError, MalformedPayload
from core.filtering import prepare_context
from core.filters import DashboardFilters, device_choices, hours_options_for, normalize_filters, parse_period, period_options
from core.settings import DashboardSettings
from core.state import DashboardController


app = FastAPI(title="People Counter Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def get_controller() -> DashboardController:
    return DashboardController(DashboardSettings.from_env())


def _filters_from_model(model: DashboardFiltersModel, controller: DashboardController) -> DashboardFilters:
    raw = model.model_dump()
    return normalize_filters(raw, available_devices=controller.available_devices())


def _json(data: object, status_code: int = 200) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                type(pd.NaT): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        ),
    )


def _error(exc: Exception, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc), "type": type(exc).__name__})


def _poll(controller: DashboardController) -> None:
    failure = controller.refresh_if_stale()
    if failure is not None:
        logger.warning("Serving previously loaded data: %s", failure)


@app.get("/meta/devices")
def meta_devices():
    try:
        controller = get_controller()
        _poll(controller)
        settings = controller.settings
        body = MetaDevicesResponse(
            devices=controller.available_devices(),
            options=device_choices(settings.device_options, controller.available_devices()),
            in_device=settings.in_device,
            out_device=settings.out_device,
        )
        return _json(body.model_dump())
    except Exception as exc:
        logger.exception("meta_devices failed")
        return _error(exc)


@app.get("/meta/periods")
def meta_periods(period: str = Query(default="all")):
    try:
        controller = get_controller()
        selected = parse_period({"period": period})
        body = MetaPeriodsResponse(
            periods=[OptionModel(value=v, label=label) for v, label in period_options(controller.settings.festival_calendar)],
            hours=[OptionModel(value=v, label=label) for v, label in hours_options_for(selected)],
        )
        return _json(body.model_dump())
    except Exception as exc:
        logger.exception("meta_periods failed")
        return _error(exc)


@app.post("/dashboard")
def dashboard(filters: DashboardFiltersModel):
    try:
        controller = get_controller()
        _poll(controller)
        f = _filters_from_model(filters, controller)
        return _json(controller.view(f))
    except Exception as exc:
        logger.exception("dashboard failed")
        return _error(exc)


@app.post("/refresh")
def refresh():
    controller = get_controller()
    try:
        applied = controller.refresh()
    except (FetchError, MalformedPayload) as exc:
        return _error(exc, status_code=502)
    except Exception as exc:
        logger.exception("refresh failed")
        return _error(exc)
    state = controller.state
    body = RefreshResponse(
        applied=applied,
        events=int(len(state.events)),
        last_updated=state.last_updated.isoformat() if state.last_updated is not None else None,
    )
    return _json(body.model_dump())


@app.post("/export/activity")
def export_activity(filters: DashboardFiltersModel):
    controller = get_controller()
    f = _filters_from_model(filters, controller)
    ctx = prepare_context(f, controller.state.events, controller.settings, pd.Timestamp.now(tz="UTC"))

    rows = event_records(ctx["filtered_events"])
    export_df = pd.DataFrame(rows, columns=["device_id", "timestamp", "in_count", "out_count", "delta", "total"])
    csv_bytes = export_df.to_csv(index=False).encode("utf-8")
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": "attachment; filename=activity.csv"})
