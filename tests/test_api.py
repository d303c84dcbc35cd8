from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

import api.main
from core.exceptions import FetchError
from core.state import DashboardController
from tests.conftest import event


PAYLOAD = {
    "IN": [event("IN", "2024-08-02T19:00:00", binnen=4, delta=4), event("IN", "2024-08-03T01:30:00", binnen=6, delta=2)],
    "OUT": [event("OUT", "2024-08-02T20:00:00", buiten=1, delta=1)],
}


@pytest.fixture
def controller(settings, monkeypatch) -> DashboardController:
    ctrl = DashboardController(settings, fetcher=lambda _settings: PAYLOAD)
    monkeypatch.setattr(api.main, "get_controller", lambda: ctrl)
    return ctrl


@pytest.fixture
def client(controller) -> TestClient:
    return TestClient(api.main.app)


def test_dashboard_returns_filtered_view(client) -> None:
    resp = client.post("/dashboard", json={"period": "2024-friday", "device": "IN"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["range"]["window"] == {"start": "18:00", "end": "02:00", "overnight": True}
    assert body["row_counts"]["filtered"] == 2
    assert body["stats"]["total_inside"] == 6
    assert [row["timestamp_raw"] for row in body["activity"]] == ["2024-08-03T01:30:00", "2024-08-02T19:00:00"]


def test_meta_devices(client) -> None:
    body = client.get("/meta/devices").json()

    assert body == {"devices": ["IN", "OUT"], "options": ["all", "IN", "OUT"], "in_device": "IN", "out_device": "OUT"}


def test_meta_periods_offers_hours_for_period(client) -> None:
    body = client.get("/meta/periods", params={"period": "2024-saturday"}).json()

    assert [opt["value"] for opt in body["hours"]] == ["all-hours", "saturday-hours", "custom-hours"]
    assert body["periods"][0] == {"value": "all", "label": "All Time"}


def test_refresh_failure_is_bad_gateway(settings, monkeypatch) -> None:
    def failing(_settings):
        raise FetchError("Failed to fetch data: HTTP 500", status_code=500)

    ctrl = DashboardController(settings, fetcher=failing)
    monkeypatch.setattr(api.main, "get_controller", lambda: ctrl)

    resp = TestClient(api.main.app).post("/refresh")

    assert resp.status_code == 502
    assert resp.json()["type"] == "FetchError"
    assert ctrl.state.last_error


def test_refresh_reports_loaded_events(client) -> None:
    body = client.post("/refresh").json()

    assert body["applied"] is True
    assert body["events"] == 3


def test_export_activity_csv(client, controller) -> None:
    controller.refresh()

    resp = client.post("/export/activity", json={"device": "OUT"})

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    lines = resp.text.strip().splitlines()
    assert lines[0] == "device_id,timestamp,in_count,out_count,delta,total"
    assert len(lines) == 2
    assert lines[1].startswith("OUT,2024-08-02T20:00:00+02:00")


def test_dashboard_all_hours_drops_festival_window(client) -> None:
    body = client.post("/dashboard", json={"period": "2024-friday", "device": "IN", "hours": "all-hours"}).json()

    assert body["range"]["window"] is None
    assert body["row_counts"]["filtered"] == 1
