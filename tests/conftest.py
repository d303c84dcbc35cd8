from __future__ import annotations

from typing import Any, Dict

import pytest

from core.settings import DashboardSettings


def event(device: str, timestamp: str, *, binnen: int = 0, buiten: int = 0, delta: int = 0, totaal: int = 0) -> Dict[str, Any]:
    return {
        "apparaat": device,
        "timestamp": timestamp,
        "binnen": binnen,
        "buiten": buiten,
        "delta": delta,
        "totaal": totaal,
    }


@pytest.fixture
def settings() -> DashboardSettings:
    return DashboardSettings(in_device="IN", out_device="OUT", excluded_devices=("Buttin", "Buttout"))
