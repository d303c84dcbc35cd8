from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

from core.exceptions import ConfigError
from core.festival import FestivalCalendar, parse_festival_dates


NET_MOVEMENT_MODES = ("difference", "sum")


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_list(value: str) -> Tuple[str, ...]:
    return tuple(x.strip() for x in value.split(",") if x.strip())


@dataclass(frozen=True)
class ChartColors:
    primary: str = "#f3b323"
    secondary: str = "#eee7d7"
    background: str = "#245d50"
    error: str = "#e53e3e"
    success: str = "#38a169"


@dataclass(frozen=True)
class DashboardSettings:
    """Everything the counter dashboard needs to know about its environment.

    ``in_device`` and ``out_device`` are the two counters whose ``delta`` values
    are read as people entering and leaving; every other device only shows up in
    the active-device count and the per-device charts.
    """

    api_url: str = "https://aff.reytech.be/grouped"
    cors_proxy: str = ""
    refresh_interval: float = 30.0
    request_timeout: float = 10.0
    in_device: str = "Kamerotski"
    out_device: str = "Henk"
    excluded_devices: Tuple[str, ...] = ("Buttin", "Buttout")
    festival_calendar: FestivalCalendar = field(default_factory=FestivalCalendar)
    interval_minutes: int = 5
    timeline_points: int = 288
    table_max_rows: int = 50
    delta_points: int = 20
    timezone: str = "Europe/Brussels"
    net_movement_mode: str = "difference"
    auto_refresh: bool = True
    colors: ChartColors = field(default_factory=ChartColors)

    def __post_init__(self) -> None:
        if self.net_movement_mode not in NET_MOVEMENT_MODES:
            raise ConfigError(f"net_movement_mode must be one of {NET_MOVEMENT_MODES}, got {self.net_movement_mode!r}")
        if self.interval_minutes <= 0:
            raise ConfigError("interval_minutes must be positive")
        if self.timeline_points <= 0:
            raise ConfigError("timeline_points must be positive")

    @property
    def request_url(self) -> str:
        return f"{self.cors_proxy}{self.api_url}"

    @property
    def device_options(self) -> Tuple[str, ...]:
        return (self.in_device, self.out_device)

    @classmethod
    def from_env(cls, **overrides: Any) -> "DashboardSettings":
        """Build settings from ``PCD_*`` environment variables.

        Explicit keyword arguments win over the environment.
        """
        env = os.environ
        kwargs: Dict[str, Any] = {}

        _ENV_STR_MAP = {
            "PCD_API_URL": "api_url",
            "PCD_CORS_PROXY": "cors_proxy",
            "PCD_IN_DEVICE": "in_device",
            "PCD_OUT_DEVICE": "out_device",
            "PCD_TIMEZONE": "timezone",
            "PCD_NET_MOVEMENT_MODE": "net_movement_mode",
        }
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                kwargs[field_name] = val

        _ENV_NUM_MAP = {
            "PCD_REFRESH_INTERVAL": ("refresh_interval", float),
            "PCD_REQUEST_TIMEOUT": ("request_timeout", float),
            "PCD_INTERVAL_MINUTES": ("interval_minutes", int),
            "PCD_TIMELINE_POINTS": ("timeline_points", int),
            "PCD_TABLE_MAX_ROWS": ("table_max_rows", int),
            "PCD_DELTA_POINTS": ("delta_points", int),
        }
        for env_key, (field_name, caster) in _ENV_NUM_MAP.items():
            val = env.get(env_key)
            if val is None:
                continue
            try:
                kwargs[field_name] = caster(val)
            except ValueError as exc:
                raise ConfigError(f"{env_key} must be a number, got {val!r}") from exc

        excluded = env.get("PCD_EXCLUDED_DEVICES")
        if excluded is not None:
            kwargs["excluded_devices"] = _env_list(excluded)

        extra_years = env.get("PCD_FESTIVAL_DATES")
        if extra_years:
            try:
                kwargs["festival_calendar"] = FestivalCalendar().with_years(parse_festival_dates(extra_years))
            except ValueError as exc:
                raise ConfigError(f"PCD_FESTIVAL_DATES is malformed: {exc}") from exc

        kwargs["auto_refresh"] = _env_bool(env.get("PCD_AUTO_REFRESH"), True)

        kwargs.update(overrides)
        return cls(**kwargs)
