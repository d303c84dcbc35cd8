from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class DashboardFiltersModel(BaseModel):
    device: Optional[str] = "all"
    period: str = "all"
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    hours: Optional[str] = None
    start_hour: Optional[str] = None
    end_hour: Optional[str] = None


class OptionModel(BaseModel):
    value: str
    label: str


class MetaDevicesResponse(BaseModel):
    devices: List[str]
    options: List[str] = Field(default_factory=list)
    in_device: str
    out_device: str


class MetaPeriodsResponse(BaseModel):
    periods: List[OptionModel] = Field(default_factory=list)
    hours: List[OptionModel] = Field(default_factory=list)


class RefreshResponse(BaseModel):
    applied: bool
    events: int
    last_updated: Optional[str] = None
