from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

TrafficLight = Literal["green", "yellow", "red"]


class NamedValue(BaseModel):
    name: str
    value: float


class LoanContext(BaseModel):
    context: str
    name: str
    purpose: str
    count: int
    user_type: str


class DashboardStats(BaseModel):
    total_chromebooks: int
    available_chromebooks: int
    total_active: int
    usage_rate: float
    usage_rate_color: TrafficLight
    average_usage_minutes: float
    completion_rate: float
    loans_by_user_type: dict[str, int] = Field(default_factory=dict)
    user_type_data: list[NamedValue] = Field(default_factory=list)
    average_duration_by_user_type: dict[str, float] = Field(default_factory=dict)
    duration_data: list[NamedValue] = Field(default_factory=list)
    max_occupancy_rate: float
    occupancy_rate_color: TrafficLight
    top_loan_contexts: list[LoanContext] = Field(default_factory=list)


class DailyActivity(BaseModel):
    label: str
    date: str
    loans: int
    returns: int
