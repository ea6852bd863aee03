"""Daily summary Pydantic v2 schemas."""


import uuid
from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator


class DailyTeamSummaryData(BaseModel):
    """One recomputed (team, date) summary row."""

    model_config = ConfigDict(from_attributes=True)

    team_id: uuid.UUID
    company_id: uuid.UUID
    date: date
    is_work_day: bool
    is_holiday: bool
    total_members: int
    on_leave_count: int
    excused_count: int
    absent_count: int
    expected_to_check_in: int
    checked_in_count: int
    not_checked_in_count: int
    green_count: int
    yellow_count: int
    red_count: int
    avg_readiness_score: Optional[float] = None
    compliance_rate: Optional[float] = None


class SummaryAggregate(BaseModel):
    """Roll-up of a run of daily summaries."""

    total_days: int
    work_days: int
    total_expected: int
    total_checked_in: int
    avg_compliance_rate: Optional[float] = None
    avg_readiness_score: Optional[float] = None
    total_green: int
    total_yellow: int
    total_red: int


class RecalculateRequest(BaseModel):
    day: Optional[date] = None
    timezone: Optional[str] = None


class RecalculateRangeRequest(BaseModel):
    start_date: date
    end_date: date
    timezone: Optional[str] = None

    @model_validator(mode="after")
    def _check_range(self) -> "RecalculateRangeRequest":
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class TeamSummaryRange(BaseModel):
    team_id: uuid.UUID
    start_date: date
    end_date: date
    summaries: list[DailyTeamSummaryData]
    aggregate: SummaryAggregate
