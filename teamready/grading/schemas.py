"""Grading Pydantic v2 schemas."""


import uuid
from datetime import date
from typing import Optional

from pydantic import BaseModel

from teamready.common.constants import GradeColor, Trend


class GradeInfo(BaseModel):
    grade: str
    label: str
    color: GradeColor


class GradePeriod(BaseModel):
    days: int
    start_date: date
    end_date: date


class TeamGradeBreakdown(BaseModel):
    green: int = 0
    yellow: int = 0
    red: int = 0
    absent: int = 0
    excused: int = 0


class TeamGrade(BaseModel):
    team_id: uuid.UUID
    team_name: str
    member_count: int
    included_member_count: int
    onboarding_count: int
    avg_readiness: Optional[float] = None
    compliance_rate: Optional[float] = None
    score: Optional[int] = None
    grade: Optional[str] = None
    grade_label: Optional[str] = None
    grade_color: Optional[GradeColor] = None
    simple_grade: Optional[str] = None
    trend: Trend = Trend.stable
    score_delta: int = 0
    breakdown: TeamGradeBreakdown
    period: GradePeriod


class WorkerGrade(BaseModel):
    user_id: uuid.UUID
    full_name: str
    team_id: Optional[uuid.UUID] = None
    checkin_count: int
    expected_days: int
    checked_in_days: int
    avg_readiness: Optional[float] = None
    compliance_rate: Optional[float] = None
    is_onboarding: bool
    score: Optional[int] = None
    grade: Optional[str] = None
    grade_label: Optional[str] = None
    grade_color: Optional[GradeColor] = None
    period: GradePeriod


class TeamsOverviewSummary(BaseModel):
    total_teams: int
    total_members: int
    avg_score: Optional[int] = None
    avg_grade: Optional[str] = None
    teams_at_risk: int
    teams_critical: int
    teams_improving: int
    teams_declining: int


class TeamsOverview(BaseModel):
    teams: list[TeamGrade]
    summary: TeamsOverviewSummary
    period: GradePeriod
