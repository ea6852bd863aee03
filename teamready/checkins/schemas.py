"""Check-in Pydantic v2 schemas — request / response validation."""


import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from teamready.common.constants import ReadinessStatus


class CheckinMetrics(BaseModel):
    """The four self-reported metrics.

    Range (1–10) is enforced by the readiness scorer so that out-of-range
    values surface as a domain ValidationException rather than being clamped.
    """

    mood: int
    stress: int
    sleep: int
    physical_health: int


class ReadinessResult(BaseModel):
    score: int
    status: ReadinessStatus


class CheckinCreate(CheckinMetrics):
    """Payload for submitting today's check-in."""

    user_id: uuid.UUID
    notes: Optional[str] = Field(None, max_length=2000)


class CheckinResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    company_id: uuid.UUID
    mood: int
    stress: int
    sleep: int
    physical_health: int
    readiness_score: int
    readiness_status: ReadinessStatus
    notes: Optional[str] = None
    checkin_date: date
    created_at: datetime


class ReadinessAudit(BaseModel):
    """Stored vs recomputed readiness for a single check-in."""

    checkin_id: uuid.UUID
    stored_score: int
    stored_status: ReadinessStatus
    computed_score: int
    computed_status: ReadinessStatus
    matches: bool
