"""Absence Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Request → request bodies (write)
  - *Response → response bodies (read)
"""


import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from teamready.common.constants import AbsenceReason, AbsenceStatus, ReviewAction
from teamready.common.pagination import PaginationMeta


class AbsenceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    team_id: uuid.UUID
    company_id: uuid.UUID
    absence_date: date
    status: AbsenceStatus
    reason_category: Optional[AbsenceReason] = None
    explanation: Optional[str] = None
    justified_at: Optional[datetime] = None
    reviewed_by: Optional[uuid.UUID] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    created_at: datetime


class AbsenceListResponse(BaseModel):
    data: list[AbsenceResponse]
    meta: PaginationMeta


class AbsenceCounts(BaseModel):
    pending_justification: int = 0
    pending_review: int = 0
    excused: int = 0
    unexcused: int = 0
    total: int = 0


# ═════════════════════════════════════════════════════════════════════
# Justify / review
# ═════════════════════════════════════════════════════════════════════


class JustifyItem(BaseModel):
    absence_id: uuid.UUID
    reason_category: AbsenceReason
    explanation: Optional[str] = Field(None, max_length=2000)


class JustifyRequest(BaseModel):
    user_id: uuid.UUID
    items: list[JustifyItem] = Field(..., min_length=1)


class ReviewRequest(BaseModel):
    reviewer_id: uuid.UUID
    action: ReviewAction
    notes: Optional[str] = Field(None, max_length=2000)


# ═════════════════════════════════════════════════════════════════════
# Detection
# ═════════════════════════════════════════════════════════════════════


class DetectRequest(BaseModel):
    company_id: uuid.UUID
    timezone: Optional[str] = None


class DetectionError(BaseModel):
    user_id: uuid.UUID
    error: str


class DetectionReport(BaseModel):
    company_id: uuid.UUID
    workers_processed: int = 0
    absences_created: int = 0
    errors: list[DetectionError] = []
