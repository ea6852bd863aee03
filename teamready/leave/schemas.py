"""Leave Pydantic v2 schemas."""


import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from teamready.common.constants import ExceptionStatus, ExceptionType


class LeaveExceptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    company_id: uuid.UUID
    type: ExceptionType
    status: ExceptionStatus
    start_date: date
    end_date: date
    reason: Optional[str] = None
    reviewed_by: Optional[uuid.UUID] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None


class LeaveStatus(BaseModel):
    """Leave state of a worker relative to their company-local today."""

    is_on_leave: bool
    is_returning: bool
    current_exception: Optional[LeaveExceptionResponse] = None
    last_exception: Optional[LeaveExceptionResponse] = None


class LeaveUsage(BaseModel):
    used: int
    remaining: int
    by_type: dict[str, int]


class ExceptionReviewRequest(BaseModel):
    reviewer_id: uuid.UUID
    approve: bool
    notes: Optional[str] = Field(None, max_length=2000)


class CoverageRefreshResponse(BaseModel):
    exception_id: uuid.UUID
    days_recalculated: int
