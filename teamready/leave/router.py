"""Leave router — leave status, coverage checks and exception review."""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from teamready.database import get_db
from teamready.leave.schemas import (
    CoverageRefreshResponse,
    ExceptionReviewRequest,
    LeaveExceptionResponse,
    LeaveStatus,
    LeaveUsage,
)
from teamready.leave.service import LeaveService

router = APIRouter(prefix="", tags=["leave"])


# ── GET /users/{id}/status ──────────────────────────────────────────

@router.get("/users/{user_id}/status", response_model=LeaveStatus)
async def user_leave_status(
    user_id: uuid.UUID,
    timezone: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Whether the worker is on leave today or returning from leave."""
    return await LeaveService.get_user_leave_status(db, user_id, timezone)


# ── GET /users/{id}/on-leave ────────────────────────────────────────

@router.get("/users/{user_id}/on-leave")
async def user_on_leave(
    user_id: uuid.UUID,
    day: date = Query(..., alias="date"),
    db: AsyncSession = Depends(get_db),
):
    """Approved-leave coverage of a single calendar day."""
    exc = await LeaveService.get_leave_for_date(db, user_id, day)
    return {
        "user_id": user_id,
        "date": day,
        "is_on_leave": exc is not None,
        "exception": LeaveExceptionResponse.model_validate(exc) if exc else None,
    }


# ── GET /users/{id}/usage ───────────────────────────────────────────

@router.get("/users/{user_id}/usage", response_model=LeaveUsage)
async def user_leave_usage(
    user_id: uuid.UUID,
    start_date: date = Query(...),
    end_date: date = Query(...),
    max_days: int = Query(15, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """Leave days used within a range against an allowance."""
    return await LeaveService.get_remaining_leave_days(
        db, user_id, start_date, end_date, max_days,
    )


# ── PUT /exceptions/{id}/review ─────────────────────────────────────

@router.put("/exceptions/{exception_id}/review", response_model=LeaveExceptionResponse)
async def review_exception(
    exception_id: uuid.UUID,
    body: ExceptionReviewRequest,
    db: AsyncSession = Depends(get_db),
):
    """Approve or reject a pending exception; refreshes affected summaries."""
    return await LeaveService.review_exception(
        db, exception_id, body.reviewer_id, approve=body.approve, notes=body.notes,
    )


# ── POST /exceptions/{id}/refresh ───────────────────────────────────

@router.post("/exceptions/{exception_id}/refresh", response_model=CoverageRefreshResponse)
async def refresh_exception_coverage(
    exception_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Recompute the summaries covered by an exception."""
    days = await LeaveService.refresh_coverage(db, exception_id)
    return CoverageRefreshResponse(exception_id=exception_id, days_recalculated=days)
