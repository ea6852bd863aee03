"""Absence router — detection, justification, review and team views."""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from teamready.absences.schemas import (
    AbsenceCounts,
    AbsenceListResponse,
    AbsenceResponse,
    DetectionReport,
    DetectRequest,
    JustifyRequest,
    ReviewRequest,
)
from teamready.absences.service import AbsenceService
from teamready.common.constants import MAX_PAGE_SIZE, AbsenceFilter
from teamready.common.rate_limit import RECALCULATE_LIMIT, limiter
from teamready.database import get_db

router = APIRouter(prefix="", tags=["absences"])


# ── POST /users/{id}/detect ─────────────────────────────────────────

@router.post("/users/{user_id}/detect", response_model=list[AbsenceResponse])
async def detect_user_absences(
    user_id: uuid.UUID,
    body: DetectRequest,
    db: AsyncSession = Depends(get_db),
):
    """Create absence rows for a worker's uncovered missed work days."""
    created = await AbsenceService.detect_and_create_absences(
        db, user_id, body.company_id, body.timezone,
    )
    return [AbsenceResponse.model_validate(a) for a in created]


# ── POST /companies/{id}/detect ─────────────────────────────────────

@router.post("/companies/{company_id}/detect", response_model=DetectionReport)
@limiter.limit(RECALCULATE_LIMIT)
async def detect_company_absences(
    request: Request,
    company_id: uuid.UUID,
    timezone: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Run detection for every worker in the company (per-worker isolation)."""
    return await AbsenceService.detect_absences_for_company(db, company_id, timezone)


# ── GET /users/{id}/pending ─────────────────────────────────────────

@router.get("/users/{user_id}/pending", response_model=list[AbsenceResponse])
async def pending_justifications(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Absences the worker still has to justify, oldest first."""
    return await AbsenceService.get_pending_justifications(db, user_id)


# ── GET /users/{id}/blocking ────────────────────────────────────────

@router.get("/users/{user_id}/blocking")
async def blocking_absences(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Whether unjustified absences block the worker."""
    return {
        "user_id": user_id,
        "has_blocking_absences": await AbsenceService.has_blocking_absences(db, user_id),
    }


# ── GET /users/{id}/history ─────────────────────────────────────────

@router.get("/users/{user_id}/history", response_model=list[AbsenceResponse])
async def absence_history(
    user_id: uuid.UUID,
    limit: int = Query(30, ge=1, le=MAX_PAGE_SIZE),
    db: AsyncSession = Depends(get_db),
):
    return await AbsenceService.get_absence_history(db, user_id, limit)


# ── GET /users/{id}/range ───────────────────────────────────────────

@router.get("/users/{user_id}/range", response_model=list[AbsenceResponse])
async def absences_in_range(
    user_id: uuid.UUID,
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: AsyncSession = Depends(get_db),
):
    return await AbsenceService.get_absences_in_range(db, user_id, start_date, end_date)


# ── GET /users/{id}/counts ──────────────────────────────────────────

@router.get("/users/{user_id}/counts", response_model=AbsenceCounts)
async def absence_counts(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    return await AbsenceService.get_absence_status_counts(db, user_id)


# ── POST /justify ───────────────────────────────────────────────────

@router.post("/justify", response_model=list[AbsenceResponse])
async def justify_absences(
    body: JustifyRequest,
    db: AsyncSession = Depends(get_db),
):
    """Worker attaches reasons to one or more of their absences (all-or-nothing)."""
    return await AbsenceService.justify_absences(db, body.user_id, body.items)


# ── POST /{id}/review ───────────────────────────────────────────────

@router.post("/{absence_id}/review", response_model=AbsenceResponse)
async def review_absence(
    absence_id: uuid.UUID,
    body: ReviewRequest,
    db: AsyncSession = Depends(get_db),
):
    """Team leader excuses or rejects a justified absence."""
    return await AbsenceService.review_absence(
        db, absence_id, body.reviewer_id, body.action, body.notes,
    )


# ── GET /teams/{id}/pending-reviews ─────────────────────────────────

@router.get("/teams/{team_id}/pending-reviews", response_model=list[AbsenceResponse])
async def pending_reviews(
    team_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    return await AbsenceService.get_pending_reviews(db, team_id)


# ── GET /teams/{id} ─────────────────────────────────────────────────

@router.get("/teams/{team_id}", response_model=AbsenceListResponse)
async def team_absences(
    team_id: uuid.UUID,
    status: AbsenceFilter = Query(AbsenceFilter.all),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
    db: AsyncSession = Depends(get_db),
):
    """Team absences filtered by state, newest first."""
    return await AbsenceService.list_team_absences(
        db, team_id, status, page=page, page_size=page_size,
    )
