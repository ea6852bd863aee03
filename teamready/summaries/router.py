"""Daily summary router — recompute and read per-team daily summaries."""


import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from teamready.common.dates import utc_now
from teamready.common.exceptions import NotFoundException
from teamready.common.rate_limit import RECALCULATE_LIMIT, limiter
from teamready.database import get_db
from teamready.organization.service import OrganizationService
from teamready.summaries.schemas import (
    DailyTeamSummaryData,
    RecalculateRangeRequest,
    RecalculateRequest,
    TeamSummaryRange,
)
from teamready.summaries.service import DailySummaryService

router = APIRouter(prefix="", tags=["summaries"])


# ── POST /teams/{id}/recalculate ────────────────────────────────────

@router.post("/teams/{team_id}/recalculate", response_model=DailyTeamSummaryData)
async def recalculate_team_day(
    team_id: uuid.UUID,
    body: RecalculateRequest,
    db: AsyncSession = Depends(get_db),
):
    """Recompute one day (default: today in company time)."""
    return await DailySummaryService.recalculate_daily_team_summary(
        db, team_id, body.day or utc_now(), body.timezone,
    )


# ── POST /teams/{id}/recalculate-range ──────────────────────────────

@router.post("/teams/{team_id}/recalculate-range", response_model=list[DailyTeamSummaryData])
@limiter.limit(RECALCULATE_LIMIT)
async def recalculate_team_range(
    request: Request,
    team_id: uuid.UUID,
    body: RecalculateRangeRequest,
    db: AsyncSession = Depends(get_db),
):
    return await DailySummaryService.recalculate_summaries_for_date_range(
        db, team_id, body.start_date, body.end_date, body.timezone,
    )


# ── GET /teams/{id} ─────────────────────────────────────────────────

@router.get("/teams/{team_id}", response_model=DailyTeamSummaryData)
async def team_summary_for_date(
    team_id: uuid.UUID,
    day: date = Query(..., alias="date"),
    db: AsyncSession = Depends(get_db),
):
    summary = await DailySummaryService.get_team_summary_for_date(db, team_id, day)
    if summary is None:
        raise NotFoundException("DailyTeamSummary", f"{team_id}@{day.isoformat()}")
    return summary


# ── GET /teams/{id}/range ───────────────────────────────────────────

@router.get("/teams/{team_id}/range", response_model=TeamSummaryRange)
async def team_summaries_for_range(
    team_id: uuid.UUID,
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: AsyncSession = Depends(get_db),
):
    """Stored summaries over a range plus their roll-up."""
    await OrganizationService.get_team(db, team_id)
    rows = await DailySummaryService.get_team_summaries_for_range(
        db, team_id, start_date, end_date,
    )
    return TeamSummaryRange(
        team_id=team_id,
        start_date=start_date,
        end_date=end_date,
        summaries=[DailyTeamSummaryData.model_validate(r) for r in rows],
        aggregate=DailySummaryService.aggregate_summaries(rows),
    )


# ── GET /companies/{id} ─────────────────────────────────────────────

@router.get("/companies/{company_id}", response_model=list[DailyTeamSummaryData])
async def company_summaries_for_date(
    company_id: uuid.UUID,
    day: date = Query(..., alias="date"),
    db: AsyncSession = Depends(get_db),
):
    return await DailySummaryService.get_company_summaries_for_date(db, company_id, day)


# ── POST /companies/{id}/recalculate ────────────────────────────────

@router.post("/companies/{company_id}/recalculate", response_model=list[DailyTeamSummaryData])
@limiter.limit(RECALCULATE_LIMIT)
async def recalculate_company_day(
    request: Request,
    company_id: uuid.UUID,
    body: RecalculateRequest,
    db: AsyncSession = Depends(get_db),
):
    """Recompute one day for every active team of the company."""
    return await DailySummaryService.recalculate_all_team_summaries_for_date(
        db, company_id, body.day or utc_now(), body.timezone,
    )
