"""Grades router — team, worker and company overview grades."""


import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from teamready.database import get_db
from teamready.grading.schemas import TeamGrade, TeamsOverview, WorkerGrade
from teamready.grading.service import GradingService

router = APIRouter(prefix="", tags=["grades"])


@router.get("/teams/{team_id}", response_model=TeamGrade)
async def team_grade(
    team_id: uuid.UUID,
    days: int = Query(30, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
):
    return await GradingService.calculate_team_grade(db, team_id, days)


@router.get("/users/{user_id}", response_model=WorkerGrade)
async def worker_grade(
    user_id: uuid.UUID,
    days: int = Query(30, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
):
    return await GradingService.calculate_worker_grade(db, user_id, days)


@router.get("/companies/{company_id}/overview", response_model=TeamsOverview)
async def teams_overview(
    company_id: uuid.UUID,
    days: int = Query(30, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
):
    """All active teams of a company, worst grade first."""
    return await GradingService.calculate_teams_overview(db, company_id, days)
