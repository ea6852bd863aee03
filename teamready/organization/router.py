"""Holiday router — company holiday calendar."""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from teamready.database import get_db
from teamready.organization.holidays import HolidayService
from teamready.organization.schemas import (
    HolidayChangeResponse,
    HolidayCreate,
    HolidayResponse,
)

router = APIRouter(prefix="", tags=["holidays"])


# ── POST /companies/{id} ────────────────────────────────────────────

@router.post("/companies/{company_id}", response_model=HolidayChangeResponse, status_code=201)
async def add_holiday(
    company_id: uuid.UUID,
    body: HolidayCreate,
    db: AsyncSession = Depends(get_db),
):
    """Add a holiday and recompute that day for every team."""
    return await HolidayService.add_holiday(
        db, company_id, body.date, body.name, body.created_by,
    )


# ── GET /companies/{id} ─────────────────────────────────────────────

@router.get("/companies/{company_id}", response_model=list[HolidayResponse])
async def list_holidays(
    company_id: uuid.UUID,
    year: Optional[int] = Query(None, ge=2000, le=2100),
    db: AsyncSession = Depends(get_db),
):
    return await HolidayService.list_holidays(db, company_id, year)


# ── DELETE /{id} ────────────────────────────────────────────────────

@router.delete("/{holiday_id}", response_model=HolidayChangeResponse)
async def remove_holiday(
    holiday_id: uuid.UUID,
    actor_id: Optional[uuid.UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Remove a holiday and recompute that day for every team."""
    return await HolidayService.remove_holiday(db, holiday_id, actor_id)
