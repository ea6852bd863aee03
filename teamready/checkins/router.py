"""Check-in router — submit check-ins and score readiness."""


import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from teamready.checkins.readiness import calculate_readiness
from teamready.checkins.schemas import (
    CheckinCreate,
    CheckinMetrics,
    CheckinResponse,
    ReadinessAudit,
    ReadinessResult,
)
from teamready.checkins.service import CheckinService
from teamready.database import get_db

router = APIRouter(prefix="", tags=["checkins"])


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=CheckinResponse, status_code=201)
async def submit_checkin(
    body: CheckinCreate,
    db: AsyncSession = Depends(get_db),
):
    """Submit today's check-in for a worker."""
    metrics = CheckinMetrics(
        mood=body.mood,
        stress=body.stress,
        sleep=body.sleep,
        physical_health=body.physical_health,
    )
    return await CheckinService.submit_checkin(db, body.user_id, metrics, notes=body.notes)


# ── POST /readiness ─────────────────────────────────────────────────

@router.post("/readiness", response_model=ReadinessResult)
async def score_readiness(body: CheckinMetrics):
    """Score a set of metrics without storing anything."""
    return calculate_readiness(body)


# ── GET /{id}/audit ─────────────────────────────────────────────────

@router.get("/{checkin_id}/audit", response_model=ReadinessAudit)
async def audit_checkin(
    checkin_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Compare a check-in's stored readiness with a fresh computation."""
    return await CheckinService.recalculate_checkin_readiness(db, checkin_id)
