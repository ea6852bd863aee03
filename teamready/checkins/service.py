"""Check-in service — submit daily wellness check-ins.

Business logic:
  - One check-in per worker per company-local day
  - Workers on approved leave do not check in
  - Readiness is computed once at submission and stored on the row
  - Today's team summary is recomputed after every check-in
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamready.checkins.models import Checkin
from teamready.checkins.readiness import calculate_readiness
from teamready.checkins.schemas import CheckinMetrics, CheckinResponse, ReadinessAudit
from teamready.common.constants import WORKER_ROLES
from teamready.common.dates import local_date, streak_continues, utc_now
from teamready.common.exceptions import (
    ConflictError,
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
)
from teamready.leave.service import LeaveService
from teamready.organization.models import Company, Team
from teamready.organization.service import OrganizationService
from teamready.summaries.service import DailySummaryService

logger = logging.getLogger(__name__)


class CheckinService:
    """Async check-in submission and audit."""

    @staticmethod
    async def submit_checkin(
        db: AsyncSession,
        user_id: uuid.UUID,
        metrics: CheckinMetrics,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> CheckinResponse:
        """Validate, score and store a check-in, then refresh today's summary.

        A failed summary recompute is logged and does not fail the check-in.
        """
        result = calculate_readiness(metrics)

        user = await OrganizationService.get_user(db, user_id)
        if not user.is_active or user.role not in WORKER_ROLES:
            raise ForbiddenException("Only active workers can submit check-ins.")

        company = await db.get(Company, user.company_id)
        zone = OrganizationService.resolve_timezone(company)
        current = now or utc_now()
        today = local_date(current, zone)

        if await LeaveService.is_on_leave(db, user.id, today):
            raise InvalidStateException(
                "User",
                "on_leave",
                "Check-ins are not accepted while on approved leave.",
            )

        existing = await db.execute(
            select(Checkin.id).where(
                Checkin.user_id == user.id,
                Checkin.checkin_date == today,
            )
        )
        if existing.scalars().first() is not None:
            raise ConflictError("checkin_date", today.isoformat())

        checkin = Checkin(
            user_id=user.id,
            company_id=user.company_id,
            mood=metrics.mood,
            stress=metrics.stress,
            sleep=metrics.sleep,
            physical_health=metrics.physical_health,
            readiness_score=result.score,
            readiness_status=result.status,
            notes=notes,
            checkin_date=today,
            created_at=current,
        )
        db.add(checkin)

        # Streak counters
        team = await db.get(Team, user.team_id) if user.team_id else None
        work_days = team.work_days if team else None
        if streak_continues(user.last_checkin_date, today, work_days):
            user.current_streak = (user.current_streak or 0) + 1
        else:
            user.current_streak = 1
        user.longest_streak = max(user.longest_streak or 0, user.current_streak)
        user.total_checkins = (user.total_checkins or 0) + 1
        user.last_checkin_date = today
        await db.flush()

        response = CheckinResponse.model_validate(checkin)

        if team is not None:
            try:
                async with db.begin_nested():
                    await DailySummaryService.recalculate_daily_team_summary(
                        db, team.id, today, zone,
                    )
            except Exception:
                logger.exception(
                    "Summary recompute failed after check-in %s (team %s)",
                    response.id, team.id,
                )

        return response

    @staticmethod
    async def recalculate_checkin_readiness(
        db: AsyncSession,
        checkin_id: uuid.UUID,
    ) -> ReadinessAudit:
        """Recompute readiness from the stored metrics without touching the row."""
        checkin = await db.get(Checkin, checkin_id)
        if checkin is None:
            raise NotFoundException("Checkin", str(checkin_id))

        computed = calculate_readiness(
            CheckinMetrics(
                mood=checkin.mood,
                stress=checkin.stress,
                sleep=checkin.sleep,
                physical_health=checkin.physical_health,
            )
        )
        return ReadinessAudit(
            checkin_id=checkin.id,
            stored_score=checkin.readiness_score,
            stored_status=checkin.readiness_status,
            computed_score=computed.score,
            computed_status=computed.status,
            matches=(
                computed.score == checkin.readiness_score
                and computed.status == checkin.readiness_status
            ),
        )
