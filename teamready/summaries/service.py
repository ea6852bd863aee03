"""Daily team summary aggregator.

Each call fully recomputes one (team, local date) row from the source tables
(roster, approved leave, absences, holidays, check-ins) and writes it with a
single ``INSERT ... ON CONFLICT (team_id, date) DO UPDATE``. Nothing is ever
incremented, so concurrent or repeated recomputes of the same key converge
on the same row.

Business rules:
  - Non-work days and holidays expect nobody (compliance is ``None``)
  - Members on approved leave or with an excused absence are subtracted
    once from the roster, even when both apply
  - Check-ins are counted once per member inside the local day bounds
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from typing import Any, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamready.absences.models import Absence
from teamready.checkins.models import Checkin
from teamready.common.constants import AbsenceStatus, ExceptionStatus, ReadinessStatus
from teamready.common.dates import (
    DateLike,
    day_bounds_utc,
    is_work_day,
    iter_days,
    local_date,
    utc_now,
)
from teamready.common.exceptions import ValidationException
from teamready.common.upsert import conflict_insert
from teamready.common.utils import mean
from teamready.leave.models import LeaveException
from teamready.organization.models import Company
from teamready.organization.service import OrganizationService
from teamready.summaries.models import DailyTeamSummary
from teamready.summaries.schemas import DailyTeamSummaryData, SummaryAggregate

logger = logging.getLogger(__name__)

MAX_RECALC_RANGE_DAYS = 366


# ═════════════════════════════════════════════════════════════════════
# DailySummaryService
# ═════════════════════════════════════════════════════════════════════


class DailySummaryService:
    """Recompute and query per-team daily summaries."""

    # ── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    async def _upsert(db: AsyncSession, values: dict[str, Any]) -> None:
        stamped = {**values, "updated_at": utc_now()}
        stmt = conflict_insert(db, DailyTeamSummary).values(
            id=uuid.uuid4(),
            created_at=stamped["updated_at"],
            **stamped,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["team_id", "date"],
            set_={
                key: stmt.excluded[key]
                for key in stamped
                if key not in ("team_id", "date")
            },
        )
        await db.execute(stmt)

    @staticmethod
    async def _members_on_leave(
        db: AsyncSession,
        member_ids: Sequence[uuid.UUID],
        day: date,
    ) -> set[uuid.UUID]:
        result = await db.execute(
            select(LeaveException.user_id).where(
                LeaveException.user_id.in_(member_ids),
                LeaveException.status == ExceptionStatus.approved,
                LeaveException.start_date <= day,
                LeaveException.end_date >= day,
            )
        )
        return set(result.scalars().all())

    @staticmethod
    async def _absences_by_status(
        db: AsyncSession,
        member_ids: Sequence[uuid.UUID],
        day: date,
    ) -> dict[AbsenceStatus, set[uuid.UUID]]:
        result = await db.execute(
            select(Absence.user_id, Absence.status).where(
                Absence.user_id.in_(member_ids),
                Absence.absence_date == day,
            )
        )
        by_status: dict[AbsenceStatus, set[uuid.UUID]] = {s: set() for s in AbsenceStatus}
        for user_id, status in result.all():
            by_status[status].add(user_id)
        return by_status

    @staticmethod
    async def _checkins_for_day(
        db: AsyncSession,
        member_ids: Sequence[uuid.UUID],
        start: datetime,
        end: datetime,
    ) -> dict[uuid.UUID, Checkin]:
        """First check-in per member inside ``[start, end)``."""
        result = await db.execute(
            select(Checkin)
            .where(
                Checkin.user_id.in_(member_ids),
                Checkin.created_at >= start,
                Checkin.created_at < end,
            )
            .order_by(Checkin.created_at)
        )
        first: dict[uuid.UUID, Checkin] = {}
        for checkin in result.scalars().all():
            first.setdefault(checkin.user_id, checkin)
        return first

    # ── Recalculate one (team, date) ────────────────────────────────

    @staticmethod
    async def recalculate_daily_team_summary(
        db: AsyncSession,
        team_id: uuid.UUID,
        day: DateLike,
        tz: Optional[str] = None,
    ) -> DailyTeamSummaryData:
        """Recompute and upsert the summary for *team_id* on *day*.

        *day* may be a calendar ``date`` or an instant; instants are resolved
        to the company-local day. The company timezone takes precedence over
        *tz*. Raises ``NotFoundException`` (nothing written) for an unknown team.
        """
        team = await OrganizationService.get_team(db, team_id)
        company = await db.get(Company, team.company_id)
        zone = OrganizationService.resolve_timezone(company, tz)
        target = local_date(day, zone)

        members = await OrganizationService.get_active_members(db, team_id)
        member_ids = [m.id for m in members]
        total_members = len(member_ids)

        work_day = is_work_day(target, team.work_days)
        holiday = await OrganizationService.get_holiday(db, team.company_id, target) is not None

        leave_ids: set[uuid.UUID] = set()
        absences: dict[AbsenceStatus, set[uuid.UUID]] = {s: set() for s in AbsenceStatus}
        checkins: dict[uuid.UUID, Checkin] = {}
        if member_ids:
            leave_ids = await DailySummaryService._members_on_leave(db, member_ids, target)
            absences = await DailySummaryService._absences_by_status(db, member_ids, target)
            start, end = day_bounds_utc(target, zone)
            checkins = await DailySummaryService._checkins_for_day(db, member_ids, start, end)

        excused_ids = absences[AbsenceStatus.excused]
        on_leave_count = len(leave_ids | excused_ids)

        if not work_day or holiday:
            expected = 0
        else:
            expected = total_members - on_leave_count

        checked_in = len(checkins)
        statuses = [c.readiness_status for c in checkins.values()]
        avg_score = mean(c.readiness_score for c in checkins.values())

        compliance: Optional[float] = None
        if expected > 0:
            compliance = min(100.0, checked_in / expected * 100)

        values: dict[str, Any] = {
            "team_id": team.id,
            "company_id": team.company_id,
            "date": target,
            "is_work_day": work_day,
            "is_holiday": holiday,
            "total_members": total_members,
            "on_leave_count": on_leave_count,
            "excused_count": len(excused_ids),
            "absent_count": len(absences[AbsenceStatus.unexcused]),
            "expected_to_check_in": expected,
            "checked_in_count": checked_in,
            "not_checked_in_count": max(0, expected - checked_in),
            "green_count": statuses.count(ReadinessStatus.green),
            "yellow_count": statuses.count(ReadinessStatus.yellow),
            "red_count": statuses.count(ReadinessStatus.red),
            "avg_readiness_score": avg_score,
            "compliance_rate": compliance,
        }
        await DailySummaryService._upsert(db, values)

        logger.debug(
            "Summary team=%s date=%s expected=%d checked_in=%d",
            team.id, target, expected, checked_in,
        )
        return DailyTeamSummaryData(**values)

    # ── Batch wrappers ──────────────────────────────────────────────

    @staticmethod
    async def recalculate_today_summary(
        db: AsyncSession,
        team_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> DailyTeamSummaryData:
        return await DailySummaryService.recalculate_daily_team_summary(
            db, team_id, now or utc_now(),
        )

    @staticmethod
    async def recalculate_summaries_for_date_range(
        db: AsyncSession,
        team_id: uuid.UUID,
        start: date,
        end: date,
        tz: Optional[str] = None,
    ) -> list[DailyTeamSummaryData]:
        """Sequentially recompute every day in ``start..end`` inclusive."""
        if start > end:
            raise ValidationException(
                {"date_range": ["start_date must be before or equal to end_date."]}
            )
        if (end - start).days >= MAX_RECALC_RANGE_DAYS:
            raise ValidationException(
                {"date_range": [f"Date range cannot exceed {MAX_RECALC_RANGE_DAYS} days."]}
            )

        results = [
            await DailySummaryService.recalculate_daily_team_summary(db, team_id, day, tz)
            for day in iter_days(start, end)
        ]
        logger.info(
            "Recalculated %d summaries for team %s (%s..%s)",
            len(results), team_id, start, end,
        )
        return results

    @staticmethod
    async def recalculate_all_team_summaries_for_date(
        db: AsyncSession,
        company_id: uuid.UUID,
        day: DateLike,
        tz: Optional[str] = None,
    ) -> list[DailyTeamSummaryData]:
        """Recompute *day* for every active team of the company."""
        company = await OrganizationService.get_company(db, company_id)
        zone = OrganizationService.resolve_timezone(company, tz)
        target = local_date(day, zone)

        teams = await OrganizationService.get_company_teams(db, company_id)
        results = [
            await DailySummaryService.recalculate_daily_team_summary(db, team.id, target, zone)
            for team in teams
        ]
        logger.info(
            "Recalculated %d team summaries for company %s on %s",
            len(results), company_id, target,
        )
        return results

    # ── Queries ─────────────────────────────────────────────────────

    @staticmethod
    async def get_team_summary_for_date(
        db: AsyncSession,
        team_id: uuid.UUID,
        day: date,
    ) -> Optional[DailyTeamSummary]:
        result = await db.execute(
            select(DailyTeamSummary)
            .where(
                DailyTeamSummary.team_id == team_id,
                DailyTeamSummary.date == day,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def get_team_summaries_for_range(
        db: AsyncSession,
        team_id: uuid.UUID,
        start: date,
        end: date,
    ) -> Sequence[DailyTeamSummary]:
        result = await db.execute(
            select(DailyTeamSummary)
            .where(
                DailyTeamSummary.team_id == team_id,
                DailyTeamSummary.date >= start,
                DailyTeamSummary.date <= end,
            )
            .order_by(DailyTeamSummary.date)
            .execution_options(populate_existing=True)
        )
        return result.scalars().all()

    @staticmethod
    async def get_company_summaries_for_date(
        db: AsyncSession,
        company_id: uuid.UUID,
        day: date,
    ) -> Sequence[DailyTeamSummary]:
        result = await db.execute(
            select(DailyTeamSummary)
            .where(
                DailyTeamSummary.company_id == company_id,
                DailyTeamSummary.date == day,
            )
            .order_by(DailyTeamSummary.team_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().all()

    @staticmethod
    def aggregate_summaries(summaries: Sequence[Any]) -> SummaryAggregate:
        """Roll up summaries; compliance is pooled (checked-in over expected)."""
        total_expected = sum(s.expected_to_check_in for s in summaries)
        total_checked_in = sum(s.checked_in_count for s in summaries)

        avg_compliance: Optional[float] = None
        if total_expected > 0:
            avg_compliance = min(100.0, total_checked_in / total_expected * 100)

        return SummaryAggregate(
            total_days=len(summaries),
            work_days=sum(1 for s in summaries if s.expected_to_check_in > 0),
            total_expected=total_expected,
            total_checked_in=total_checked_in,
            avg_compliance_rate=avg_compliance,
            avg_readiness_score=mean(s.avg_readiness_score for s in summaries),
            total_green=sum(s.green_count for s in summaries),
            total_yellow=sum(s.yellow_count for s in summaries),
            total_red=sum(s.red_count for s in summaries),
        )
