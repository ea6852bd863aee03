"""Team and worker grading over a rolling window.

Grade score = round(avg_readiness × 0.6 + compliance × 0.4), banded into
A+ … F. Team readiness averages per-member averages and only counts members
with enough check-ins in the window; the rest are reported as onboarding.
Team compliance averages the stored daily summaries' compliance rates over
the window's work days.
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamready.absences.models import Absence
from teamready.absences.service import AbsenceService
from teamready.checkins.models import Checkin
from teamready.common.constants import (
    AT_RISK_SCORE,
    COMPLIANCE_WEIGHT,
    CRITICAL_SCORE,
    READINESS_WEIGHT,
    TREND_THRESHOLD,
    AbsenceStatus,
    GradeColor,
    ReadinessStatus,
    Trend,
)
from teamready.common.dates import (
    is_work_day,
    iter_days,
    last_n_days,
    local_date,
    parse_time,
    range_bounds_utc,
    shift_has_ended,
    utc_now,
)
from teamready.common.utils import mean, round_half_up
from teamready.config import settings
from teamready.grading.schemas import (
    GradeInfo,
    GradePeriod,
    TeamGrade,
    TeamGradeBreakdown,
    TeamsOverview,
    TeamsOverviewSummary,
    WorkerGrade,
)
from teamready.leave.service import LeaveService
from teamready.organization.models import Company, Team
from teamready.organization.service import OrganizationService
from teamready.summaries.service import DailySummaryService

logger = logging.getLogger(__name__)

# (min score, grade, label, color), highest first.
GRADE_BANDS: tuple[tuple[int, str, str, GradeColor], ...] = (
    (97, "A+", "Outstanding", GradeColor.green),
    (93, "A", "Excellent", GradeColor.green),
    (90, "A-", "Excellent", GradeColor.green),
    (87, "B+", "Very Good", GradeColor.green),
    (83, "B", "Good", GradeColor.green),
    (80, "B-", "Good", GradeColor.yellow),
    (77, "C+", "Satisfactory", GradeColor.yellow),
    (73, "C", "Satisfactory", GradeColor.yellow),
    (70, "C-", "Satisfactory", GradeColor.yellow),
    (67, "D+", "Needs Improvement", GradeColor.orange),
    (63, "D", "Needs Improvement", GradeColor.orange),
    (60, "D-", "Needs Improvement", GradeColor.orange),
)
FAILING_GRADE = ("F", "Critical", GradeColor.red)


# ── Pure scoring ────────────────────────────────────────────────────

def calculate_grade_score(avg_readiness: float, compliance: float) -> int:
    return round_half_up(avg_readiness * READINESS_WEIGHT + compliance * COMPLIANCE_WEIGHT)


def get_grade_info(score: float) -> GradeInfo:
    for minimum, grade, label, color in GRADE_BANDS:
        if score >= minimum:
            return GradeInfo(grade=grade, label=label, color=color)
    grade, label, color = FAILING_GRADE
    return GradeInfo(grade=grade, label=label, color=color)


def get_simple_grade(score: float) -> str:
    if score >= 90:
        return "A"
    if score >= 80:
        return "B"
    if score >= 70:
        return "C"
    return "D"


def get_trend(score: Optional[int], previous: Optional[int]) -> tuple[Trend, int]:
    if score is None or previous is None:
        return Trend.stable, 0
    delta = score - previous
    if delta >= TREND_THRESHOLD:
        return Trend.up, delta
    if delta <= -TREND_THRESHOLD:
        return Trend.down, delta
    return Trend.stable, delta


# ═════════════════════════════════════════════════════════════════════
# GradingService
# ═════════════════════════════════════════════════════════════════════


class GradingService:
    """Async team / worker grade calculations."""

    # ── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    async def _checkins_in_window(
        db: AsyncSession,
        user_ids: Sequence[uuid.UUID],
        start: date,
        end: date,
        tz: str,
    ) -> Sequence[Checkin]:
        if not user_ids:
            return []
        lower, upper = range_bounds_utc(start, end, tz)
        result = await db.execute(
            select(Checkin).where(
                Checkin.user_id.in_(user_ids),
                Checkin.created_at >= lower,
                Checkin.created_at < upper,
            )
        )
        return result.scalars().all()

    @staticmethod
    async def _team_window(
        db: AsyncSession,
        team: Team,
        member_ids: Sequence[uuid.UUID],
        start: date,
        end: date,
        tz: str,
    ) -> dict:
        """Readiness/compliance inputs for one team over ``start..end``."""
        checkins = await GradingService._checkins_in_window(db, member_ids, start, end, tz)
        scores: dict[uuid.UUID, list[int]] = defaultdict(list)
        for checkin in checkins:
            scores[checkin.user_id].append(checkin.readiness_score)

        threshold = settings.MIN_CHECKINS_FOR_GRADE
        included = [uid for uid in member_ids if len(scores.get(uid, [])) >= threshold]
        avg_readiness = mean(mean(scores[uid]) for uid in included)

        summaries = await DailySummaryService.get_team_summaries_for_range(
            db, team.id, start, end,
        )
        compliance = mean(
            s.compliance_rate for s in summaries
            if s.is_work_day and not s.is_holiday
        )

        score: Optional[int] = None
        if avg_readiness is not None and compliance is not None:
            score = calculate_grade_score(avg_readiness, compliance)

        return {
            "checkins": checkins,
            "summaries": summaries,
            "included": included,
            "avg_readiness": avg_readiness,
            "compliance": compliance,
            "score": score,
        }

    # ── Team grade ──────────────────────────────────────────────────

    @staticmethod
    async def calculate_team_grade(
        db: AsyncSession,
        team_id: uuid.UUID,
        days: Optional[int] = None,
        now: Optional[datetime] = None,
        tz: Optional[str] = None,
    ) -> TeamGrade:
        team = await OrganizationService.get_team(db, team_id)
        company = await db.get(Company, team.company_id)
        zone = OrganizationService.resolve_timezone(company, tz)
        days = days or settings.GRADE_WINDOW_DAYS
        start, end = last_n_days(days, zone, now)
        prev_end = start - timedelta(days=1)
        prev_start = prev_end - timedelta(days=days - 1)

        members = await OrganizationService.get_active_members(db, team.id)
        member_ids = [m.id for m in members]

        current = await GradingService._team_window(db, team, member_ids, start, end, zone)
        previous = await GradingService._team_window(
            db, team, member_ids, prev_start, prev_end, zone,
        )
        trend, delta = get_trend(current["score"], previous["score"])

        statuses = [c.readiness_status for c in current["checkins"]]
        absences = await db.execute(
            select(Absence.status).where(
                Absence.team_id == team.id,
                Absence.absence_date >= start,
                Absence.absence_date <= end,
            )
        )
        absence_statuses = list(absences.scalars().all())

        grade = TeamGrade(
            team_id=team.id,
            team_name=team.name,
            member_count=len(member_ids),
            included_member_count=len(current["included"]),
            onboarding_count=len(member_ids) - len(current["included"]),
            avg_readiness=current["avg_readiness"],
            compliance_rate=current["compliance"],
            score=current["score"],
            trend=trend,
            score_delta=delta,
            breakdown=TeamGradeBreakdown(
                green=statuses.count(ReadinessStatus.green),
                yellow=statuses.count(ReadinessStatus.yellow),
                red=statuses.count(ReadinessStatus.red),
                absent=absence_statuses.count(AbsenceStatus.unexcused),
                excused=absence_statuses.count(AbsenceStatus.excused),
            ),
            period=GradePeriod(days=days, start_date=start, end_date=end),
        )
        if grade.score is not None:
            info = get_grade_info(grade.score)
            grade.grade = info.grade
            grade.grade_label = info.label
            grade.grade_color = info.color
            grade.simple_grade = get_simple_grade(grade.score)
        return grade

    # ── Worker grade ────────────────────────────────────────────────

    @staticmethod
    async def calculate_worker_grade(
        db: AsyncSession,
        user_id: uuid.UUID,
        days: Optional[int] = None,
        now: Optional[datetime] = None,
        tz: Optional[str] = None,
    ) -> WorkerGrade:
        """Personal grade from the worker's own calendar.

        Expected days are work days from the absence-detection baseline (first
        check-in day, else the day after joining), minus
        holidays, approved leave and excused absences. Today only counts once
        the worker has checked in or the shift is over.
        """
        user = await OrganizationService.get_user(db, user_id)
        company = await db.get(Company, user.company_id)
        zone = OrganizationService.resolve_timezone(company, tz)
        team = await db.get(Team, user.team_id) if user.team_id else None
        work_days = team.work_days if team else None

        days = days or settings.GRADE_WINDOW_DAYS
        current = now or utc_now()
        start, end = last_n_days(days, zone, current)
        baseline = await AbsenceService.get_baseline_date(db, user, zone)
        effective_start = max(start, baseline)

        checkins = await GradingService._checkins_in_window(db, [user.id], start, end, zone)
        checkin_days = {local_date(c.created_at, zone) for c in checkins}

        exempt: set[date] = set()
        if effective_start <= end:
            exempt |= await OrganizationService.get_holiday_dates(
                db, user.company_id, effective_start, end,
            )
            exempt |= await LeaveService.get_leave_dates(db, user.id, effective_start, end)
            excused = await db.execute(
                select(Absence.absence_date).where(
                    Absence.user_id == user.id,
                    Absence.status == AbsenceStatus.excused,
                    Absence.absence_date >= effective_start,
                    Absence.absence_date <= end,
                )
            )
            exempt |= set(excused.scalars().all())

        shift_end = team.shift_end if team else parse_time(settings.DEFAULT_SHIFT_END)
        expected_days = [
            d for d in iter_days(effective_start, end)
            if is_work_day(d, work_days) and d not in exempt
            and (d < end or d in checkin_days or shift_has_ended(shift_end, zone, current))
        ]
        checked_in_days = sum(1 for d in expected_days if d in checkin_days)

        compliance: Optional[float] = None
        if expected_days:
            compliance = min(100.0, checked_in_days / len(expected_days) * 100)
        avg_readiness = mean(c.readiness_score for c in checkins)
        is_onboarding = len(checkins) < settings.MIN_CHECKINS_FOR_GRADE

        grade = WorkerGrade(
            user_id=user.id,
            full_name=user.full_name,
            team_id=user.team_id,
            checkin_count=len(checkins),
            expected_days=len(expected_days),
            checked_in_days=checked_in_days,
            avg_readiness=avg_readiness,
            compliance_rate=compliance,
            is_onboarding=is_onboarding,
            period=GradePeriod(days=days, start_date=start, end_date=end),
        )
        if not is_onboarding and avg_readiness is not None and compliance is not None:
            grade.score = calculate_grade_score(avg_readiness, compliance)
            info = get_grade_info(grade.score)
            grade.grade = info.grade
            grade.grade_label = info.label
            grade.grade_color = info.color
        return grade

    # ── Company overview ────────────────────────────────────────────

    @staticmethod
    async def calculate_teams_overview(
        db: AsyncSession,
        company_id: uuid.UUID,
        days: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> TeamsOverview:
        """Grades for every active team of one company, worst first."""
        company = await OrganizationService.get_company(db, company_id)
        zone = OrganizationService.resolve_timezone(company)
        days = days or settings.GRADE_WINDOW_DAYS
        start, end = last_n_days(days, zone, now)

        teams = await OrganizationService.get_company_teams(db, company_id)
        grades = [
            await GradingService.calculate_team_grade(db, team.id, days, now, zone)
            for team in teams
        ]
        grades.sort(key=lambda g: (g.score is None, g.score if g.score is not None else 0))

        scored = [g.score for g in grades if g.score is not None]
        avg_score = round_half_up(mean(scored)) if scored else None
        summary = TeamsOverviewSummary(
            total_teams=len(grades),
            total_members=sum(g.member_count for g in grades),
            avg_score=avg_score,
            avg_grade=get_simple_grade(avg_score) if avg_score is not None else None,
            teams_at_risk=sum(1 for s in scored if s < AT_RISK_SCORE),
            teams_critical=sum(1 for s in scored if s < CRITICAL_SCORE),
            teams_improving=sum(1 for g in grades if g.trend == Trend.up),
            teams_declining=sum(1 for g in grades if g.trend == Trend.down),
        )
        logger.debug("Graded %d team(s) for company %s", len(grades), company_id)
        return TeamsOverview(
            teams=grades,
            summary=summary,
            period=GradePeriod(days=days, start_date=start, end_date=end),
        )
