"""Absence service — detection, justification and review.

State machine (per worker, per missed work day):

    [detected] ──► pending_justification (justified_at is NULL)
                        │ worker justifies
                        ▼
                   pending_justification (justified_at set, awaiting review)
                        │ team leader reviews
                        ▼
                   excused | unexcused   (terminal)

Detection is an idempotent gap scan over the worker's calendar; every
created row is keyed by ``(user_id, absence_date)`` and inserted with
``ON CONFLICT DO NOTHING``.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta
from typing import Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from teamready.absences.models import Absence
from teamready.absences.schemas import (
    AbsenceCounts,
    AbsenceListResponse,
    AbsenceResponse,
    DetectionError,
    DetectionReport,
    JustifyItem,
)
from teamready.checkins.models import Checkin
from teamready.common.audit import create_audit_entry
from teamready.common.constants import AbsenceFilter, AbsenceStatus, ReviewAction
from teamready.common.dates import (
    date_key,
    is_work_day,
    iter_days,
    local_date,
    parse_time,
    range_bounds_utc,
    shift_has_ended,
    today_in,
    utc_now,
)
from teamready.common.exceptions import (
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from teamready.common.pagination import paginate
from teamready.common.upsert import conflict_insert
from teamready.config import settings
from teamready.leave.service import LeaveService
from teamready.organization.models import Team, User
from teamready.organization.service import OrganizationService
from teamready.summaries.service import DailySummaryService

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════
# AbsenceService
# ═════════════════════════════════════════════════════════════════════


class AbsenceService:
    """Async absence operations: detect, justify, review, query."""

    # ── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    async def get_baseline_date(db: AsyncSession, user: User, tz: str) -> date:
        """First day the worker can owe a check-in.

        Their first check-in day when they have one; otherwise the day after
        they joined the team (or were created).
        """
        result = await db.execute(
            select(func.min(Checkin.created_at)).where(Checkin.user_id == user.id)
        )
        first_checkin = result.scalar()
        if first_checkin is not None:
            return local_date(first_checkin, tz)
        joined = user.team_joined_at or user.created_at
        return local_date(joined, tz) + timedelta(days=1)

    @staticmethod
    async def _checkin_keys(
        db: AsyncSession,
        user_id: uuid.UUID,
        start: date,
        end: date,
        tz: str,
    ) -> set[str]:
        lower, upper = range_bounds_utc(start, end, tz)
        result = await db.execute(
            select(Checkin.created_at).where(
                Checkin.user_id == user_id,
                Checkin.created_at >= lower,
                Checkin.created_at < upper,
            )
        )
        return {date_key(created_at, tz) for created_at in result.scalars().all()}

    @staticmethod
    async def _existing_absence_keys(
        db: AsyncSession,
        user_id: uuid.UUID,
        start: date,
        end: date,
    ) -> set[str]:
        result = await db.execute(
            select(Absence.absence_date).where(
                Absence.user_id == user_id,
                Absence.absence_date >= start,
                Absence.absence_date <= end,
            )
        )
        return {date_key(d) for d in result.scalars().all()}

    @staticmethod
    def _shift_end(team: Team):
        return team.shift_end or parse_time(settings.DEFAULT_SHIFT_END)

    @staticmethod
    async def _get_absence(db: AsyncSession, absence_id: uuid.UUID) -> Absence:
        absence = await db.get(Absence, absence_id)
        if absence is None:
            raise NotFoundException("Absence", str(absence_id))
        return absence

    # ── Detection ───────────────────────────────────────────────────

    @staticmethod
    async def detect_and_create_absences(
        db: AsyncSession,
        user_id: uuid.UUID,
        company_id: uuid.UUID,
        tz: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> list[Absence]:
        """Create ``pending_justification`` rows for uncovered missed work days.

        A day is covered by a check-in, a company holiday, approved leave,
        or an existing absence row. Today is scanned only once it is a work
        day and the team shift has ended in company time. Returns only the
        rows created by this call.
        """
        user = await OrganizationService.get_user(db, user_id)
        if user.team_id is None:
            return []
        team = await db.get(Team, user.team_id)
        if team is None or not team.is_active:
            return []

        company = await OrganizationService.get_company(db, company_id)
        zone = OrganizationService.resolve_timezone(company, tz)
        current = now or utc_now()
        today = today_in(zone, current)

        include_today = (
            is_work_day(today, team.work_days)
            and shift_has_ended(AbsenceService._shift_end(team), zone, current)
        )
        end = today if include_today else today - timedelta(days=1)
        start = await AbsenceService.get_baseline_date(db, user, zone)
        if start > end:
            return []

        covered = await AbsenceService._checkin_keys(db, user.id, start, end, zone)
        covered |= {
            date_key(d)
            for d in await OrganizationService.get_holiday_dates(db, company.id, start, end)
        }
        covered |= {
            date_key(d)
            for d in await LeaveService.get_leave_dates(db, user.id, start, end)
        }
        covered |= await AbsenceService._existing_absence_keys(db, user.id, start, end)

        missing = [
            day for day in iter_days(start, end)
            if is_work_day(day, team.work_days) and date_key(day) not in covered
        ]
        if not missing:
            return []

        stamp = utc_now()
        rows = [
            {
                "id": uuid.uuid4(),
                "user_id": user.id,
                "team_id": team.id,
                "company_id": company.id,
                "absence_date": day,
                "status": AbsenceStatus.pending_justification,
                "created_at": stamp,
                "updated_at": stamp,
            }
            for day in missing
        ]
        stmt = (
            conflict_insert(db, Absence)
            .values(rows)
            .on_conflict_do_nothing(index_elements=["user_id", "absence_date"])
            .returning(Absence.id)
        )
        created_ids = list((await db.execute(stmt)).scalars().all())
        if not created_ids:
            return []

        result = await db.execute(
            select(Absence)
            .where(Absence.id.in_(created_ids))
            .order_by(Absence.absence_date)
        )
        created = list(result.scalars().all())
        logger.info(
            "Detected %d absence(s) for user %s (%s..%s)",
            len(created), user.id, start, end,
        )
        return created

    @staticmethod
    async def detect_absences_for_company(
        db: AsyncSession,
        company_id: uuid.UUID,
        tz: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> DetectionReport:
        """Run detection for every active worker, one savepoint per worker.

        A failing worker is rolled back to its savepoint and recorded in the
        report; the remaining workers are still processed.
        """
        await OrganizationService.get_company(db, company_id)
        workers = await OrganizationService.get_company_workers(db, company_id)
        report = DetectionReport(company_id=company_id)

        for worker in workers:
            worker_id = worker.id
            try:
                async with db.begin_nested():
                    created = await AbsenceService.detect_and_create_absences(
                        db, worker_id, company_id, tz, now,
                    )
            except Exception as exc:
                logger.exception("Absence detection failed for user %s", worker_id)
                report.errors.append(DetectionError(user_id=worker_id, error=str(exc)))
                continue
            report.workers_processed += 1
            report.absences_created += len(created)

        logger.info(
            "Company %s: %d worker(s) scanned, %d absence(s) created, %d error(s)",
            company_id, report.workers_processed, report.absences_created, len(report.errors),
        )
        return report

    # ── Justify ─────────────────────────────────────────────────────

    @staticmethod
    async def justify_absences(
        db: AsyncSession,
        user_id: uuid.UUID,
        items: Sequence[JustifyItem],
        now: Optional[datetime] = None,
    ) -> list[AbsenceResponse]:
        """Attach reasons to the worker's own absences.

        Every item is validated before any row changes, so a single bad item
        rejects the whole batch.
        """
        if not items:
            raise ValidationException({"items": ["At least one absence is required."]})

        ids = [item.absence_id for item in items]
        if len(set(ids)) != len(ids):
            raise ValidationException({"items": ["Each absence may appear only once."]})

        absences: list[Absence] = []
        for item in items:
            absence = await AbsenceService._get_absence(db, item.absence_id)
            if absence.user_id != user_id:
                raise ForbiddenException("You can only justify your own absences.")
            if absence.status != AbsenceStatus.pending_justification:
                raise InvalidStateException(
                    "Absence",
                    absence.status.value,
                    f"Absence on {absence.absence_date} has already been reviewed.",
                )
            if absence.justified_at is not None:
                raise InvalidStateException(
                    "Absence",
                    "justified",
                    f"Absence on {absence.absence_date} has already been justified.",
                )
            absences.append(absence)

        stamp = now or utc_now()
        for absence, item in zip(absences, items):
            absence.reason_category = item.reason_category
            absence.explanation = item.explanation
            absence.justified_at = stamp
        await db.flush()

        for absence in absences:
            await create_audit_entry(
                db,
                action="justify",
                entity_type="absence",
                entity_id=absence.id,
                actor_id=user_id,
                new_values={
                    "reason_category": absence.reason_category,
                    "justified_at": stamp,
                },
            )

        return [AbsenceResponse.model_validate(a) for a in absences]

    # ── Review ──────────────────────────────────────────────────────

    @staticmethod
    async def review_absence(
        db: AsyncSession,
        absence_id: uuid.UUID,
        reviewer_id: uuid.UUID,
        action: ReviewAction,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AbsenceResponse:
        """Team leader excuses or rejects a justified absence.

        The affected day's team summary is recomputed afterwards; a failed
        recompute is logged and leaves the review in place.
        """
        absence = await AbsenceService._get_absence(db, absence_id)
        team = await OrganizationService.get_team(db, absence.team_id)
        if team.leader_id != reviewer_id:
            raise ForbiddenException("Only the team leader can review this absence.")

        if absence.status != AbsenceStatus.pending_justification:
            raise InvalidStateException(
                "Absence",
                absence.status.value,
                f"Absence is already {absence.status.value}.",
            )
        if absence.justified_at is None:
            raise InvalidStateException(
                "Absence",
                "unjustified",
                "Absence has not been justified yet.",
            )

        old_status = absence.status.value
        absence.status = (
            AbsenceStatus.excused if action == ReviewAction.excuse else AbsenceStatus.unexcused
        )
        absence.reviewed_by = reviewer_id
        absence.reviewed_at = now or utc_now()
        absence.review_notes = notes
        await db.flush()

        await create_audit_entry(
            db,
            action="review",
            entity_type="absence",
            entity_id=absence.id,
            actor_id=reviewer_id,
            old_values={"status": old_status},
            new_values={"status": absence.status, "notes": notes},
        )
        response = AbsenceResponse.model_validate(absence)

        try:
            async with db.begin_nested():
                await DailySummaryService.recalculate_daily_team_summary(
                    db, absence.team_id, absence.absence_date,
                )
        except Exception:
            logger.exception(
                "Summary recompute failed after review of absence %s", response.id,
            )

        return response

    # ── Queries ─────────────────────────────────────────────────────

    @staticmethod
    async def get_pending_justifications(
        db: AsyncSession,
        user_id: uuid.UUID,
    ) -> Sequence[Absence]:
        """Unjustified absences, oldest first."""
        result = await db.execute(
            select(Absence)
            .where(
                Absence.user_id == user_id,
                Absence.status == AbsenceStatus.pending_justification,
                Absence.justified_at.is_(None),
            )
            .order_by(Absence.absence_date)
        )
        return result.scalars().all()

    @staticmethod
    async def has_blocking_absences(db: AsyncSession, user_id: uuid.UUID) -> bool:
        """True while the worker has unjustified absences to explain."""
        return bool(await AbsenceService.get_pending_justifications(db, user_id))

    @staticmethod
    async def get_pending_reviews(
        db: AsyncSession,
        team_id: uuid.UUID,
    ) -> Sequence[Absence]:
        """Justified, unreviewed absences of a team, oldest justification first."""
        result = await db.execute(
            select(Absence)
            .where(
                Absence.team_id == team_id,
                Absence.status == AbsenceStatus.pending_justification,
                Absence.justified_at.is_not(None),
            )
            .order_by(Absence.justified_at, Absence.absence_date)
        )
        return result.scalars().all()

    @staticmethod
    async def get_absence_history(
        db: AsyncSession,
        user_id: uuid.UUID,
        limit: int = 30,
    ) -> Sequence[Absence]:
        result = await db.execute(
            select(Absence)
            .where(Absence.user_id == user_id)
            .order_by(Absence.absence_date.desc())
            .limit(limit)
        )
        return result.scalars().all()

    @staticmethod
    async def get_absences_in_range(
        db: AsyncSession,
        user_id: uuid.UUID,
        start: date,
        end: date,
    ) -> Sequence[Absence]:
        if start > end:
            raise ValidationException(
                {"date_range": ["start_date must be before or equal to end_date."]}
            )
        result = await db.execute(
            select(Absence)
            .where(
                Absence.user_id == user_id,
                Absence.absence_date >= start,
                Absence.absence_date <= end,
            )
            .order_by(Absence.absence_date)
        )
        return result.scalars().all()

    @staticmethod
    async def get_absence_status_counts(
        db: AsyncSession,
        user_id: uuid.UUID,
    ) -> AbsenceCounts:
        result = await db.execute(
            select(
                Absence.status,
                Absence.justified_at.is_not(None),
                func.count(),
            )
            .where(Absence.user_id == user_id)
            .group_by(Absence.status, Absence.justified_at.is_not(None))
        )
        counts = AbsenceCounts()
        for status, justified, n in result.all():
            if status == AbsenceStatus.pending_justification:
                if justified:
                    counts.pending_review += n
                else:
                    counts.pending_justification += n
            elif status == AbsenceStatus.excused:
                counts.excused += n
            else:
                counts.unexcused += n
            counts.total += n
        return counts

    @staticmethod
    async def list_team_absences(
        db: AsyncSession,
        team_id: uuid.UUID,
        absence_filter: AbsenceFilter = AbsenceFilter.all,
        *,
        page: int = 1,
        page_size: int = 50,
    ) -> AbsenceListResponse:
        """Paginated team view, newest absence first."""
        await OrganizationService.get_team(db, team_id)

        query = select(Absence).where(Absence.team_id == team_id)
        if absence_filter == AbsenceFilter.pending_justification:
            query = query.where(
                Absence.status == AbsenceStatus.pending_justification,
                Absence.justified_at.is_(None),
            )
        elif absence_filter == AbsenceFilter.pending_review:
            query = query.where(
                Absence.status == AbsenceStatus.pending_justification,
                Absence.justified_at.is_not(None),
            )
        elif absence_filter == AbsenceFilter.excused:
            query = query.where(Absence.status == AbsenceStatus.excused)
        elif absence_filter == AbsenceFilter.unexcused:
            query = query.where(Absence.status == AbsenceStatus.unexcused)

        query = query.order_by(Absence.absence_date.desc(), Absence.user_id)
        rows, meta = await paginate(db, query, page=page, page_size=page_size)
        return AbsenceListResponse(
            data=[AbsenceResponse.model_validate(r) for r in rows],
            meta=meta,
        )
