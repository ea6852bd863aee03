"""Leave resolver — approved-exception coverage of calendar days.

Business logic:
  - A worker is on leave on day D iff an approved exception has
    ``start_date <= D <= end_date`` (``end_date`` is the last leave day)
  - A worker is "returning" for a short grace window after leave ends,
    until their first check-in after the leave
  - Exception review (approve/reject) and the summary refresh it triggers
"""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Sequence, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamready.checkins.models import Checkin
from teamready.common.audit import create_audit_entry
from teamready.common.constants import WORKER_ROLES, ExceptionStatus
from teamready.common.dates import (
    count_work_days,
    ensure_utc,
    iter_days,
    start_of_next_day,
    today_in,
    utc_now,
)
from teamready.common.exceptions import (
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from teamready.config import settings
from teamready.leave.models import LeaveException
from teamready.leave.schemas import LeaveExceptionResponse, LeaveStatus, LeaveUsage
from teamready.organization.models import Company
from teamready.organization.service import OrganizationService
from teamready.summaries.service import DailySummaryService

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════
# LeaveService
# ═════════════════════════════════════════════════════════════════════


class LeaveService:
    """Async leave coverage queries and exception review."""

    # ── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    def _approved_covering(day: date):
        return (
            LeaveException.status == ExceptionStatus.approved,
            LeaveException.start_date <= day,
            LeaveException.end_date >= day,
        )

    @staticmethod
    def _grace_days(company: Optional[Company]) -> int:
        if company is not None and company.leave_return_grace_days is not None:
            return company.leave_return_grace_days
        return settings.LEAVE_RETURN_GRACE_DAYS

    @staticmethod
    def _validate_date_range(start: date, end: date) -> None:
        if start > end:
            raise ValidationException(
                {"date_range": ["start_date must be before or equal to end_date."]}
            )

    # ── Coverage ────────────────────────────────────────────────────

    @staticmethod
    async def get_leave_for_date(
        db: AsyncSession,
        user_id: uuid.UUID,
        day: date,
    ) -> Optional[LeaveException]:
        """Approved exception covering *day*, latest-starting first."""
        result = await db.execute(
            select(LeaveException)
            .where(
                LeaveException.user_id == user_id,
                *LeaveService._approved_covering(day),
            )
            .order_by(LeaveException.start_date.desc())
        )
        return result.scalars().first()

    @staticmethod
    async def is_on_leave(db: AsyncSession, user_id: uuid.UUID, day: date) -> bool:
        return await LeaveService.get_leave_for_date(db, user_id, day) is not None

    @staticmethod
    async def get_active_leaves(
        db: AsyncSession,
        user_ids: Iterable[uuid.UUID],
        day: date,
    ) -> dict[uuid.UUID, LeaveException]:
        """Map of user id → an approved exception covering *day*."""
        ids = list(user_ids)
        if not ids:
            return {}
        result = await db.execute(
            select(LeaveException)
            .where(
                LeaveException.user_id.in_(ids),
                *LeaveService._approved_covering(day),
            )
            .order_by(LeaveException.start_date)
        )
        active: dict[uuid.UUID, LeaveException] = {}
        for exc in result.scalars().all():
            active[exc.user_id] = exc
        return active

    @staticmethod
    async def get_approved_leaves_in_range(
        db: AsyncSession,
        user_id: uuid.UUID,
        start: date,
        end: date,
    ) -> Sequence[LeaveException]:
        """Approved exceptions overlapping ``start..end``."""
        result = await db.execute(
            select(LeaveException)
            .where(
                LeaveException.user_id == user_id,
                LeaveException.status == ExceptionStatus.approved,
                LeaveException.start_date <= end,
                LeaveException.end_date >= start,
            )
            .order_by(LeaveException.start_date)
        )
        return result.scalars().all()

    @staticmethod
    async def get_leave_dates(
        db: AsyncSession,
        user_id: uuid.UUID,
        start: date,
        end: date,
    ) -> set[date]:
        """Distinct days in ``start..end`` covered by approved leave."""
        covered: set[date] = set()
        for exc in await LeaveService.get_approved_leaves_in_range(db, user_id, start, end):
            covered.update(iter_days(max(exc.start_date, start), min(exc.end_date, end)))
        return covered

    @staticmethod
    async def get_days_covered_by_leave(
        db: AsyncSession,
        user_id: uuid.UUID,
        start: date,
        end: date,
    ) -> int:
        LeaveService._validate_date_range(start, end)
        return len(await LeaveService.get_leave_dates(db, user_id, start, end))

    @staticmethod
    def get_work_days_between(
        start: date,
        end: date,
        work_days: Union[str, Iterable[str]],
    ) -> int:
        if start > end:
            return 0
        return count_work_days(start, end, work_days)

    @staticmethod
    async def get_remaining_leave_days(
        db: AsyncSession,
        user_id: uuid.UUID,
        start: date,
        end: date,
        max_days: int,
    ) -> LeaveUsage:
        """Approved leave days used in ``start..end`` against an allowance."""
        LeaveService._validate_date_range(start, end)
        by_type: Counter[str] = Counter()
        covered: set[date] = set()
        for exc in await LeaveService.get_approved_leaves_in_range(db, user_id, start, end):
            days = set(iter_days(max(exc.start_date, start), min(exc.end_date, end)))
            by_type[exc.type.value] += len(days - covered)
            covered |= days
        used = len(covered)
        return LeaveUsage(
            used=used,
            remaining=max(0, max_days - used),
            by_type=dict(by_type),
        )

    # ── Status ──────────────────────────────────────────────────────

    @staticmethod
    async def get_user_leave_status(
        db: AsyncSession,
        user_id: uuid.UUID,
        tz: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> LeaveStatus:
        """On-leave / returning state relative to the company-local today."""
        user = await OrganizationService.get_user(db, user_id)
        company = await db.get(Company, user.company_id)
        zone = OrganizationService.resolve_timezone(company, tz)
        today = today_in(zone, now)

        current = await LeaveService.get_leave_for_date(db, user_id, today)
        if current is not None:
            return LeaveStatus(
                is_on_leave=True,
                is_returning=False,
                current_exception=LeaveExceptionResponse.model_validate(current),
            )

        result = await db.execute(
            select(LeaveException)
            .where(
                LeaveException.user_id == user_id,
                LeaveException.status == ExceptionStatus.approved,
                LeaveException.end_date < today,
            )
            .order_by(LeaveException.end_date.desc())
        )
        last = result.scalars().first()
        if last is None:
            return LeaveStatus(is_on_leave=False, is_returning=False)

        is_returning = False
        grace = LeaveService._grace_days(company)
        if last.end_date >= today - timedelta(days=grace):
            since = start_of_next_day(last.end_date, zone)
            checked_in = await db.execute(
                select(Checkin.id).where(
                    Checkin.user_id == user_id,
                    Checkin.created_at >= ensure_utc(since),
                ).limit(1)
            )
            is_returning = checked_in.scalars().first() is None

        return LeaveStatus(
            is_on_leave=False,
            is_returning=is_returning,
            last_exception=LeaveExceptionResponse.model_validate(last) if is_returning else None,
        )

    # ── Review + summary refresh ────────────────────────────────────

    @staticmethod
    async def review_exception(
        db: AsyncSession,
        exception_id: uuid.UUID,
        reviewer_id: uuid.UUID,
        *,
        approve: bool,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> LeaveExceptionResponse:
        """Approve or reject a pending exception, then refresh affected summaries."""
        exc = await db.get(LeaveException, exception_id)
        if exc is None:
            raise NotFoundException("Exception", str(exception_id))

        reviewer = await OrganizationService.get_user(db, reviewer_id)
        if reviewer.role in WORKER_ROLES or reviewer.company_id != exc.company_id:
            raise ForbiddenException("Only leaders of the same company can review exceptions.")

        if exc.status != ExceptionStatus.pending:
            raise InvalidStateException(
                "Exception",
                exc.status.value,
                f"Exception is already {exc.status.value}.",
            )

        old_status = exc.status.value
        exc.status = ExceptionStatus.approved if approve else ExceptionStatus.rejected
        exc.reviewed_by = reviewer_id
        exc.reviewed_at = now or utc_now()
        exc.review_notes = notes
        await db.flush()

        await create_audit_entry(
            db,
            action="approve" if approve else "reject",
            entity_type="exception",
            entity_id=exc.id,
            actor_id=reviewer_id,
            old_values={"status": old_status},
            new_values={"status": exc.status},
        )

        await LeaveService.refresh_coverage(db, exc.id, now=now)
        return LeaveExceptionResponse.model_validate(exc)

    @staticmethod
    async def refresh_coverage(
        db: AsyncSession,
        exception_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> int:
        """Recompute the owner's team summaries over the exception's past days.

        Returns the number of days recomputed. Days after today are skipped;
        they are computed when they arrive.
        """
        exc = await db.get(LeaveException, exception_id)
        if exc is None:
            raise NotFoundException("Exception", str(exception_id))

        user = await OrganizationService.get_user(db, exc.user_id)
        if user.team_id is None:
            return 0

        zone = await OrganizationService.get_company_timezone(db, user.company_id)
        end = min(exc.end_date, today_in(zone, now))
        if exc.start_date > end:
            return 0

        results = await DailySummaryService.recalculate_summaries_for_date_range(
            db, user.team_id, exc.start_date, end, zone,
        )
        logger.info(
            "Refreshed %d summaries after exception %s became %s",
            len(results), exc.id, exc.status.value,
        )
        return len(results)
