"""Absence test suite — detection gap scan, justification, leader review,
team queries and company-wide batch isolation.

Calendar: the worker joined on Sunday 2026-03-01, so Monday 2026-03-02 is
the first day a check-in is owed. Team shift ends at 17:00 UTC.
"""

from __future__ import annotations

import uuid
from datetime import date, time
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from teamready.absences.models import Absence
from teamready.absences.schemas import JustifyItem
from teamready.absences.service import AbsenceService
from teamready.common.audit import AuditTrail
from teamready.common.constants import (
    AbsenceFilter,
    AbsenceReason,
    AbsenceStatus,
    ReviewAction,
)
from teamready.common.exceptions import (
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from teamready.organization.models import Team
from teamready.summaries.service import DailySummaryService
from tests.conftest import (
    _seed_absence,
    _seed_checkin,
    _seed_exception,
    _seed_holiday,
    utc,
)


async def _detect(db: AsyncSession, worker: dict, now):
    return await AbsenceService.detect_and_create_absences(
        db, worker["id"], worker["company_id"], now=now,
    )


def _dates(rows) -> list[date]:
    return [r.absence_date for r in rows]


# ═════════════════════════════════════════════════════════════════════
# 1. Detection
# ═════════════════════════════════════════════════════════════════════


class TestDetection:

    async def test_missed_days_before_shift_end(self, db: AsyncSession, test_worker):
        """Friday noon: Mon–Thu are missed, Friday is not owed yet."""
        created = await _detect(db, test_worker, utc(2026, 3, 6, 12))
        assert _dates(created) == [
            date(2026, 3, 2), date(2026, 3, 3), date(2026, 3, 4), date(2026, 3, 5),
        ]
        assert all(a.status == AbsenceStatus.pending_justification for a in created)
        assert all(a.team_id == test_worker["team_id"] for a in created)

    async def test_today_included_after_shift_end(self, db: AsyncSession, test_worker):
        created = await _detect(db, test_worker, utc(2026, 3, 6, 17, 30))
        assert date(2026, 3, 6) in _dates(created)

    async def test_shift_end_minute_is_not_past(self, db: AsyncSession, test_worker):
        created = await _detect(db, test_worker, utc(2026, 3, 6, 17, 0))
        assert date(2026, 3, 6) not in _dates(created)

    async def test_weekend_skipped(self, db: AsyncSession, test_worker):
        created = await _detect(db, test_worker, utc(2026, 3, 9, 8))
        assert _dates(created) == [
            date(2026, 3, 2), date(2026, 3, 3), date(2026, 3, 4), date(2026, 3, 5), date(2026, 3, 6),
        ]

    async def test_detection_is_idempotent(self, db: AsyncSession, test_worker):
        first = await _detect(db, test_worker, utc(2026, 3, 6, 12))
        second = await _detect(db, test_worker, utc(2026, 3, 6, 12))
        assert len(first) == 4
        assert second == []

        count = await db.execute(
            select(func.count()).select_from(Absence).where(Absence.user_id == test_worker["id"])
        )
        assert count.scalar() == 4

    async def test_covered_days_skipped(self, db: AsyncSession, test_worker):
        """Check-in, holiday and approved leave each cover their day."""
        await _seed_checkin(db, test_worker, utc(2026, 3, 2, 9))
        await _seed_holiday(db, test_worker["company_id"], date(2026, 3, 3), "Founders Day")
        await _seed_exception(db, test_worker, date(2026, 3, 4), date(2026, 3, 4))

        created = await _detect(db, test_worker, utc(2026, 3, 6, 12))
        assert _dates(created) == [date(2026, 3, 5)]

    async def test_baseline_is_first_checkin(self, db: AsyncSession, test_worker):
        await _seed_checkin(db, test_worker, utc(2026, 3, 4, 9))
        created = await _detect(db, test_worker, utc(2026, 3, 6, 12))
        assert _dates(created) == [date(2026, 3, 5)]

    async def test_new_joiner_owes_nothing_on_join_day(self, db: AsyncSession, test_worker):
        created = await _detect(db, test_worker, utc(2026, 3, 1, 20))
        assert created == []

    async def test_worker_without_team(self, db: AsyncSession, test_worker):
        from teamready.organization.models import User

        user = await db.get(User, test_worker["id"])
        user.team_id = None
        await db.flush()
        assert await _detect(db, test_worker, utc(2026, 3, 6, 12)) == []

    async def test_company_timezone_drives_today(self, db: AsyncSession, test_worker):
        """10:00 UTC Friday is 18:00 in Manila, after the 17:00 shift."""
        created = await AbsenceService.detect_and_create_absences(
            db, test_worker["id"], test_worker["company_id"], tz="Asia/Manila",
            now=utc(2026, 3, 6, 10),
        )
        # Company timezone (UTC) wins over the request hint
        assert date(2026, 3, 6) not in _dates(created)


class TestBatchDetection:

    async def test_all_workers_scanned(self, db: AsyncSession, test_worker, second_worker):
        report = await AbsenceService.detect_absences_for_company(
            db, test_worker["company_id"], now=utc(2026, 3, 6, 12),
        )
        assert report.workers_processed == 2
        assert report.absences_created == 8
        assert report.errors == []

    async def test_one_failure_does_not_stop_the_batch(
        self, db: AsyncSession, test_worker, second_worker,
    ):
        original = AbsenceService.detect_and_create_absences

        async def _flaky(db_, user_id, company_id, tz=None, now=None):
            if user_id == test_worker["id"]:
                raise RuntimeError("boom")
            return await original(db_, user_id, company_id, tz, now)

        with patch.object(
            AbsenceService, "detect_and_create_absences", new=AsyncMock(side_effect=_flaky),
        ):
            report = await AbsenceService.detect_absences_for_company(
                db, test_worker["company_id"], now=utc(2026, 3, 6, 12),
            )

        assert report.workers_processed == 1
        assert report.absences_created == 4
        assert [e.user_id for e in report.errors] == [test_worker["id"]]
        assert "boom" in report.errors[0].error

    async def test_unknown_company(self, db: AsyncSession):
        with pytest.raises(NotFoundException):
            await AbsenceService.detect_absences_for_company(db, uuid.uuid4())


# ═════════════════════════════════════════════════════════════════════
# 2. Justification
# ═════════════════════════════════════════════════════════════════════


class TestJustify:

    async def test_justify_own_absences(self, db: AsyncSession, test_worker):
        a1 = await _seed_absence(db, test_worker, date(2026, 3, 2))
        a2 = await _seed_absence(db, test_worker, date(2026, 3, 3))

        result = await AbsenceService.justify_absences(
            db,
            test_worker["id"],
            [
                JustifyItem(absence_id=a1.id, reason_category=AbsenceReason.sick, explanation="Flu"),
                JustifyItem(absence_id=a2.id, reason_category=AbsenceReason.sick),
            ],
            now=utc(2026, 3, 4, 8),
        )
        assert len(result) == 2
        assert all(r.justified_at is not None for r in result)
        assert all(r.status == AbsenceStatus.pending_justification for r in result)
        assert not await AbsenceService.has_blocking_absences(db, test_worker["id"])

        audit = await db.execute(
            select(func.count()).select_from(AuditTrail).where(AuditTrail.action == "justify")
        )
        assert audit.scalar() == 2

    async def test_cannot_justify_someone_else(self, db: AsyncSession, test_worker, second_worker):
        absence = await _seed_absence(db, second_worker, date(2026, 3, 2))
        with pytest.raises(ForbiddenException):
            await AbsenceService.justify_absences(
                db, test_worker["id"],
                [JustifyItem(absence_id=absence.id, reason_category=AbsenceReason.other)],
            )

    async def test_batch_is_all_or_nothing(self, db: AsyncSession, test_worker):
        ok = await _seed_absence(db, test_worker, date(2026, 3, 2))
        done = await _seed_absence(
            db, test_worker, date(2026, 3, 3), justified_at=utc(2026, 3, 3, 20),
        )
        with pytest.raises(InvalidStateException):
            await AbsenceService.justify_absences(
                db, test_worker["id"],
                [
                    JustifyItem(absence_id=ok.id, reason_category=AbsenceReason.sick),
                    JustifyItem(absence_id=done.id, reason_category=AbsenceReason.sick),
                ],
            )
        await db.refresh(ok)
        assert ok.justified_at is None

    async def test_reviewed_absence_cannot_be_justified(self, db: AsyncSession, test_worker):
        absence = await _seed_absence(
            db, test_worker, date(2026, 3, 2), status=AbsenceStatus.unexcused,
        )
        with pytest.raises(InvalidStateException):
            await AbsenceService.justify_absences(
                db, test_worker["id"],
                [JustifyItem(absence_id=absence.id, reason_category=AbsenceReason.sick)],
            )

    async def test_empty_and_duplicate_items_rejected(self, db: AsyncSession, test_worker):
        absence = await _seed_absence(db, test_worker, date(2026, 3, 2))
        item = JustifyItem(absence_id=absence.id, reason_category=AbsenceReason.sick)
        with pytest.raises(ValidationException):
            await AbsenceService.justify_absences(db, test_worker["id"], [])
        with pytest.raises(ValidationException):
            await AbsenceService.justify_absences(db, test_worker["id"], [item, item])

    async def test_unknown_absence(self, db: AsyncSession, test_worker):
        with pytest.raises(NotFoundException):
            await AbsenceService.justify_absences(
                db, test_worker["id"],
                [JustifyItem(absence_id=uuid.uuid4(), reason_category=AbsenceReason.sick)],
            )


# ═════════════════════════════════════════════════════════════════════
# 3. Review
# ═════════════════════════════════════════════════════════════════════


class TestReview:

    async def test_excuse_updates_summary(self, db: AsyncSession, test_worker, test_leader):
        absence = await _seed_absence(
            db, test_worker, date(2026, 3, 2), justified_at=utc(2026, 3, 3, 8),
        )
        result = await AbsenceService.review_absence(
            db, absence.id, test_leader["id"], ReviewAction.excuse, notes="OK",
            now=utc(2026, 3, 3, 9),
        )
        assert result.status == AbsenceStatus.excused
        assert result.reviewed_by == test_leader["id"]

        summary = await DailySummaryService.get_team_summary_for_date(
            db, test_worker["team_id"], date(2026, 3, 2),
        )
        assert summary.excused_count == 1
        assert summary.on_leave_count == 1
        assert summary.expected_to_check_in == 0

    async def test_reject_marks_unexcused(self, db: AsyncSession, test_worker, test_leader):
        absence = await _seed_absence(
            db, test_worker, date(2026, 3, 2), justified_at=utc(2026, 3, 3, 8),
        )
        result = await AbsenceService.review_absence(
            db, absence.id, test_leader["id"], ReviewAction.reject,
        )
        assert result.status == AbsenceStatus.unexcused

        summary = await DailySummaryService.get_team_summary_for_date(
            db, test_worker["team_id"], date(2026, 3, 2),
        )
        assert summary.absent_count == 1
        assert summary.expected_to_check_in == 1

    async def test_only_team_leader_reviews(self, db: AsyncSession, test_worker, second_worker):
        absence = await _seed_absence(
            db, test_worker, date(2026, 3, 2), justified_at=utc(2026, 3, 3, 8),
        )
        with pytest.raises(ForbiddenException):
            await AbsenceService.review_absence(
                db, absence.id, second_worker["id"], ReviewAction.excuse,
            )

    async def test_unjustified_absence_cannot_be_reviewed(
        self, db: AsyncSession, test_worker, test_leader,
    ):
        absence = await _seed_absence(db, test_worker, date(2026, 3, 2))
        with pytest.raises(InvalidStateException):
            await AbsenceService.review_absence(
                db, absence.id, test_leader["id"], ReviewAction.excuse,
            )

    async def test_review_is_terminal(self, db: AsyncSession, test_worker, test_leader):
        absence = await _seed_absence(
            db, test_worker, date(2026, 3, 2), justified_at=utc(2026, 3, 3, 8),
        )
        await AbsenceService.review_absence(db, absence.id, test_leader["id"], ReviewAction.reject)
        with pytest.raises(InvalidStateException):
            await AbsenceService.review_absence(
                db, absence.id, test_leader["id"], ReviewAction.excuse,
            )

    async def test_review_survives_summary_failure(
        self, db: AsyncSession, test_worker, test_leader,
    ):
        absence = await _seed_absence(
            db, test_worker, date(2026, 3, 2), justified_at=utc(2026, 3, 3, 8),
        )
        with patch.object(
            DailySummaryService,
            "recalculate_daily_team_summary",
            new=AsyncMock(side_effect=RuntimeError("db hiccup")),
        ):
            result = await AbsenceService.review_absence(
                db, absence.id, test_leader["id"], ReviewAction.excuse,
            )
        assert result.status == AbsenceStatus.excused
        await db.refresh(absence)
        assert absence.status == AbsenceStatus.excused


# ═════════════════════════════════════════════════════════════════════
# 4. Queries
# ═════════════════════════════════════════════════════════════════════


class TestQueries:

    async def _seed_mix(self, db: AsyncSession, worker: dict) -> None:
        await _seed_absence(db, worker, date(2026, 3, 2))
        await _seed_absence(db, worker, date(2026, 3, 3), justified_at=utc(2026, 3, 4, 8))
        await _seed_absence(db, worker, date(2026, 3, 4), status=AbsenceStatus.excused)
        await _seed_absence(db, worker, date(2026, 3, 5), status=AbsenceStatus.unexcused)

    async def test_pending_and_blocking(self, db: AsyncSession, test_worker):
        await self._seed_mix(db, test_worker)
        pending = await AbsenceService.get_pending_justifications(db, test_worker["id"])
        assert _dates(pending) == [date(2026, 3, 2)]
        assert await AbsenceService.has_blocking_absences(db, test_worker["id"])

    async def test_pending_reviews(self, db: AsyncSession, test_worker):
        await self._seed_mix(db, test_worker)
        reviews = await AbsenceService.get_pending_reviews(db, test_worker["team_id"])
        assert _dates(reviews) == [date(2026, 3, 3)]

    async def test_status_counts(self, db: AsyncSession, test_worker):
        await self._seed_mix(db, test_worker)
        counts = await AbsenceService.get_absence_status_counts(db, test_worker["id"])
        assert counts.pending_justification == 1
        assert counts.pending_review == 1
        assert counts.excused == 1
        assert counts.unexcused == 1
        assert counts.total == 4

    async def test_history_newest_first(self, db: AsyncSession, test_worker):
        await self._seed_mix(db, test_worker)
        history = await AbsenceService.get_absence_history(db, test_worker["id"], limit=2)
        assert _dates(history) == [date(2026, 3, 5), date(2026, 3, 4)]

    async def test_range(self, db: AsyncSession, test_worker):
        await self._seed_mix(db, test_worker)
        rows = await AbsenceService.get_absences_in_range(
            db, test_worker["id"], date(2026, 3, 3), date(2026, 3, 4),
        )
        assert _dates(rows) == [date(2026, 3, 3), date(2026, 3, 4)]
        with pytest.raises(ValidationException):
            await AbsenceService.get_absences_in_range(
                db, test_worker["id"], date(2026, 3, 4), date(2026, 3, 3),
            )

    @pytest.mark.parametrize(
        "absence_filter, expected",
        [
            (AbsenceFilter.all, 4),
            (AbsenceFilter.pending_justification, 1),
            (AbsenceFilter.pending_review, 1),
            (AbsenceFilter.excused, 1),
            (AbsenceFilter.unexcused, 1),
        ],
    )
    async def test_team_list_filters(self, db: AsyncSession, test_worker, absence_filter, expected):
        await self._seed_mix(db, test_worker)
        page = await AbsenceService.list_team_absences(
            db, test_worker["team_id"], absence_filter,
        )
        assert len(page.data) == expected
        assert page.meta.total == expected

    async def test_team_list_pagination(self, db: AsyncSession, test_worker):
        await self._seed_mix(db, test_worker)
        page = await AbsenceService.list_team_absences(
            db, test_worker["team_id"], page=2, page_size=3,
        )
        assert _dates(page.data) == [date(2026, 3, 2)]
        assert page.meta.total == 4
