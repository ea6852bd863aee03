"""Check-in test suite — readiness scoring, submission rules, streaks, and
the summary refresh that follows every check-in.
"""

from __future__ import annotations

import uuid
from datetime import date

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from teamready.checkins.models import Checkin
from teamready.checkins.readiness import calculate_readiness, readiness_status
from teamready.checkins.schemas import CheckinMetrics
from teamready.checkins.service import CheckinService
from teamready.common.constants import ExceptionStatus, ReadinessStatus
from teamready.common.exceptions import (
    ConflictError,
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from teamready.organization.models import User
from teamready.summaries.service import DailySummaryService
from tests.conftest import _seed_exception, utc


def _metrics(mood=8, stress=2, sleep=8, physical_health=8) -> CheckinMetrics:
    return CheckinMetrics(mood=mood, stress=stress, sleep=sleep, physical_health=physical_health)


# ═════════════════════════════════════════════════════════════════════
# 1. Readiness scoring
# ═════════════════════════════════════════════════════════════════════


class TestReadiness:

    def test_typical_metrics_score_green(self):
        result = calculate_readiness(_metrics())
        assert result.score == 80
        assert result.status == ReadinessStatus.green

    def test_high_stress_lowers_score(self):
        calm = calculate_readiness(_metrics(stress=1))
        stressed = calculate_readiness(_metrics(stress=10))
        assert calm.score > stressed.score

    def test_extremes(self):
        assert calculate_readiness(_metrics(10, 1, 10, 10)).score == 98
        assert calculate_readiness(_metrics(1, 10, 1, 1)).score == 8

    def test_half_rounds_up(self):
        """(50 + 50 + 50 + 40) / 4 = 47.5 → 48."""
        result = calculate_readiness(_metrics(mood=5, stress=5, sleep=5, physical_health=4))
        assert result.score == 48
        assert result.status == ReadinessStatus.yellow

    def test_status_thresholds(self):
        assert readiness_status(70) == ReadinessStatus.green
        assert readiness_status(69) == ReadinessStatus.yellow
        assert readiness_status(40) == ReadinessStatus.yellow
        assert readiness_status(39) == ReadinessStatus.red

    @pytest.mark.parametrize("field", ["mood", "stress", "sleep", "physical_health"])
    @pytest.mark.parametrize("value", [0, 11])
    def test_out_of_range_metric_rejected(self, field, value):
        values = {"mood": 8, "stress": 2, "sleep": 8, "physical_health": 8, field: value}
        with pytest.raises(ValidationException) as exc_info:
            calculate_readiness(CheckinMetrics(**values))
        assert field in exc_info.value.errors


# ═════════════════════════════════════════════════════════════════════
# 2. Submission
# ═════════════════════════════════════════════════════════════════════


class TestSubmitCheckin:

    async def test_submit_stores_readiness_and_local_day(self, db: AsyncSession, test_worker):
        result = await CheckinService.submit_checkin(
            db, test_worker["id"], _metrics(), notes="Fine", now=utc(2026, 3, 4, 9),
        )
        assert result.readiness_score == 80
        assert result.readiness_status == ReadinessStatus.green
        assert result.checkin_date == date(2026, 3, 4)
        assert result.notes == "Fine"

    async def test_second_checkin_same_day_conflicts(self, db: AsyncSession, test_worker):
        await CheckinService.submit_checkin(db, test_worker["id"], _metrics(), now=utc(2026, 3, 4, 9))
        with pytest.raises(ConflictError):
            await CheckinService.submit_checkin(
                db, test_worker["id"], _metrics(), now=utc(2026, 3, 4, 15),
            )

        count = await db.execute(
            select(func.count()).select_from(Checkin).where(Checkin.user_id == test_worker["id"])
        )
        assert count.scalar() == 1

    async def test_on_leave_worker_rejected(self, db: AsyncSession, test_worker):
        await _seed_exception(db, test_worker, date(2026, 3, 3), date(2026, 3, 5))
        with pytest.raises(InvalidStateException):
            await CheckinService.submit_checkin(
                db, test_worker["id"], _metrics(), now=utc(2026, 3, 4, 9),
            )

    async def test_pending_leave_does_not_block(self, db: AsyncSession, test_worker):
        await _seed_exception(
            db, test_worker, date(2026, 3, 3), date(2026, 3, 5), status=ExceptionStatus.pending,
        )
        result = await CheckinService.submit_checkin(
            db, test_worker["id"], _metrics(), now=utc(2026, 3, 4, 9),
        )
        assert result.checkin_date == date(2026, 3, 4)

    async def test_leader_cannot_check_in(self, db: AsyncSession, test_leader):
        with pytest.raises(ForbiddenException):
            await CheckinService.submit_checkin(
                db, test_leader["id"], _metrics(), now=utc(2026, 3, 4, 9),
            )

    async def test_unknown_user(self, db: AsyncSession):
        with pytest.raises(NotFoundException):
            await CheckinService.submit_checkin(db, uuid.uuid4(), _metrics())

    async def test_invalid_metrics_write_nothing(self, db: AsyncSession, test_worker):
        with pytest.raises(ValidationException):
            await CheckinService.submit_checkin(
                db, test_worker["id"], _metrics(mood=0), now=utc(2026, 3, 4, 9),
            )
        count = await db.execute(select(func.count()).select_from(Checkin))
        assert count.scalar() == 0

    async def test_checkin_refreshes_today_summary(self, db: AsyncSession, test_worker, second_worker):
        await CheckinService.submit_checkin(
            db, test_worker["id"], _metrics(), now=utc(2026, 3, 4, 9),
        )
        summary = await DailySummaryService.get_team_summary_for_date(
            db, test_worker["team_id"], date(2026, 3, 4),
        )
        assert summary is not None
        assert summary.total_members == 2
        assert summary.expected_to_check_in == 2
        assert summary.checked_in_count == 1
        assert summary.green_count == 1
        assert summary.compliance_rate == 50.0


# ═════════════════════════════════════════════════════════════════════
# 3. Streak counters
# ═════════════════════════════════════════════════════════════════════


class TestStreaks:

    async def test_streak_carries_over_weekend(self, db: AsyncSession, test_worker):
        await CheckinService.submit_checkin(db, test_worker["id"], _metrics(), now=utc(2026, 3, 5, 9))
        await CheckinService.submit_checkin(db, test_worker["id"], _metrics(), now=utc(2026, 3, 6, 9))
        await CheckinService.submit_checkin(db, test_worker["id"], _metrics(), now=utc(2026, 3, 9, 9))

        user = await db.get(User, test_worker["id"])
        assert user.current_streak == 3
        assert user.longest_streak == 3
        assert user.total_checkins == 3
        assert user.last_checkin_date == date(2026, 3, 9)

    async def test_missed_work_day_resets_streak(self, db: AsyncSession, test_worker):
        await CheckinService.submit_checkin(db, test_worker["id"], _metrics(), now=utc(2026, 3, 3, 9))
        await CheckinService.submit_checkin(db, test_worker["id"], _metrics(), now=utc(2026, 3, 4, 9))
        await CheckinService.submit_checkin(db, test_worker["id"], _metrics(), now=utc(2026, 3, 6, 9))

        user = await db.get(User, test_worker["id"])
        assert user.current_streak == 1
        assert user.longest_streak == 2


# ═════════════════════════════════════════════════════════════════════
# 4. Readiness audit
# ═════════════════════════════════════════════════════════════════════


class TestReadinessAudit:

    async def test_stored_score_matches_recomputation(self, db: AsyncSession, test_worker):
        created = await CheckinService.submit_checkin(
            db, test_worker["id"], _metrics(mood=3, stress=9, sleep=4, physical_health=5),
            now=utc(2026, 3, 4, 9),
        )
        audit = await CheckinService.recalculate_checkin_readiness(db, created.id)
        assert audit.matches
        assert audit.stored_score == created.readiness_score

    async def test_tampered_score_detected(self, db: AsyncSession, test_worker):
        created = await CheckinService.submit_checkin(
            db, test_worker["id"], _metrics(), now=utc(2026, 3, 4, 9),
        )
        row = await db.get(Checkin, created.id)
        row.readiness_score = 12
        await db.flush()

        audit = await CheckinService.recalculate_checkin_readiness(db, created.id)
        assert not audit.matches
        assert audit.computed_score == 80

    async def test_unknown_checkin(self, db: AsyncSession):
        with pytest.raises(NotFoundException):
            await CheckinService.recalculate_checkin_readiness(db, uuid.uuid4())
