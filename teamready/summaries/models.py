"""Daily team summary ORM model — one pre-aggregated row per (team, local date)."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from teamready.database import Base


class DailyTeamSummary(Base):
    __tablename__ = "daily_team_summaries"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    team_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=False,
    )
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )
    date: Mapped[date] = mapped_column(sa.Date, nullable=False)

    is_work_day: Mapped[bool] = mapped_column(sa.Boolean, nullable=False)
    is_holiday: Mapped[bool] = mapped_column(sa.Boolean, nullable=False)

    total_members: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    on_leave_count: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    excused_count: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    absent_count: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    expected_to_check_in: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    checked_in_count: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    not_checked_in_count: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)

    green_count: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    yellow_count: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    red_count: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)

    avg_readiness_score: Mapped[Optional[float]] = mapped_column(sa.Float, nullable=True)
    compliance_rate: Mapped[Optional[float]] = mapped_column(sa.Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        sa.UniqueConstraint("team_id", "date", name="uq_daily_team_summaries_team_date"),
        sa.Index("ix_daily_team_summaries_company_date", "company_id", "date"),
    )
