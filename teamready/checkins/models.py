"""Check-in ORM model."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from teamready.common.constants import ReadinessStatus
from teamready.database import Base


class Checkin(Base):
    __tablename__ = "checkins"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )
    mood: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False)
    stress: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False)
    sleep: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False)
    physical_health: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False)
    readiness_score: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    readiness_status: Mapped[ReadinessStatus] = mapped_column(
        sa.Enum(ReadinessStatus, name="readiness_status"),
        nullable=False,
    )
    notes: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    # Company-local calendar day of created_at.
    checkin_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        sa.UniqueConstraint("user_id", "checkin_date", name="uq_checkins_user_date"),
        sa.Index("ix_checkins_user_created", "user_id", "created_at"),
        sa.Index("ix_checkins_company_created", "company_id", "created_at"),
    )
