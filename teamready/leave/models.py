"""Leave exception ORM model.

An exception is an approved (or pending/rejected) absence from the check-in
duty over an inclusive local-date range; ``end_date`` is the last leave day.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from teamready.common.constants import ExceptionStatus, ExceptionType
from teamready.database import Base


class LeaveException(Base):
    __tablename__ = "exceptions"

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
    type: Mapped[ExceptionType] = mapped_column(
        sa.Enum(ExceptionType, name="exception_type"),
        nullable=False,
        default=ExceptionType.personal_leave,
    )
    status: Mapped[ExceptionStatus] = mapped_column(
        sa.Enum(ExceptionStatus, name="exception_status"),
        nullable=False,
        default=ExceptionStatus.pending,
    )
    start_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    end_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    reviewed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    review_notes: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        sa.CheckConstraint("end_date >= start_date", name="ck_exceptions_range"),
        sa.Index("ix_exceptions_user_status", "user_id", "status"),
        sa.Index("ix_exceptions_dates", "start_date", "end_date"),
    )
