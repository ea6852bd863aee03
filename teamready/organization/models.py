"""Organization ORM models: Company, Team, User, Holiday."""

from __future__ import annotations

import uuid
from datetime import date, datetime, time, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamready.common.constants import DEFAULT_WORK_DAYS, UserRole
from teamready.database import Base


class Company(Base):
    __tablename__ = "companies"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    timezone: Mapped[str] = mapped_column(
        sa.String(64), nullable=False, default="Asia/Manila"
    )
    # Overrides settings.LEAVE_RETURN_GRACE_DAYS when set.
    leave_return_grace_days: Mapped[Optional[int]] = mapped_column(
        sa.Integer, nullable=True
    )
    is_active: Mapped[bool] = mapped_column(sa.Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    teams: Mapped[list[Team]] = relationship(back_populates="company")
    holidays: Mapped[list[Holiday]] = relationship(back_populates="company")


class Team(Base):
    __tablename__ = "teams"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    # Comma-separated day codes, e.g. "MON,TUE,WED,THU,FRI".
    work_days: Mapped[str] = mapped_column(
        sa.String(50), nullable=False, default=DEFAULT_WORK_DAYS
    )
    shift_start: Mapped[time] = mapped_column(
        sa.Time, nullable=False, default=time(8, 0)
    )
    shift_end: Mapped[time] = mapped_column(
        sa.Time, nullable=False, default=time(17, 0)
    )
    # FK to users.id is added in the migration (users ↔ teams cycle).
    leader_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(sa.Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    company: Mapped[Company] = relationship(back_populates="teams")
    members: Mapped[list[User]] = relationship(back_populates="team")

    __table_args__ = (
        sa.Index("ix_teams_company_id", "company_id"),
    )


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )
    team_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("teams.id", ondelete="SET NULL"),
        nullable=True,
    )
    email: Mapped[Optional[str]] = mapped_column(sa.String(255), unique=True)
    first_name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        sa.Enum(UserRole, name="user_role"),
        nullable=False,
        default=UserRole.worker,
    )
    is_active: Mapped[bool] = mapped_column(sa.Boolean, default=True)
    team_joined_at: Mapped[Optional[datetime]] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )

    # Denormalized check-in counters, maintained by CheckinService.
    total_checkins: Mapped[int] = mapped_column(sa.Integer, default=0)
    current_streak: Mapped[int] = mapped_column(sa.Integer, default=0)
    longest_streak: Mapped[int] = mapped_column(sa.Integer, default=0)
    last_checkin_date: Mapped[Optional[date]] = mapped_column(sa.Date, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    team: Mapped[Optional[Team]] = relationship(back_populates="members")

    __table_args__ = (
        sa.Index("ix_users_team_id", "team_id"),
        sa.Index("ix_users_company_id", "company_id"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Holiday(Base):
    __tablename__ = "holidays"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )
    date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    company: Mapped[Company] = relationship(back_populates="holidays")

    __table_args__ = (
        sa.UniqueConstraint("company_id", "date", name="uq_holidays_company_date"),
    )
