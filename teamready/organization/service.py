"""Organization lookups shared by the engine services.

Loading a company/team/user by id, resolving the effective timezone, the
active worker roster of a team, and holiday date sets.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamready.common.constants import WORKER_ROLES
from teamready.common.dates import validate_timezone
from teamready.common.exceptions import NotFoundException
from teamready.config import settings
from teamready.organization.models import Company, Holiday, Team, User


class OrganizationService:
    """Async read helpers over companies, teams, users and holidays."""

    # ── Entity loaders ──────────────────────────────────────────────

    @staticmethod
    async def get_company(db: AsyncSession, company_id: uuid.UUID) -> Company:
        company = await db.get(Company, company_id)
        if company is None:
            raise NotFoundException("Company", str(company_id))
        return company

    @staticmethod
    async def get_team(db: AsyncSession, team_id: uuid.UUID) -> Team:
        team = await db.get(Team, team_id)
        if team is None:
            raise NotFoundException("Team", str(team_id))
        return team

    @staticmethod
    async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundException("User", str(user_id))
        return user

    # ── Timezone ────────────────────────────────────────────────────

    @staticmethod
    def resolve_timezone(company: Optional[Company], tz: Optional[str] = None) -> str:
        """Company timezone wins; *tz* is the caller's fallback, then settings."""
        if company is not None and company.timezone:
            return validate_timezone(company.timezone)
        return validate_timezone(tz or settings.DEFAULT_TIMEZONE)

    @staticmethod
    async def get_company_timezone(
        db: AsyncSession,
        company_id: uuid.UUID,
        tz: Optional[str] = None,
    ) -> str:
        company = await db.get(Company, company_id)
        return OrganizationService.resolve_timezone(company, tz)

    # ── Rosters ─────────────────────────────────────────────────────

    @staticmethod
    async def get_active_members(db: AsyncSession, team_id: uuid.UUID) -> Sequence[User]:
        """Active worker-role members of a team (the check-in roster)."""
        result = await db.execute(
            select(User)
            .where(
                User.team_id == team_id,
                User.is_active.is_(True),
                User.role.in_(WORKER_ROLES),
            )
            .order_by(User.last_name, User.first_name)
        )
        return result.scalars().all()

    @staticmethod
    async def get_company_teams(
        db: AsyncSession,
        company_id: uuid.UUID,
        *,
        active_only: bool = True,
    ) -> Sequence[Team]:
        query = select(Team).where(Team.company_id == company_id)
        if active_only:
            query = query.where(Team.is_active.is_(True))
        result = await db.execute(query.order_by(Team.name))
        return result.scalars().all()

    @staticmethod
    async def get_company_workers(db: AsyncSession, company_id: uuid.UUID) -> Sequence[User]:
        """Active worker-role users of a company that belong to a team."""
        result = await db.execute(
            select(User)
            .where(
                User.company_id == company_id,
                User.is_active.is_(True),
                User.role.in_(WORKER_ROLES),
                User.team_id.is_not(None),
            )
            .order_by(User.created_at)
        )
        return result.scalars().all()

    # ── Holidays ────────────────────────────────────────────────────

    @staticmethod
    async def get_holiday(
        db: AsyncSession,
        company_id: uuid.UUID,
        day: date,
    ) -> Optional[Holiday]:
        result = await db.execute(
            select(Holiday).where(
                Holiday.company_id == company_id,
                Holiday.date == day,
            )
        )
        return result.scalars().first()

    @staticmethod
    async def get_holiday_dates(
        db: AsyncSession,
        company_id: uuid.UUID,
        start: date,
        end: date,
    ) -> set[date]:
        result = await db.execute(
            select(Holiday.date).where(
                Holiday.company_id == company_id,
                Holiday.date >= start,
                Holiday.date <= end,
            )
        )
        return set(result.scalars().all())
