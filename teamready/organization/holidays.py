"""Company holiday calendar.

Adding or removing a holiday flips ``is_holiday`` (and therefore the
expected count) for every team of the company on that date, so both
operations recompute that date's summaries.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Optional, Sequence

from sqlalchemy import extract, select
from sqlalchemy.ext.asyncio import AsyncSession

from teamready.common.audit import create_audit_entry
from teamready.common.exceptions import ConflictError, NotFoundException
from teamready.organization.models import Holiday
from teamready.organization.schemas import HolidayChangeResponse, HolidayResponse
from teamready.organization.service import OrganizationService
from teamready.summaries.service import DailySummaryService

logger = logging.getLogger(__name__)


class HolidayService:
    """Async holiday CRUD with summary refresh."""

    @staticmethod
    async def is_holiday(db: AsyncSession, company_id: uuid.UUID, day: date) -> bool:
        return await OrganizationService.get_holiday(db, company_id, day) is not None

    @staticmethod
    async def list_holidays(
        db: AsyncSession,
        company_id: uuid.UUID,
        year: Optional[int] = None,
    ) -> Sequence[Holiday]:
        await OrganizationService.get_company(db, company_id)
        query = select(Holiday).where(Holiday.company_id == company_id)
        if year is not None:
            query = query.where(extract("year", Holiday.date) == year)
        result = await db.execute(query.order_by(Holiday.date))
        return result.scalars().all()

    @staticmethod
    async def add_holiday(
        db: AsyncSession,
        company_id: uuid.UUID,
        day: date,
        name: str,
        created_by: Optional[uuid.UUID] = None,
    ) -> HolidayChangeResponse:
        await OrganizationService.get_company(db, company_id)
        if await HolidayService.is_holiday(db, company_id, day):
            raise ConflictError("date", day.isoformat())

        holiday = Holiday(
            company_id=company_id,
            date=day,
            name=name,
            created_by=created_by,
        )
        db.add(holiday)
        await db.flush()

        await create_audit_entry(
            db,
            action="add_holiday",
            entity_type="holiday",
            entity_id=holiday.id,
            actor_id=created_by,
            new_values={"date": day, "name": name},
        )

        refreshed = await DailySummaryService.recalculate_all_team_summaries_for_date(
            db, company_id, day,
        )
        logger.info("Holiday %s added for company %s", day, company_id)
        return HolidayChangeResponse(
            holiday=HolidayResponse.model_validate(holiday),
            teams_recalculated=len(refreshed),
        )

    @staticmethod
    async def remove_holiday(
        db: AsyncSession,
        holiday_id: uuid.UUID,
        actor_id: Optional[uuid.UUID] = None,
    ) -> HolidayChangeResponse:
        holiday = await db.get(Holiday, holiday_id)
        if holiday is None:
            raise NotFoundException("Holiday", str(holiday_id))

        response = HolidayResponse.model_validate(holiday)
        await db.delete(holiday)
        await db.flush()

        await create_audit_entry(
            db,
            action="remove_holiday",
            entity_type="holiday",
            entity_id=response.id,
            actor_id=actor_id,
            old_values={"date": response.date, "name": response.name},
        )

        refreshed = await DailySummaryService.recalculate_all_team_summaries_for_date(
            db, response.company_id, response.date,
        )
        logger.info("Holiday %s removed for company %s", response.date, response.company_id)
        return HolidayChangeResponse(holiday=response, teams_recalculated=len(refreshed))
