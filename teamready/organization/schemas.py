"""Organization Pydantic v2 schemas."""


import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class HolidayCreate(BaseModel):
    date: date
    name: str = Field(..., min_length=1, max_length=200)
    created_by: Optional[uuid.UUID] = None


class HolidayResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    company_id: uuid.UUID
    date: date
    name: str
    created_by: Optional[uuid.UUID] = None
    created_at: datetime


class HolidayChangeResponse(BaseModel):
    holiday: HolidayResponse
    teams_recalculated: int
