from pydantic import BaseModel, Field
from datetime import datetime
from datetime import date as dt_date
from typing import List
from uuid import UUID


class ActivityCreate(BaseModel):
    title: str = Field(min_length=1)
    occurs_at: datetime


class ActivityResponse(ActivityCreate):
    id: UUID

    class Config:
        from_attributes = True


class ActivitiesOnDate(BaseModel):
    date: dt_date
    activities: List[ActivityResponse]


class ActivitiesResponse(BaseModel):
    activities: List[ActivitiesOnDate]


class CreateActivityResponse(BaseModel):
    activity_id: UUID
