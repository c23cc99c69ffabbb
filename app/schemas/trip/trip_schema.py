from pydantic import BaseModel, EmailStr, Field
from typing import List
from datetime import datetime
from uuid import UUID


class TripBase(BaseModel):
    destination: str = Field(min_length=1)
    starts_at: datetime
    ends_at: datetime


class TripCreate(TripBase):
    owner_email: EmailStr
    emails_to_invite: List[EmailStr] = []


class TripUpdate(TripBase):
    pass


class TripResponse(TripBase):
    id: UUID
    is_confirmed: bool

    class Config:
        from_attributes = True


class TripDetailsResponse(BaseModel):
    trip: TripResponse


class CreateTripResponse(BaseModel):
    trip_id: UUID
