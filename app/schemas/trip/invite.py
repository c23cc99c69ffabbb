from pydantic import BaseModel, EmailStr
from typing import List, Optional
from uuid import UUID


# When someone is invited to a trip
class InviteCreate(BaseModel):
    email: EmailStr


class InviteResponse(BaseModel):
    participant_id: UUID


# Participant row as stored
class ParticipantRecord(BaseModel):
    id: UUID
    trip_id: UUID
    email: str
    is_owner: bool = False
    is_confirmed: bool = False

    class Config:
        from_attributes = True


# What we return when listing a trip's participants
class ParticipantResponse(BaseModel):
    id: UUID
    email: str
    name: Optional[str] = None
    is_owner: bool
    is_confirmed: bool


class ParticipantsResponse(BaseModel):
    participants: List[ParticipantResponse]
