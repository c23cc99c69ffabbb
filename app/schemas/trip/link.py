from pydantic import BaseModel, Field
from typing import List
from uuid import UUID


class LinkCreate(BaseModel):
    title: str = Field(min_length=1)
    url: str = Field(min_length=1)


class LinkResponse(LinkCreate):
    id: UUID

    class Config:
        from_attributes = True


class LinksResponse(BaseModel):
    links: List[LinkResponse]


class CreateLinkResponse(BaseModel):
    link_id: UUID
