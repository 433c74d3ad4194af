import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .pm import required_text


class MachineNoteUpsert(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id_msn: str = Field(alias="idMsn")
    content: str = ""

    @field_validator("id_msn", mode="before")
    @classmethod
    def _required(cls, v):
        return required_text(v)

    @field_validator("content", mode="before")
    @classmethod
    def _content(cls, v):
        # an empty note is a valid note; null is treated the same way
        return "" if v is None else v


class MachineNoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: Optional[uuid.UUID] = None
    id_msn: str = Field(alias="idMsn")
    content: str
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")
