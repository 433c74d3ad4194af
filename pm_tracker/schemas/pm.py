import uuid
from datetime import datetime
from typing import List, Optional, Any
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PmStatus(str, Enum):
    outstanding = "Outstanding"
    done = "Done"

    @classmethod
    def parse(cls, value: Any) -> "PmStatus":
        """Accept any casing of a status name; blank means Outstanding"""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip()
        if not text:
            return cls.outstanding
        for member in cls:
            if member.value.lower() == text.lower():
                return member
        raise ValueError(f"status must be one of: {', '.join(m.value for m in cls)}")


def _as_text(value: Any) -> Any:
    # spreadsheet cells and loose JSON clients send numbers for identifiers
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


def required_text(value: Any) -> str:
    value = _as_text(value)
    if value is None:
        raise ValueError("field is required")
    if not isinstance(value, str):
        raise ValueError("must be a string")
    value = value.strip()
    if not value:
        raise ValueError("must not be empty")
    return value


def optional_text(value: Any) -> Optional[str]:
    value = _as_text(value)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError("must be a string")
    return value.strip() or None


# PM Machine Schemas
class PmMachineCreate(BaseModel):
    """Fields accepted when creating a machine, directly or from an import row"""
    model_config = ConfigDict(populate_by_name=True)

    id_msn: str = Field(alias="idMsn")
    alamat: str
    pengelola: str
    teknisi: str
    periode_pm: Optional[str] = Field(default=None, alias="periodePM")
    tgl_selesai_pm: Optional[str] = Field(default=None, alias="tglSelesaiPM")
    status: PmStatus = PmStatus.outstanding

    @field_validator("id_msn", "alamat", "pengelola", "teknisi", mode="before")
    @classmethod
    def _required(cls, v):
        return required_text(v)

    @field_validator("periode_pm", "tgl_selesai_pm", mode="before")
    @classmethod
    def _optional(cls, v):
        return optional_text(v)

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v):
        return PmStatus.parse(v)


class PmMachineUpdate(BaseModel):
    """Partial field set for PUT; only the fields sent are merged onto the record"""
    model_config = ConfigDict(populate_by_name=True)

    alamat: Optional[str] = None
    pengelola: Optional[str] = None
    teknisi: Optional[str] = None
    periode_pm: Optional[str] = Field(default=None, alias="periodePM")
    tgl_selesai_pm: Optional[str] = Field(default=None, alias="tglSelesaiPM")
    status: Optional[PmStatus] = None

    @field_validator("alamat", "pengelola", "teknisi", mode="before")
    @classmethod
    def _required(cls, v):
        # only runs when the client sent the field, so an explicit null is rejected
        return required_text(v)

    @field_validator("periode_pm", "tgl_selesai_pm", mode="before")
    @classmethod
    def _optional(cls, v):
        return optional_text(v)

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v):
        if v is None:
            raise ValueError("field is required")
        return PmStatus.parse(v)

    def changes(self) -> dict:
        data = self.model_dump(exclude_unset=True)
        if "status" in data and data["status"] is not None:
            data["status"] = PmStatus(data["status"]).value
        return data


class PmMachineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: uuid.UUID
    no: int
    id_msn: str = Field(alias="idMsn")
    alamat: str
    pengelola: str
    periode_pm: Optional[str] = Field(default=None, alias="periodePM")
    tgl_selesai_pm: Optional[str] = Field(default=None, alias="tglSelesaiPM")
    status: str
    teknisi: str
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")


# Lifecycle Schemas
class CompletePmRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tgl_selesai_pm: str = Field(alias="tglSelesaiPM")

    @field_validator("tgl_selesai_pm", mode="before")
    @classmethod
    def _required(cls, v):
        return required_text(v)


class ReschedulePmRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    periode_pm: str = Field(alias="periodePM")

    @field_validator("periode_pm", mode="before")
    @classmethod
    def _required(cls, v):
        return required_text(v)


# Import / misc
class ImportResponse(BaseModel):
    message: str
    imported: int
    errors: List[str] = []


class MessageResponse(BaseModel):
    message: str
