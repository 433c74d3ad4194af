import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    String,
    DateTime,
    Boolean,
    Integer,
    Text,
    Index,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from ..db import Base


def uuid_pk() -> Mapped[uuid.UUID]:
    return mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = uuid_pk()
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[Optional[str]] = mapped_column(String(100))
    last_name: Mapped[Optional[str]] = mapped_column(String(100))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class PmMachine(Base):
    """A machine under preventive maintenance, addressed externally by id_msn"""
    __tablename__ = "pm_machines"

    id: Mapped[uuid.UUID] = uuid_pk()
    no: Mapped[int] = mapped_column(Integer, nullable=False, index=True)  # max(no) + 1 at creation, never reassigned
    id_msn: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    alamat: Mapped[str] = mapped_column(Text, nullable=False)
    pengelola: Mapped[str] = mapped_column(Text, nullable=False)
    periode_pm: Mapped[Optional[str]] = mapped_column(String(100))  # null when no cycle is scheduled
    tgl_selesai_pm: Mapped[Optional[str]] = mapped_column(String(50))  # null until completed
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="Outstanding", index=True)  # Outstanding|Done
    teknisi: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)

    __table_args__ = (
        Index('idx_pm_machine_status_no', 'status', 'no'),
    )


class MachineNote(Base):
    """Free-text note for a machine; one row per id_msn, not tied to the machine row's lifetime"""
    __tablename__ = "machine_notes"

    id: Mapped[uuid.UUID] = uuid_pk()
    id_msn: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)


class PmNumberSequence(Base):
    """Highest number ever handed out per sequence; deletes never lower it"""
    __tablename__ = "pm_number_seq"

    name: Mapped[str] = mapped_column(String(50), primary_key=True)
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
