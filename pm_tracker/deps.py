"""Request-scoped dependencies: settings and the stores built on the request's session."""
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .config import Settings
from .db import get_db
from .services.exporter import PmExporter
from .services.importer import PmImporter
from .services.machines import PmMachineStore
from .services.notes import MachineNoteStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_machine_store(db: Session = Depends(get_db)) -> PmMachineStore:
    return PmMachineStore(db)


def get_note_store(db: Session = Depends(get_db)) -> MachineNoteStore:
    return MachineNoteStore(db)


def get_importer(store: PmMachineStore = Depends(get_machine_store)) -> PmImporter:
    return PmImporter(store)


def get_exporter(settings: Settings = Depends(get_settings)) -> PmExporter:
    return PmExporter(sheet_name=settings.export_sheet_name)
