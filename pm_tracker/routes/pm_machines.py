from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile

from ..auth.security import get_current_user
from ..config import Settings
from ..deps import get_exporter, get_importer, get_machine_store, get_settings
from ..schemas.pm import (
    CompletePmRequest,
    ImportResponse,
    MessageResponse,
    PmMachineCreate,
    PmMachineResponse,
    PmMachineUpdate,
    PmStatus,
    ReschedulePmRequest,
)
from ..services import deletion, lifecycle
from ..services.exporter import PmExporter
from ..services.importer import PmImporter
from ..services.machines import PmMachineStore

router = APIRouter(prefix="/pm-machines", tags=["pm-machines"], dependencies=[Depends(get_current_user)])


@router.get("", response_model=List[PmMachineResponse])
def list_machines(
    search: Optional[str] = Query(None),
    store: PmMachineStore = Depends(get_machine_store),
):
    """All machines ordered by number, optionally filtered by pengelola, periode PM or status"""
    return store.search(search)


# ---------- IMPORT / EXPORT ----------
# declared before /{id_msn} so "export" is not taken for a machine id
@router.get("/export/excel")
def export_excel(
    search: Optional[str] = Query(None),
    store: PmMachineStore = Depends(get_machine_store),
    exporter: PmExporter = Depends(get_exporter),
    settings: Settings = Depends(get_settings),
):
    content = exporter.export(store.search(search))
    return Response(
        content=content,
        media_type=exporter.mime_type,
        headers={"Content-Disposition": f"attachment; filename={settings.export_filename}"},
    )


@router.post("/import/excel", response_model=ImportResponse)
async def import_excel(
    file: Optional[UploadFile] = File(None),
    importer: PmImporter = Depends(get_importer),
    settings: Settings = Depends(get_settings),
):
    if file is None:
        raise HTTPException(status_code=400, detail="No file uploaded")
    content = await file.read()
    if len(content) > settings.import_max_bytes:
        raise HTTPException(status_code=400, detail="Uploaded file is too large")
    summary = importer.import_file(content, file.filename, file.content_type)
    return ImportResponse(message=summary.message, imported=summary.imported, errors=summary.errors)


# ---------- CRUD ----------
@router.get("/{id_msn}", response_model=PmMachineResponse)
def get_machine(id_msn: str, store: PmMachineStore = Depends(get_machine_store)):
    return store.get_by_key(id_msn)


@router.post("", response_model=PmMachineResponse)
def create_machine(payload: PmMachineCreate, store: PmMachineStore = Depends(get_machine_store)):
    # new machines always start Outstanding, whatever the body says
    return store.create(payload, status=PmStatus.outstanding)


@router.put("/{id_msn}", response_model=PmMachineResponse)
def update_machine(id_msn: str, payload: PmMachineUpdate, store: PmMachineStore = Depends(get_machine_store)):
    return store.update(id_msn, payload.changes())


@router.delete("/{id_msn}", response_model=MessageResponse)
def delete_machine(
    id_msn: str,
    delete_all: bool = Query(False, alias="deleteAll"),
    store: PmMachineStore = Depends(get_machine_store),
):
    deletion.delete_machine(store, id_msn, delete_all=delete_all)
    return MessageResponse(message="Machine data deleted successfully")


# ---------- LIFECYCLE ----------
@router.post("/{id_msn}/complete", response_model=PmMachineResponse)
def complete_pm(id_msn: str, payload: CompletePmRequest, store: PmMachineStore = Depends(get_machine_store)):
    return lifecycle.complete(store, id_msn, payload.tgl_selesai_pm)


@router.post("/{id_msn}/reschedule", response_model=PmMachineResponse)
def reschedule_pm(id_msn: str, payload: ReschedulePmRequest, store: PmMachineStore = Depends(get_machine_store)):
    return lifecycle.reschedule(store, id_msn, payload.periode_pm)
