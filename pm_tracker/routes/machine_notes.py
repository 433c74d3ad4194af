from fastapi import APIRouter, Depends

from ..auth.security import get_current_user
from ..deps import get_note_store
from ..schemas.notes import MachineNoteResponse, MachineNoteUpsert
from ..services.notes import MachineNoteStore

router = APIRouter(prefix="/machine-notes", tags=["machine-notes"], dependencies=[Depends(get_current_user)])


@router.get("/{id_msn}", response_model=MachineNoteResponse)
def get_note(id_msn: str, notes: MachineNoteStore = Depends(get_note_store)):
    """Returns an empty note when nothing was saved for this machine yet"""
    return notes.get_by_key(id_msn)


@router.post("", response_model=MachineNoteResponse)
def save_note(payload: MachineNoteUpsert, notes: MachineNoteStore = Depends(get_note_store)):
    return notes.upsert(payload.id_msn, payload.content)
