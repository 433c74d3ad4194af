from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import StoreError
from ..models.models import MachineNote
from ..schemas.notes import MachineNoteResponse

logger = structlog.get_logger(__name__)


class MachineNoteStore:
    """One note per id_msn. Notes do not require the machine to exist."""

    def __init__(self, db: Session):
        self.db = db

    def find(self, id_msn: str) -> Optional[MachineNote]:
        return self.db.query(MachineNote).filter(MachineNote.id_msn == id_msn).first()

    def get_by_key(self, id_msn: str) -> MachineNoteResponse:
        """The stored note, or an empty placeholder when none was written yet"""
        note = self.find(id_msn)
        if note is not None:
            return MachineNoteResponse.model_validate(note)
        now = datetime.utcnow()
        return MachineNoteResponse(id=None, id_msn=id_msn, content="", created_at=now, updated_at=now)

    def upsert(self, id_msn: str, content: str) -> MachineNote:
        note = self.find(id_msn)
        if note is None:
            note = self._insert(id_msn, content)
            if note is not None:
                logger.info("machine_note_saved", id_msn=id_msn, created=True)
                return note
            # lost an insert race for the same key, the winner's row is updated instead
            note = self.find(id_msn)
            if note is None:
                raise StoreError()
        note.content = content
        note.updated_at = datetime.utcnow()
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("machine_note_save_failed", id_msn=id_msn, error=str(e))
            raise StoreError()
        self.db.refresh(note)
        logger.info("machine_note_saved", id_msn=id_msn, created=False)
        return note

    def _insert(self, id_msn: str, content: str) -> Optional[MachineNote]:
        now = datetime.utcnow()
        note = MachineNote(id_msn=id_msn, content=content, created_at=now, updated_at=now)
        self.db.add(note)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return None
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("machine_note_save_failed", id_msn=id_msn, error=str(e))
            raise StoreError()
        self.db.refresh(note)
        return note
