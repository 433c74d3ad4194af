"""
Record store for PM machines.

Rows are addressed by ``id_msn``; ``no`` is one past the highest number ever
handed out, tracked in ``pm_number_seq`` so that deleting the top row does not
free its number. Numbers are never reassigned and deletes leave gaps.
Every mutating method is its own unit of work: it commits on success and rolls
back on failure.
"""
from datetime import datetime
from typing import Dict, Any, List, Optional

import structlog
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import DuplicateMachineError, MachineNotFoundError, StoreError
from ..models.models import PmMachine, PmNumberSequence
from ..schemas.pm import PmMachineCreate, PmStatus

logger = structlog.get_logger(__name__)

# Only these columns take part in search; id_msn, alamat and teknisi are left out on purpose
SEARCH_FIELDS = ("pengelola", "periode_pm", "status")

# Columns a merge may touch; id, no, id_msn and created_at are fixed at creation
MUTABLE_FIELDS = ("alamat", "pengelola", "teknisi", "periode_pm", "tgl_selesai_pm", "status")

NUMBER_SEQUENCE = "pm_machines.no"


class PmMachineStore:
    def __init__(self, db: Session):
        self.db = db

    # ---------- READ ----------
    def get_by_key(self, id_msn: str) -> PmMachine:
        machine = self.find(id_msn)
        if machine is None:
            raise MachineNotFoundError(id_msn)
        return machine

    def find(self, id_msn: str) -> Optional[PmMachine]:
        return self.db.query(PmMachine).filter(PmMachine.id_msn == id_msn).first()

    def get_all(self) -> List[PmMachine]:
        return self.db.query(PmMachine).order_by(PmMachine.no.asc()).all()

    def search(self, query: Optional[str]) -> List[PmMachine]:
        """Case-insensitive substring match over pengelola, periode_pm and status"""
        if not query:
            return self.get_all()
        needle = query.lower()
        clauses = [
            func.lower(getattr(PmMachine, field)).contains(needle, autoescape=True)
            for field in SEARCH_FIELDS
        ]
        return self.db.query(PmMachine).filter(or_(*clauses)).order_by(PmMachine.no.asc()).all()

    def count(self) -> int:
        return self.db.query(PmMachine).count()

    def get_next_number(self) -> int:
        """The number the next create will take; numbers of deleted rows are not handed out again"""
        return self._high_water(self._sequence()) + 1

    def _sequence(self, lock: bool = False) -> Optional[PmNumberSequence]:
        query = self.db.query(PmNumberSequence).filter(PmNumberSequence.name == NUMBER_SEQUENCE)
        if lock:
            query = query.with_for_update()
        return query.first()

    def _high_water(self, sequence: Optional[PmNumberSequence]) -> int:
        # rows written before the sequence row existed still count
        current = self.db.query(func.max(PmMachine.no)).scalar() or 0
        return max(current, sequence.last_value if sequence else 0)

    def _take_number(self) -> int:
        """Bump the sequence in the caller's transaction, so a rollback gives the number back"""
        sequence = self._sequence(lock=True)
        number = self._high_water(sequence) + 1
        if sequence is None:
            self.db.add(PmNumberSequence(name=NUMBER_SEQUENCE, last_value=number))
        else:
            sequence.last_value = number
        return number

    # ---------- WRITE ----------
    def create(self, data: PmMachineCreate, status: Optional[PmStatus] = None) -> PmMachine:
        """
        Insert a new machine with the next number.

        ``status`` overrides the status carried by ``data``; the HTTP create path
        passes Outstanding, the importer keeps whatever the row said.
        Uniqueness of id_msn is enforced by the table, not by a lookup beforehand.
        """
        now = datetime.utcnow()
        machine = PmMachine(
            no=self._take_number(),
            id_msn=data.id_msn,
            alamat=data.alamat,
            pengelola=data.pengelola,
            teknisi=data.teknisi,
            periode_pm=data.periode_pm,
            tgl_selesai_pm=data.tgl_selesai_pm,
            status=PmStatus(status or data.status).value,
            created_at=now,
            updated_at=now,
        )
        self.db.add(machine)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if self.find(data.id_msn) is not None:
                raise DuplicateMachineError(data.id_msn)
            # e.g. two first-ever creates racing to insert the sequence row
            logger.error("pm_machine_create_failed", id_msn=data.id_msn, error=str(e))
            raise StoreError()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("pm_machine_create_failed", id_msn=data.id_msn, error=str(e))
            raise StoreError()
        self.db.refresh(machine)
        logger.info("pm_machine_created", id_msn=machine.id_msn, no=machine.no)
        return machine

    def update(self, id_msn: str, changes: Dict[str, Any]) -> PmMachine:
        """Merge ``changes`` onto the row and refresh updated_at"""
        machine = self.get_by_key(id_msn)
        applied = {}
        for field, value in changes.items():
            if field not in MUTABLE_FIELDS:
                continue
            if isinstance(value, PmStatus):
                value = value.value
            setattr(machine, field, value)
            applied[field] = value
        machine.updated_at = datetime.utcnow()
        self._commit("pm_machine_update_failed", id_msn)
        self.db.refresh(machine)
        logger.info("pm_machine_updated", id_msn=id_msn, fields=sorted(applied))
        return machine

    def delete(self, id_msn: str) -> None:
        machine = self.get_by_key(id_msn)
        number = machine.no
        self.db.delete(machine)
        self._commit("pm_machine_delete_failed", id_msn)
        logger.info("pm_machine_deleted", id_msn=id_msn, no=number)

    def _commit(self, event: str, id_msn: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(event, id_msn=id_msn, error=str(e))
            raise StoreError()
