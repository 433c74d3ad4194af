"""
Spreadsheet import: every row becomes a create or an update keyed by id_msn.

Rows are processed in file order and each one is settled on its own. A bad row
is reported as a ``RowOutcome`` carrying the reason and the import moves on;
nothing a row does can undo or block the rows around it.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

import structlog
from pydantic import ValidationError

from ..errors import PmTrackerError
from ..schemas.pm import PmMachineCreate
from .machines import PmMachineStore
from .spreadsheet import COLUMNS, cell, guess_file_format, read_rows

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RowOutcome:
    row: int  # 1-based, header not counted
    id_msn: Optional[str] = None
    created: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def describe(self) -> str:
        return f"Row {self.row}: {self.error}"


@dataclass
class ImportSummary:
    outcomes: List[RowOutcome] = field(default_factory=list)

    @property
    def imported(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def created(self) -> int:
        return sum(1 for o in self.outcomes if o.ok and o.created)

    @property
    def updated(self) -> int:
        return sum(1 for o in self.outcomes if o.ok and not o.created)

    @property
    def errors(self) -> List[str]:
        return [o.describe() for o in self.outcomes if not o.ok]

    @property
    def message(self) -> str:
        return f"Import completed. {self.imported} machines processed."


def format_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        loc = ".".join(str(p) for p in item.get("loc", ())) or "row"
        msg = item.get("msg", "invalid value")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        parts.append(f"{loc}: {msg}")
    return "; ".join(parts) or "Invalid data"


class PmImporter:
    def __init__(self, store: PmMachineStore):
        self.store = store

    def import_file(self, content: bytes, file_name: Optional[str], content_type: Optional[str] = None) -> ImportSummary:
        file_format = guess_file_format(file_name, content_type)
        return self.import_rows(read_rows(content, file_format))

    def import_rows(self, rows: Iterable[Mapping[str, Any]]) -> ImportSummary:
        summary = ImportSummary()
        for index, row in enumerate(rows, start=1):
            outcome = self._apply_row(index, row)
            if not outcome.ok:
                logger.warning("pm_import_row_rejected", row=index, id_msn=outcome.id_msn, error=outcome.error)
            summary.outcomes.append(outcome)
        logger.info(
            "pm_import_finished",
            rows=len(summary.outcomes),
            created=summary.created,
            updated=summary.updated,
            failed=len(summary.outcomes) - summary.imported,
        )
        return summary

    @staticmethod
    def normalize_row(row: Mapping[str, Any]) -> Dict[str, Optional[str]]:
        """Pick each field from its header, keyed by the API field name"""
        return {camel: cell(row, label, camel) for _, label, camel in COLUMNS}

    def _apply_row(self, index: int, row: Mapping[str, Any]) -> RowOutcome:
        fields = self.normalize_row(row)
        try:
            data = PmMachineCreate.model_validate(fields)
        except ValidationError as e:
            return RowOutcome(row=index, id_msn=fields.get("idMsn"), error=format_validation_error(e))

        try:
            if self.store.find(data.id_msn) is not None:
                self.store.update(data.id_msn, data.model_dump(exclude={"id_msn"}))
                return RowOutcome(row=index, id_msn=data.id_msn, created=False)
            self.store.create(data)
            return RowOutcome(row=index, id_msn=data.id_msn, created=True)
        except PmTrackerError as e:
            return RowOutcome(row=index, id_msn=data.id_msn, error=e.message)
