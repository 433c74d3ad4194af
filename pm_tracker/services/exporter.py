from io import BytesIO
from typing import Iterable, List, Dict, Any

import pandas as pd

from ..models.models import PmMachine
from .spreadsheet import EXPORT_HEADERS, XLSX_MIME_TYPE


class PmExporter:
    """Writes machines to an .xlsx workbook with a single sheet."""

    mime_type = XLSX_MIME_TYPE

    def __init__(self, sheet_name: str = "PM Data"):
        self.sheet_name = sheet_name

    @staticmethod
    def to_rows(machines: Iterable[PmMachine]) -> List[Dict[str, Any]]:
        return [
            {
                "No": machine.no,
                "Id Msn": machine.id_msn,
                "Alamat": machine.alamat,
                "Pengelola": machine.pengelola,
                "Periode PM": machine.periode_pm or "",
                "Tgl Selesai PM": machine.tgl_selesai_pm or "",
                "Status": machine.status,
                "Teknisi": machine.teknisi,
            }
            for machine in machines
        ]

    def export(self, machines: Iterable[PmMachine]) -> bytes:
        data_frame = pd.DataFrame.from_records(self.to_rows(machines), columns=EXPORT_HEADERS)
        buffer = BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            data_frame.to_excel(excel_writer=writer, sheet_name=self.sheet_name, index=False)
        return buffer.getvalue()
