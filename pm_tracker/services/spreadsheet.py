"""
Column layout and file handling shared by the importer and the exporter.
"""
import mimetypes
import os
from enum import Enum
from io import BytesIO
from typing import Any, Dict, List, Optional

import pandas as pd

from ..errors import InvalidImportFileError


class FileFormats(str, Enum):
    CSV = "CSV"
    XLSX = "XLSX"
    XLS = "XLS"  # Not supported for export


XLSX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# not every platform mime table knows .xlsx
EXTENSIONS = {".csv": FileFormats.CSV, ".xlsx": FileFormats.XLSX, ".xls": FileFormats.XLS}

# (field, human readable header, camel-case header); export uses the human readable one
COLUMNS = (
    ("id_msn", "Id Msn", "idMsn"),
    ("alamat", "Alamat", "alamat"),
    ("pengelola", "Pengelola", "pengelola"),
    ("periode_pm", "Periode PM", "periodePM"),
    ("tgl_selesai_pm", "Tgl Selesai PM", "tglSelesaiPM"),
    ("status", "Status", "status"),
    ("teknisi", "Teknisi", "teknisi"),
)

EXPORT_HEADERS = ["No"] + [label for _, label, _ in COLUMNS]


def guess_file_format(file_name: Optional[str], content_type: Optional[str] = None) -> FileFormats:
    """
    Returns the file format of an uploaded file, from its name first and its
    declared content type second
    """
    candidates = []
    if file_name:
        extension = os.path.splitext(file_name)[1].lower()
        if extension in EXTENSIONS:
            return EXTENSIONS[extension]
        candidates.append(mimetypes.guess_type(file_name)[0])
    if content_type:
        candidates.append(content_type.split(";")[0].strip().lower())
    for probable_format in candidates:
        if probable_format in ("text/csv", "application/csv"):
            return FileFormats.CSV
        if probable_format == XLSX_MIME_TYPE:
            return FileFormats.XLSX
        if probable_format == "application/vnd.ms-excel":
            return FileFormats.XLS
    raise InvalidImportFileError(
        "Unable to determine file type. Supported file types are XLSX, XLS and CSV"
    )


def read_rows(content: bytes, file_format: FileFormats) -> List[Dict[str, Any]]:
    """
    Reads the first sheet of a spreadsheet into one dict per data row, keyed by
    header. Every cell is read as text and blank cells come back as "".
    Rows with nothing but blank cells are dropped, so row numbers count data
    rows only.
    """
    try:
        if file_format == FileFormats.CSV:
            data = pd.read_csv(BytesIO(content), dtype=str)
        else:
            data = pd.read_excel(BytesIO(content), sheet_name=0, header=0, dtype=str)
    except Exception as error:
        # the readers raise anything from ValueError to xlrd's CompDocError on a damaged file
        raise InvalidImportFileError(f"Unable to read the imported file: {error}") from error
    data.fillna(value="", inplace=True)
    data.columns = [str(column).strip() for column in data.columns]
    if not data.empty:
        data = data[data.apply(lambda column: column.str.strip() != "").any(axis=1)]
    return data.to_dict(orient="records")


def cell(row: Dict[str, Any], label: str, camel: str) -> Optional[str]:
    """
    The value of a field in an imported row. The human readable header wins
    when both headers are present and non-blank.
    """
    for key in (label, camel):
        value = row.get(key)
        if value is None:
            continue
        value = str(value).strip()
        if value:
            return value
    return None
