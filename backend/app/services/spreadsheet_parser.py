"""
Procedure-list import.
Reads the scheduling system's CSV / XLS / XLSX export into procedure rows.
"""
import io
import logging
import zipfile
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, List, Tuple

import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException
from xlrd import XLRDError

from ..core.config import settings
from .injection_ledger import is_ref_id

logger = logging.getLogger(__name__)

# Fixed column positions in the export
COL_REF_ID = 0
COL_PATIENT_NAME = 2
COL_STAFF_NAME = 5
COL_PROCEDURE_DATE = 7
COL_TREATMENT_TYPE = 10
COL_STATUS = 11
ROW_WIDTH = 12

SUPPORTED_EXTENSIONS = ("csv", "xls", "xlsx")


@dataclass
class ProcedureRow:
    ref_id: str
    patient_name: str
    staff_name: str
    procedure_date: str
    treatment_type: str


def _cell_text(value) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return value.strftime("%d/%m/%Y")
    return str(value).strip()


def _date_part(value) -> str:
    text = _cell_text(value)
    return text.split(" ")[0] if text else ""


def _read_rows(extension: str, content: bytes) -> List[list]:
    if extension == "csv":
        try:
            frame = pd.read_csv(
                io.BytesIO(content),
                header=0,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                encoding_errors="replace",
            )
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
            raise ValueError("CSV parsing error") from exc
    else:
        try:
            frame = pd.read_excel(io.BytesIO(content), sheet_name=0, header=None, dtype=object)
        # Damaged workbooks surface as zip, xlrd or openpyxl errors rather than ValueError
        except (ValueError, OSError, KeyError, zipfile.BadZipFile, XLRDError, InvalidFileException) as exc:
            raise ValueError("Spreadsheet parsing error") from exc
    return frame.values.tolist()


def parse_upload(filename: str, content: bytes) -> List[ProcedureRow]:
    """
    Parse one exported file. Cancelled appointments and rows without a numeric
    reference id (headers, totals, blank lines) are left out.
    """
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if extension not in SUPPORTED_EXTENSIONS:
        raise ValueError("Unsupported file format")

    rows: List[ProcedureRow] = []
    skipped = 0
    for raw in _read_rows(extension, content):
        cells = list(raw) + [None] * max(0, ROW_WIDTH - len(raw))
        if _cell_text(cells[COL_STATUS]) == settings.CANCELLED_STATUS:
            skipped += 1
            continue
        ref_id = _cell_text(cells[COL_REF_ID])
        if not is_ref_id(ref_id):
            skipped += 1
            continue
        rows.append(
            ProcedureRow(
                ref_id=ref_id,
                patient_name=_cell_text(cells[COL_PATIENT_NAME]),
                staff_name=_cell_text(cells[COL_STAFF_NAME]),
                procedure_date=_date_part(cells[COL_PROCEDURE_DATE]),
                treatment_type=_cell_text(cells[COL_TREATMENT_TYPE]),
            )
        )

    logger.info("Parsed %s: %d procedure rows, %d skipped", filename, len(rows), skipped)
    return rows


def parse_uploads(files: Iterable[Tuple[str, bytes]]) -> List[ProcedureRow]:
    """Parse several exports and merge them, ordered by patient name."""
    rows: List[ProcedureRow] = []
    for filename, content in files:
        rows.extend(parse_upload(filename, content))
    rows.sort(key=lambda row: row.patient_name)
    return rows
