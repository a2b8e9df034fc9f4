"""Procedure reports: spreadsheet preview and batch processing."""
from fastapi import APIRouter, Depends, HTTPException, Response, UploadFile, File
from sqlalchemy.orm import Session
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator
import logging

from ..core.config import settings
from ..models.base import get_db
from ..services import injection_ledger
from ..services.injection_ledger import normalize_ref_id
from ..services.spreadsheet_parser import parse_uploads
from ..services.report_generator import ProcedureEntry, procedure_report_generator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["reports"])


class PreviewRow(BaseModel):
    ref_id: str
    patient_name: str
    staff_name: str
    procedure_date: str
    treatment_type: str
    next_eye: Optional[str]
    status: str
    remaining_od: Optional[int]
    remaining_os: Optional[int]


class PreviewResponse(BaseModel):
    staff_name: str
    treatment_type: str
    rows: List[PreviewRow]


class ProcessEntry(BaseModel):
    ref_id: str
    patient_name: str = ""
    procedure_date: str = ""

    @field_validator("ref_id")
    @classmethod
    def _ref_id_is_number(cls, value: str) -> str:
        return normalize_ref_id(value)


class ProcessRequest(BaseModel):
    staff_name: str = ""
    treatment_type: str = settings.DEFAULT_TREATMENT_TYPE
    entries: List[ProcessEntry] = Field(..., min_length=1)
    # False renders the report without touching the ledger
    record: bool = True


@router.post("/preview", response_model=PreviewResponse)
async def preview_report(
    files: List[UploadFile] = File(...),
    db: Session = Depends(get_db),
):
    """Parse uploaded exports and show each patient's schedule before processing."""
    uploads = []
    for upload in files:
        uploads.append((upload.filename or "", await upload.read()))
    try:
        rows = parse_uploads(uploads)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    preview = []
    for row in rows:
        patient = injection_ledger.get_patient(db, normalize_ref_id(row.ref_id))
        schedule = injection_ledger.schedule_for_patient(db, patient)
        preview.append(
            PreviewRow(
                ref_id=row.ref_id,
                patient_name=row.patient_name,
                staff_name=row.staff_name,
                procedure_date=row.procedure_date,
                treatment_type=row.treatment_type,
                next_eye=schedule.next_eye.value if schedule.next_eye else None,
                status=schedule.status,
                remaining_od=patient.remaining_od if patient else None,
                remaining_os=patient.remaining_os if patient else None,
            )
        )

    first = rows[0] if rows else None
    return PreviewResponse(
        staff_name=first.staff_name if first else "",
        treatment_type=(first.treatment_type if first else "") or settings.DEFAULT_TREATMENT_TYPE,
        rows=preview,
    )


@router.post("/process")
def process_report(req: ProcessRequest, db: Session = Depends(get_db)):
    """
    Record the scheduled injection for every listed patient and return the
    procedure report PDF. Patients are committed one at a time; a failure
    leaves that patient untouched and is reported in the response headers.
    """
    # Overlapping exports list the same patient twice; one dose and one set of forms each
    entries, seen = [], set()
    for entry in req.entries:
        if entry.ref_id not in seen:
            seen.add(entry.ref_id)
            entries.append(entry)
    if len(entries) < len(req.entries):
        logger.info("Dropped %d repeated patient entries", len(req.entries) - len(entries))

    if req.record:
        outcomes = injection_ledger.record_batch(db, [e.ref_id for e in entries], req.treatment_type)
    else:
        outcomes = []
        for entry in entries:
            patient = injection_ledger.get_patient(db, entry.ref_id)
            schedule = injection_ledger.schedule_for_patient(db, patient)
            outcomes.append(
                injection_ledger.RecordingOutcome(
                    ref_id=entry.ref_id,
                    status=schedule.status,
                    next_eye=schedule.next_eye,
                    remaining_od=patient.remaining_od if patient else None,
                    remaining_os=patient.remaining_os if patient else None,
                )
            )

    report_entries = [
        ProcedureEntry(
            ref_id=entry.ref_id,
            patient_name=entry.patient_name,
            procedure_date=entry.procedure_date,
            treatment_type=req.treatment_type,
            status=outcome.status,
            remaining_od=outcome.remaining_od,
            remaining_os=outcome.remaining_os,
        )
        for entry, outcome in zip(entries, outcomes)
    ]
    pdf = procedure_report_generator.generate(report_entries, staff_name=req.staff_name)

    failed = [o.ref_id for o in outcomes if o.error]
    if failed:
        logger.warning("Injection recording failed for %d patient(s): %s", len(failed), ", ".join(failed))

    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={
            "Content-Disposition": 'inline; filename="relatorio_injecoes.pdf"',
            "X-Recorded-Count": str(sum(1 for o in outcomes if o.recorded)),
            "X-Failed-Ref-Ids": ",".join(failed),
        },
    )
