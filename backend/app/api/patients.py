from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import List, Optional, Literal
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from datetime import datetime
import logging
from ..models.base import get_db
from ..services import injection_ledger
from ..services.injection_ledger import normalize_ref_id
from ..services.report_generator import AdmissionData, patient_report_generator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/patients", tags=["patients"])


class Indication:
    RD_EMD = "RD/EMD"   # diabetic macular oedema
    RD_HV = "RD/HV"     # diabetic vitreous haemorrhage
    DMRI = "DMRI"       # age-related macular degeneration
    OV = "OV"           # retinal vein occlusion
    MNVSR = "MNVSR"     # subretinal neovascular membrane
    OTHER = "Outros"

    ALL = [RD_EMD, RD_HV, DMRI, OV, MNVSR, OTHER]


class Medication:
    LUCENTIS = "Lucentis"
    AVASTIN = "Avastin"
    EYLIA = "Eylia"
    OTHER = "Outro"

    ALL = [LUCENTIS, AVASTIN, EYLIA, OTHER]


class SwalisClass:
    A1 = "A1"
    A2 = "A2"
    B = "B"
    C = "C"
    D = "D"
    OTHER = "Outros"

    ALL = [A1, A2, B, C, D, OTHER]


class PatientCreate(BaseModel):
    ref_id: str
    name: str = Field(..., min_length=1)
    indication: str = Indication.RD_EMD
    indication_other: Optional[str] = None
    medication: str = Medication.EYLIA
    medication_other: Optional[str] = None
    swalis_classification: str = SwalisClass.A2
    swalis_other: Optional[str] = None
    observations: Optional[str] = None
    remaining_od: int = Field(0, ge=0)
    remaining_os: int = Field(0, ge=0)
    start_eye: Literal["OD", "OS"] = "OD"

    @field_validator("ref_id")
    @classmethod
    def _ref_id_is_number(cls, value: str) -> str:
        return normalize_ref_id(value)

    @field_validator("name")
    @classmethod
    def _upper_name(cls, value: str) -> str:
        value = value.strip().upper()
        if not value:
            raise ValueError("Patient name is required")
        return value

    @model_validator(mode="after")
    def _other_needs_text(self):
        if self.indication not in Indication.ALL:
            raise ValueError(f"Invalid indication. Choose from: {Indication.ALL}")
        if self.medication not in Medication.ALL:
            raise ValueError(f"Invalid medication. Choose from: {Medication.ALL}")
        if self.swalis_classification not in SwalisClass.ALL:
            raise ValueError(f"Invalid Swalis classification. Choose from: {SwalisClass.ALL}")
        if self.indication == Indication.OTHER and not self.indication_other:
            raise ValueError("Please specify the indication")
        if self.medication == Medication.OTHER and not self.medication_other:
            raise ValueError("Please specify the medication")
        if self.swalis_classification == SwalisClass.OTHER and not self.swalis_other:
            raise ValueError("Please specify the Swalis classification")
        return self

    def resolved_indication(self) -> str:
        value = self.indication_other if self.indication == Indication.OTHER else self.indication
        return value.strip().upper()

    def resolved_medication(self) -> str:
        return self.medication_other if self.medication == Medication.OTHER else self.medication

    def resolved_swalis(self) -> str:
        return self.swalis_other if self.swalis_classification == SwalisClass.OTHER else self.swalis_classification


class PatientUpdate(BaseModel):
    name: Optional[str] = None
    remaining_od: Optional[int] = Field(None, ge=0)
    remaining_os: Optional[int] = Field(None, ge=0)

    @field_validator("name")
    @classmethod
    def _upper_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip().upper()
        if not value:
            raise ValueError("Patient name is required")
        return value


class PatientNameResponse(BaseModel):
    name: str


class PatientResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    ref_id: str
    name: str
    indication: str
    medication: Optional[str]
    swalis_classification: Optional[str]
    observations: Optional[str]
    remaining_od: int
    remaining_os: int
    start_eye: str


class PatientDetailResponse(PatientResponse):
    next_eye: Optional[str]
    status: str


class InjectionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    date: datetime
    eye: Optional[str]
    status: str
    treatment_type: str


def _ref_id_or_400(ref_id: str) -> str:
    try:
        return normalize_ref_id(ref_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid refId")


@router.post("/", response_model=PatientResponse, status_code=status.HTTP_201_CREATED)
def create_or_update_patient(patient_in: PatientCreate, db: Session = Depends(get_db)):
    """Register a patient; re-registering a chart number overwrites the previous record."""
    try:
        return injection_ledger.upsert_patient(
            db,
            ref_id=patient_in.ref_id,
            name=patient_in.name,
            indication=patient_in.resolved_indication(),
            medication=patient_in.resolved_medication(),
            swalis_classification=patient_in.resolved_swalis(),
            observations=patient_in.observations,
            remaining_od=patient_in.remaining_od,
            remaining_os=patient_in.remaining_os,
            start_od=patient_in.start_eye == "OD",
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SQLAlchemyError:
        raise HTTPException(status_code=500, detail="Failed to save the patient")


@router.get("/{ref_id}", response_model=PatientNameResponse)
def get_patient_name(ref_id: str, db: Session = Depends(get_db)):
    """Lookup used by the procedure forms: chart number to patient name."""
    patient = injection_ledger.get_patient(db, _ref_id_or_400(ref_id))
    if not patient:
        raise HTTPException(status_code=404, detail="Patient not found")
    return PatientNameResponse(name=patient.name)


@router.get("/{ref_id}/details", response_model=PatientDetailResponse)
def get_patient_details(ref_id: str, db: Session = Depends(get_db)):
    patient = injection_ledger.get_patient(db, _ref_id_or_400(ref_id))
    if not patient:
        raise HTTPException(status_code=404, detail="Patient not found")
    schedule = injection_ledger.schedule_for_patient(db, patient)
    return PatientDetailResponse(
        **PatientResponse.model_validate(patient).model_dump(),
        next_eye=schedule.next_eye.value if schedule.next_eye else None,
        status=schedule.status,
    )


@router.patch("/{ref_id}", response_model=PatientResponse)
def update_patient(ref_id: str, patient_in: PatientUpdate, db: Session = Depends(get_db)):
    """Operator edit of name and remaining doses."""
    try:
        return injection_ledger.update_patient(
            db,
            _ref_id_or_400(ref_id),
            name=patient_in.name,
            remaining_od=patient_in.remaining_od,
            remaining_os=patient_in.remaining_os,
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SQLAlchemyError:
        raise HTTPException(status_code=500, detail="Failed to update the patient")


@router.get("/{ref_id}/injections", response_model=List[InjectionResponse])
def get_patient_injections(ref_id: str, db: Session = Depends(get_db)):
    """Injection ledger, newest first."""
    try:
        return injection_ledger.list_injections(db, _ref_id_or_400(ref_id))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{ref_id}/report")
def get_patient_report(ref_id: str, db: Session = Depends(get_db)):
    """Admission form PDF for a registered patient."""
    patient = injection_ledger.get_patient(db, _ref_id_or_400(ref_id))
    if not patient:
        raise HTTPException(status_code=404, detail="Patient not found")
    pdf = patient_report_generator.generate(
        AdmissionData(
            ref_id=patient.ref_id,
            name=patient.name,
            indication=patient.indication,
            medication=patient.medication or "",
            swalis_classification=patient.swalis_classification or "",
            start_eye=patient.start_eye,
            remaining_od=patient.remaining_od,
            remaining_os=patient.remaining_os,
            observations=patient.observations,
        )
    )
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="paciente_{patient.ref_id}.pdf"'},
    )
