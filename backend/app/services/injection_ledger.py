"""
Injection ledger.

Every mutation of a patient's remaining doses happens here, inside a single
transaction together with the ledger rows that justify it. Callers pass the
request-scoped session in; each public mutating function commits or rolls
back before returning.
"""
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.base import generate_uuid
from ..models.injection import Injection, InjectionStatus
from ..models.patient import Patient
from .eye_scheduler import STATUS_ERROR, Eye, Schedule, eye_scheduler

logger = logging.getLogger(__name__)

# ASCII digits only; str.isdigit also accepts superscripts and other scripts
REF_ID_PATTERN = re.compile(r"[0-9]+")

DUPLICATE_ENTRY_ERROR = "Listed more than once in this batch"


@dataclass
class RecordingOutcome:
    ref_id: str
    status: str                   # presentation status before recording
    next_eye: Optional[Eye]
    remaining_od: Optional[int]   # counts after recording
    remaining_os: Optional[int]
    recorded: bool = False
    injection_id: Optional[str] = None
    error: Optional[str] = None


def is_ref_id(value: str) -> bool:
    return bool(value) and REF_ID_PATTERN.fullmatch(value) is not None


def normalize_ref_id(value) -> str:
    """Canonical chart number: trimmed digits without leading zeros."""
    ref_id = str(value).strip()
    if not is_ref_id(ref_id):
        raise ValueError("Reference id must be a non-empty number")
    return ref_id.lstrip("0") or "0"


# ── Queries ──────────────────────────────────────────────────────────────────

def get_patient(db: Session, ref_id: str) -> Optional[Patient]:
    return db.query(Patient).filter(Patient.ref_id == ref_id).first()


def get_patient_or_raise(db: Session, ref_id: str) -> Patient:
    patient = get_patient(db, ref_id)
    if not patient:
        raise LookupError("Patient not found")
    return patient


def list_injections(db: Session, ref_id: str) -> List[Injection]:
    patient = get_patient_or_raise(db, ref_id)
    return (
        db.query(Injection)
        .filter(Injection.patient_id == patient.id)
        .order_by(Injection.date.desc())
        .all()
    )


def last_done_injection(db: Session, patient_id: str) -> Optional[Injection]:
    return (
        db.query(Injection)
        .filter(Injection.patient_id == patient_id, Injection.done == True)  # noqa: E712
        .order_by(Injection.date.desc())
        .first()
    )


def schedule_for_patient(db: Session, patient: Optional[Patient]) -> Schedule:
    if patient is None:
        return eye_scheduler.schedule(patient_exists=False)
    last_done = last_done_injection(db, patient.id)
    return eye_scheduler.schedule(
        patient_exists=True,
        remaining_od=patient.remaining_od,
        remaining_os=patient.remaining_os,
        start_od=patient.start_od,
        last_done_eye=Eye(last_done.eye) if last_done and last_done.eye else None,
    )


def schedule_for(db: Session, ref_id: str) -> Schedule:
    """Read-only next eye and status for a chart number."""
    return schedule_for_patient(db, get_patient(db, ref_id))


# ── Building blocks (no commit) ──────────────────────────────────────────────

def close_pending_injections(db: Session, patient_id: str) -> int:
    """Mark every still-pending row of a patient as not done."""
    return (
        db.query(Injection)
        .filter(
            Injection.patient_id == patient_id,
            Injection.done == False,  # noqa: E712
            Injection.not_done == False,  # noqa: E712
        )
        .update({Injection.not_done: True}, synchronize_session="fetch")
    )


def adjust_patient_dose(db: Session, patient: Patient, eye: Eye, delta: int) -> None:
    """
    Apply a +/-1 change to one eye's remaining count.

    Decrements are conditional on the count being positive so a concurrent
    writer can never take it below zero.
    """
    if delta not in (1, -1):
        raise ValueError("Dose adjustments are limited to +1 or -1")
    column = Patient.remaining_od if Eye(eye) is Eye.OD else Patient.remaining_os

    query = db.query(Patient).filter(Patient.id == patient.id)
    if delta < 0:
        query = query.filter(column > 0)
    updated = query.update({column: column + delta}, synchronize_session="fetch")
    if updated != 1:
        raise ValueError(f"No remaining doses to debit for {Eye(eye).value}")


def _new_injection(patient: Patient, eye: Eye, treatment_type: str) -> Injection:
    return Injection(
        id=generate_uuid(),
        patient_id=patient.id,
        date=datetime.utcnow(),
        od=1 if eye is Eye.OD else 0,
        os=1 if eye is Eye.OS else 0,
        done=True,
        not_done=False,
        treatment_type=treatment_type or "",
    )


# ── Transactions ─────────────────────────────────────────────────────────────

def record_injection(db: Session, ref_id: str, treatment_type: str) -> RecordingOutcome:
    """
    Record the next dose for one patient as a single transaction:
    close pending rows, decrement the scheduled eye and append a done row.
    Raises on failure after rolling everything back.
    """
    patient = get_patient(db, ref_id)
    if patient is None:
        logger.info("Patient %s has no record; nothing recorded", ref_id)
        return RecordingOutcome(
            ref_id=ref_id,
            status=eye_scheduler.status_label(patient_exists=False),
            next_eye=None,
            remaining_od=None,
            remaining_os=None,
        )

    try:
        schedule = schedule_for_patient(db, patient)
        closed = close_pending_injections(db, patient.id)
        injection = None
        if schedule.next_eye is not None:
            adjust_patient_dose(db, patient, schedule.next_eye, -1)
            injection = _new_injection(patient, schedule.next_eye, treatment_type)
            db.add(injection)
        db.commit()
    except (SQLAlchemyError, ValueError):
        db.rollback()
        logger.exception("Injection recording rolled back for patient %s", ref_id)
        raise

    db.refresh(patient)
    if injection is not None:
        logger.info(
            "Recorded %s injection for patient %s (closed %d pending, OD=%d OS=%d)",
            schedule.next_eye.value, ref_id, closed, patient.remaining_od, patient.remaining_os,
        )
    else:
        logger.info("Patient %s skipped (%s); closed %d pending", ref_id, schedule.status, closed)

    return RecordingOutcome(
        ref_id=ref_id,
        status=schedule.status,
        next_eye=schedule.next_eye,
        remaining_od=patient.remaining_od,
        remaining_os=patient.remaining_os,
        recorded=injection is not None,
        injection_id=injection.id if injection is not None else None,
    )


def record_batch(db: Session, ref_ids: Iterable[str], treatment_type: str) -> List[RecordingOutcome]:
    """
    Record one dose per patient; each patient is its own all-or-nothing transaction.

    A chart number listed more than once is dosed for its first occurrence
    only; the repeats come back unrecorded with ``error`` set.
    """
    outcomes: List[RecordingOutcome] = []
    first_seen = {}
    for ref_id in ref_ids:
        if ref_id in first_seen:
            first = first_seen[ref_id]
            logger.warning("Patient %s listed more than once in the batch; repeat skipped", ref_id)
            outcomes.append(
                RecordingOutcome(
                    ref_id=ref_id,
                    status=first.status,
                    next_eye=None,
                    remaining_od=first.remaining_od,
                    remaining_os=first.remaining_os,
                    error=DUPLICATE_ENTRY_ERROR,
                )
            )
            continue

        try:
            outcome = record_injection(db, ref_id, treatment_type)
        except (SQLAlchemyError, ValueError) as exc:
            outcome = _failed_outcome(db, ref_id, exc)
        first_seen[ref_id] = outcome
        outcomes.append(outcome)
    return outcomes


def _failed_outcome(db: Session, ref_id: str, exc: Exception) -> RecordingOutcome:
    outcome = RecordingOutcome(
        ref_id=ref_id,
        status=STATUS_ERROR,
        next_eye=None,
        remaining_od=None,
        remaining_os=None,
        error=str(exc) or exc.__class__.__name__,
    )
    # Counts are informational; the session may be unusable after a lost connection
    try:
        patient = get_patient(db, ref_id)
        if patient is not None:
            outcome.status = schedule_for_patient(db, patient).status
            outcome.remaining_od = patient.remaining_od
            outcome.remaining_os = patient.remaining_os
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Could not reload patient %s after a failed recording", ref_id)
    return outcome


def upsert_patient(
    db: Session,
    ref_id: str,
    name: str,
    indication: str,
    remaining_od: int,
    remaining_os: int,
    start_od: bool,
    medication: Optional[str] = None,
    swalis_classification: Optional[str] = None,
    observations: Optional[str] = None,
) -> Patient:
    """Create or overwrite a patient record; its pending injections are closed first."""
    if remaining_od < 0 or remaining_os < 0:
        raise ValueError("Remaining doses cannot be negative")

    try:
        patient = get_patient(db, ref_id)
        if patient is None:
            patient = Patient(id=generate_uuid(), ref_id=ref_id)
            db.add(patient)
            created = True
        else:
            close_pending_injections(db, patient.id)
            created = False

        patient.name = name
        patient.indication = indication
        patient.medication = medication
        patient.swalis_classification = swalis_classification
        patient.observations = observations
        patient.remaining_od = remaining_od
        patient.remaining_os = remaining_os
        patient.start_od = start_od
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Patient upsert rolled back for %s", ref_id)
        raise

    db.refresh(patient)
    logger.info("%s patient %s (OD=%d OS=%d)", "Created" if created else "Updated", ref_id, remaining_od, remaining_os)
    return patient


def update_patient(
    db: Session,
    ref_id: str,
    name: Optional[str] = None,
    remaining_od: Optional[int] = None,
    remaining_os: Optional[int] = None,
) -> Patient:
    """Operator edit of the display name and remaining counts."""
    patient = get_patient_or_raise(db, ref_id)
    if (remaining_od is not None and remaining_od < 0) or (remaining_os is not None and remaining_os < 0):
        raise ValueError("Remaining doses cannot be negative")

    if name is not None:
        patient.name = name
    if remaining_od is not None:
        patient.remaining_od = remaining_od
    if remaining_os is not None:
        patient.remaining_os = remaining_os
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Patient edit rolled back for %s", ref_id)
        raise
    db.refresh(patient)
    return patient


def update_injection_status(
    db: Session,
    injection_id: str,
    status: str,
    treatment_type: Optional[str] = None,
    adjust_dose: bool = False,
) -> Injection:
    """
    Operator correction of an injection's status and/or treatment type.

    With ``adjust_dose`` a changed status also moves the eye's remaining count:
    newly done debits one dose, done -> not done credits it back.
    """
    if status == InjectionStatus.PENDING:
        raise ValueError("Pending status cannot be saved")
    if status not in InjectionStatus.ALL:
        raise ValueError(f"Invalid status. Choose from: {[InjectionStatus.DONE, InjectionStatus.NOT_DONE]}")

    injection = db.query(Injection).filter(Injection.id == injection_id).first()
    if not injection:
        raise LookupError("Injection not found")

    previous = injection.status
    new_type = treatment_type if treatment_type is not None else injection.treatment_type
    if previous == status and new_type == injection.treatment_type:
        raise ValueError("No changes were made")

    try:
        injection.status = status
        injection.treatment_type = new_type
        if adjust_dose and previous != status and injection.eye:
            if status == InjectionStatus.DONE:
                adjust_patient_dose(db, injection.patient, Eye(injection.eye), -1)
            elif previous == InjectionStatus.DONE:
                adjust_patient_dose(db, injection.patient, Eye(injection.eye), 1)
        db.commit()
    except (SQLAlchemyError, ValueError):
        db.rollback()
        logger.exception("Injection %s correction rolled back", injection_id)
        raise

    db.refresh(injection)
    logger.info(
        "Injection %s changed %s -> %s (dose adjusted: %s)",
        injection_id, previous, status, adjust_dose and previous != status,
    )
    return injection
