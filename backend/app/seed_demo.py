"""
Demo data seeder for the Retina IVI Tracker.

Creates a handful of demo patients covering the common schedule states so the
report flow can be walked through right after a fresh start:

  900001  two doses per eye, starting OD, no history
  900002  one dose left on OS, last injection given in OD
  900003  course finished

This seeder is idempotent; it is safe to call on every startup.
"""
import logging
from datetime import datetime, timedelta

from .models.base import SessionLocal, Base, engine, generate_uuid
from .models.patient import Patient
from .models.injection import Injection

logger = logging.getLogger(__name__)

DEMO_TREATMENT_TYPE = "INJEÇÃO INTRAVÍTREA DE AVASTIN"

DEMO_PATIENTS = [
    {
        "ref_id": "900001",
        "name": "PACIENTE DEMO UM",
        "indication": "RD/EMD",
        "medication": "Avastin",
        "swalis_classification": "A2",
        "remaining_od": 2,
        "remaining_os": 2,
        "start_od": True,
        "history": [],
    },
    {
        "ref_id": "900002",
        "name": "PACIENTE DEMO DOIS",
        "indication": "DMRI",
        "medication": "Eylia",
        "swalis_classification": "B",
        "remaining_od": 0,
        "remaining_os": 1,
        "start_od": True,
        "history": ["OD"],
    },
    {
        "ref_id": "900003",
        "name": "PACIENTE DEMO TRES",
        "indication": "OV",
        "medication": "Lucentis",
        "swalis_classification": "C",
        "remaining_od": 0,
        "remaining_os": 0,
        "start_od": False,
        "history": ["OS", "OD"],
    },
]


def seed_demo_data() -> None:
    """Create the demo patients and their history if they do not already exist."""
    # Ensure tables exist (no-op when already created by main.py)
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        for spec in DEMO_PATIENTS:
            _seed_patient(db, spec)
    finally:
        db.close()


# ── helpers ──────────────────────────────────────────────────────────────────

def _seed_patient(db, spec: dict) -> None:
    if db.query(Patient).filter(Patient.ref_id == spec["ref_id"]).first():
        return

    fields = {k: v for k, v in spec.items() if k != "history"}
    patient = Patient(id=generate_uuid(), **fields)
    db.add(patient)

    started = datetime.utcnow() - timedelta(days=30 * len(spec["history"]))
    for index, eye in enumerate(spec["history"]):
        db.add(
            Injection(
                id=generate_uuid(),
                patient_id=patient.id,
                date=started + timedelta(days=30 * index),
                od=1 if eye == "OD" else 0,
                os=1 if eye == "OS" else 0,
                done=True,
                not_done=False,
                treatment_type=DEMO_TREATMENT_TYPE,
            )
        )
    db.commit()
    logger.info("Seeded demo patient %s (%s)", patient.ref_id, patient.name)
