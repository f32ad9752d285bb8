"""Patient directory: read access for the prescription flow, plus create for seeding."""
from datetime import date
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from clinicrx.core.audit import AuditLog
from clinicrx.core.exceptions import NotFound
from clinicrx.models.patient import Patient
from clinicrx.schemas.patient import PatientCreate


def get_patient(db: Session, patient_id: int) -> Patient:
    """
    Raises:
        NotFound: no patient with this id.
    """
    patient = db.get(Patient, patient_id)
    if patient is None:
        raise NotFound("Patient", patient_id)
    return patient


def patient_lookup(db: Session):
    """Bind the session so the allergy cross-reference can call lookup(id)."""
    return lambda patient_id: get_patient(db, patient_id)


def list_patients(db: Session, search: Optional[str] = None, limit: int = 100) -> List[Patient]:
    q = db.query(Patient)
    if search:
        pattern = f"%{search}%"
        q = q.filter(or_(
            Patient.first_name.ilike(pattern),
            Patient.last_name.ilike(pattern),
            Patient.email.ilike(pattern),
        ))
    return q.order_by(Patient.last_name, Patient.first_name).limit(limit).all()


def create_patient(db: Session, data: PatientCreate) -> Patient:
    patient = Patient(
        first_name=data.first_name.strip(),
        last_name=data.last_name.strip(),
        email=data.email,
        phone=data.phone,
        date_of_birth=data.date_of_birth,
        gender=data.gender,
        allergies=list(data.allergies),
        medications=list(data.medications),
    )
    db.add(patient)
    db.commit()
    db.refresh(patient)
    AuditLog.log_action("create", "patient", patient.id)
    return patient


def calculate_age(date_of_birth: Optional[date], today: date) -> Optional[int]:
    """Whole years, one less until this year's birthday has passed."""
    if date_of_birth is None:
        return None
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age
