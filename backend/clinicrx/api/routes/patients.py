"""Patients: directory lookups and the allergy advisory banner."""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clinicrx.api.deps import get_db, get_today
from clinicrx.core.exceptions import BusinessError, NotFound
from clinicrx.schemas.patient import AllergyAdvisory, PatientCreate, PatientResponse
from clinicrx.services import allergy_service, patient_service

router = APIRouter()


def _response(patient, today: date) -> PatientResponse:
    return PatientResponse.model_validate(patient).model_copy(
        update={"age": patient_service.calculate_age(patient.date_of_birth, today)}
    )


@router.get("", response_model=List[PatientResponse])
def list_patients(
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    return [_response(p, today) for p in patient_service.list_patients(db, search)]


@router.post("", response_model=PatientResponse, status_code=201)
def create_patient(data: PatientCreate, db: Session = Depends(get_db), today: date = Depends(get_today)):
    return _response(patient_service.create_patient(db, data), today)


@router.get("/{patient_id}", response_model=PatientResponse)
def get_patient(patient_id: int, db: Session = Depends(get_db), today: date = Depends(get_today)):
    try:
        patient = patient_service.get_patient(db, patient_id)
    except NotFound as e:
        raise BusinessError.from_domain(e)
    return _response(patient, today)


@router.get("/{patient_id}/allergies", response_model=AllergyAdvisory)
def get_allergy_advisory(patient_id: int, db: Session = Depends(get_db)):
    """Known allergies for the prescription form. Unknown patients show "None recorded"."""
    allergies = allergy_service.known_allergies(patient_service.patient_lookup(db), patient_id)
    return AllergyAdvisory(
        patient_id=patient_id,
        allergies=allergies,
        banner=allergy_service.allergy_banner(allergies),
    )
