"""Prescriptions: create, full replace, status change, delete, plus form helpers.

Handlers only translate HTTP to the prescription service and engine.
"""
import math
from datetime import date, datetime
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clinicrx.api.deps import get_actor, get_db, get_now, get_today
from clinicrx.core.config import settings
from clinicrx.core.exceptions import BusinessError, ClinicError
from clinicrx.schemas.prescription import (
    DURATION_OPTIONS,
    FREQUENCY_OPTIONS,
    EndDatePreview,
    Pagination,
    PrescriptionDetail,
    PrescriptionForm,
    PrescriptionPage,
    StatusChange,
)
from clinicrx.services import allergy_service, patient_service, prescription_engine, prescription_service

router = APIRouter()


def _detail(db: Session, rx, today: date) -> PrescriptionDetail:
    record = prescription_service.to_record(rx)
    allergies = allergy_service.known_allergies(patient_service.patient_lookup(db), rx.patient_id)
    return PrescriptionDetail(
        **record.model_dump(exclude={"total_medications"}),
        is_expired=prescription_engine.is_expired(record, today),
        total_days=prescription_engine.total_days(record),
        has_refills_available=prescription_engine.has_refills_available(record),
        can_be_renewed=prescription_engine.can_be_renewed(record, today),
        allergies=allergies,
        allergy_banner=allergy_service.allergy_banner(allergies),
    )


@router.get("", response_model=PrescriptionPage)
def list_prescriptions(
    status: Optional[str] = Query(None),
    patient_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    sort_by: str = Query("created_at"),
    sort_order: str = Query("desc"),
    db: Session = Depends(get_db),
):
    try:
        rows, total = prescription_service.list_prescriptions(
            db, status=status, patient_id=patient_id, search=search,
            page=page, limit=limit, sort_by=sort_by, sort_order=sort_order,
        )
    except ClinicError as e:
        raise BusinessError.from_domain(e)

    total_pages = math.ceil(total / limit) if total else 0
    return PrescriptionPage(
        data=[prescription_service.to_record(rx) for rx in rows],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        ),
    )


@router.get("/stats", response_model=dict)
def get_prescription_stats(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Counts per status, monthly trend and most prescribed medications."""
    return prescription_service.prescription_stats(db, now, start_date, end_date)


@router.get("/new", response_model=dict)
def new_prescription_form(today: date = Depends(get_today)):
    """Blank form defaults and the option lists the form offers."""
    form = prescription_engine.new_prescription_form(lambda: today)
    return {
        "form": form.model_dump(mode="json"),
        "frequency_options": FREQUENCY_OPTIONS,
        "duration_options": DURATION_OPTIONS,
    }


@router.post("/validate", response_model=Dict[str, str])
def validate_prescription(form: PrescriptionForm):
    """Field errors for a candidate; an empty object means it can be submitted."""
    return prescription_engine.validate_prescription(form)


@router.post("/derive-end-date", response_model=PrescriptionForm)
def derive_end_date(form: PrescriptionForm):
    """Re-sync end_date after the start date or first medication changed."""
    return prescription_engine.sync_end_date(form)


@router.post("/end-date-preview", response_model=EndDatePreview)
def end_date_preview(preview: EndDatePreview):
    return preview.model_copy(update={
        "end_date": prescription_engine.calculate_end_date(preview.start_date, preview.duration),
    })


@router.post("", response_model=PrescriptionDetail, status_code=201)
def create_prescription(
    form: PrescriptionForm,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    actor: Optional[str] = Depends(get_actor),
):
    try:
        rx = prescription_service.create_prescription(db, form, actor=actor)
    except ClinicError as e:
        raise BusinessError.from_domain(e)
    return _detail(db, rx, today)


@router.get("/{prescription_id}", response_model=PrescriptionDetail)
def get_prescription(prescription_id: int, db: Session = Depends(get_db), today: date = Depends(get_today)):
    try:
        rx = prescription_service.get_prescription(db, prescription_id)
    except ClinicError as e:
        raise BusinessError.from_domain(e)
    return _detail(db, rx, today)


@router.put("/{prescription_id}", response_model=PrescriptionDetail)
def replace_prescription(
    prescription_id: int,
    form: PrescriptionForm,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    actor: Optional[str] = Depends(get_actor),
):
    """The edit form re-submits the whole prescription."""
    try:
        rx = prescription_service.replace_prescription(db, prescription_id, form, actor=actor)
    except ClinicError as e:
        raise BusinessError.from_domain(e)
    return _detail(db, rx, today)


@router.patch("/{prescription_id}/status", response_model=PrescriptionDetail)
def change_status(
    prescription_id: int,
    change: StatusChange,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    actor: Optional[str] = Depends(get_actor),
):
    try:
        rx = prescription_service.change_status(db, prescription_id, change.status, actor=actor)
    except ClinicError as e:
        raise BusinessError.from_domain(e)
    return _detail(db, rx, today)


@router.delete("/{prescription_id}", response_model=dict)
def delete_prescription(
    prescription_id: int,
    db: Session = Depends(get_db),
    actor: Optional[str] = Depends(get_actor),
):
    try:
        prescription_service.delete_prescription(db, prescription_id, actor=actor)
    except ClinicError as e:
        raise BusinessError.from_domain(e)
    return {"message": "Prescription deleted successfully", "id": prescription_id}
