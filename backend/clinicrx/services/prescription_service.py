"""Prescription persistence. Create, full replacement, status change, hard delete.

Every write runs the prescription engine first; the database only ever
sees records the validator accepted.
"""
import logging
from datetime import date, datetime
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinicrx.core.audit import AuditLog
from clinicrx.core.exceptions import Conflict, NotFound, ValidationFailed
from clinicrx.models.patient import Patient
from clinicrx.models.prescription import Prescription, PrescriptionMedication
from clinicrx.schemas.prescription import MedicationLine, PrescriptionForm, PrescriptionRecord
from clinicrx.services import prescription_engine
from clinicrx.services.patient_service import get_patient

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {
    "created_at": Prescription.created_at,
    "updated_at": Prescription.updated_at,
    "start_date": Prescription.start_date,
    "end_date": Prescription.end_date,
    "status": Prescription.status,
    "prescription_number": Prescription.prescription_number,
}


def _checked_form(form: PrescriptionForm, action: str) -> PrescriptionForm:
    form = prescription_engine.normalize_form(form)
    errors = prescription_engine.validate_prescription(form)
    errors.update({
        key: message
        for key, message in prescription_engine.check_storage_bounds(form).items()
        if key not in errors
    })
    if errors:
        AuditLog.log_rejected(action, "prescription", "validation", errors)
        raise ValidationFailed(errors)
    return prescription_engine.fill_missing_end_date(form)


def _medication_rows(lines: List[MedicationLine]) -> List[PrescriptionMedication]:
    return [
        PrescriptionMedication(
            position=position,
            name=line.name,
            dosage=line.dosage,
            frequency=line.frequency,
            duration=line.duration,
            instructions=line.instructions or "",
            quantity=line.quantity,
            refills=line.refills or 0,
        )
        for position, line in enumerate(lines)
    ]


def next_prescription_number(db: Session) -> str:
    """One past the highest number issued so far (numbers are zero-padded, so max() sorts)."""
    highest = db.query(func.max(Prescription.prescription_number)).scalar()
    sequence = int(highest.split("-", 1)[1]) + 1 if highest else 1
    return prescription_engine.format_prescription_number(sequence)


def _commit(db: Session, action: str, detail: str):
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.info(f"Prescription {action} hit a constraint: {e.orig}")
        AuditLog.log_rejected(action, "prescription", "conflict")
        raise Conflict(detail)


def create_prescription(db: Session, form: PrescriptionForm, actor: Optional[str] = None) -> Prescription:
    """
    Raises:
        ValidationFailed: the form has field errors.
        NotFound: the patient does not exist.
        Conflict: the prescription number was taken concurrently.
    """
    form = _checked_form(form, "create")
    get_patient(db, form.patient_id)

    rx = Prescription(
        prescription_number=next_prescription_number(db),
        patient_id=form.patient_id,
        diagnosis=form.diagnosis,
        notes=form.notes,
        start_date=form.start_date,
        end_date=form.end_date,
        status=form.status.value,
        medications=_medication_rows(form.medications),
    )
    db.add(rx)
    _commit(db, "create", "Prescription number already exists")
    db.refresh(rx)

    AuditLog.log_action(
        "create", "prescription", rx.id, actor,
        changes={"number": rx.prescription_number, "medications": len(rx.medications)},
    )
    return rx


def get_prescription(db: Session, prescription_id: int) -> Prescription:
    rx = db.get(Prescription, prescription_id)
    if rx is None:
        raise NotFound("Prescription", prescription_id)
    return rx


def replace_prescription(
    db: Session,
    prescription_id: int,
    form: PrescriptionForm,
    actor: Optional[str] = None,
) -> Prescription:
    """Full-document replacement: every field and every line is rewritten."""
    rx = get_prescription(db, prescription_id)
    form = _checked_form(form, "replace")
    get_patient(db, form.patient_id)

    rx.patient_id = form.patient_id
    rx.diagnosis = form.diagnosis
    rx.notes = form.notes
    rx.start_date = form.start_date
    rx.end_date = form.end_date
    rx.status = form.status.value
    rx.medications = _medication_rows(form.medications)
    _commit(db, "replace", "Prescription could not be saved")
    db.refresh(rx)

    AuditLog.log_action("replace", "prescription", rx.id, actor, changes={"status": rx.status})
    return rx


def change_status(db: Session, prescription_id: int, new_status, actor: Optional[str] = None) -> Prescription:
    """
    Raises:
        InvalidArgument: status is not one of the enumerated values.
    """
    status = prescription_engine.parse_status(new_status)
    rx = get_prescription(db, prescription_id)
    previous = rx.status
    rx.status = status.value
    db.commit()
    db.refresh(rx)

    AuditLog.log_action("status", "prescription", rx.id, actor, changes={"from": previous, "to": rx.status})
    return rx


def delete_prescription(db: Session, prescription_id: int, actor: Optional[str] = None) -> None:
    """Hard delete; there is no tombstone."""
    rx = get_prescription(db, prescription_id)
    number = rx.prescription_number
    db.delete(rx)
    db.commit()
    AuditLog.log_action("delete", "prescription", prescription_id, actor, changes={"number": number})


def list_prescriptions(
    db: Session,
    status: Optional[str] = None,
    patient_id: Optional[int] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> Tuple[List[Prescription], int]:
    """Filtered page of prescriptions plus the total match count."""
    q = db.query(Prescription)

    if status and status.upper() != "ALL":
        q = q.filter(Prescription.status == prescription_engine.parse_status(status.upper()).value)
    if patient_id:
        q = q.filter(Prescription.patient_id == patient_id)
    if search:
        pattern = f"%{search}%"
        matching_patients = select(Patient.id).where(or_(
            Patient.first_name.ilike(pattern),
            Patient.last_name.ilike(pattern),
            Patient.email.ilike(pattern),
        ))
        q = q.filter(or_(
            Prescription.prescription_number.ilike(pattern),
            Prescription.diagnosis.ilike(pattern),
            Prescription.medications.any(PrescriptionMedication.name.ilike(pattern)),
            Prescription.patient_id.in_(matching_patients),
        ))

    total = q.count()

    column = SORTABLE_FIELDS.get(sort_by, Prescription.created_at)
    ordering = column.asc() if sort_order == "asc" else column.desc()
    page = max(page, 1)
    rows = q.order_by(ordering, Prescription.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return rows, total


def prescription_stats(
    db: Session,
    now: datetime,
    created_from: Optional[date] = None,
    created_to: Optional[date] = None,
) -> dict:
    q = db.query(Prescription)
    if created_from:
        q = q.filter(Prescription.created_at >= datetime.combine(created_from, datetime.min.time()))
    if created_to:
        q = q.filter(Prescription.created_at <= datetime.combine(created_to, datetime.max.time()))
    return prescription_engine.summarize_prescriptions(q.all(), now)


def to_record(rx: Prescription) -> PrescriptionRecord:
    return PrescriptionRecord.model_validate(rx)


def to_form(rx: Prescription) -> PrescriptionForm:
    """Stored prescription back in the shape the edit form submits."""
    return PrescriptionForm(
        patient_id=rx.patient_id,
        diagnosis=rx.diagnosis,
        medications=[MedicationLine.model_validate(med) for med in rx.medications],
        notes=rx.notes or "",
        start_date=rx.start_date,
        end_date=rx.end_date,
        status=rx.status,
    )
