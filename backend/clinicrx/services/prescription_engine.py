"""
PRESCRIPTION ENGINE

Pure functions over prescription records. No database, no I/O.

- validate_prescription: field path -> message mapping, empty when valid
- end date: derived from the FIRST medication line's duration and kept in
  sync whenever the start date or the medication lines change
- set_status: any of ACTIVE / COMPLETED / CANCELLED from any state
- read-only facts used by list and detail views (expiry, refills, renewal)

Inputs are never mutated; every edit helper returns a new form.
"""
import logging
from datetime import date, datetime
from typing import Dict, Optional, Union

from clinicrx.core.exceptions import InvalidArgument
from clinicrx.schemas.prescription import (
    MAX_QUANTITY,
    MAX_REFILLS,
    MedicationLine,
    PrescriptionForm,
    PrescriptionStatus,
)
from clinicrx.services.date_utils import (
    Clock,
    NowClock,
    add_days,
    days_between,
    parse_date,
    parse_leading_int,
    system_now,
    system_today,
)

logger = logging.getLogger(__name__)


def _blank(value) -> bool:
    return not isinstance(value, str) or not value.strip()


# ==============================================================================
# VALIDATION
# ==============================================================================

def validate_prescription(form: PrescriptionForm) -> Dict[str, str]:
    """
    Check a candidate prescription and collect every field error.

    Never raises. Keys are the form field paths the UI renders errors
    under, e.g. "diagnosis" or "medication_1_quantity".
    """
    errors: Dict[str, str] = {}

    if not form.patient_id:
        errors["patientId"] = "Please select a patient"

    if _blank(form.diagnosis):
        errors["diagnosis"] = "Diagnosis is required"

    if form.start_date is None:
        errors["startDate"] = "Start date is required"

    if not form.medications:
        errors["medications"] = "At least one medication is required"

    for index, med in enumerate(form.medications):
        if _blank(med.name):
            errors[f"medication_{index}_name"] = "Medication name is required"
        if _blank(med.dosage):
            errors[f"medication_{index}_dosage"] = "Dosage is required"
        if _blank(med.frequency):
            errors[f"medication_{index}_frequency"] = "Frequency is required"
        if _blank(med.duration):
            errors[f"medication_{index}_duration"] = "Duration is required"
        if med.quantity is None or med.quantity <= 0:
            errors[f"medication_{index}_quantity"] = "Quantity must be greater than 0"
        if med.refills is not None and med.refills < 0:
            errors[f"medication_{index}_refills"] = "Refills cannot be negative"

    return errors


def check_storage_bounds(form: PrescriptionForm) -> Dict[str, str]:
    """Upper bounds the stored record enforces on top of the form rules."""
    errors: Dict[str, str] = {}
    for index, med in enumerate(form.medications):
        if med.quantity is not None and med.quantity > MAX_QUANTITY:
            errors[f"medication_{index}_quantity"] = f"Quantity cannot exceed {MAX_QUANTITY}"
        if med.refills is not None and med.refills > MAX_REFILLS:
            errors[f"medication_{index}_refills"] = f"Refills cannot exceed {MAX_REFILLS}"
    return errors


def normalize_form(form: PrescriptionForm) -> PrescriptionForm:
    """Trim free-text fields the way they are stored."""
    medications = [
        med.model_copy(update={
            "name": med.name.strip(),
            "dosage": med.dosage.strip(),
            "frequency": med.frequency.strip(),
            "duration": med.duration.strip(),
            "instructions": (med.instructions or "").strip(),
            "refills": med.refills or 0,
        })
        for med in form.medications
    ]
    return form.model_copy(update={
        "diagnosis": form.diagnosis.strip(),
        "notes": (form.notes or "").strip(),
        "medications": medications,
    })


# ==============================================================================
# END DATE DERIVATION
# ==============================================================================

def parse_duration_days(duration: Optional[str]) -> int:
    """
    Day count encoded in a duration string.

    "30 days" -> 30. Sentinels such as "Until finished" or "As directed"
    parse to 0, meaning "do not derive an end date".
    """
    return parse_leading_int(duration)


def calculate_end_date(start_date: Optional[date], duration: Optional[str]) -> Optional[date]:
    if start_date is None:
        return None
    days = parse_duration_days(duration)
    if days <= 0:
        return None
    try:
        return add_days(start_date, days)
    except OverflowError:
        # Past date.max: treated like a sentinel, no end date is derived
        logger.info("Duration %r runs past the calendar, end date not derived", duration)
        return None


def sync_end_date(form: PrescriptionForm) -> PrescriptionForm:
    """
    Recompute end_date from start_date and the first medication's duration.

    A positive day count overwrites whatever end_date was there, including
    one typed in by hand. A zero count leaves end_date untouched.
    """
    if not form.medications:
        return form
    derived = calculate_end_date(form.start_date, form.medications[0].duration)
    if derived is None:
        return form
    if derived != form.end_date:
        logger.debug("end_date derived: %s -> %s", form.end_date, derived)
    return form.model_copy(update={"end_date": derived})


def fill_missing_end_date(form: PrescriptionForm) -> PrescriptionForm:
    """Save-time fallback: derive end_date only when none was supplied."""
    if form.end_date is not None:
        return form
    return sync_end_date(form)


def new_prescription_form(clock: Clock = system_today) -> PrescriptionForm:
    """Blank form: ACTIVE, starting today, with one empty medication line."""
    return PrescriptionForm(
        start_date=clock(),
        medications=[MedicationLine()],
        status=PrescriptionStatus.ACTIVE,
    )


def change_start_date(form: PrescriptionForm, value: Union[str, date, None]) -> PrescriptionForm:
    """
    Set a new start date and re-sync the end date.

    Raises:
        InvalidArgument: `value` is a string that is not a date.
    """
    start = parse_date(value) if value not in (None, "") else None
    return sync_end_date(form.model_copy(update={"start_date": start}))


def update_medication(form: PrescriptionForm, index: int, **changes) -> PrescriptionForm:
    """Edit one field set of a medication line; the end date follows line 0."""
    if index < 0 or index >= len(form.medications):
        raise InvalidArgument(f"No medication line at index {index}")
    unknown = set(changes) - set(MedicationLine.model_fields)
    if unknown:
        raise InvalidArgument(f"Unknown medication field(s): {', '.join(sorted(unknown))}")
    medications = list(form.medications)
    medications[index] = medications[index].model_copy(update=changes)
    return sync_end_date(form.model_copy(update={"medications": medications}))


def add_medication(form: PrescriptionForm, line: Optional[MedicationLine] = None) -> PrescriptionForm:
    medications = list(form.medications) + [line or MedicationLine()]
    return sync_end_date(form.model_copy(update={"medications": medications}))


def remove_medication(form: PrescriptionForm, index: int) -> PrescriptionForm:
    """Drop a line. The last remaining line can't be removed."""
    if len(form.medications) <= 1:
        return form
    if index < 0 or index >= len(form.medications):
        raise InvalidArgument(f"No medication line at index {index}")
    medications = [med for i, med in enumerate(form.medications) if i != index]
    return sync_end_date(form.model_copy(update={"medications": medications}))


# ==============================================================================
# STATUS
# ==============================================================================

def parse_status(value: Union[str, PrescriptionStatus]) -> PrescriptionStatus:
    """
    Raises:
        InvalidArgument: value is not ACTIVE, COMPLETED or CANCELLED.
    """
    if isinstance(value, PrescriptionStatus):
        return value
    try:
        return PrescriptionStatus(value)
    except ValueError:
        raise InvalidArgument(
            f"Unknown prescription status {value!r}; expected one of "
            + ", ".join(s.value for s in PrescriptionStatus)
        )


def set_status(record, new_status: Union[str, PrescriptionStatus], now: NowClock = system_now):
    """
    Return a copy of `record` with the new status and a fresh updated_at.

    There is no transition guard: any enumerated status may follow any
    other. Works for PrescriptionForm and PrescriptionRecord.
    """
    status = parse_status(new_status)
    update = {"status": status}
    if "updated_at" in type(record).model_fields:
        update["updated_at"] = now()
    return record.model_copy(update=update)


# ==============================================================================
# READ-ONLY FACTS
# ==============================================================================

def _status_value(status) -> str:
    return status.value if isinstance(status, PrescriptionStatus) else str(status)


def total_medications(record) -> int:
    return len(record.medications)


def is_expired(record, today: date) -> bool:
    if record.end_date is None:
        return False
    return today > record.end_date


def total_days(record) -> int:
    if record.end_date is None or record.start_date is None:
        return 0
    return days_between(record.start_date, record.end_date)


def has_refills_available(record) -> bool:
    return any((med.refills or 0) > 0 for med in record.medications)


def can_be_renewed(record, today: date) -> bool:
    return (
        _status_value(record.status) == PrescriptionStatus.ACTIVE.value
        and not is_expired(record, today)
        and has_refills_available(record)
    )


def format_prescription_number(sequence: int) -> str:
    """RX- followed by eight zero-padded digits."""
    if sequence < 1 or sequence > 99_999_999:
        raise InvalidArgument(f"Prescription sequence out of range: {sequence}")
    return f"RX-{sequence:08d}"


def summarize_prescriptions(records, now: datetime) -> dict:
    """
    Dashboard statistics for a doctor's prescriptions.

    `records` need status, created_at and medications; created_at may be
    naive (treated as the same zone as `now`).
    """
    records = list(records)
    total = len(records)

    status_counts = {status.value: 0 for status in PrescriptionStatus}
    monthly: Dict[str, int] = {}
    medications: Dict[str, Dict[str, int]] = {}
    recent = 0

    for record in records:
        status = _status_value(record.status)
        if status in status_counts:
            status_counts[status] += 1

        created = record.created_at
        if created is not None:
            if created.tzinfo is None and now.tzinfo is not None:
                created = created.replace(tzinfo=now.tzinfo)
            if (now - created).days < 7 and created <= now:
                recent += 1
            key = f"{created.year}-{created.month:02d}"
            monthly[key] = monthly.get(key, 0) + 1

        for med in record.medications:
            entry = medications.setdefault(med.name, {"count": 0, "total_quantity": 0})
            entry["count"] += 1
            entry["total_quantity"] += med.quantity or 0

    monthly_data = [
        {"month": month, "prescriptions": count}
        for month, count in sorted(monthly.items())
    ][:12]

    top = sorted(medications.items(), key=lambda item: (-item[1]["count"], item[0]))[:10]
    top_prescribed = [
        {"name": name, "count": entry["count"], "total_quantity": entry["total_quantity"]}
        for name, entry in top
    ]

    return {
        "total": total,
        "recent": recent,
        "status": status_counts,
        "trends": {"monthly": monthly_data},
        "medications": {
            "top_prescribed": top_prescribed,
            "total_unique": len(top_prescribed),
        },
        "averages": {
            "prescriptions_per_month": round(total / max(len(monthly_data), 1)) if total else 0,
            "active_rate": round(status_counts["ACTIVE"] / total * 100) if total else 0,
        },
    }
