from datetime import date, datetime, timezone
from types import SimpleNamespace

import pytest

from clinicrx.core.exceptions import InvalidArgument
from clinicrx.schemas.prescription import (
    MedicationLine,
    PrescriptionForm,
    PrescriptionRecord,
    PrescriptionStatus,
)
from clinicrx.services import prescription_engine as engine
from conftest import make_form, make_line


class TestValidation:
    def test_complete_form_has_no_errors(self):
        assert engine.validate_prescription(make_form()) == {}

    def test_blank_form_reports_every_missing_field(self):
        form = PrescriptionForm(medications=[MedicationLine(quantity=0)])
        errors = engine.validate_prescription(form)
        assert errors == {
            "patientId": "Please select a patient",
            "diagnosis": "Diagnosis is required",
            "startDate": "Start date is required",
            "medication_0_name": "Medication name is required",
            "medication_0_dosage": "Dosage is required",
            "medication_0_frequency": "Frequency is required",
            "medication_0_duration": "Duration is required",
            "medication_0_quantity": "Quantity must be greater than 0",
        }

    def test_whitespace_only_counts_as_blank(self):
        form = make_form(diagnosis="   ", medications=[make_line(name="  ", dosage="\t")])
        errors = engine.validate_prescription(form)
        assert errors["diagnosis"] == "Diagnosis is required"
        assert errors["medication_0_name"] == "Medication name is required"
        assert errors["medication_0_dosage"] == "Dosage is required"

    def test_errors_are_keyed_per_line(self):
        form = make_form(medications=[
            make_line(),
            make_line(quantity=-2, refills=-1),
            make_line(frequency=""),
        ])
        errors = engine.validate_prescription(form)
        assert set(errors) == {
            "medication_1_quantity",
            "medication_1_refills",
            "medication_2_frequency",
        }
        assert errors["medication_1_refills"] == "Refills cannot be negative"

    def test_empty_medication_list(self):
        errors = engine.validate_prescription(make_form(medications=[]))
        assert errors == {"medications": "At least one medication is required"}

    def test_free_text_frequency_is_accepted(self):
        form = make_form(medications=[make_line(frequency="Every other Tuesday")])
        assert engine.validate_prescription(form) == {}

    def test_storage_bounds(self):
        form = make_form(medications=[make_line(quantity=1001, refills=13), make_line(quantity=1000, refills=12)])
        assert engine.check_storage_bounds(form) == {
            "medication_0_quantity": "Quantity cannot exceed 1000",
            "medication_0_refills": "Refills cannot exceed 12",
        }

    def test_normalize_trims_text(self):
        form = make_form(diagnosis="  Flu ", medications=[make_line(name=" Oseltamivir ")])
        normalized = engine.normalize_form(form)
        assert normalized.diagnosis == "Flu"
        assert normalized.medications[0].name == "Oseltamivir"
        assert form.diagnosis == "  Flu "


class TestEndDate:
    @pytest.mark.parametrize("duration,days", [
        ("30 days", 30),
        ("7 days", 7),
        (" 14 day", 14),
        ("Until finished", 0),
        ("As directed", 0),
        ("", 0),
    ])
    def test_parse_duration_days(self, duration, days):
        assert engine.parse_duration_days(duration) == days

    def test_calculate_end_date(self):
        assert engine.calculate_end_date(date(2024, 1, 1), "30 days") == date(2024, 1, 31)
        assert engine.calculate_end_date(date(2024, 2, 20), "10 days") == date(2024, 3, 1)
        assert engine.calculate_end_date(date(2024, 1, 1), "Until finished") is None
        assert engine.calculate_end_date(None, "30 days") is None

    def test_sync_overwrites_manual_end_date(self):
        form = make_form(
            start_date=date(2024, 1, 1),
            end_date=date(2024, 6, 1),
            medications=[make_line(duration="30 days")],
        )
        assert engine.sync_end_date(form).end_date == date(2024, 1, 31)

    def test_sentinel_duration_leaves_end_date(self):
        form = make_form(end_date=date(2024, 3, 3), medications=[make_line(duration="Until finished")])
        assert engine.sync_end_date(form).end_date == date(2024, 3, 3)

    def test_sentinel_duration_keeps_end_date_unset(self):
        form = make_form(medications=[make_line(duration="Until finished")])
        synced = engine.sync_end_date(form)
        assert synced.end_date is None
        assert engine.sync_end_date(synced).end_date is None

    def test_duration_past_calendar_end_derives_nothing(self):
        assert engine.calculate_end_date(date(2024, 1, 1), "5000000 days") is None
        assert engine.calculate_end_date(date(2024, 1, 1), "99999999999 days") is None

        form = make_form(medications=[make_line(duration="5000000 days")])
        assert engine.validate_prescription(form) == {}
        assert engine.sync_end_date(form).end_date is None
        kept = make_form(end_date=date(2024, 4, 1), medications=[make_line(duration="5000000 days")])
        assert engine.sync_end_date(kept).end_date == date(2024, 4, 1)

    def test_only_first_line_drives_end_date(self):
        form = make_form(start_date=date(2024, 1, 1), medications=[
            make_line(duration="7 days"),
            make_line(duration="90 days"),
        ])
        assert engine.sync_end_date(form).end_date == date(2024, 1, 8)

    def test_change_start_date_resyncs(self):
        form = make_form(medications=[make_line(duration="10 days")])
        updated = engine.change_start_date(form, "2024-03-01")
        assert updated.start_date == date(2024, 3, 1)
        assert updated.end_date == date(2024, 3, 11)

    def test_change_start_date_rejects_garbage(self):
        with pytest.raises(InvalidArgument):
            engine.change_start_date(make_form(), "next tuesday")

    def test_update_medication_resyncs_from_line_zero(self):
        form = engine.sync_end_date(make_form(start_date=date(2024, 1, 1)))
        assert form.end_date == date(2024, 1, 8)
        updated = engine.update_medication(form, 0, duration="14 days")
        assert updated.end_date == date(2024, 1, 15)
        assert form.medications[0].duration == "7 days"

    def test_update_medication_unknown_field(self):
        with pytest.raises(InvalidArgument):
            engine.update_medication(make_form(), 0, colour="blue")
        with pytest.raises(InvalidArgument):
            engine.update_medication(make_form(), 3, name="x")

    def test_fill_missing_end_date_keeps_supplied_value(self):
        form = make_form(end_date=date(2024, 2, 2))
        assert engine.fill_missing_end_date(form).end_date == date(2024, 2, 2)
        assert engine.fill_missing_end_date(make_form()).end_date == date(2024, 1, 8)

    def test_new_form_defaults(self):
        form = engine.new_prescription_form(lambda: date(2024, 5, 5))
        assert form.start_date == date(2024, 5, 5)
        assert form.status == PrescriptionStatus.ACTIVE
        assert len(form.medications) == 1
        assert form.medications[0].quantity == 30
        assert form.medications[0].refills == 0

    def test_add_and_remove_lines(self):
        form = engine.add_medication(make_form(), make_line(name="Ibuprofen"))
        assert [m.name for m in form.medications] == ["Amoxicillin", "Ibuprofen"]
        form = engine.remove_medication(form, 0)
        assert [m.name for m in form.medications] == ["Ibuprofen"]
        # The last line stays
        assert engine.remove_medication(form, 0) is form


class TestStatus:
    def test_any_status_from_any_status(self):
        form = make_form()
        for target in ["COMPLETED", "ACTIVE", "CANCELLED", "ACTIVE"]:
            form = engine.set_status(form, target)
            assert form.status.value == target

    def test_unknown_status_rejected(self):
        with pytest.raises(InvalidArgument):
            engine.set_status(make_form(), "EXPIRED")

    def test_record_gets_fresh_updated_at(self):
        record = PrescriptionRecord(
            id=1,
            prescription_number="RX-00000001",
            patient_id=1,
            diagnosis="Flu",
            medications=[make_line()],
            start_date=date(2024, 1, 1),
            status="ACTIVE",
            updated_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        later = datetime(2024, 2, 1, tzinfo=timezone.utc)
        changed = engine.set_status(record, PrescriptionStatus.COMPLETED, now=lambda: later)
        assert changed.status == PrescriptionStatus.COMPLETED
        assert changed.updated_at == later
        assert record.status == PrescriptionStatus.ACTIVE


class TestReadOnlyFacts:
    def test_expiry_and_renewal(self):
        form = make_form(
            start_date=date(2024, 1, 1),
            end_date=date(2024, 1, 31),
            medications=[make_line(refills=2)],
        )
        assert engine.total_days(form) == 30
        assert engine.has_refills_available(form)
        assert not engine.is_expired(form, date(2024, 1, 31))
        assert engine.is_expired(form, date(2024, 2, 1))
        assert engine.can_be_renewed(form, date(2024, 1, 15))
        assert not engine.can_be_renewed(form, date(2024, 2, 1))
        assert not engine.can_be_renewed(engine.set_status(form, "CANCELLED"), date(2024, 1, 15))

    def test_open_ended_prescription_never_expires(self):
        form = make_form(end_date=None)
        assert not engine.is_expired(form, date(2099, 1, 1))
        assert engine.total_days(form) == 0

    def test_prescription_number_format(self):
        assert engine.format_prescription_number(42) == "RX-00000042"
        with pytest.raises(InvalidArgument):
            engine.format_prescription_number(0)


def test_summarize_prescriptions():
    now = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)
    records = [
        SimpleNamespace(status="ACTIVE", created_at=datetime(2024, 3, 8), medications=[
            make_line(name="Amoxicillin", quantity=21),
            make_line(name="Ibuprofen", quantity=10),
        ]),
        SimpleNamespace(status="COMPLETED", created_at=datetime(2024, 2, 1), medications=[
            make_line(name="Amoxicillin", quantity=14),
        ]),
        SimpleNamespace(status="CANCELLED", created_at=datetime(2024, 2, 20), medications=[]),
    ]
    stats = engine.summarize_prescriptions(records, now)

    assert stats["total"] == 3
    assert stats["recent"] == 1
    assert stats["status"] == {"ACTIVE": 1, "COMPLETED": 1, "CANCELLED": 1}
    assert stats["trends"]["monthly"] == [
        {"month": "2024-02", "prescriptions": 2},
        {"month": "2024-03", "prescriptions": 1},
    ]
    assert stats["medications"]["top_prescribed"][0] == {
        "name": "Amoxicillin", "count": 2, "total_quantity": 35,
    }
    assert stats["medications"]["total_unique"] == 2
    assert stats["averages"]["active_rate"] == 33


def test_monthly_trend_keeps_earliest_twelve_months():
    records = [
        SimpleNamespace(status="ACTIVE", created_at=datetime(2023 + (m - 1) // 12, (m - 1) % 12 + 1, 15), medications=[])
        for m in range(1, 15)
    ]
    stats = engine.summarize_prescriptions(records, datetime(2024, 3, 1, tzinfo=timezone.utc))
    months = [entry["month"] for entry in stats["trends"]["monthly"]]
    assert len(months) == 12
    assert months[0] == "2023-01"
    assert months[-1] == "2023-12"


def test_summarize_empty():
    stats = engine.summarize_prescriptions([], datetime(2024, 1, 1, tzinfo=timezone.utc))
    assert stats["total"] == 0
    assert stats["averages"] == {"prescriptions_per_month": 0, "active_rate": 0}
