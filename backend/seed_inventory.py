"""Seed a demo clinic: a few patients, a starter pharmacy inventory and one prescription."""
from datetime import date, timedelta
from decimal import Decimal

from clinicrx.db.init_db import init_db
from clinicrx.db.session import SessionLocal
from clinicrx.models.inventory import InventoryItem
from clinicrx.models.patient import Patient
from clinicrx.schemas.inventory import InventoryItemForm
from clinicrx.schemas.patient import PatientCreate
from clinicrx.schemas.prescription import MedicationLine, PrescriptionForm
from clinicrx.services import inventory_engine, inventory_service, patient_service, prescription_service

PATIENTS = [
    {"first_name": "Amara", "last_name": "Perera", "date_of_birth": date(1990, 6, 15),
     "gender": "FEMALE", "allergies": ["Penicillin"]},
    {"first_name": "Jonas", "last_name": "Berg", "date_of_birth": date(1957, 2, 3),
     "gender": "MALE", "allergies": [], "medications": ["Metformin 500mg"]},
    {"first_name": "Lee", "last_name": "Okafor", "date_of_birth": date(2012, 11, 20),
     "gender": "OTHER", "allergies": ["Sulfa drugs", "Latex"]},
]

MEDICINES = [
    {"name": "Paracetamol 500mg", "category": "Pain Relief", "cost": "1.20", "price": "2.50", "units": 200},
    {"name": "Ibuprofen 400mg", "category": "Pain Relief", "cost": "1.80", "price": "3.20", "units": 9},
    {"name": "Amoxicillin 500mg", "category": "Prescription Drugs", "cost": "5.00", "price": "8.00", "units": 100},
    {"name": "Azithromycin 500mg", "category": "Prescription Drugs", "cost": "9.50", "price": "15.00", "units": 0},
    {"name": "Cetirizine 10mg", "category": "Allergy & Sinus", "cost": "0.60", "price": "1.50", "units": 250},
    {"name": "Vitamin D3 1000IU", "category": "Vitamins & Supplements", "cost": "4.00", "price": "7.50", "units": 60},
    {"name": "Oral Rehydration Salts", "category": "Digestive Health", "cost": "0.90", "price": "1.80", "units": 4},
    {"name": "Sterile Gauze 10cm", "category": "First Aid", "cost": "0.30", "price": "0.75", "units": 500},
]


def seed():
    init_db()
    db = SessionLocal()
    today = date.today()

    try:
        if db.query(Patient).count() == 0:
            for data in PATIENTS:
                patient = patient_service.create_patient(db, PatientCreate(**data))
                print(f"Added patient {patient.first_name} {patient.last_name}")

        if db.query(InventoryItem).count() == 0:
            for med in MEDICINES:
                item = inventory_service.create_item(db, InventoryItemForm(
                    name=med["name"],
                    category=med["category"],
                    sku=inventory_engine.generate_sku(),
                    quantity=med["units"],
                    cost_price=Decimal(med["cost"]),
                    selling_price=Decimal(med["price"]),
                    expiry_date=today + timedelta(days=365),
                ), today, actor="seed")
                print(f"Added {item.sku}  {item.name:<28} {item.quantity:>4} units  {item.status}")

        patient = db.query(Patient).order_by(Patient.id).first()
        if patient and not patient.prescriptions:
            rx = prescription_service.create_prescription(db, PrescriptionForm(
                patient_id=patient.id,
                diagnosis="Acute bacterial sinusitis",
                start_date=today,
                medications=[MedicationLine(
                    name="Amoxicillin 500mg",
                    dosage="500mg",
                    frequency="Three times daily",
                    duration="10 days",
                    instructions="Take with food",
                    quantity=30,
                )],
            ), actor="seed")
            print(f"Added prescription {rx.prescription_number} ending {rx.end_date}")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
