"""Shared fixtures: in-memory database, pinned clock, API client."""
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from clinicrx.api.deps import get_db, get_now, get_today
from clinicrx.db.init_db import init_db
from clinicrx.db.session import make_engine
from clinicrx.main import app
from clinicrx.schemas.inventory import InventoryItemForm
from clinicrx.schemas.patient import PatientCreate
from clinicrx.schemas.prescription import MedicationLine, PrescriptionForm
from clinicrx.services import patient_service

TODAY = date(2024, 1, 1)
NOW = datetime(2024, 1, 1, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    engine = make_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_today] = lambda: TODAY
    app.dependency_overrides[get_now] = lambda: NOW
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def patient(db):
    return patient_service.create_patient(db, PatientCreate(
        first_name="Amara",
        last_name="Perera",
        email="amara@example.com",
        date_of_birth=date(1990, 6, 15),
        gender="FEMALE",
        allergies=["Penicillin", "Sulfa drugs"],
        medications=["Metformin"],
    ))


def make_line(**overrides) -> MedicationLine:
    values = {
        "name": "Amoxicillin",
        "dosage": "500mg",
        "frequency": "Three times daily",
        "duration": "7 days",
        "instructions": "Take with food",
        "quantity": 21,
        "refills": 0,
    }
    values.update(overrides)
    return MedicationLine(**values)


def make_form(patient_id=1, **overrides) -> PrescriptionForm:
    values = {
        "patient_id": patient_id,
        "diagnosis": "Acute sinusitis",
        "medications": [make_line()],
        "start_date": TODAY,
    }
    values.update(overrides)
    return PrescriptionForm(**values)


def make_item(**overrides) -> InventoryItemForm:
    values = {
        "name": "Paracetamol 500mg",
        "category": "Pain Relief",
        "sku": "pharm-para01",
        "barcode": "ab123",
        "quantity": 40,
        "low_stock_threshold": 10,
        "cost_price": Decimal("2.00"),
        "selling_price": Decimal("3.50"),
        "batch_number": "b-2024-01",
        "expiry_date": date(2025, 6, 30),
    }
    values.update(overrides)
    return InventoryItemForm(**values)
