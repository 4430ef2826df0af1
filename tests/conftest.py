from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from weighbridge.core.db import Base
from weighbridge.core.deps import get_db
from weighbridge.core.config import settings
from weighbridge.core.security import create_access_token
from weighbridge.domains.identity.service import register_staff
from weighbridge.domains.purchase_orders.service import create_material, create_purchase_order
from weighbridge.domains.registration.models import ApprovalStatus
from weighbridge.domains.registration.service import (
    create_driver,
    create_vehicle,
    set_driver_approval,
    set_vehicle_approval,
)
from weighbridge.domains.trips.models import TripStage
from weighbridge.domains.trips.service import advance, create_trip, get_trip
from weighbridge.domains.trips.stages import STAGE_ORDER, stage_index
from weighbridge.main import app

PASSWORD = "correct-horse-1"

# Minimum bcrypt cost keeps the suite fast.
settings.bcrypt_rounds = 4


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(f"sqlite:///{tmp_path / 'weighbridge-test.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def client(session_factory):
    def _get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = _get_db
    # No context manager: startup would create tables on the configured database.
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_staff(db):
    counter = {"n": 0}

    def _make(role: str = "admin", password: str = PASSWORD):
        counter["n"] += 1
        n = counter["n"]
        return register_staff(
            db,
            email=f"{role.replace(' ', '')}{n}@plant.example",
            username=f"{role.replace(' ', '_')}_{n}",
            password=password,
            department="purchase",
            role=role,
        )

    return _make


@pytest.fixture
def auth_headers(make_staff):
    def _headers(role: str = "admin") -> dict:
        staff = make_staff(role)
        token = create_access_token(sub=staff.username, staff_id=staff.id, role=staff.role)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def admin(make_staff):
    return make_staff("admin")


@pytest.fixture
def approved_vehicle(db, admin):
    v = create_vehicle(db, registration_number="KA01AB1234", vehicle_type="TRUCK", manufacturer_tare_weight=9500)
    return set_vehicle_approval(db, vehicle_id=v.id, approval_status=ApprovalStatus.APPROVED, approver_id=admin.id)


@pytest.fixture
def approved_driver(db, admin):
    d = create_driver(db, driver_name="Ravi Kumar", mobile_number="9876543210", aadhaar="123412341234")
    return set_driver_approval(db, driver_id=d.id, approval_status=ApprovalStatus.APPROVED, approver_id=admin.id)


@pytest.fixture
def material(db):
    return create_material(db, name="Iron Ore", grade="A")


@pytest.fixture
def active_po(db, material):
    today = date.today()
    return create_purchase_order(
        db,
        po_reference_number="PO-2026-001",
        seller_name="Sharma Minerals",
        validity_start_date=today - timedelta(days=1),
        validity_end_date=today + timedelta(days=30),
        materials=[{"material_id": material.id, "needed_qty": 100.0}],
    )


@pytest.fixture
def trip(db, approved_vehicle, approved_driver, active_po):
    return create_trip(db, vehicle_id=approved_vehicle.id, driver_id=approved_driver.id, po_id=active_po.id)


@pytest.fixture
def advance_to(db, admin):
    """Walk a trip forward one legal step at a time until it sits at `stage`."""

    def _advance(trip_id: str, stage: TripStage) -> None:
        current = get_trip(db, trip_id).current_stage
        for nxt in STAGE_ORDER[stage_index(current) + 1 : stage_index(stage) + 1]:
            advance(db, trip_id=trip_id, next_stage_name=nxt, staff_id=admin.id, role=admin.role)

    return _advance


@pytest.fixture
def staff_password() -> str:
    return PASSWORD
