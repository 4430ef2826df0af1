from datetime import date, timedelta

import pytest

from weighbridge.client.api import WeighbridgeClient
from weighbridge.client.cache import ResourceCache
from weighbridge.client.session import SessionService
from weighbridge.core.errors import (
    AuthExpired,
    InvalidTransition,
    RegistrationLegFailed,
    StageMismatch,
    ValidationError,
)

DRIVER = {"driver_name": "Ravi Kumar", "mobile_number": "9876543210", "aadhaar": "123412341234"}


@pytest.fixture
def terminal(client, make_staff, staff_password):
    staff = make_staff("admin")
    session = SessionService(client, base_url="http://testserver", timeout=5)
    session.login(staff.username, staff_password)
    return WeighbridgeClient(session, ResourceCache(60))


@pytest.fixture
def open_trip(terminal):
    material = terminal.create_material(name="Iron Ore")
    po = terminal.create_purchase_order(
        po_reference_number="PO-CLIENT-1",
        seller_name="Sharma Minerals",
        validity_start_date=date.today(),
        validity_end_date=date.today() + timedelta(days=10),
        materials=[{"material_id": material["id"], "needed_qty": 1000}],
    )
    reg = terminal.register_vehicle_and_driver(
        vehicle={"registration_number": "KA01AB1234", "vehicle_type": "TRUCK", "manufacturer_tare_weight": 9500},
        driver=DRIVER,
    )
    terminal.approve_vehicle(reg["vehicle"]["id"])
    terminal.approve_driver(reg["driver"]["id"])
    trip = terminal.create_trip(vehicle_id=reg["vehicle"]["id"], driver_id=reg["driver"]["id"], po_id=po["id"])
    return {"trip": trip, "po": po, "material": material}


def test_login_populates_session(client, make_staff, staff_password):
    staff = make_staff("security")
    session = SessionService(client, base_url="http://testserver")
    assert not session.is_authenticated

    user = session.login(staff.email, staff_password)
    assert user["id"] == staff.id
    assert session.current_user["role"] == "security"
    assert session.auth_headers()["Authorization"].startswith("Bearer ")

    session.logout()
    assert not session.is_authenticated
    with pytest.raises(AuthExpired):
        session.current_user


def test_wrong_password_raises_auth_expired(client, make_staff):
    staff = make_staff()
    session = SessionService(client, base_url="http://testserver")
    with pytest.raises(AuthExpired):
        session.login(staff.username, "not-the-password")
    assert not session.is_authenticated


def test_trip_lifecycle_through_client(terminal, open_trip):
    trip_id = open_trip["trip"]["id"]
    assert open_trip["trip"]["current_stage"] == "ENTRY_GATE"

    terminal.advance(trip_id, "GROSS_WEIGHT")
    terminal.capture_weight(trip_id, "Gross", 24580)
    terminal.advance(trip_id, "UNLOADING")
    unloading = terminal.verify_unloading(trip_id, material_type="Iron Ore", accepted_qty=951, rejection_qty=49)
    assert unloading["quality"] == "Good"
    terminal.update_received(open_trip["po"]["id"], open_trip["material"]["id"], 951)
    terminal.advance(trip_id, "TARE_WEIGHT")
    terminal.capture_weight(trip_id, "Tare", 9820)
    terminal.advance(trip_id, "EXIT_GATE", remarks="cleared")

    trip = terminal.trip(trip_id)
    assert trip["status"] == "COMPLETED"
    assert trip["net_weight"] == 14760.0
    assert [s["stage_name"] for s in terminal.history(trip_id)] == [
        "GROSS_WEIGHT",
        "UNLOADING",
        "TARE_WEIGHT",
        "EXIT_GATE",
    ]
    assert [w["weight_type"] for w in terminal.weights(trip_id)] == ["Gross", "Tare"]
    assert terminal.purchase_order(open_trip["po"]["id"])["progress"] == pytest.approx(95.1)


def test_advance_invalidates_only_trip_keys(terminal, open_trip):
    trip_id = open_trip["trip"]["id"]
    po_id = open_trip["po"]["id"]
    assert terminal.trip(trip_id)["current_stage"] == "ENTRY_GATE"
    terminal.history(trip_id)
    terminal.purchase_order(po_id)

    terminal.advance(trip_id, "GROSS_WEIGHT")

    keys = terminal.cache.keys()
    assert ("trips", trip_id) not in keys
    assert ("trips", trip_id, "stages") not in keys
    assert ("purchase-orders", po_id) in keys
    assert terminal.trip(trip_id)["current_stage"] == "GROSS_WEIGHT"


def test_weight_capture_refreshes_active_list(terminal, open_trip):
    trip_id = open_trip["trip"]["id"]
    po_id = open_trip["po"]["id"]
    terminal.advance(trip_id, "GROSS_WEIGHT")
    assert terminal.active_trips()[0]["gross_weight"] is None
    terminal.purchase_order(po_id)

    terminal.capture_weight(trip_id, "Gross", 24580)

    keys = terminal.cache.keys()
    assert ("trips", "active") not in keys
    assert ("purchase-orders", po_id) in keys
    assert terminal.active_trips()[0]["gross_weight"] == 24580


def test_receive_invalidates_purchase_order(terminal, open_trip):
    po_id = open_trip["po"]["id"]
    assert terminal.purchase_order(po_id)["progress"] == 0.0
    terminal.update_received(po_id, open_trip["material"]["id"], 1200)
    assert terminal.purchase_order(po_id)["progress"] == pytest.approx(120.0)


def test_server_errors_come_back_typed(terminal, open_trip):
    trip_id = open_trip["trip"]["id"]
    with pytest.raises(InvalidTransition) as exc:
        terminal.advance(trip_id, "UNLOADING")
    assert exc.value.extra["allowed_next"] == "GROSS_WEIGHT"

    with pytest.raises(StageMismatch):
        terminal.capture_weight(trip_id, "Gross", 24580)

    with pytest.raises(ValidationError):
        terminal.create_purchase_order(
            po_reference_number="PO-BAD",
            seller_name="Sharma Minerals",
            validity_start_date=date.today(),
            validity_end_date=date.today(),
            materials=[{"material_id": open_trip["material"]["id"], "needed_qty": 1}],
        )


def test_leg_failure_names_the_leg(terminal):
    with pytest.raises(RegistrationLegFailed) as exc:
        terminal.register_vehicle_and_driver(
            vehicle={"registration_number": "KA01AB1234", "vehicle_type": "TRUCK", "manufacturer_tare_weight": 9500},
            driver={**DRIVER, "driver_name": "  "},
        )
    assert exc.value.leg == "driver"
    assert exc.value.extra["vehicle_id"]
    assert terminal.find_vehicle("ka01ab1234")["id"] == exc.value.extra["vehicle_id"]


def test_find_vehicle_missing_is_none(terminal):
    assert terminal.find_vehicle("XX00ZZ9999") is None


def test_revoked_session_is_cleared(client, terminal, open_trip):
    client.post("/api/auth/logout", headers=terminal.session.auth_headers())

    with pytest.raises(AuthExpired):
        terminal.trip(open_trip["trip"]["id"])
    assert not terminal.session.is_authenticated
    assert terminal.cache.keys() == []
