import pytest

from weighbridge.core.errors import ConflictError, NotFoundError, RegistrationLegFailed, VehicleRejected
from weighbridge.domains.registration import service as registration_service
from weighbridge.domains.registration.models import ApprovalStatus, Driver, Vehicle
from weighbridge.domains.registration.service import (
    create_vehicle,
    register_vehicle,
    register_vehicle_and_driver,
    set_vehicle_approval,
)

VEHICLE = {"registration_number": "ka01ab1234 ", "vehicle_type": "TRUCK", "manufacturer_tare_weight": 9500.0}
DRIVER = {"driver_name": "Ravi Kumar", "mobile_number": "9876543210", "aadhaar": "123412341234"}


def test_new_vehicle_is_created_normalized(db):
    v, reused = register_vehicle(db, **VEHICLE)
    assert not reused
    assert v.registration_number == "KA01AB1234"
    assert v.approval_status == ApprovalStatus.PENDING


def test_existing_vehicle_is_reused(db):
    first, _ = register_vehicle(db, **VEHICLE)
    again, reused = register_vehicle(db, **{**VEHICLE, "registration_number": "KA01AB1234"})

    assert reused
    assert again.id == first.id
    assert db.query(Vehicle).count() == 1


def test_rejected_vehicle_is_not_reused(db, admin):
    v, _ = register_vehicle(db, **VEHICLE)
    set_vehicle_approval(db, vehicle_id=v.id, approval_status=ApprovalStatus.REJECTED, approver_id=admin.id)

    with pytest.raises(VehicleRejected) as exc:
        register_vehicle(db, **VEHICLE)
    assert exc.value.extra["vehicle_id"] == v.id


def test_plain_create_conflicts_on_duplicate(db):
    create_vehicle(db, **VEHICLE)
    with pytest.raises(ConflictError):
        create_vehicle(db, **VEHICLE)


def _stale_first_lookup(monkeypatch):
    """The first lookup misses as if the winner had not committed yet; later ones see the table."""
    real_lookup = registration_service.get_vehicle_by_registration
    calls = {"n": 0}

    def stale_lookup(session, registration_number):
        calls["n"] += 1
        if calls["n"] == 1:
            raise NotFoundError("Vehicle not registered")
        return real_lookup(session, registration_number)

    monkeypatch.setattr(registration_service, "get_vehicle_by_registration", stale_lookup)
    return calls


def test_lost_race_reuses_winner(db, admin, monkeypatch):
    """Lookup misses, the insert hits the unique index, and the single re-lookup finds the winner's row."""
    winner = create_vehicle(db, **VEHICLE)
    set_vehicle_approval(db, vehicle_id=winner.id, approval_status=ApprovalStatus.APPROVED, approver_id=admin.id)
    calls = _stale_first_lookup(monkeypatch)

    v, reused = register_vehicle(db, **VEHICLE)
    assert reused
    assert v.id == winner.id
    # The winner's row is returned as stored, not a fresh Pending one.
    assert v.approval_status == ApprovalStatus.APPROVED
    assert v.approver_id == admin.id
    assert calls["n"] == 2
    assert db.query(Vehicle).count() == 1


def test_lost_race_to_rejected_vehicle(db, admin, monkeypatch):
    winner = create_vehicle(db, **VEHICLE)
    set_vehicle_approval(db, vehicle_id=winner.id, approval_status=ApprovalStatus.REJECTED, approver_id=admin.id)
    calls = _stale_first_lookup(monkeypatch)

    with pytest.raises(VehicleRejected) as exc:
        register_vehicle(db, **VEHICLE)

    assert exc.value.extra["vehicle_id"] == winner.id
    assert calls["n"] == 2
    assert db.query(Vehicle).count() == 1


def test_race_retries_only_once(db, monkeypatch):
    create_vehicle(db, **VEHICLE)

    def always_missing(session, registration_number):
        raise NotFoundError("Vehicle not registered")

    monkeypatch.setattr(registration_service, "get_vehicle_by_registration", always_missing)
    with pytest.raises(ConflictError):
        register_vehicle(db, **VEHICLE)


def test_combined_registration(db):
    result = register_vehicle_and_driver(db, vehicle=dict(VEHICLE), driver=dict(DRIVER))
    assert not result.vehicle_reused
    assert result.vehicle.registration_number == "KA01AB1234"
    assert result.driver.driver_name == "Ravi Kumar"


def test_driver_leg_failure_keeps_vehicle(db):
    bad_driver = {**DRIVER, "aadhaar": "1234"}
    with pytest.raises(RegistrationLegFailed) as exc:
        register_vehicle_and_driver(db, vehicle=dict(VEHICLE), driver=bad_driver)

    err = exc.value
    assert err.leg == "driver"
    assert err.status_code == 422
    assert err.extra["vehicle_id"] is not None
    assert err.extra["driver_id"] is None
    # No rollback of the leg that succeeded.
    assert db.query(Vehicle).count() == 1
    assert db.query(Driver).count() == 0


def test_vehicle_leg_failure_keeps_driver(db, admin):
    v, _ = register_vehicle(db, **VEHICLE)
    set_vehicle_approval(db, vehicle_id=v.id, approval_status=ApprovalStatus.REJECTED, approver_id=admin.id)

    with pytest.raises(RegistrationLegFailed) as exc:
        register_vehicle_and_driver(db, vehicle=dict(VEHICLE), driver=dict(DRIVER))

    assert exc.value.leg == "vehicle"
    assert exc.value.extra["vehicle_error"]["code"] == "VEHICLE_REJECTED"
    assert exc.value.extra["driver_id"] is not None
    assert db.query(Driver).count() == 1


def test_both_legs_fail(db, admin):
    v, _ = register_vehicle(db, **VEHICLE)
    set_vehicle_approval(db, vehicle_id=v.id, approval_status=ApprovalStatus.REJECTED, approver_id=admin.id)

    with pytest.raises(RegistrationLegFailed) as exc:
        register_vehicle_and_driver(db, vehicle=dict(VEHICLE), driver={**DRIVER, "driver_name": " "})
    assert exc.value.leg == "both"


def test_security_registration_over_http(client, auth_headers):
    headers = auth_headers("security")
    payload = {
        "vehicle": {"registration_number": "mh12xy0001", "vehicle_type": "tipper", "manufacturer_tare_weight": 8000},
        "driver": DRIVER,
    }
    first = client.post("/api/security/registrations", json=payload, headers=headers)
    assert first.status_code == 200, first.text
    body = first.json()
    assert body["vehicle"]["registration_number"] == "MH12XY0001"
    assert body["vehicle"]["vehicle_type"] == "TIPPER"
    assert body["driver"]["aadhaar"] == "XXXXXXXX1234"
    assert body["vehicle_reused"] is False

    second = client.post("/api/security/registrations", json=payload, headers=headers).json()
    assert second["vehicle"]["id"] == body["vehicle"]["id"]
    assert second["vehicle_reused"] is True

    found = client.get("/api/vehicles/mh12xy0001", headers=headers)
    assert found.status_code == 200
    assert found.json()["id"] == body["vehicle"]["id"]


def test_unknown_vehicle_lookup_is_404(client, auth_headers):
    resp = client.get("/api/vehicles/XX00ZZ9999", headers=auth_headers("security"))
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "NOT_FOUND"


def test_approval_requires_admin(client, db, auth_headers):
    v = create_vehicle(db, **VEHICLE)
    denied = client.post(f"/api/vehicles/{v.id}/approve", headers=auth_headers("security"))
    assert denied.status_code == 403

    ok = client.post(f"/api/vehicles/{v.id}/approve", headers=auth_headers("admin"))
    assert ok.status_code == 200
    assert ok.json()["approval_status"] == "Approved"
    assert ok.json()["approver_id"] is not None
