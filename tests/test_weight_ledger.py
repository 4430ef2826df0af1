import pytest

from weighbridge.core.errors import StageMismatch, ValidationError
from weighbridge.domains.trips.models import Trip, TripStage
from weighbridge.domains.trips.service import get_trip
from weighbridge.domains.weights.models import WeightStatus, WeightType
from weighbridge.domains.weights.service import capture, net_weight, weights_for_trip


def _capture(db, trip_id, weight_type, value, operator_id):
    return capture(
        db,
        trip_id=trip_id,
        weight_type=weight_type,
        weight_value=value,
        status=WeightStatus.PASSED,
        operator_id=operator_id,
    )


def test_net_weight_is_gross_minus_tare():
    assert net_weight(Trip(gross_weight=24580.0, tare_weight=9820.0)) == 14760.0


def test_net_weight_unavailable_until_both_captured():
    assert net_weight(Trip(gross_weight=24580.0, tare_weight=None)) is None
    assert net_weight(Trip(gross_weight=None, tare_weight=9820.0)) is None
    assert net_weight(Trip()) is None


def test_full_weighing_cycle(db, trip, admin, advance_to):
    advance_to(trip.id, TripStage.GROSS_WEIGHT)
    gross = _capture(db, trip.id, WeightType.GROSS, 24580, admin.id)
    assert gross.weight_type == WeightType.GROSS
    assert gross.operator_id == admin.id

    advance_to(trip.id, TripStage.TARE_WEIGHT)
    _capture(db, trip.id, WeightType.TARE, 9820, admin.id)

    t = get_trip(db, trip.id)
    assert t.gross_weight == 24580.0
    assert t.tare_weight == 9820.0
    assert net_weight(t) == 14760.0
    assert [w.weight_type for w in weights_for_trip(db, trip.id)] == [WeightType.GROSS, WeightType.TARE]


def test_gross_capture_outside_gross_stage_is_rejected(db, trip, admin, advance_to):
    advance_to(trip.id, TripStage.UNLOADING)
    with pytest.raises(StageMismatch) as exc:
        _capture(db, trip.id, WeightType.GROSS, 24580, admin.id)

    assert exc.value.extra == {"trip_id": trip.id, "current_stage": "UNLOADING", "required_stage": "GROSS_WEIGHT"}
    assert get_trip(db, trip.id).gross_weight is None
    assert weights_for_trip(db, trip.id) == []


def test_tare_capture_at_gross_stage_is_rejected(db, trip, admin, advance_to):
    advance_to(trip.id, TripStage.GROSS_WEIGHT)
    with pytest.raises(StageMismatch):
        _capture(db, trip.id, WeightType.TARE, 9820, admin.id)


def test_stage_is_checked_before_value(db, trip, admin):
    with pytest.raises(StageMismatch):
        _capture(db, trip.id, WeightType.GROSS, -5, admin.id)


@pytest.mark.parametrize("value", [0, -1, 100_000.5, float("nan"), float("inf")])
def test_weight_value_out_of_range(db, trip, admin, advance_to, value):
    advance_to(trip.id, TripStage.GROSS_WEIGHT)
    with pytest.raises(ValidationError):
        _capture(db, trip.id, WeightType.GROSS, value, admin.id)
    assert get_trip(db, trip.id).gross_weight is None


def test_weight_at_upper_bound_is_accepted(db, trip, admin, advance_to):
    advance_to(trip.id, TripStage.GROSS_WEIGHT)
    w = _capture(db, trip.id, WeightType.GROSS, 100_000, admin.id)
    assert w.weight_value == 100_000.0


def test_capture_over_http(client, trip, advance_to, auth_headers):
    advance_to(trip.id, TripStage.GROSS_WEIGHT)
    headers = auth_headers("operator")

    resp = client.post(
        "/api/weights/",
        json={"trip_id": trip.id, "weight_type": "Gross", "weight_value": 24580, "camera_image_refs": "cam1/0001.jpg"},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    assert resp.json()["status"] == "PASSED"

    latest = client.get(f"/api/weights/trip/{trip.id}/gross", headers=headers).json()
    assert latest["weight_value"] == 24580.0

    missing = client.get(f"/api/weights/trip/{trip.id}/tare", headers=headers)
    assert missing.status_code == 404

    wrong_stage = client.post(
        "/api/weights/",
        json={"trip_id": trip.id, "weight_type": "Tare", "weight_value": 9820},
        headers=headers,
    )
    assert wrong_stage.status_code == 409
    assert wrong_stage.json()["detail"]["code"] == "STAGE_MISMATCH"
