from datetime import datetime, timezone

import pytest

from weighbridge.core.errors import (
    AuthExpired,
    ConflictError,
    NotFoundError,
    RegistrationLegFailed,
    StageMismatch,
    StoreError,
    ValidationError,
    error_from_payload,
)
from weighbridge.domains.dashboard.service import dashboard_stats
from weighbridge.domains.trips.models import TripStage
from weighbridge.domains.weights.models import WeightStatus, WeightType
from weighbridge.domains.weights.service import capture


def test_error_detail_shape():
    err = StageMismatch("wrong stage", trip_id="t1")
    assert err.status_code == 409
    assert err.detail == {"code": "STAGE_MISMATCH", "message": "wrong stage", "trip_id": "t1"}
    assert str(err) == "wrong stage"


@pytest.mark.parametrize(
    "status_code, detail, expected",
    [
        (409, {"code": "STAGE_MISMATCH", "message": "x"}, StageMismatch),
        (422, {"code": "REGISTRATION_LEG_FAILED", "message": "x", "leg": "driver"}, RegistrationLegFailed),
        (409, "Duplicate", ConflictError),
        (404, {"message": "gone"}, NotFoundError),
        (401, "Not authenticated", AuthExpired),
        (422, [{"loc": ["body", "weight_value"], "msg": "field required"}], ValidationError),
        (500, "boom", StoreError),
    ],
)
def test_error_from_payload(status_code, detail, expected):
    err = error_from_payload(status_code, detail)
    assert type(err) is expected
    assert err.status_code == status_code


def test_leg_survives_round_trip():
    err = error_from_payload(422, {"code": "REGISTRATION_LEG_FAILED", "message": "x", "leg": "driver", "vehicle_id": "v1"})
    assert err.leg == "driver"
    assert err.extra["vehicle_id"] == "v1"


def test_validation_list_is_flattened():
    err = error_from_payload(422, [{"loc": ["body", "weight_value"], "msg": "field required"}])
    assert err.message == "body.weight_value: field required"


def test_dashboard_counts(db, trip, admin, advance_to):
    advance_to(trip.id, TripStage.GROSS_WEIGHT)
    capture(
        db,
        trip_id=trip.id,
        weight_type=WeightType.GROSS,
        weight_value=24580,
        status=WeightStatus.PASSED,
        operator_id=admin.id,
    )

    stats = dashboard_stats(db, now=datetime.now(timezone.utc))
    assert stats["active_trips"] == 1
    assert stats["completed_trips"] == 0
    assert stats["pending_vehicles"] == 0
    assert stats["active_purchase_orders"] == 1
    assert stats["weight_today_kg"] == 24580.0


def test_dashboard_over_http(client, trip, auth_headers):
    resp = client.get("/api/dashboard/stats", headers=auth_headers("user"))
    assert resp.status_code == 200
    assert resp.json()["active_trips"] == 1


def test_health(client):
    assert client.get("/health").json()["ok"] is True
