import logging
import math
from datetime import datetime, timezone

from sqlalchemy import update
from sqlalchemy.orm import Session

from weighbridge.core.config import settings
from weighbridge.core.errors import NotFoundError, StageMismatch, ValidationError
from weighbridge.domains.trips.models import Trip, TripStage, TripStatus
from weighbridge.domains.trips.service import get_trip
from weighbridge.domains.weights.models import Weight, WeightStatus, WeightType

logger = logging.getLogger(__name__)

# Which stage a weighing belongs to, and which trip column it sets.
CAPTURE_STAGE: dict[WeightType, TripStage] = {
    WeightType.GROSS: TripStage.GROSS_WEIGHT,
    WeightType.TARE: TripStage.TARE_WEIGHT,
}
_TRIP_FIELD: dict[WeightType, str] = {
    WeightType.GROSS: "gross_weight",
    WeightType.TARE: "tare_weight",
}


def capture(
    db: Session,
    *,
    trip_id: str,
    weight_type: WeightType,
    weight_value: float,
    status: WeightStatus,
    operator_id: str,
    camera_image_refs: str | None = None,
) -> Weight:
    trip = get_trip(db, trip_id)
    required = CAPTURE_STAGE[weight_type]
    if trip.status != TripStatus.ACTIVE or trip.current_stage != required:
        raise StageMismatch(
            f"{weight_type.value} weight can only be captured at {required.value}",
            trip_id=trip_id,
            current_stage=trip.current_stage.value,
            required_stage=required.value,
        )

    if weight_value is None or not math.isfinite(weight_value) or not (0 < weight_value <= settings.max_weight_kg):
        raise ValidationError(
            f"weight_value must be greater than 0 and at most {settings.max_weight_kg:g} kg (got {weight_value})",
        )

    # Guard against the trip leaving the stage between the read above and this write.
    result = db.execute(
        update(Trip)
        .where(Trip.id == trip_id, Trip.current_stage == required, Trip.status == TripStatus.ACTIVE)
        .values({_TRIP_FIELD[weight_type]: float(weight_value)})
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        raise StageMismatch(f"Trip left {required.value} before the weight was stored", trip_id=trip_id)

    w = Weight(
        trip_id=trip_id,
        weight_type=weight_type,
        weight_value=float(weight_value),
        capture_time=datetime.now(timezone.utc),
        camera_image_refs=camera_image_refs,
        operator_id=operator_id,
        status=status,
    )
    db.add(w)
    db.commit()
    db.refresh(w)
    db.expire(trip)
    logger.info("Captured %s weight %.1f kg on trip %s (%s)", weight_type.value, w.weight_value, trip_id, status.value)
    return w


def net_weight(trip: Trip) -> float | None:
    """gross - tare, or None ("unavailable") until both have been captured."""
    if trip.gross_weight is None or trip.tare_weight is None:
        return None
    return trip.gross_weight - trip.tare_weight


def list_weights(db: Session, *, skip: int = 0, limit: int = 100) -> list[Weight]:
    return db.query(Weight).order_by(Weight.capture_time.desc()).offset(skip).limit(limit).all()


def weights_for_trip(db: Session, trip_id: str) -> list[Weight]:
    get_trip(db, trip_id)
    return db.query(Weight).filter(Weight.trip_id == trip_id).order_by(Weight.capture_time.asc()).all()


def latest_weight(db: Session, *, trip_id: str, weight_type: WeightType) -> Weight:
    w = (
        db.query(Weight)
        .filter(Weight.trip_id == trip_id, Weight.weight_type == weight_type)
        .order_by(Weight.capture_time.desc())
        .first()
    )
    if not w:
        raise NotFoundError(f"No {weight_type.value} weight for trip", trip_id=trip_id)
    return w


def get_weight(db: Session, weight_id: str) -> Weight:
    w = db.get(Weight, weight_id)
    if not w:
        raise NotFoundError("Weight not found", weight_id=weight_id)
    return w
