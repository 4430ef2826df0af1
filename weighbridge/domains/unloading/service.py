import logging
import math
from datetime import datetime, timezone

from sqlalchemy import update
from sqlalchemy.orm import Session

from weighbridge.core.errors import NotFoundError, StageMismatch, ValidationError
from weighbridge.domains.trips.models import Trip, TripStage, TripStatus
from weighbridge.domains.trips.service import get_trip
from weighbridge.domains.unloading.models import MaterialUnloading, QualityBand

logger = logging.getLogger(__name__)

# Lower bounds are inclusive: exactly 5% is Fair, exactly 15% is Poor.
GOOD_BELOW = 5.0
FAIR_BELOW = 15.0


def total_qty(accepted_qty: float, rejection_qty: float) -> float:
    return (accepted_qty or 0.0) + (rejection_qty or 0.0)


def rejection_rate(accepted_qty: float, rejection_qty: float) -> float:
    total = total_qty(accepted_qty, rejection_qty)
    if total <= 0:
        return 0.0
    # Multiply before dividing so round percentages (5.0, 15.0) stay exact.
    return (rejection_qty or 0.0) * 100.0 / total


def quality_band(rate: float) -> QualityBand:
    if rate <= 0:
        return QualityBand.EXCELLENT
    if rate < GOOD_BELOW:
        return QualityBand.GOOD
    if rate < FAIR_BELOW:
        return QualityBand.FAIR
    return QualityBand.POOR


def _check_qty(name: str, value: float) -> None:
    if value is None or not math.isfinite(value) or value < 0:
        raise ValidationError(f"{name} must be a finite number >= 0 (got {value})")


def verify(
    db: Session,
    *,
    trip_id: str,
    material_type: str,
    accepted_qty: float,
    staff_id: str,
    rejection_qty: float = 0.0,
    remarks: str | None = None,
) -> MaterialUnloading:
    """
    Record what was physically unloaded. Crediting it against the purchase
    order is a separate, explicit step on the PO ledger.
    """
    trip = get_trip(db, trip_id)
    if trip.status != TripStatus.ACTIVE or trip.current_stage != TripStage.UNLOADING:
        raise StageMismatch(
            "Unloading can only be verified at UNLOADING",
            trip_id=trip_id,
            current_stage=trip.current_stage.value,
            required_stage=TripStage.UNLOADING.value,
        )
    _check_qty("accepted_qty", accepted_qty)
    _check_qty("rejection_qty", rejection_qty)
    material = (material_type or "").strip()
    if not material:
        raise ValidationError("material_type is required")

    # Same write-time guard as weight capture: the no-op stage write only matches
    # while the trip is still ACTIVE at UNLOADING, and it holds the row until commit.
    result = db.execute(
        update(Trip)
        .where(Trip.id == trip_id, Trip.current_stage == TripStage.UNLOADING, Trip.status == TripStatus.ACTIVE)
        .values(current_stage=TripStage.UNLOADING)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        raise StageMismatch(
            "Trip left UNLOADING before the verification was stored",
            trip_id=trip_id,
            required_stage=TripStage.UNLOADING.value,
        )

    row = MaterialUnloading(
        trip_id=trip_id,
        material_type=material,
        accepted_qty=float(accepted_qty),
        rejection_qty=float(rejection_qty),
        staff_id=staff_id,
        verification_time=datetime.now(timezone.utc),
        remarks=remarks,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    rate = rejection_rate(row.accepted_qty, row.rejection_qty)
    logger.info(
        "Unloading verified on trip %s: %s accepted=%.2f rejected=%.2f (%.1f%%, %s)",
        trip_id,
        material,
        row.accepted_qty,
        row.rejection_qty,
        rate,
        quality_band(rate).value,
    )
    return row


def list_unloadings(db: Session, *, skip: int = 0, limit: int = 100) -> list[MaterialUnloading]:
    return (
        db.query(MaterialUnloading)
        .order_by(MaterialUnloading.verification_time.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def unloadings_with_rejections(db: Session) -> list[MaterialUnloading]:
    return (
        db.query(MaterialUnloading)
        .filter(MaterialUnloading.rejection_qty > 0)
        .order_by(MaterialUnloading.verification_time.desc())
        .all()
    )


def unloadings_for_trip(db: Session, trip_id: str) -> list[MaterialUnloading]:
    get_trip(db, trip_id)
    return (
        db.query(MaterialUnloading)
        .filter(MaterialUnloading.trip_id == trip_id)
        .order_by(MaterialUnloading.verification_time.asc())
        .all()
    )


def get_unloading(db: Session, unloading_id: str) -> MaterialUnloading:
    row = db.get(MaterialUnloading, unloading_id)
    if not row:
        raise NotFoundError("Unloading record not found", unloading_id=unloading_id)
    return row


def to_public_dict(row: MaterialUnloading) -> dict:
    rate = rejection_rate(row.accepted_qty, row.rejection_qty)
    return {
        "id": row.id,
        "trip_id": row.trip_id,
        "material_type": row.material_type,
        "accepted_qty": row.accepted_qty,
        "rejection_qty": row.rejection_qty,
        "total_qty": total_qty(row.accepted_qty, row.rejection_qty),
        "rejection_rate": rate,
        "quality": quality_band(rate),
        "staff_id": row.staff_id,
        "verification_time": row.verification_time,
        "remarks": row.remarks,
    }
