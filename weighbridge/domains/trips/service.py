import logging
from datetime import datetime, timezone

from sqlalchemy import update
from sqlalchemy.orm import Session

from weighbridge.core.errors import ConflictError, InvalidTransition, NotFoundError, ValidationError
from weighbridge.domains.purchase_orders.models import POStatus
from weighbridge.domains.purchase_orders.service import get_purchase_order
from weighbridge.domains.registration.models import ApprovalStatus
from weighbridge.domains.registration.service import get_driver, get_vehicle
from weighbridge.domains.trips.models import StageTransaction, Trip, TripStage, TripStatus
from weighbridge.domains.trips.stages import INITIAL_STAGE, TERMINAL_STAGE, is_allowed, next_stage

logger = logging.getLogger(__name__)


def create_trip(db: Session, *, vehicle_id: str, driver_id: str, po_id: str) -> Trip:
    vehicle = get_vehicle(db, vehicle_id)
    if vehicle.approval_status != ApprovalStatus.APPROVED:
        raise ValidationError("Vehicle is not approved", vehicle_id=vehicle_id, approval_status=vehicle.approval_status.value)
    driver = get_driver(db, driver_id)
    if driver.approval_status != ApprovalStatus.APPROVED:
        raise ValidationError("Driver is not approved", driver_id=driver_id, approval_status=driver.approval_status.value)
    po = get_purchase_order(db, po_id)
    if po.status != POStatus.ACTIVE:
        raise ValidationError("Purchase order is not active", po_id=po_id, status=po.status.value)

    in_yard = (
        db.query(Trip)
        .filter(Trip.vehicle_id == vehicle_id, Trip.status == TripStatus.ACTIVE)
        .first()
    )
    if in_yard:
        raise ConflictError("Vehicle already has an active trip", trip_id=in_yard.id)

    trip = Trip(
        vehicle_id=vehicle_id,
        driver_id=driver_id,
        po_id=po_id,
        status=TripStatus.ACTIVE,
        current_stage=INITIAL_STAGE,
    )
    db.add(trip)
    db.commit()
    db.refresh(trip)
    logger.info("Trip %s opened for vehicle %s on PO %s", trip.id, vehicle.registration_number, po.po_reference_number)
    return trip


def get_trip(db: Session, trip_id: str) -> Trip:
    trip = db.get(Trip, trip_id)
    if not trip:
        raise NotFoundError("Trip not found", trip_id=trip_id)
    return trip


def list_trips(db: Session, *, status: TripStatus | None = None, skip: int = 0, limit: int = 100) -> list[Trip]:
    q = db.query(Trip)
    if status is not None:
        q = q.filter(Trip.status == status)
    return q.order_by(Trip.created_at.desc()).offset(skip).limit(limit).all()


def current_trip(db: Session, *, vehicle_id: str | None = None, driver_id: str | None = None) -> Trip:
    if not vehicle_id and not driver_id:
        raise ValidationError("vehicle_id or driver_id is required")
    q = db.query(Trip).filter(Trip.status == TripStatus.ACTIVE)
    if vehicle_id:
        q = q.filter(Trip.vehicle_id == vehicle_id)
    if driver_id:
        q = q.filter(Trip.driver_id == driver_id)
    trip = q.order_by(Trip.created_at.desc()).first()
    if not trip:
        raise NotFoundError("No active trip", vehicle_id=vehicle_id, driver_id=driver_id)
    return trip


def advance(
    db: Session,
    *,
    trip_id: str,
    next_stage_name: TripStage,
    staff_id: str,
    role: str,
    remarks: str | None = None,
) -> StageTransaction:
    """
    Move a trip to the stage immediately after its current one.

    The write is a compare-and-set on (current_stage, status): if another
    caller advanced the trip first, the update matches no row and this call
    fails with InvalidTransition instead of overwriting.
    """
    trip = get_trip(db, trip_id)
    current = trip.current_stage
    if trip.status != TripStatus.ACTIVE:
        raise InvalidTransition(
            f"Trip is {trip.status.value}; no further transitions",
            trip_id=trip_id,
            current_stage=current.value,
        )

    if not is_allowed(current, next_stage_name):
        expected = next_stage(current)
        logger.info("Rejected transition %s -> %s on trip %s", current.value, next_stage_name.value, trip_id)
        raise InvalidTransition(
            f"Cannot move from {current.value} to {next_stage_name.value}",
            trip_id=trip_id,
            current_stage=current.value,
            allowed_next=expected.value if expected else None,
        )

    now = datetime.now(timezone.utc)
    values: dict = {"current_stage": next_stage_name}
    if next_stage_name == TERMINAL_STAGE:
        values["status"] = TripStatus.COMPLETED
        values["completed_at"] = now

    result = db.execute(
        update(Trip)
        .where(Trip.id == trip_id, Trip.current_stage == current, Trip.status == TripStatus.ACTIVE)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        fresh = get_trip(db, trip_id)
        logger.info("Lost advance race on trip %s (now at %s)", trip_id, fresh.current_stage.value)
        raise InvalidTransition(
            "Trip was advanced by another caller",
            trip_id=trip_id,
            current_stage=fresh.current_stage.value,
        )

    tx = StageTransaction(
        trip_id=trip_id,
        stage_name=next_stage_name.value,
        stage_status=TripStatus.COMPLETED.value,
        staff_id=staff_id,
        role=role,
        action_timestamp=now,
        remarks=remarks,
    )
    db.add(tx)
    db.commit()
    db.refresh(tx)
    db.expire(trip)
    logger.info("Trip %s advanced %s -> %s by %s", trip_id, current.value, next_stage_name.value, staff_id)
    return tx


def fail_trip(db: Session, *, trip_id: str, staff_id: str, role: str, remarks: str | None = None) -> Trip:
    trip = get_trip(db, trip_id)
    current = trip.current_stage
    if trip.status != TripStatus.ACTIVE:
        raise InvalidTransition(f"Trip is {trip.status.value}; no further transitions", trip_id=trip_id)

    now = datetime.now(timezone.utc)
    result = db.execute(
        update(Trip)
        .where(Trip.id == trip_id, Trip.current_stage == current, Trip.status == TripStatus.ACTIVE)
        .values(status=TripStatus.FAILED)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        raise InvalidTransition("Trip was changed by another caller", trip_id=trip_id)

    db.add(
        StageTransaction(
            trip_id=trip_id,
            stage_name=current.value,
            stage_status=TripStatus.FAILED.value,
            staff_id=staff_id,
            role=role,
            action_timestamp=now,
            remarks=remarks,
        )
    )
    db.commit()
    db.expire(trip)
    db.refresh(trip)
    logger.warning("Trip %s failed at %s by %s", trip_id, current.value, staff_id)
    return trip


def history(db: Session, trip_id: str) -> list[StageTransaction]:
    get_trip(db, trip_id)
    return (
        db.query(StageTransaction)
        .filter(StageTransaction.trip_id == trip_id)
        .order_by(StageTransaction.action_timestamp.asc(), StageTransaction.id.asc())
        .all()
    )
