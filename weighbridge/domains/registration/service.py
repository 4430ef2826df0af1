import logging
import re
from dataclasses import dataclass

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from weighbridge.core.errors import (
    AuthExpired,
    ConflictError,
    NotFoundError,
    RegistrationLegFailed,
    ValidationError,
    VehicleRejected,
    WeighbridgeError,
)
from weighbridge.domains.registration.models import ApprovalStatus, Driver, Vehicle
from weighbridge.domains.trips.models import Trip

logger = logging.getLogger(__name__)

_AADHAAR_RE = re.compile(r"^\d{12}$")


def normalize_registration(registration_number: str) -> str:
    return (registration_number or "").strip().upper()


# --- vehicles -------------------------------------------------------------


def get_vehicle_by_registration(db: Session, registration_number: str) -> Vehicle:
    reg = normalize_registration(registration_number)
    v = db.query(Vehicle).filter(Vehicle.registration_number == reg).one_or_none()
    if not v:
        raise NotFoundError("Vehicle not registered", registration_number=reg)
    return v


def get_vehicle(db: Session, vehicle_id: str) -> Vehicle:
    v = db.get(Vehicle, vehicle_id)
    if not v:
        raise NotFoundError("Unknown vehicle", vehicle_id=vehicle_id)
    return v


def create_vehicle(
    db: Session,
    *,
    registration_number: str,
    vehicle_type: str,
    manufacturer_tare_weight: float,
    fastag_id: str | None = None,
    image: str | None = None,
) -> Vehicle:
    """
    Plain create. The unique index on registration_number is the arbiter:
    a concurrent insert of the same number surfaces here as ConflictError.
    """
    reg = normalize_registration(registration_number)
    if not reg:
        raise ValidationError("registration_number is required")
    if manufacturer_tare_weight is None or manufacturer_tare_weight <= 0:
        raise ValidationError("manufacturer_tare_weight must be positive")

    v = Vehicle(
        registration_number=reg,
        vehicle_type=vehicle_type,
        manufacturer_tare_weight=float(manufacturer_tare_weight),
        fastag_id=(fastag_id or None),
        image=image,
        approval_status=ApprovalStatus.PENDING,
    )
    db.add(v)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Vehicle already exists", registration_number=reg)
    db.refresh(v)
    return v


def list_vehicles(
    db: Session,
    *,
    approval_status: ApprovalStatus | None = None,
    skip: int = 0,
    limit: int = 100,
) -> list[Vehicle]:
    q = db.query(Vehicle)
    if approval_status is not None:
        q = q.filter(Vehicle.approval_status == approval_status)
    return q.order_by(Vehicle.created_at.desc()).offset(skip).limit(limit).all()


def set_vehicle_approval(db: Session, *, vehicle_id: str, approval_status: ApprovalStatus, approver_id: str) -> Vehicle:
    v = get_vehicle(db, vehicle_id)
    v.approval_status = approval_status
    v.approver_id = approver_id
    db.commit()
    db.refresh(v)
    logger.info("Vehicle %s marked %s by %s", v.registration_number, approval_status.value, approver_id)
    return v


# --- drivers --------------------------------------------------------------


def create_driver(db: Session, *, driver_name: str, mobile_number: str, aadhaar: str) -> Driver:
    # Duplicate drivers are allowed; only vehicles are de-duplicated.
    name = (driver_name or "").strip()
    if len(name) < 2:
        raise ValidationError("driver_name must be at least 2 characters")
    digits = (aadhaar or "").strip()
    if not _AADHAAR_RE.match(digits):
        raise ValidationError("aadhaar must be exactly 12 digits")
    mobile = (mobile_number or "").strip()
    if sum(ch.isdigit() for ch in mobile) < 10:
        raise ValidationError("mobile_number must contain at least 10 digits")

    d = Driver(driver_name=name, mobile_number=mobile, aadhaar=digits, approval_status=ApprovalStatus.PENDING)
    db.add(d)
    db.commit()
    db.refresh(d)
    return d


def get_driver(db: Session, driver_id: str) -> Driver:
    d = db.get(Driver, driver_id)
    if not d:
        raise NotFoundError("Unknown driver", driver_id=driver_id)
    return d


def list_drivers(
    db: Session,
    *,
    approval_status: ApprovalStatus | None = None,
    search: str | None = None,
    skip: int = 0,
    limit: int = 100,
) -> list[Driver]:
    q = db.query(Driver)
    if approval_status is not None:
        q = q.filter(Driver.approval_status == approval_status)
    if search and search.strip():
        term = f"%{search.strip()}%"
        q = q.filter(or_(Driver.driver_name.ilike(term), Driver.mobile_number.like(term)))
    return q.order_by(Driver.created_at.desc()).offset(skip).limit(limit).all()


def update_driver(db: Session, driver_id: str, changes: dict) -> Driver:
    """Edit a driver's details. The approval state is left as it is."""
    d = get_driver(db, driver_id)
    if changes.get("driver_name") is not None:
        name = changes["driver_name"].strip()
        if len(name) < 2:
            raise ValidationError("driver_name must be at least 2 characters")
        d.driver_name = name
    if changes.get("mobile_number") is not None:
        mobile = changes["mobile_number"].strip()
        if sum(ch.isdigit() for ch in mobile) < 10:
            raise ValidationError("mobile_number must contain at least 10 digits")
        d.mobile_number = mobile
    if changes.get("aadhaar") is not None:
        digits = changes["aadhaar"].strip()
        if not _AADHAAR_RE.match(digits):
            raise ValidationError("aadhaar must be exactly 12 digits")
        d.aadhaar = digits
    db.commit()
    db.refresh(d)
    return d


def delete_driver(db: Session, driver_id: str) -> None:
    d = get_driver(db, driver_id)
    if db.query(Trip.id).filter(Trip.driver_id == d.id).first():
        raise ConflictError("Driver has trips and cannot be deleted", driver_id=driver_id)
    db.delete(d)
    db.commit()
    logger.info("Driver deleted id=%s", driver_id)


def set_driver_approval(db: Session, *, driver_id: str, approval_status: ApprovalStatus, approver_id: str) -> Driver:
    d = get_driver(db, driver_id)
    d.approval_status = approval_status
    d.approver_id = approver_id
    db.commit()
    db.refresh(d)
    return d


# --- gate registration ----------------------------------------------------


def _existing_vehicle(db: Session, registration_number: str) -> Vehicle | None:
    """
    Lookup-and-branch step. "Not found" is the expected answer for a new
    vehicle; a Rejected vehicle is never silently reused.
    """
    try:
        v = get_vehicle_by_registration(db, registration_number)
    except NotFoundError:
        return None
    if v.approval_status == ApprovalStatus.REJECTED:
        raise VehicleRejected(
            "Vehicle registration was rejected",
            vehicle_id=v.id,
            registration_number=v.registration_number,
        )
    return v


def register_vehicle(
    db: Session,
    *,
    registration_number: str,
    vehicle_type: str,
    manufacturer_tare_weight: float,
    fastag_id: str | None = None,
    image: str | None = None,
) -> tuple[Vehicle, bool]:
    """
    Register a vehicle from the security gate, tolerating duplicate submissions.

    Returns (vehicle, reused). When two terminals submit the same plate at
    once, the loser's insert hits the unique index; it re-runs the lookup
    exactly once and reuses the winner's row.
    """
    reg = normalize_registration(registration_number)

    existing = _existing_vehicle(db, reg)
    if existing is not None:
        return existing, True

    try:
        v = create_vehicle(
            db,
            registration_number=reg,
            vehicle_type=vehicle_type,
            manufacturer_tare_weight=manufacturer_tare_weight,
            fastag_id=fastag_id,
            image=image,
        )
        return v, False
    except ConflictError:
        logger.info("Registration race on %s; re-checking existing vehicle", reg)
        existing = _existing_vehicle(db, reg)
        if existing is None:
            raise
        return existing, True


@dataclass
class RegistrationResult:
    vehicle: Vehicle
    driver: Driver
    vehicle_reused: bool


def register_vehicle_and_driver(db: Session, *, vehicle: dict, driver: dict) -> RegistrationResult:
    """
    Both legs run independently; neither is rolled back if the other fails.
    The raised RegistrationLegFailed names the failing leg(s) and the ids of
    whatever was already created.
    """
    vehicle_row: Vehicle | None = None
    reused = False
    vehicle_err: WeighbridgeError | None = None
    try:
        vehicle_row, reused = register_vehicle(db, **vehicle)
    except AuthExpired:
        raise
    except WeighbridgeError as e:
        vehicle_err = e

    driver_row: Driver | None = None
    driver_err: WeighbridgeError | None = None
    try:
        driver_row = create_driver(db, **driver)
    except AuthExpired:
        raise
    except WeighbridgeError as e:
        driver_err = e

    if vehicle_err is None and driver_err is None:
        return RegistrationResult(vehicle=vehicle_row, driver=driver_row, vehicle_reused=reused)  # type: ignore[arg-type]

    if vehicle_err is not None and driver_err is not None:
        leg = "both"
    elif vehicle_err is not None:
        leg = "vehicle"
    else:
        leg = "driver"
    cause = vehicle_err or driver_err
    logger.warning("Gate registration failed on %s leg: %s", leg, cause)
    raise RegistrationLegFailed(
        f"Registration failed on {leg} leg: {cause}",
        status_code=cause.status_code,  # type: ignore[union-attr]
        leg=leg,
        vehicle_error=vehicle_err.detail if vehicle_err else None,
        driver_error=driver_err.detail if driver_err else None,
        vehicle_id=vehicle_row.id if vehicle_row else None,
        driver_id=driver_row.id if driver_row else None,
    )
