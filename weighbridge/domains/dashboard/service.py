from datetime import datetime, time, timezone

from sqlalchemy import func
from sqlalchemy.orm import Session

from weighbridge.domains.purchase_orders.models import POStatus, PurchaseOrder
from weighbridge.domains.registration.models import ApprovalStatus, Driver, Vehicle
from weighbridge.domains.trips.models import Trip, TripStatus
from weighbridge.domains.weights.models import Weight


def dashboard_stats(db: Session, *, now: datetime | None = None) -> dict:
    now = now or datetime.now(timezone.utc)
    start_of_day = datetime.combine(now.date(), time.min, tzinfo=timezone.utc)

    def _count(model, *criteria) -> int:
        return int(db.query(func.count()).select_from(model).filter(*criteria).scalar() or 0)

    weight_today = (
        db.query(func.coalesce(func.sum(Weight.weight_value), 0.0))
        .filter(Weight.capture_time >= start_of_day)
        .scalar()
    )
    return {
        "active_trips": _count(Trip, Trip.status == TripStatus.ACTIVE),
        "completed_trips": _count(Trip, Trip.status == TripStatus.COMPLETED),
        "pending_vehicles": _count(Vehicle, Vehicle.approval_status == ApprovalStatus.PENDING),
        "pending_drivers": _count(Driver, Driver.approval_status == ApprovalStatus.PENDING),
        "active_purchase_orders": _count(PurchaseOrder, PurchaseOrder.status == POStatus.ACTIVE),
        "weight_today_kg": float(weight_today or 0.0),
    }
