from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from weighbridge.core.deps import GATE_ROLES, YARD_ROLES, get_db, get_principal, require_roles
from weighbridge.core.security import Principal
from weighbridge.domains.trips.models import Trip, TripStatus
from weighbridge.domains.trips.schemas import StageTransactionOut, StageUpdateIn, TripCreateIn, TripFailIn, TripOut
from weighbridge.domains.trips.service import (
    advance,
    create_trip,
    current_trip,
    fail_trip,
    get_trip,
    history,
    list_trips,
)
from weighbridge.domains.trips.stages import STAGE_LABELS, next_stage
from weighbridge.domains.weights.service import net_weight


router = APIRouter(prefix="/api")


def _trip_out(trip: Trip) -> TripOut:
    return TripOut(
        id=trip.id,
        vehicle_id=trip.vehicle_id,
        driver_id=trip.driver_id,
        po_id=trip.po_id,
        status=trip.status,
        current_stage=trip.current_stage,
        current_stage_label=STAGE_LABELS[trip.current_stage],
        next_stage=next_stage(trip.current_stage) if trip.status == TripStatus.ACTIVE else None,
        gross_weight=trip.gross_weight,
        tare_weight=trip.tare_weight,
        net_weight=net_weight(trip),
        created_at=trip.created_at,
        completed_at=trip.completed_at,
    )


@router.post("/trips/", response_model=TripOut, status_code=201)
def trip_create(
    payload: TripCreateIn,
    _: Principal = Depends(require_roles(GATE_ROLES)),
    db: Session = Depends(get_db),
) -> TripOut:
    return _trip_out(create_trip(db, **payload.model_dump()))


@router.get("/trips/", response_model=list[TripOut])
def trips(
    status: TripStatus | None = Query(default=None),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    _: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> list[TripOut]:
    return [_trip_out(t) for t in list_trips(db, status=status, skip=skip, limit=limit)]


@router.get("/trips/active", response_model=list[TripOut])
def trips_active(_: Principal = Depends(get_principal), db: Session = Depends(get_db)) -> list[TripOut]:
    return [_trip_out(t) for t in list_trips(db, status=TripStatus.ACTIVE, limit=500)]


@router.get("/trips/completed", response_model=list[TripOut])
def trips_completed(_: Principal = Depends(get_principal), db: Session = Depends(get_db)) -> list[TripOut]:
    return [_trip_out(t) for t in list_trips(db, status=TripStatus.COMPLETED, limit=500)]


@router.get("/trips/current", response_model=TripOut)
def trip_current(
    vehicle_id: str | None = Query(default=None),
    driver_id: str | None = Query(default=None),
    _: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> TripOut:
    return _trip_out(current_trip(db, vehicle_id=vehicle_id, driver_id=driver_id))


@router.get("/trips/{trip_id}", response_model=TripOut)
def trip_detail(trip_id: str, _: Principal = Depends(get_principal), db: Session = Depends(get_db)) -> TripOut:
    return _trip_out(get_trip(db, trip_id))


@router.post("/trips/{trip_id}/fail", response_model=TripOut)
def trip_fail(
    trip_id: str,
    payload: TripFailIn,
    principal: Principal = Depends(require_roles(YARD_ROLES)),
    db: Session = Depends(get_db),
) -> TripOut:
    trip = fail_trip(db, trip_id=trip_id, staff_id=principal.staff_id, role=principal.role, remarks=payload.remarks)
    return _trip_out(trip)


@router.get("/stage-transactions/trip/{trip_id}", response_model=list[StageTransactionOut])
def trip_stages(
    trip_id: str,
    _: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> list[StageTransactionOut]:
    return [StageTransactionOut.model_validate(tx) for tx in history(db, trip_id)]


@router.post("/stage-transactions/trip/{trip_id}/advance", response_model=StageTransactionOut)
def trip_advance(
    trip_id: str,
    payload: StageUpdateIn,
    principal: Principal = Depends(require_roles(YARD_ROLES)),
    db: Session = Depends(get_db),
) -> StageTransactionOut:
    tx = advance(
        db,
        trip_id=trip_id,
        next_stage_name=payload.next_stage,
        staff_id=principal.staff_id,
        role=principal.role,
        remarks=payload.remarks,
    )
    return StageTransactionOut.model_validate(tx)
