from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from weighbridge.core.deps import YARD_ROLES, get_db, get_principal, require_roles
from weighbridge.core.security import Principal
from weighbridge.domains.weights.models import WeightType
from weighbridge.domains.weights.schemas import WeightCaptureIn, WeightOut
from weighbridge.domains.weights.service import capture, get_weight, latest_weight, list_weights, weights_for_trip


router = APIRouter(prefix="/api/weights")


@router.get("/", response_model=list[WeightOut])
def weights(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    _: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> list[WeightOut]:
    return [WeightOut.model_validate(w) for w in list_weights(db, skip=skip, limit=limit)]


@router.post("/", response_model=WeightOut, status_code=201)
def weight_capture(
    payload: WeightCaptureIn,
    principal: Principal = Depends(require_roles(YARD_ROLES)),
    db: Session = Depends(get_db),
) -> WeightOut:
    w = capture(
        db,
        trip_id=payload.trip_id,
        weight_type=payload.weight_type,
        weight_value=payload.weight_value,
        status=payload.status,
        operator_id=principal.staff_id,
        camera_image_refs=payload.camera_image_refs,
    )
    return WeightOut.model_validate(w)


@router.get("/trip/{trip_id}", response_model=list[WeightOut])
def weights_by_trip(trip_id: str, _: Principal = Depends(get_principal), db: Session = Depends(get_db)) -> list[WeightOut]:
    return [WeightOut.model_validate(w) for w in weights_for_trip(db, trip_id)]


@router.get("/trip/{trip_id}/gross", response_model=WeightOut)
def gross_for_trip(trip_id: str, _: Principal = Depends(get_principal), db: Session = Depends(get_db)) -> WeightOut:
    return WeightOut.model_validate(latest_weight(db, trip_id=trip_id, weight_type=WeightType.GROSS))


@router.get("/trip/{trip_id}/tare", response_model=WeightOut)
def tare_for_trip(trip_id: str, _: Principal = Depends(get_principal), db: Session = Depends(get_db)) -> WeightOut:
    return WeightOut.model_validate(latest_weight(db, trip_id=trip_id, weight_type=WeightType.TARE))


@router.get("/{weight_id}", response_model=WeightOut)
def weight_detail(weight_id: str, _: Principal = Depends(get_principal), db: Session = Depends(get_db)) -> WeightOut:
    return WeightOut.model_validate(get_weight(db, weight_id))
