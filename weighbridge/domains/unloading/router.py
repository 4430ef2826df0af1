from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from weighbridge.core.deps import YARD_ROLES, get_db, get_principal, require_roles
from weighbridge.core.security import Principal
from weighbridge.domains.unloading.schemas import UnloadingOut, UnloadingVerifyIn
from weighbridge.domains.unloading.service import (
    get_unloading,
    list_unloadings,
    to_public_dict,
    unloadings_for_trip,
    unloadings_with_rejections,
    verify,
)


router = APIRouter(prefix="/api/material-unloadings")


@router.get("/", response_model=list[UnloadingOut])
def unloadings(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    _: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> list[UnloadingOut]:
    return [UnloadingOut(**to_public_dict(r)) for r in list_unloadings(db, skip=skip, limit=limit)]


@router.post("/", response_model=UnloadingOut, status_code=201)
def unloading_verify(
    payload: UnloadingVerifyIn,
    principal: Principal = Depends(require_roles(YARD_ROLES)),
    db: Session = Depends(get_db),
) -> UnloadingOut:
    row = verify(db, staff_id=principal.staff_id, **payload.model_dump())
    return UnloadingOut(**to_public_dict(row))


@router.get("/with-rejections", response_model=list[UnloadingOut])
def unloadings_rejected(_: Principal = Depends(get_principal), db: Session = Depends(get_db)) -> list[UnloadingOut]:
    return [UnloadingOut(**to_public_dict(r)) for r in unloadings_with_rejections(db)]


@router.get("/trip/{trip_id}", response_model=list[UnloadingOut])
def unloadings_by_trip(trip_id: str, _: Principal = Depends(get_principal), db: Session = Depends(get_db)) -> list[UnloadingOut]:
    return [UnloadingOut(**to_public_dict(r)) for r in unloadings_for_trip(db, trip_id)]


@router.get("/{unloading_id}", response_model=UnloadingOut)
def unloading_detail(unloading_id: str, _: Principal = Depends(get_principal), db: Session = Depends(get_db)) -> UnloadingOut:
    return UnloadingOut(**to_public_dict(get_unloading(db, unloading_id)))
