from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from weighbridge.core.deps import APPROVER_ROLES, GATE_ROLES, get_db, get_principal, require_roles
from weighbridge.core.security import Principal
from weighbridge.domains.registration.models import ApprovalStatus
from weighbridge.domains.registration.schemas import (
    CombinedRegistrationIn,
    CombinedRegistrationOut,
    DriverCreateIn,
    DriverOut,
    DriverUpdateIn,
    VehicleOut,
    VehicleRegistrationIn,
    VehicleRegistrationOut,
)
from weighbridge.domains.registration.service import (
    create_driver,
    create_vehicle,
    delete_driver,
    get_driver,
    get_vehicle_by_registration,
    list_drivers,
    list_vehicles,
    register_vehicle,
    register_vehicle_and_driver,
    set_driver_approval,
    set_vehicle_approval,
    update_driver,
)


router = APIRouter(prefix="/api")


# Vehicles


@router.get("/vehicles/", response_model=list[VehicleOut])
def vehicles(
    approval_status: ApprovalStatus | None = Query(default=None),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    _: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> list[VehicleOut]:
    rows = list_vehicles(db, approval_status=approval_status, skip=skip, limit=limit)
    return [VehicleOut.model_validate(v) for v in rows]


@router.post("/vehicles/", response_model=VehicleOut, status_code=201)
def vehicle_create(
    payload: VehicleRegistrationIn,
    _: Principal = Depends(require_roles(GATE_ROLES)),
    db: Session = Depends(get_db),
) -> VehicleOut:
    return VehicleOut.model_validate(create_vehicle(db, **payload.model_dump()))


@router.post("/vehicles/register", response_model=VehicleRegistrationOut)
def vehicle_register(
    payload: VehicleRegistrationIn,
    _: Principal = Depends(require_roles(GATE_ROLES)),
    db: Session = Depends(get_db),
) -> VehicleRegistrationOut:
    v, reused = register_vehicle(db, **payload.model_dump())
    return VehicleRegistrationOut(vehicle=VehicleOut.model_validate(v), reused=reused)


@router.get("/vehicles/verification", response_model=list[VehicleOut])
def vehicles_pending(_: Principal = Depends(get_principal), db: Session = Depends(get_db)) -> list[VehicleOut]:
    rows = list_vehicles(db, approval_status=ApprovalStatus.PENDING, limit=500)
    return [VehicleOut.model_validate(v) for v in rows]


@router.get("/vehicles/security/recent", response_model=list[VehicleOut])
def vehicles_recent(
    limit: int = Query(default=10, ge=1, le=100),
    _: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> list[VehicleOut]:
    return [VehicleOut.model_validate(v) for v in list_vehicles(db, limit=limit)]


@router.get("/vehicles/{registration_number}", response_model=VehicleOut)
def vehicle_by_registration(
    registration_number: str,
    _: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> VehicleOut:
    return VehicleOut.model_validate(get_vehicle_by_registration(db, registration_number))


@router.post("/vehicles/{vehicle_id}/approve", response_model=VehicleOut)
def vehicle_approve(
    vehicle_id: str,
    principal: Principal = Depends(require_roles(APPROVER_ROLES)),
    db: Session = Depends(get_db),
) -> VehicleOut:
    v = set_vehicle_approval(
        db, vehicle_id=vehicle_id, approval_status=ApprovalStatus.APPROVED, approver_id=principal.staff_id
    )
    return VehicleOut.model_validate(v)


@router.post("/vehicles/{vehicle_id}/reject", response_model=VehicleOut)
def vehicle_reject(
    vehicle_id: str,
    principal: Principal = Depends(require_roles(APPROVER_ROLES)),
    db: Session = Depends(get_db),
) -> VehicleOut:
    v = set_vehicle_approval(
        db, vehicle_id=vehicle_id, approval_status=ApprovalStatus.REJECTED, approver_id=principal.staff_id
    )
    return VehicleOut.model_validate(v)


# Drivers


@router.get("/drivers/", response_model=list[DriverOut])
def drivers(
    approval_status: ApprovalStatus | None = Query(default=None),
    search: str | None = Query(default=None, max_length=100),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    _: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> list[DriverOut]:
    rows = list_drivers(db, approval_status=approval_status, search=search, skip=skip, limit=limit)
    return [DriverOut.model_validate(d) for d in rows]


@router.post("/drivers/", response_model=DriverOut, status_code=201)
def driver_create(
    payload: DriverCreateIn,
    _: Principal = Depends(require_roles(GATE_ROLES)),
    db: Session = Depends(get_db),
) -> DriverOut:
    return DriverOut.model_validate(create_driver(db, **payload.model_dump()))


@router.get("/drivers/pending", response_model=list[DriverOut])
def drivers_pending(_: Principal = Depends(get_principal), db: Session = Depends(get_db)) -> list[DriverOut]:
    return [DriverOut.model_validate(d) for d in list_drivers(db, approval_status=ApprovalStatus.PENDING, limit=500)]


@router.get("/drivers/approved", response_model=list[DriverOut])
def drivers_approved(_: Principal = Depends(get_principal), db: Session = Depends(get_db)) -> list[DriverOut]:
    return [DriverOut.model_validate(d) for d in list_drivers(db, approval_status=ApprovalStatus.APPROVED, limit=500)]


@router.get("/drivers/{driver_id}", response_model=DriverOut)
def driver_detail(driver_id: str, _: Principal = Depends(get_principal), db: Session = Depends(get_db)) -> DriverOut:
    return DriverOut.model_validate(get_driver(db, driver_id))


@router.put("/drivers/{driver_id}", response_model=DriverOut)
def driver_update(
    driver_id: str,
    payload: DriverUpdateIn,
    _: Principal = Depends(require_roles(APPROVER_ROLES)),
    db: Session = Depends(get_db),
) -> DriverOut:
    return DriverOut.model_validate(update_driver(db, driver_id, payload.model_dump(exclude_unset=True)))


@router.delete("/drivers/{driver_id}", status_code=204)
def driver_delete(
    driver_id: str,
    _: Principal = Depends(require_roles(APPROVER_ROLES)),
    db: Session = Depends(get_db),
) -> None:
    delete_driver(db, driver_id)


@router.post("/drivers/{driver_id}/approve", response_model=DriverOut)
def driver_approve(
    driver_id: str,
    principal: Principal = Depends(require_roles(APPROVER_ROLES)),
    db: Session = Depends(get_db),
) -> DriverOut:
    d = set_driver_approval(db, driver_id=driver_id, approval_status=ApprovalStatus.APPROVED, approver_id=principal.staff_id)
    return DriverOut.model_validate(d)


@router.post("/drivers/{driver_id}/reject", response_model=DriverOut)
def driver_reject(
    driver_id: str,
    principal: Principal = Depends(require_roles(APPROVER_ROLES)),
    db: Session = Depends(get_db),
) -> DriverOut:
    d = set_driver_approval(db, driver_id=driver_id, approval_status=ApprovalStatus.REJECTED, approver_id=principal.staff_id)
    return DriverOut.model_validate(d)


# Security checkpoint: vehicle + driver in one submission


@router.post("/security/registrations", response_model=CombinedRegistrationOut)
def security_registration(
    payload: CombinedRegistrationIn,
    _: Principal = Depends(require_roles(GATE_ROLES)),
    db: Session = Depends(get_db),
) -> CombinedRegistrationOut:
    result = register_vehicle_and_driver(db, vehicle=payload.vehicle.model_dump(), driver=payload.driver.model_dump())
    return CombinedRegistrationOut(
        vehicle=VehicleOut.model_validate(result.vehicle),
        driver=DriverOut.model_validate(result.driver),
        vehicle_reused=result.vehicle_reused,
    )
