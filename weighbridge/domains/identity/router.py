from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from weighbridge.core.deps import STAFF_ADMIN_ROLES, get_db, get_principal, require_roles
from weighbridge.core.security import Principal
from weighbridge.domains.identity.schemas import (
    DepartmentIn,
    LoginIn,
    RoleIn,
    StaffCreateIn,
    StaffOut,
    StaffSelfUpdateIn,
    StaffUpdateIn,
    TokenOut,
)
from weighbridge.domains.identity.service import (
    delete_staff,
    get_staff,
    list_staff,
    login,
    logout,
    register_staff,
    update_staff,
)


router = APIRouter(prefix="/api")


@router.post("/auth/register", response_model=StaffOut, status_code=201)
def register(
    payload: StaffCreateIn,
    principal: Principal = Depends(require_roles(STAFF_ADMIN_ROLES)),
    db: Session = Depends(get_db),
) -> StaffOut:
    staff = register_staff(db, **payload.model_dump())
    return StaffOut.model_validate(staff)


@router.post("/auth/login", response_model=TokenOut)
def auth_login(payload: LoginIn, db: Session = Depends(get_db)) -> TokenOut:
    return TokenOut(access_token=login(db, identifier=payload.identifier, password=payload.password))


@router.post("/auth/logout", response_model=dict)
def auth_logout(principal: Principal = Depends(get_principal), db: Session = Depends(get_db)) -> dict:
    logout(db, principal)
    return {"ok": True}


@router.get("/staff/me", response_model=StaffOut)
def me(principal: Principal = Depends(get_principal), db: Session = Depends(get_db)) -> StaffOut:
    return StaffOut.model_validate(get_staff(db, principal.staff_id))


@router.put("/staff/me", response_model=StaffOut)
def update_me(
    payload: StaffSelfUpdateIn,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> StaffOut:
    staff = update_staff(db, principal.staff_id, payload.model_dump(exclude_unset=True))
    return StaffOut.model_validate(staff)


@router.get("/staff/", response_model=list[StaffOut])
def staff_list(
    department: DepartmentIn | None = None,
    role: RoleIn | None = None,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    principal: Principal = Depends(require_roles(STAFF_ADMIN_ROLES)),
    db: Session = Depends(get_db),
) -> list[StaffOut]:
    rows = list_staff(db, department=department, role=role, skip=skip, limit=limit)
    return [StaffOut.model_validate(s) for s in rows]


@router.get("/staff/by-department/{department}", response_model=list[StaffOut])
def staff_by_department(
    department: DepartmentIn,
    principal: Principal = Depends(require_roles(STAFF_ADMIN_ROLES)),
    db: Session = Depends(get_db),
) -> list[StaffOut]:
    return [StaffOut.model_validate(s) for s in list_staff(db, department=department)]


@router.get("/staff/by-role/{role}", response_model=list[StaffOut])
def staff_by_role(
    role: RoleIn,
    principal: Principal = Depends(require_roles(STAFF_ADMIN_ROLES)),
    db: Session = Depends(get_db),
) -> list[StaffOut]:
    return [StaffOut.model_validate(s) for s in list_staff(db, role=role)]


@router.get("/staff/{staff_id}", response_model=StaffOut)
def staff_get(
    staff_id: str,
    principal: Principal = Depends(require_roles(STAFF_ADMIN_ROLES)),
    db: Session = Depends(get_db),
) -> StaffOut:
    return StaffOut.model_validate(get_staff(db, staff_id))


@router.put("/staff/{staff_id}", response_model=StaffOut)
def staff_update(
    staff_id: str,
    payload: StaffUpdateIn,
    principal: Principal = Depends(require_roles(STAFF_ADMIN_ROLES)),
    db: Session = Depends(get_db),
) -> StaffOut:
    return StaffOut.model_validate(update_staff(db, staff_id, payload.model_dump(exclude_unset=True)))


@router.delete("/staff/{staff_id}", status_code=204)
def staff_delete(
    staff_id: str,
    principal: Principal = Depends(require_roles(STAFF_ADMIN_ROLES)),
    db: Session = Depends(get_db),
) -> None:
    delete_staff(db, staff_id, acting_staff_id=principal.staff_id)
