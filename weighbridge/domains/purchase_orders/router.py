from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from weighbridge.core.deps import CATALOG_ADMIN_ROLES, PURCHASE_ROLES, get_db, get_principal, require_roles
from weighbridge.core.security import Principal
from weighbridge.domains.purchase_orders.models import POStatus
from weighbridge.domains.purchase_orders.schemas import (
    MaterialCreateIn,
    MaterialOut,
    MaterialUpdateIn,
    POCreateIn,
    POStatusIn,
    PurchaseOrderOut,
)
from weighbridge.domains.purchase_orders.service import (
    create_material,
    create_purchase_order,
    delete_material,
    delete_purchase_order,
    get_material,
    get_purchase_order,
    get_purchase_order_by_reference,
    list_materials,
    list_purchase_orders,
    set_status,
    to_public_dict,
    update_material,
    update_received,
)


router = APIRouter(prefix="/api")


@router.get("/materials/", response_model=list[MaterialOut])
def materials(
    search: str | None = Query(default=None, max_length=100),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    _: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> list[MaterialOut]:
    return [MaterialOut.model_validate(m) for m in list_materials(db, search=search, skip=skip, limit=limit)]


@router.post("/materials/", response_model=MaterialOut, status_code=201)
def material_create(
    payload: MaterialCreateIn,
    _: Principal = Depends(require_roles(PURCHASE_ROLES)),
    db: Session = Depends(get_db),
) -> MaterialOut:
    return MaterialOut.model_validate(create_material(db, **payload.model_dump()))


@router.get("/materials/{material_id}", response_model=MaterialOut)
def material_detail(material_id: str, _: Principal = Depends(get_principal), db: Session = Depends(get_db)) -> MaterialOut:
    return MaterialOut.model_validate(get_material(db, material_id))


@router.put("/materials/{material_id}", response_model=MaterialOut)
def material_update(
    material_id: str,
    payload: MaterialUpdateIn,
    _: Principal = Depends(require_roles(CATALOG_ADMIN_ROLES)),
    db: Session = Depends(get_db),
) -> MaterialOut:
    return MaterialOut.model_validate(update_material(db, material_id, payload.model_dump(exclude_unset=True)))


@router.delete("/materials/{material_id}", status_code=204)
def material_delete(
    material_id: str,
    _: Principal = Depends(require_roles(CATALOG_ADMIN_ROLES)),
    db: Session = Depends(get_db),
) -> None:
    delete_material(db, material_id)


def _list(db: Session, status: POStatus | None, skip: int = 0, limit: int = 100) -> list[PurchaseOrderOut]:
    return [PurchaseOrderOut(**to_public_dict(po)) for po in list_purchase_orders(db, status=status, skip=skip, limit=limit)]


@router.get("/purchase-orders/", response_model=list[PurchaseOrderOut])
def purchase_orders(
    status: POStatus | None = Query(default=None),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    _: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> list[PurchaseOrderOut]:
    return _list(db, status, skip, limit)


@router.post("/purchase-orders/", response_model=PurchaseOrderOut, status_code=201)
def purchase_order_create(
    payload: POCreateIn,
    _: Principal = Depends(require_roles(PURCHASE_ROLES)),
    db: Session = Depends(get_db),
) -> PurchaseOrderOut:
    po = create_purchase_order(db, **payload.model_dump())
    return PurchaseOrderOut(**to_public_dict(po))


@router.get("/purchase-orders/active", response_model=list[PurchaseOrderOut])
def purchase_orders_active(_: Principal = Depends(get_principal), db: Session = Depends(get_db)) -> list[PurchaseOrderOut]:
    return _list(db, POStatus.ACTIVE)


@router.get("/purchase-orders/expired", response_model=list[PurchaseOrderOut])
def purchase_orders_expired(_: Principal = Depends(get_principal), db: Session = Depends(get_db)) -> list[PurchaseOrderOut]:
    return _list(db, POStatus.EXPIRED)


@router.get("/purchase-orders/closed", response_model=list[PurchaseOrderOut])
def purchase_orders_closed(_: Principal = Depends(get_principal), db: Session = Depends(get_db)) -> list[PurchaseOrderOut]:
    return _list(db, POStatus.CLOSED)


@router.get("/purchase-orders/reference/{reference}", response_model=PurchaseOrderOut)
def purchase_order_by_reference(
    reference: str,
    _: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> PurchaseOrderOut:
    return PurchaseOrderOut(**to_public_dict(get_purchase_order_by_reference(db, reference)))


@router.get("/purchase-orders/{po_id}", response_model=PurchaseOrderOut)
def purchase_order_detail(po_id: str, _: Principal = Depends(get_principal), db: Session = Depends(get_db)) -> PurchaseOrderOut:
    return PurchaseOrderOut(**to_public_dict(get_purchase_order(db, po_id)))


@router.delete("/purchase-orders/{po_id}", status_code=204)
def purchase_order_delete(
    po_id: str,
    _: Principal = Depends(require_roles(PURCHASE_ROLES)),
    db: Session = Depends(get_db),
) -> None:
    delete_purchase_order(db, po_id)


@router.patch("/purchase-orders/{po_id}/status", response_model=PurchaseOrderOut)
def purchase_order_status(
    po_id: str,
    payload: POStatusIn,
    _: Principal = Depends(require_roles(PURCHASE_ROLES)),
    db: Session = Depends(get_db),
) -> PurchaseOrderOut:
    return PurchaseOrderOut(**to_public_dict(set_status(db, po_id=po_id, status=payload.status)))


@router.patch("/purchase-orders/{po_id}/materials/{material_id}/receive", response_model=PurchaseOrderOut)
def purchase_order_receive(
    po_id: str,
    material_id: str,
    received_qty: float = Query(..., ge=0),
    _: Principal = Depends(require_roles(PURCHASE_ROLES)),
    db: Session = Depends(get_db),
) -> PurchaseOrderOut:
    po = update_received(db, po_id=po_id, material_id=material_id, received_qty=received_qty)
    return PurchaseOrderOut(**to_public_dict(po))
