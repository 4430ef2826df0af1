import logging
from datetime import date

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from weighbridge.core.errors import ConflictError, NotFoundError, ValidationError
from weighbridge.domains.purchase_orders.models import Material, POMaterial, POStatus, PurchaseOrder

logger = logging.getLogger(__name__)


# --- materials catalog ----------------------------------------------------


def create_material(db: Session, *, name: str, unit: str = "kg", grade: str | None = None) -> Material:
    name = name.strip()
    if db.query(Material).filter(Material.name == name).one_or_none():
        raise ConflictError("Material already exists", name=name)
    m = Material(name=name, grade=grade, unit=unit)
    db.add(m)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Material already exists", name=name)
    db.refresh(m)
    return m


def list_materials(db: Session, *, search: str | None = None, skip: int = 0, limit: int = 100) -> list[Material]:
    q = db.query(Material)
    if search and search.strip():
        q = q.filter(Material.name.ilike(f"%{search.strip()}%"))
    return q.order_by(Material.name.asc()).offset(skip).limit(limit).all()


def get_material(db: Session, material_id: str) -> Material:
    m = db.get(Material, material_id)
    if not m:
        raise NotFoundError("Material not found", material_id=material_id)
    return m


def update_material(db: Session, material_id: str, changes: dict) -> Material:
    m = get_material(db, material_id)
    if changes.get("name") is not None:
        name = changes["name"].strip()
        clash = db.query(Material).filter(Material.name == name, Material.id != m.id).one_or_none()
        if clash:
            raise ConflictError("Material already exists", name=name)
        m.name = name
    if "grade" in changes:
        m.grade = changes["grade"]
    if changes.get("unit") is not None:
        m.unit = changes["unit"]
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Material already exists", name=changes.get("name"))
    db.refresh(m)
    return m


def delete_material(db: Session, material_id: str) -> None:
    m = get_material(db, material_id)
    in_use = db.query(POMaterial.id).filter(POMaterial.material_id == m.id).first()
    if in_use:
        raise ConflictError("Material is used by a purchase order", material_id=m.id)
    name = m.name
    db.delete(m)
    db.commit()
    logger.info("Material deleted id=%s name=%s", material_id, name)


# --- purchase orders ------------------------------------------------------


def create_purchase_order(
    db: Session,
    *,
    po_reference_number: str,
    seller_name: str,
    validity_start_date: date,
    validity_end_date: date,
    materials: list[dict],
    seller_mobile: str | None = None,
    seller_aadhaar: str | None = None,
    units: str = "kg",
) -> PurchaseOrder:
    ref = (po_reference_number or "").strip()
    if not ref:
        raise ValidationError("po_reference_number is required")
    if validity_start_date >= validity_end_date:
        raise ValidationError("Validity window must start before it ends")
    if not materials:
        raise ValidationError("A purchase order needs at least one material line")

    seen: set[str] = set()
    for line in materials:
        if line.get("needed_qty") is None or line["needed_qty"] <= 0:
            raise ValidationError("needed_qty must be positive", material_id=line.get("material_id"))
        if line["material_id"] in seen:
            raise ValidationError("Material listed twice", material_id=line["material_id"])
        seen.add(line["material_id"])

    known = {m.id for m in db.query(Material.id).filter(Material.id.in_(seen)).all()}
    unknown = sorted(seen - known)
    if unknown:
        raise ValidationError("Unknown material", material_ids=unknown)

    if db.query(PurchaseOrder).filter(PurchaseOrder.po_reference_number == ref).one_or_none():
        raise ValidationError("PO reference already exists", po_reference_number=ref)

    po = PurchaseOrder(
        po_reference_number=ref,
        seller_name=seller_name,
        seller_mobile=seller_mobile,
        seller_aadhaar=seller_aadhaar,
        validity_start_date=validity_start_date,
        validity_end_date=validity_end_date,
        units=units,
        status=POStatus.ACTIVE,
    )
    po.materials = [
        POMaterial(material_id=line["material_id"], needed_qty=float(line["needed_qty"]), received_qty=0.0, position=i)
        for i, line in enumerate(materials)
    ]
    db.add(po)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationError("PO reference already exists", po_reference_number=ref)
    db.refresh(po)
    return po


def get_purchase_order(db: Session, po_id: str) -> PurchaseOrder:
    po = db.get(PurchaseOrder, po_id)
    if not po:
        raise NotFoundError("Purchase order not found", po_id=po_id)
    return po


def get_purchase_order_by_reference(db: Session, reference: str) -> PurchaseOrder:
    po = db.query(PurchaseOrder).filter(PurchaseOrder.po_reference_number == reference.strip()).one_or_none()
    if not po:
        raise NotFoundError("Purchase order not found", po_reference_number=reference)
    return po


def list_purchase_orders(
    db: Session,
    *,
    status: POStatus | None = None,
    skip: int = 0,
    limit: int = 100,
) -> list[PurchaseOrder]:
    q = db.query(PurchaseOrder)
    if status is not None:
        q = q.filter(PurchaseOrder.status == status)
    return q.order_by(PurchaseOrder.created_at.desc()).offset(skip).limit(limit).all()


def delete_purchase_order(db: Session, po_id: str) -> None:
    po = get_purchase_order(db, po_id)
    db.delete(po)
    db.commit()


def set_status(db: Session, *, po_id: str, status: POStatus) -> PurchaseOrder:
    po = get_purchase_order(db, po_id)
    po.status = status
    db.commit()
    db.refresh(po)
    return po


def update_received(db: Session, *, po_id: str, material_id: str, received_qty: float) -> PurchaseOrder:
    """
    Set (not add to) the received quantity of one material line.

    Over-receipt is accepted as-is: progress can exceed 100%.
    """
    if received_qty is None or received_qty < 0:
        raise ValidationError("received_qty must be >= 0")
    po = get_purchase_order(db, po_id)
    line = next((m for m in po.materials if m.material_id == material_id), None)
    if line is None:
        raise NotFoundError("Material not on this purchase order", po_id=po_id, material_id=material_id)

    line.received_qty = float(received_qty)
    if line.received_qty > line.needed_qty:
        logger.warning(
            "PO %s material %s over-received: %.2f of %.2f",
            po.po_reference_number,
            material_id,
            line.received_qty,
            line.needed_qty,
        )
    db.commit()
    db.refresh(po)
    return po


def progress(line: POMaterial) -> float:
    return line.progress()


def overall_progress(po: PurchaseOrder) -> float:
    needed = sum(m.needed_qty for m in po.materials)
    if not needed:
        return 0.0
    return sum(m.received_qty or 0.0 for m in po.materials) * 100.0 / needed


def to_public_dict(po: PurchaseOrder) -> dict:
    return {
        "id": po.id,
        "po_reference_number": po.po_reference_number,
        "seller_name": po.seller_name,
        "seller_mobile": po.seller_mobile,
        "validity_start_date": po.validity_start_date,
        "validity_end_date": po.validity_end_date,
        "units": po.units,
        "status": po.status,
        "created_at": po.created_at,
        "materials": [
            {
                "material_id": m.material_id,
                "needed_qty": m.needed_qty,
                "received_qty": m.received_qty or 0.0,
                "progress": progress(m),
            }
            for m in po.materials
        ],
        "progress": overall_progress(po),
    }
