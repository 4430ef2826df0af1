import enum
import uuid
from datetime import date, datetime, timezone

from sqlalchemy import Date, DateTime, Enum, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from weighbridge.core.db import Base


class Material(Base):
    __tablename__ = "materials"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String, unique=True, index=True)
    grade: Mapped[str | None] = mapped_column(String, nullable=True)
    unit: Mapped[str] = mapped_column(String, default="kg")


class POStatus(str, enum.Enum):
    ACTIVE = "Active"
    EXPIRED = "Expired"
    CLOSED = "Closed"


class PurchaseOrder(Base):
    __tablename__ = "purchase_orders"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    po_reference_number: Mapped[str] = mapped_column(String, unique=True, index=True)

    seller_name: Mapped[str] = mapped_column(String)
    seller_mobile: Mapped[str | None] = mapped_column(String, nullable=True)
    seller_aadhaar: Mapped[str | None] = mapped_column(String, nullable=True)

    validity_start_date: Mapped[date] = mapped_column(Date)
    validity_end_date: Mapped[date] = mapped_column(Date)
    units: Mapped[str] = mapped_column(String, default="kg")

    # Derived outside the ledger (validity window, manual closure); stored and served as-is.
    status: Mapped[POStatus] = mapped_column(Enum(POStatus), default=POStatus.ACTIVE)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    materials: Mapped[list["POMaterial"]] = relationship(
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="POMaterial.position",
    )


class POMaterial(Base):
    __tablename__ = "po_materials"
    __table_args__ = (UniqueConstraint("po_id", "material_id", name="uq_po_material"),)

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    po_id: Mapped[str] = mapped_column(String, ForeignKey("purchase_orders.id", ondelete="CASCADE"), index=True)
    material_id: Mapped[str] = mapped_column(String, ForeignKey("materials.id"), index=True)
    position: Mapped[int] = mapped_column(Integer, default=0)
    needed_qty: Mapped[float] = mapped_column(Float)
    received_qty: Mapped[float] = mapped_column(Float, default=0.0)

    purchase_order: Mapped[PurchaseOrder] = relationship(back_populates="materials")

    def progress(self) -> float:
        """received/needed as a percentage; not capped at 100."""
        if not self.needed_qty:
            return 0.0
        return (self.received_qty or 0.0) * 100.0 / self.needed_qty
