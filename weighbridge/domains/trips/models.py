import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Enum, Float, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from weighbridge.core.db import Base


class TripStage(str, enum.Enum):
    ENTRY_GATE = "ENTRY_GATE"
    GROSS_WEIGHT = "GROSS_WEIGHT"
    UNLOADING = "UNLOADING"
    TARE_WEIGHT = "TARE_WEIGHT"
    EXIT_GATE = "EXIT_GATE"


class TripStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Trip(Base):
    __tablename__ = "trips"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    vehicle_id: Mapped[str] = mapped_column(String, ForeignKey("vehicles.id"), index=True)
    driver_id: Mapped[str] = mapped_column(String, ForeignKey("drivers.id"), index=True)
    po_id: Mapped[str] = mapped_column(String, ForeignKey("purchase_orders.id"), index=True)

    status: Mapped[TripStatus] = mapped_column(Enum(TripStatus), default=TripStatus.ACTIVE, index=True)
    current_stage: Mapped[TripStage] = mapped_column(Enum(TripStage), default=TripStage.ENTRY_GATE)

    # Set by weight capture; net weight is derived from these two only.
    gross_weight: Mapped[float | None] = mapped_column(Float, nullable=True)
    tare_weight: Mapped[float | None] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class StageTransaction(Base):
    """Append-only audit row, one per executed transition."""

    __tablename__ = "stage_transactions"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    trip_id: Mapped[str] = mapped_column(String, ForeignKey("trips.id"), index=True)
    stage_name: Mapped[str] = mapped_column(String)
    stage_status: Mapped[str] = mapped_column(String)
    staff_id: Mapped[str] = mapped_column(String)
    role: Mapped[str] = mapped_column(String)
    action_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    remarks: Mapped[str | None] = mapped_column(String, nullable=True)
