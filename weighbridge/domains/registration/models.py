import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Enum, Float, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from weighbridge.core.db import Base


class ApprovalStatus(str, enum.Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class Vehicle(Base):
    __tablename__ = "vehicles"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    # Always stored trimmed + upper-cased; the unique index is what settles concurrent registrations.
    registration_number: Mapped[str] = mapped_column(String, unique=True, index=True)
    vehicle_type: Mapped[str] = mapped_column(String)
    manufacturer_tare_weight: Mapped[float] = mapped_column(Float)
    fastag_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    image: Mapped[str | None] = mapped_column(Text, nullable=True)  # base64 snapshot from the gate camera

    approval_status: Mapped[ApprovalStatus] = mapped_column(Enum(ApprovalStatus), default=ApprovalStatus.PENDING)
    approver_id: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))


class Driver(Base):
    __tablename__ = "drivers"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    driver_name: Mapped[str] = mapped_column(String)
    mobile_number: Mapped[str] = mapped_column(String, index=True)
    aadhaar: Mapped[str] = mapped_column(String)

    approval_status: Mapped[ApprovalStatus] = mapped_column(Enum(ApprovalStatus), default=ApprovalStatus.PENDING)
    approver_id: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
