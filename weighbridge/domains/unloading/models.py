import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Float, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from weighbridge.core.db import Base


class QualityBand(str, enum.Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"


class MaterialUnloading(Base):
    __tablename__ = "material_unloadings"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    trip_id: Mapped[str] = mapped_column(String, ForeignKey("trips.id"), index=True)
    material_type: Mapped[str] = mapped_column(String)
    accepted_qty: Mapped[float] = mapped_column(Float)
    rejection_qty: Mapped[float] = mapped_column(Float, default=0.0)
    staff_id: Mapped[str] = mapped_column(String)
    verification_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    remarks: Mapped[str | None] = mapped_column(String, nullable=True)
