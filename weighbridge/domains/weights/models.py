import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Enum, Float, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from weighbridge.core.db import Base


class WeightType(str, enum.Enum):
    GROSS = "Gross"
    TARE = "Tare"


class WeightStatus(str, enum.Enum):
    PASSED = "PASSED"
    FAILED = "FAILED"


class Weight(Base):
    __tablename__ = "weights"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    trip_id: Mapped[str] = mapped_column(String, ForeignKey("trips.id"), index=True)
    weight_type: Mapped[WeightType] = mapped_column(Enum(WeightType))
    weight_value: Mapped[float] = mapped_column(Float)  # kg
    capture_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    camera_image_refs: Mapped[str | None] = mapped_column(String, nullable=True)
    operator_id: Mapped[str] = mapped_column(String)
    status: Mapped[WeightStatus] = mapped_column(Enum(WeightStatus), default=WeightStatus.PASSED)
