from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from weighbridge.domains.weights.models import WeightStatus, WeightType


class WeightCaptureIn(BaseModel):
    trip_id: str
    weight_type: WeightType
    # Range is enforced by the ledger against settings.max_weight_kg.
    weight_value: float
    status: WeightStatus = WeightStatus.PASSED
    camera_image_refs: str | None = Field(default=None, max_length=1024)


class WeightOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    trip_id: str
    weight_type: WeightType
    weight_value: float
    capture_time: datetime
    camera_image_refs: str | None = None
    operator_id: str
    status: WeightStatus
