from datetime import datetime

from pydantic import BaseModel, Field

from weighbridge.domains.unloading.models import QualityBand


class UnloadingVerifyIn(BaseModel):
    trip_id: str
    material_type: str = Field(min_length=1, max_length=100)
    accepted_qty: float
    rejection_qty: float = 0.0
    remarks: str | None = Field(default=None, max_length=500)


class UnloadingOut(BaseModel):
    id: str
    trip_id: str
    material_type: str
    accepted_qty: float
    rejection_qty: float
    total_qty: float
    rejection_rate: float
    quality: QualityBand
    staff_id: str
    verification_time: datetime
    remarks: str | None = None
