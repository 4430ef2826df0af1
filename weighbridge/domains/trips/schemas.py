from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from weighbridge.domains.trips.models import TripStage, TripStatus


class TripCreateIn(BaseModel):
    vehicle_id: str
    driver_id: str
    po_id: str


class TripOut(BaseModel):
    id: str
    vehicle_id: str
    driver_id: str
    po_id: str
    status: TripStatus
    current_stage: TripStage
    current_stage_label: str
    next_stage: TripStage | None = None
    gross_weight: float | None = None
    tare_weight: float | None = None
    # None means "unavailable": one of the two weighings is still missing.
    net_weight: float | None = None
    created_at: datetime
    completed_at: datetime | None = None


class StageUpdateIn(BaseModel):
    next_stage: TripStage
    remarks: str | None = Field(default=None, max_length=500)


class TripFailIn(BaseModel):
    remarks: str | None = Field(default=None, max_length=500)


class StageTransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    trip_id: str
    stage_name: str
    stage_status: str
    staff_id: str
    role: str
    action_timestamp: datetime
    remarks: str | None = None
