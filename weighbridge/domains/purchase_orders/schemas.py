from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from weighbridge.domains.purchase_orders.models import POStatus


class MaterialCreateIn(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    grade: str | None = Field(default=None, max_length=50)
    unit: str = Field(default="kg", min_length=1, max_length=16)


class MaterialUpdateIn(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    grade: str | None = Field(default=None, max_length=50)
    unit: str | None = Field(default=None, min_length=1, max_length=16)


class MaterialOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    grade: str | None = None
    unit: str


class POMaterialIn(BaseModel):
    material_id: str
    needed_qty: float = Field(gt=0)


class POCreateIn(BaseModel):
    po_reference_number: str = Field(min_length=1, max_length=50)
    seller_name: str = Field(min_length=2, max_length=100)
    seller_mobile: str | None = Field(default=None, min_length=10, max_length=15, pattern=r"^[0-9+\-\s]+$")
    seller_aadhaar: str | None = Field(default=None, pattern=r"^\d{12}$")
    validity_start_date: date
    validity_end_date: date
    units: str = Field(default="kg", max_length=16)
    materials: list[POMaterialIn] = Field(min_length=1)

    @model_validator(mode="after")
    def _check_window(self) -> "POCreateIn":
        if self.validity_start_date >= self.validity_end_date:
            raise ValueError("validity_start_date must be before validity_end_date")
        return self


class POMaterialOut(BaseModel):
    material_id: str
    needed_qty: float
    received_qty: float
    progress: float


class PurchaseOrderOut(BaseModel):
    id: str
    po_reference_number: str
    seller_name: str
    seller_mobile: str | None = None
    validity_start_date: date
    validity_end_date: date
    units: str
    status: POStatus
    created_at: datetime
    materials: list[POMaterialOut]
    progress: float


class POStatusIn(BaseModel):
    status: POStatus
