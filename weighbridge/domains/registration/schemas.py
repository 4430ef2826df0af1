from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from weighbridge.domains.registration.models import ApprovalStatus


class VehicleRegistrationIn(BaseModel):
    registration_number: str = Field(min_length=4, max_length=15, pattern=r"^[A-Z0-9\-]+$")
    vehicle_type: str = Field(min_length=1, max_length=32)
    manufacturer_tare_weight: float = Field(gt=0)
    fastag_id: str | None = Field(default=None, max_length=64)
    image: str | None = None

    @field_validator("registration_number", mode="before")
    @classmethod
    def _normalize_registration(cls, v: str) -> str:
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("vehicle_type", mode="before")
    @classmethod
    def _normalize_type(cls, v: str) -> str:
        return v.strip().upper() if isinstance(v, str) else v


class VehicleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    registration_number: str
    vehicle_type: str
    manufacturer_tare_weight: float
    fastag_id: str | None = None
    approval_status: ApprovalStatus
    approver_id: str | None = None
    created_at: datetime


class DriverCreateIn(BaseModel):
    driver_name: str = Field(min_length=2, max_length=100)
    mobile_number: str = Field(min_length=10, max_length=15, pattern=r"^[0-9+\-\s]+$")
    aadhaar: str = Field(min_length=12, max_length=12, pattern=r"^\d{12}$")


class DriverUpdateIn(BaseModel):
    driver_name: str | None = Field(default=None, min_length=2, max_length=100)
    mobile_number: str | None = Field(default=None, min_length=10, max_length=15, pattern=r"^[0-9+\-\s]+$")
    aadhaar: str | None = Field(default=None, min_length=12, max_length=12, pattern=r"^\d{12}$")


class DriverOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    driver_name: str
    mobile_number: str
    aadhaar: str
    approval_status: ApprovalStatus
    approver_id: str | None = None
    created_at: datetime

    @field_validator("aadhaar", mode="after")
    @classmethod
    def _mask_aadhaar(cls, v: str) -> str:
        return "XXXXXXXX" + v[-4:] if len(v) >= 4 else v


class CombinedRegistrationIn(BaseModel):
    vehicle: VehicleRegistrationIn
    driver: DriverCreateIn


class VehicleRegistrationOut(BaseModel):
    vehicle: VehicleOut
    reused: bool


class CombinedRegistrationOut(BaseModel):
    vehicle: VehicleOut
    driver: DriverOut
    vehicle_reused: bool
