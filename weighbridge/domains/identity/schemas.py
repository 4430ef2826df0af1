from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

RoleIn = Literal["super admin", "admin", "security", "operator", "user"]
DepartmentIn = Literal["HR", "purchase", "finance"]

# bcrypt ignores anything past 72 bytes, so longer passwords are refused up front.
PasswordIn = Field(min_length=8, max_length=72)


class StaffCreateIn(BaseModel):
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    username: str = Field(min_length=3, max_length=64)
    full_name: str | None = Field(default=None, max_length=128)
    role: RoleIn = "user"
    department: DepartmentIn
    password: str = PasswordIn
    is_superuser: bool = False


class StaffSelfUpdateIn(BaseModel):
    email: str | None = Field(default=None, min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    username: str | None = Field(default=None, min_length=3, max_length=64)
    full_name: str | None = Field(default=None, max_length=128)
    password: str | None = Field(default=None, min_length=8, max_length=72)


class StaffUpdateIn(StaffSelfUpdateIn):
    role: RoleIn | None = None
    department: DepartmentIn | None = None
    is_active: bool | None = None
    is_superuser: bool | None = None


class StaffOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    username: str
    full_name: str | None = None
    role: str
    department: str
    is_active: bool
    is_superuser: bool
    created_at: datetime
    updated_at: datetime | None = None


class LoginIn(BaseModel):
    # username OR email
    identifier: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1, max_length=128)


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
