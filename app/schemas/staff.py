from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.core.permissions import Role
from app.models.staff import ShiftStatus
from app.schemas.common import Money


class StaffCreate(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = None
    role: Role

    @field_validator("role")
    @classmethod
    def no_platform_roles(cls, value: Role) -> Role:
        if value == Role.SUPER_ADMIN:
            raise ValueError("SUPER_ADMIN is not a restaurant role")
        return value


class StaffUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email: Optional[str] = Field(None, min_length=3, max_length=255)
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = None
    role: Optional[Role] = None

    @field_validator("role")
    @classmethod
    def no_platform_roles(cls, value: Optional[Role]) -> Optional[Role]:
        if value == Role.SUPER_ADMIN:
            raise ValueError("SUPER_ADMIN is not a restaurant role")
        return value


class ProfileUpdate(BaseModel):
    """Fields an employee may change on their own record."""
    model_config = ConfigDict(extra="ignore")

    email: Optional[str] = Field(None, min_length=3, max_length=255)
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = None


class StaffResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    role: Role
    is_active: bool
    created_at: datetime


class StaffDetailResponse(StaffResponse):
    order_count: int = 0
    shift_count: int = 0
    clock_count: int = 0


class ShiftCreate(BaseModel):
    staff_id: uuid.UUID
    start_time: datetime
    end_time: datetime
    notes: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def check_window(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class ShiftUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    status: Optional[ShiftStatus] = None
    notes: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class ShiftResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    staff_id: uuid.UUID
    start_time: datetime
    end_time: datetime
    status: ShiftStatus
    notes: Optional[str] = None


class ClockRequest(BaseModel):
    notes: Optional[str] = None


class ClockEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    staff_id: uuid.UUID
    clock_in: datetime
    clock_out: Optional[datetime] = None
    total_hours: Optional[Decimal] = None
    notes: Optional[str] = None


class StaffPerformance(BaseModel):
    id: uuid.UUID
    name: str
    role: Role
    total_orders: int
    total_sales: Money
    total_hours: Decimal
    sales_per_hour: Money
