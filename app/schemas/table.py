from datetime import date, datetime, timezone
from typing import List, Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.models.table import ReservationStatus, TableStatus


class TableCreate(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    number: str = Field(..., min_length=1, max_length=16, description="Number shown on the table, unique per restaurant.")
    capacity: int = Field(..., gt=0)
    zone: Optional[str] = None
    pos_x: Optional[int] = None
    pos_y: Optional[int] = None


class TableStatusUpdate(BaseModel):
    status: TableStatus


class TableResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    number: str
    capacity: int
    zone: Optional[str] = None
    status: TableStatus
    pos_x: Optional[int] = None
    pos_y: Optional[int] = None
    is_active: bool


class FloorPlanResponse(BaseModel):
    tables: List[TableResponse]
    zones: List[str]


class ReservationCreate(BaseModel):
    table_id: Optional[uuid.UUID] = None
    customer_id: Optional[uuid.UUID] = None
    customer_name: str = Field(..., min_length=1)
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    guest_count: int = Field(..., gt=0)
    date: date
    start_time: datetime
    end_time: Optional[datetime] = None
    notes: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Naive times from clients are read as UTC
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def check_window(self):
        if self.end_time is not None and self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        if self.date != self.start_time.date():
            raise ValueError("date must be the day of start_time")
        return self


class ReservationStatusUpdate(BaseModel):
    status: ReservationStatus


class ReservationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    table_id: Optional[uuid.UUID] = None
    customer_id: Optional[uuid.UUID] = None
    customer_name: str
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    guest_count: int
    date: date
    start_time: datetime
    end_time: Optional[datetime] = None
    status: ReservationStatus
    notes: Optional[str] = None
    created_at: datetime
