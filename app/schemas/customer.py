from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field

from app.models.customer import LoyaltyType
from app.models.table import ReservationStatus
from app.schemas.common import Money


class CustomerCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = None
    phone: str = Field(..., min_length=3, max_length=32, description="Unique per restaurant; used to find regulars.")
    birth_date: Optional[date] = None
    address: Optional[str] = None
    notes: Optional[str] = None


class CustomerUpdate(BaseModel):
    """Loyalty points only move through loyalty transactions, so they are not accepted here."""
    model_config = ConfigDict(extra="ignore")

    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = None
    phone: Optional[str] = Field(None, min_length=3, max_length=32)
    birth_date: Optional[date] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class CustomerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    first_name: str
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: str
    birth_date: Optional[date] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    loyalty_points: int
    is_active: bool
    created_at: datetime


class LoyaltyTransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    customer_id: uuid.UUID
    points: int
    type: LoyaltyType
    reference: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime


class CustomerReservation(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    date: date
    start_time: datetime
    guest_count: int
    status: ReservationStatus


class CustomerDetailResponse(CustomerResponse):
    reservations: List[CustomerReservation] = []
    loyalty_transactions: List[LoyaltyTransactionResponse] = []


class LoyaltyEarnRequest(BaseModel):
    customer_id: uuid.UUID
    points: int = Field(..., description="Positive to credit; ADJUST may also debit.")
    type: LoyaltyType = LoyaltyType.EARN
    reference: Optional[str] = None
    notes: Optional[str] = None


class LoyaltyRedeemRequest(BaseModel):
    customer_id: uuid.UUID
    points: int = Field(..., gt=0)
    notes: Optional[str] = None


class LoyaltyProgramRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    points_per_amount: Decimal = Field(Decimal("0"), ge=0)
    amount_per_point: Money = Field(Decimal("0"), ge=0)
    min_redemption: int = Field(0, ge=0)
    is_active: bool = True


class LoyaltyProgramInfo(BaseModel):
    name: str
    points_per_amount: Decimal
    amount_per_point: Money
    min_redemption: int
    redeemable_value: Money
    can_redeem: bool


class LoyaltyBalanceResponse(BaseModel):
    customer: CustomerResponse
    program: Optional[LoyaltyProgramInfo] = None


class RedemptionResponse(BaseModel):
    transaction: LoyaltyTransactionResponse
    discount_amount: Money
    remaining_points: int


class LoyaltyProgramResponse(LoyaltyProgramRequest):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
