from datetime import datetime
from typing import List, Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field

from app.models.order import PaymentStatus
from app.models.payment import PaymentMethod
from app.schemas.common import Money


class PaymentRequest(BaseModel):
    order_id: uuid.UUID
    amount: Money = Field(..., gt=0)
    method: PaymentMethod
    reference: Optional[str] = None
    notes: Optional[str] = None


class SplitPart(BaseModel):
    amount: Money = Field(..., gt=0)
    method: PaymentMethod
    reference: Optional[str] = None


class SplitPaymentRequest(BaseModel):
    order_id: uuid.UUID
    splits: List[SplitPart] = Field(..., min_length=1)


class RefundRequest(BaseModel):
    """Omitting the amount refunds whatever is still refundable on the payment."""
    amount: Optional[Money] = Field(None, gt=0)
    notes: Optional[str] = None


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_id: uuid.UUID
    amount: Money
    method: PaymentMethod
    reference: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime


class PaymentResultResponse(BaseModel):
    """Outcome of applying one or more payments to an order."""
    payments: List[PaymentResponse]
    order_total: Money
    total_paid: Money
    remaining: Money
    payment_status: PaymentStatus
