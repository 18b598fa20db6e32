from datetime import datetime
from typing import Any, Iterable, List, Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field

from app.models.menu import MenuItem
from app.models.order import OrderStatus, PaymentStatus
from app.schemas.common import Money
from app.schemas.payment import PaymentResponse


class OrderItemRequest(BaseModel):
    """Schema for a single item in the order request."""
    menu_item_id: uuid.UUID
    quantity: int = Field(..., gt=0)
    modifiers: Optional[Any] = None
    notes: Optional[str] = None


class OrderRequest(BaseModel):
    """Schema for the full order placement request body."""
    table_id: Optional[uuid.UUID] = None
    items: List[OrderItemRequest]
    guest_count: int = Field(1, ge=1)
    notes: Optional[str] = None


class AddItemsRequest(BaseModel):
    items: List[OrderItemRequest]


class OrderStatusUpdate(BaseModel):
    """Schema for updating an order status."""
    status: OrderStatus


class OrderItemStatusUpdate(BaseModel):
    status: OrderStatus


class OrderItemResponse(BaseModel):
    """Schema for an item inside the detailed order response."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    menu_item_id: uuid.UUID
    name: Optional[str] = None
    quantity: int
    unit_price: Money
    total: Money
    status: OrderStatus
    modifiers: Optional[Any] = None
    notes: Optional[str] = None
    sent_to_kitchen_at: Optional[datetime] = None
    ready_at: Optional[datetime] = None
    served_at: Optional[datetime] = None

    @classmethod
    def from_item(cls, item) -> "OrderItemResponse":
        data = cls.model_validate(item)
        # Only present when the menu item relation was prefetched
        menu_item = getattr(item, "menu_item", None)
        if isinstance(menu_item, MenuItem):
            data.name = menu_item.name
        return data


class OrderDetailResponse(BaseModel):
    """Schema for fetching detailed order information."""
    id: uuid.UUID
    order_number: str
    table_id: Optional[uuid.UUID] = None
    user_id: str
    status: OrderStatus
    payment_status: PaymentStatus
    payment_method: Optional[str] = None
    subtotal: Money
    tax: Money
    service_charge: Money
    discount: Money
    total: Money
    guest_count: int
    notes: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    items: List[OrderItemResponse] = []
    payments: List[PaymentResponse] = []

    @classmethod
    def from_order(cls, order, items: Iterable = (), payments: Iterable = ()) -> "OrderDetailResponse":
        return cls(
            id=order.id,
            order_number=order.order_number,
            table_id=order.table_id,
            user_id=order.user_id,
            status=order.status,
            payment_status=order.payment_status,
            payment_method=order.payment_method,
            subtotal=order.subtotal,
            tax=order.tax,
            service_charge=order.service_charge,
            discount=order.discount,
            total=order.total,
            guest_count=order.guest_count,
            notes=order.notes,
            completed_at=order.completed_at,
            created_at=order.created_at,
            items=[OrderItemResponse.from_item(i) for i in items],
            payments=[PaymentResponse.model_validate(p) for p in payments],
        )
