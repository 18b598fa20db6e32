from datetime import datetime
from decimal import Decimal
from typing import List, Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field

from app.models.inventory import MovementType
from app.schemas.common import Money, Quantity
from app.schemas.order import OrderItemRequest


class InventoryItemCreate(BaseModel):
    name: str = Field(..., min_length=1, description="Ingredient or stock item name (e.g., Tomatoes).")
    sku: Optional[str] = Field(None, description="Stock keeping unit, unique per restaurant.")
    unit: str = Field(..., min_length=1, description="Unit of measure: kg, L, pcs...")
    current_stock: Decimal = Field(Decimal("0"), ge=0, description="Opening stock, recorded as an IN movement.")
    min_stock: Decimal = Field(Decimal("0"), ge=0, description="Reorder threshold.")
    max_stock: Optional[Decimal] = Field(None, ge=0)
    unit_cost: Optional[Decimal] = Field(None, ge=0)
    supplier: Optional[str] = None
    category: Optional[str] = None
    location: Optional[str] = None


class InventoryItemUpdate(BaseModel):
    """Stock levels only change through movements, so current_stock is not accepted here."""
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    sku: Optional[str] = None
    unit: Optional[str] = None
    min_stock: Optional[Decimal] = Field(None, ge=0)
    max_stock: Optional[Decimal] = Field(None, ge=0)
    unit_cost: Optional[Decimal] = Field(None, ge=0)
    supplier: Optional[str] = None
    category: Optional[str] = None
    location: Optional[str] = None


class InventoryItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    sku: Optional[str] = None
    unit: str
    current_stock: Quantity
    min_stock: Quantity
    max_stock: Optional[Quantity] = None
    unit_cost: Optional[Money] = None
    supplier: Optional[str] = None
    category: Optional[str] = None
    location: Optional[str] = None
    is_active: bool
    is_low: bool
    updated_at: datetime


class MovementCreate(BaseModel):
    item_id: uuid.UUID
    type: MovementType
    quantity: Decimal = Field(..., gt=0)
    unit_cost: Optional[Decimal] = Field(None, ge=0)
    reference: Optional[str] = None
    notes: Optional[str] = None


class MovementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    item_id: uuid.UUID
    type: MovementType
    quantity: Quantity
    applied_quantity: Quantity
    unit_cost: Optional[Money] = None
    total_cost: Optional[Money] = None
    reference: Optional[str] = None
    notes: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime


class InventoryItemDetailResponse(InventoryItemResponse):
    movements: List[MovementResponse] = []


class TransferRequest(BaseModel):
    item_id: uuid.UUID
    quantity: Decimal = Field(..., gt=0)
    from_location: str
    to_location: str
    notes: Optional[str] = None


class TransferResponse(BaseModel):
    source: InventoryItemResponse
    target: InventoryItemResponse
    movement: MovementResponse


class LowStockAlert(BaseModel):
    id: uuid.UUID
    name: str
    sku: Optional[str] = None
    unit: str
    current_stock: Quantity
    min_stock: Quantity
    location: Optional[str] = None
    deficit: Quantity


class LowStockAlertsResponse(BaseModel):
    count: int
    items: List[LowStockAlert]


class ValuationLine(BaseModel):
    id: uuid.UUID
    name: str
    sku: Optional[str] = None
    unit: str
    current_stock: Quantity
    unit_cost: Money
    total_value: Money
    location: Optional[str] = None
    category: Optional[str] = None


class StockValuationResponse(BaseModel):
    total_value: Money
    total_items: Quantity
    item_count: int
    items: List[ValuationLine]


class StockCheckRequest(BaseModel):
    items: List[OrderItemRequest]
