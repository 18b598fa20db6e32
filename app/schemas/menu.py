from datetime import datetime
from decimal import Decimal
from typing import List, Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.common import Money


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    image: Optional[str] = None
    sort_order: int = 0


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    image: Optional[str] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    image: Optional[str] = None
    sort_order: int
    is_active: bool


class MenuItemCreate(BaseModel):
    category_id: Optional[uuid.UUID] = None
    name: str = Field(..., min_length=1, description="Name of the menu item (e.g., Ndole).")
    description: Optional[str] = None
    price: Decimal = Field(..., gt=0, description="Selling price of the item.")
    image: Optional[str] = None
    preparation_time: Optional[int] = Field(None, ge=0, description="Minutes.")
    is_available: bool = Field(True, description="Whether the kitchen can currently serve the item.")


class MenuItemUpdate(BaseModel):
    """Price changes only affect future orders; order lines keep their snapshot."""
    category_id: Optional[uuid.UUID] = None
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, gt=0)
    image: Optional[str] = None
    preparation_time: Optional[int] = Field(None, ge=0)
    is_available: Optional[bool] = None


class MenuItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    category_id: Optional[uuid.UUID] = None
    name: str
    description: Optional[str] = None
    price: Money
    cost: Optional[Money] = None
    image: Optional[str] = None
    preparation_time: Optional[int] = None
    is_available: bool
    is_active: bool
    updated_at: datetime


class CategoryWithItemsResponse(CategoryResponse):
    items: List[MenuItemResponse] = []


class PublicMenuItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    price: Money
    image: Optional[str] = None
    preparation_time: Optional[int] = None
    is_available: bool


class PublicCategory(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    image: Optional[str] = None
    items: List[PublicMenuItem]


class PublicRestaurant(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    logo: Optional[str] = None
    currency: str
    address: Optional[str] = None
    phone: Optional[str] = None


class PublicMenuResponse(BaseModel):
    restaurant: PublicRestaurant
    categories: List[PublicCategory]


class TableQRCode(BaseModel):
    table_id: uuid.UUID
    table_number: str
    zone: Optional[str] = None
    menu_url: str
    qr_code: str = Field(..., description="PNG image as a data URL.")
