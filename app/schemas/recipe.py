from decimal import Decimal
from typing import List, Optional
import uuid

from pydantic import BaseModel, Field

from app.schemas.common import Money, Quantity


class IngredientRequest(BaseModel):
    inventory_item_id: uuid.UUID
    quantity: Decimal = Field(..., gt=0, description="Quantity consumed per portion.")
    unit: str


class RecipeCreate(BaseModel):
    menu_item_id: uuid.UUID
    portion_size: Decimal = Field(Decimal("1"), gt=0)
    notes: Optional[str] = None
    ingredients: List[IngredientRequest] = Field(..., min_length=1)


class RecipeUpdate(BaseModel):
    """Fields left out are kept; a new ingredient list replaces the old one."""
    portion_size: Optional[Decimal] = Field(None, gt=0)
    notes: Optional[str] = None
    ingredients: Optional[List[IngredientRequest]] = Field(None, min_length=1)


class IngredientResponse(BaseModel):
    id: uuid.UUID
    inventory_item_id: uuid.UUID
    name: str
    quantity: Quantity
    unit: str
    unit_cost: Optional[Money] = None
    current_stock: Quantity


class RecipeResponse(BaseModel):
    id: uuid.UUID
    menu_item_id: uuid.UUID
    menu_item_name: str
    price: Money
    portion_size: Quantity
    notes: Optional[str] = None
    ingredients: List[IngredientResponse]
    total_cost: Money
    profit_margin: Decimal = Field(..., description="Percentage of the selling price left after food cost.")


class CostAnalysisLine(BaseModel):
    menu_item_id: uuid.UUID
    menu_item_name: str
    selling_price: Money
    food_cost: Money
    margin: Money
    margin_percent: Decimal
    cost_ratio: Decimal


class CostAnalysisResponse(BaseModel):
    average_cost_ratio: Decimal
    item_count: int
    items: List[CostAnalysisLine]
