from datetime import date, datetime
from typing import Dict, List, Optional
import uuid

from pydantic import BaseModel

from app.schemas.common import Money


class TodaySummary(BaseModel):
    revenue: Money
    orders: int
    paid_orders: int
    average_ticket: Money
    guests: int


class ActiveSummary(BaseModel):
    orders: int
    reservations: int


class DashboardResponse(BaseModel):
    today: TodaySummary
    active: ActiveSummary
    tables: Dict[str, int]
    low_stock_items: int


class RevenueDay(BaseModel):
    date: date
    revenue: Money
    orders: int
    tax: Money
    average_ticket: Money


class RevenueSummary(BaseModel):
    total_revenue: Money
    total_orders: int
    total_tax: Money
    total_discount: Money
    average_ticket: Money


class RevenueReportResponse(BaseModel):
    start: datetime
    end: datetime
    summary: RevenueSummary
    daily: List[RevenueDay]


class ItemSales(BaseModel):
    menu_item_id: uuid.UUID
    name: str
    revenue: Money
    quantity: int


class CategorySales(BaseModel):
    category_id: Optional[uuid.UUID] = None
    category_name: str
    revenue: Money
    total_quantity: int
    percentage: Money
    items: List[ItemSales]


class SalesByCategoryResponse(BaseModel):
    total_revenue: Money
    categories: List[CategorySales]


class TopItem(BaseModel):
    menu_item_id: uuid.UUID
    name: str
    price: Money
    cost: Optional[Money] = None
    revenue: Money
    quantity: int
    profit: Optional[Money] = None


class TableTurnover(BaseModel):
    table_id: uuid.UUID
    table_number: str
    zone: Optional[str] = None
    capacity: int
    order_count: int
    total_revenue: Money
    total_guests: int
    average_revenue_per_order: Money


class ZReportSummary(BaseModel):
    total_orders: int
    paid_orders: int
    cancelled_orders: int
    total_revenue: Money
    total_subtotal: Money
    total_tax: Money
    total_service_charge: Money
    total_discount: Money
    total_refunds: Money
    net_revenue: Money
    average_ticket: Money


class ZReportResponse(BaseModel):
    date: date
    summary: ZReportSummary
    payment_breakdown: Dict[str, Money]
