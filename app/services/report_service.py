"""Read-only rollups over orders and payments.

Days are UTC calendar days. Revenue figures only count orders whose payment
status is PAID; sums are done in Decimal and rounded to cents at the end.
"""
import calendar
import logging
from datetime import date, datetime, time, timedelta, timezone as dt_timezone
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from tortoise import timezone

from app.core.money import ZERO, to_money
from app.models.inventory import InventoryItem
from app.models.order import Order, OrderItem, OrderStatus, PaymentStatus
from app.models.payment import Payment
from app.models.table import Reservation, ReservationStatus, Table
from app.schemas.report import (
    ActiveSummary,
    CategorySales,
    DashboardResponse,
    ItemSales,
    RevenueDay,
    RevenueReportResponse,
    RevenueSummary,
    SalesByCategoryResponse,
    TableTurnover,
    TodaySummary,
    TopItem,
    ZReportResponse,
    ZReportSummary,
)

log = logging.getLogger("app.services.reports")

ACTIVE_ORDER_STATUSES = (OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY)
UPCOMING_RESERVATION_STATUSES = (ReservationStatus.PENDING, ReservationStatus.CONFIRMED, ReservationStatus.SEATED)
UNCATEGORIZED = "Uncategorized"
HUNDRED = Decimal("100")


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """[start, end) of a UTC calendar day."""
    start = datetime.combine(day, time.min, tzinfo=dt_timezone.utc)
    return start, start + timedelta(days=1)


def _average(total: Decimal, count: int) -> Decimal:
    return to_money(total / count) if count else ZERO


def _months_back(day: date, months: int) -> date:
    month_index = day.year * 12 + day.month - 1 - months
    year, month = divmod(month_index, 12)
    month += 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def report_window(
    period: Optional[str] = None, start_date: Optional[date] = None, end_date: Optional[date] = None
) -> Tuple[datetime, datetime]:
    """An explicit range wins; otherwise week, month, year or the last 30 days, ending today."""
    if start_date and end_date:
        first, last = start_date, end_date
    else:
        last = timezone.now().date()
        if period == "week":
            first = last - timedelta(days=7)
        elif period == "month":
            first = _months_back(last, 1)
        elif period == "year":
            first = _months_back(last, 12)
        else:
            first = last - timedelta(days=30)
    return day_bounds(first)[0], day_bounds(last)[1]


def _paid_orders(restaurant_id: UUID, start_date: Optional[date] = None, end_date: Optional[date] = None):
    query = Order.filter(restaurant_id=restaurant_id, payment_status=PaymentStatus.PAID)
    if start_date:
        query = query.filter(created_at__gte=day_bounds(start_date)[0])
    if end_date:
        query = query.filter(created_at__lt=day_bounds(end_date)[1])
    return query


def _paid_order_items(restaurant_id: UUID, start_date: Optional[date] = None, end_date: Optional[date] = None):
    query = OrderItem.filter(order__restaurant_id=restaurant_id, order__payment_status=PaymentStatus.PAID)
    if start_date:
        query = query.filter(order__created_at__gte=day_bounds(start_date)[0])
    if end_date:
        query = query.filter(order__created_at__lt=day_bounds(end_date)[1])
    return query


async def dashboard(restaurant_id: UUID) -> DashboardResponse:
    today = timezone.now().date()
    start, end = day_bounds(today)

    todays_orders = await Order.filter(restaurant_id=restaurant_id, created_at__gte=start, created_at__lt=end)
    paid = [o for o in todays_orders if o.payment_status == PaymentStatus.PAID]
    revenue = sum((o.total for o in paid), ZERO)

    active_orders = await Order.filter(restaurant_id=restaurant_id, status__in=ACTIVE_ORDER_STATUSES).count()
    reservations = await Reservation.filter(
        restaurant_id=restaurant_id, date=today, status__in=UPCOMING_RESERVATION_STATUSES
    ).count()

    tables: Dict[str, int] = {}
    for table in await Table.filter(restaurant_id=restaurant_id, is_active=True):
        tables[table.status.value] = tables.get(table.status.value, 0) + 1

    items = await InventoryItem.filter(restaurant_id=restaurant_id, is_active=True)

    return DashboardResponse(
        today=TodaySummary(
            revenue=to_money(revenue),
            orders=len(todays_orders),
            paid_orders=len(paid),
            average_ticket=_average(revenue, len(paid)),
            guests=sum(o.guest_count for o in paid),
        ),
        active=ActiveSummary(orders=active_orders, reservations=reservations),
        tables=tables,
        low_stock_items=sum(1 for item in items if item.is_low),
    )


async def revenue_report(
    restaurant_id: UUID,
    period: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> RevenueReportResponse:
    start, end = report_window(period, start_date, end_date)
    orders = await Order.filter(
        restaurant_id=restaurant_id, payment_status=PaymentStatus.PAID, created_at__gte=start, created_at__lt=end
    ).order_by("created_at")

    daily: Dict[date, List[Order]] = {}
    for order in orders:
        daily.setdefault(order.created_at.astimezone(dt_timezone.utc).date(), []).append(order)

    total = sum((o.total for o in orders), ZERO)
    return RevenueReportResponse(
        start=start,
        end=end,
        summary=RevenueSummary(
            total_revenue=to_money(total),
            total_orders=len(orders),
            total_tax=to_money(sum((o.tax for o in orders), ZERO)),
            total_discount=to_money(sum((o.discount for o in orders), ZERO)),
            average_ticket=_average(total, len(orders)),
        ),
        daily=[
            RevenueDay(
                date=day,
                revenue=to_money(sum((o.total for o in day_orders), ZERO)),
                orders=len(day_orders),
                tax=to_money(sum((o.tax for o in day_orders), ZERO)),
                average_ticket=_average(sum((o.total for o in day_orders), ZERO), len(day_orders)),
            )
            for day, day_orders in sorted(daily.items())
        ],
    )


async def sales_by_category(
    restaurant_id: UUID, start_date: Optional[date] = None, end_date: Optional[date] = None
) -> SalesByCategoryResponse:
    """Revenue per menu category with a per-item breakdown, biggest first."""
    lines = await _paid_order_items(restaurant_id, start_date, end_date).prefetch_related("menu_item__category")

    categories: Dict[Optional[UUID], dict] = {}
    for line in lines:
        category = line.menu_item.category
        key = category.id if category else None
        entry = categories.setdefault(
            key, {"name": category.name if category else UNCATEGORIZED, "revenue": ZERO, "quantity": 0, "items": {}}
        )
        entry["revenue"] += line.total
        entry["quantity"] += line.quantity

        item = entry["items"].setdefault(
            line.menu_item_id, {"name": line.menu_item.name, "revenue": ZERO, "quantity": 0}
        )
        item["revenue"] += line.total
        item["quantity"] += line.quantity

    total = to_money(sum((c["revenue"] for c in categories.values()), ZERO))
    result = []
    for category_id, entry in categories.items():
        items = [
            ItemSales(menu_item_id=item_id, name=i["name"], revenue=to_money(i["revenue"]), quantity=i["quantity"])
            for item_id, i in entry["items"].items()
        ]
        items.sort(key=lambda i: i.revenue, reverse=True)
        result.append(
            CategorySales(
                category_id=category_id,
                category_name=entry["name"],
                revenue=to_money(entry["revenue"]),
                total_quantity=entry["quantity"],
                percentage=to_money(entry["revenue"] / total * HUNDRED) if total > ZERO else ZERO,
                items=items,
            )
        )
    result.sort(key=lambda c: c.revenue, reverse=True)
    return SalesByCategoryResponse(total_revenue=total, categories=result)


async def top_items(
    restaurant_id: UUID, limit: int = 20, start_date: Optional[date] = None, end_date: Optional[date] = None
) -> List[TopItem]:
    """Best sellers by quantity. Profit needs a food cost on the menu item."""
    lines = await _paid_order_items(restaurant_id, start_date, end_date).prefetch_related("menu_item")

    totals: Dict[UUID, dict] = {}
    for line in lines:
        entry = totals.setdefault(line.menu_item_id, {"menu": line.menu_item, "revenue": ZERO, "quantity": 0})
        entry["revenue"] += line.total
        entry["quantity"] += line.quantity

    items = []
    for menu_item_id, entry in totals.items():
        menu = entry["menu"]
        profit = to_money(entry["revenue"] - menu.cost * entry["quantity"]) if menu.cost else None
        items.append(
            TopItem(
                menu_item_id=menu_item_id,
                name=menu.name,
                price=menu.price,
                cost=menu.cost,
                revenue=to_money(entry["revenue"]),
                quantity=entry["quantity"],
                profit=profit,
            )
        )
    items.sort(key=lambda i: i.quantity, reverse=True)
    return items[:limit]


async def table_turnover(
    restaurant_id: UUID, start_date: Optional[date] = None, end_date: Optional[date] = None
) -> List[TableTurnover]:
    tables = await Table.filter(restaurant_id=restaurant_id, is_active=True)
    orders = await _paid_orders(restaurant_id, start_date, end_date).filter(table_id__isnull=False)

    by_table: Dict[UUID, List[Order]] = {}
    for order in orders:
        by_table.setdefault(order.table_id, []).append(order)

    report = []
    for table in tables:
        table_orders = by_table.get(table.id, [])
        revenue = sum((o.total for o in table_orders), ZERO)
        report.append(
            TableTurnover(
                table_id=table.id,
                table_number=table.number,
                zone=table.zone,
                capacity=table.capacity,
                order_count=len(table_orders),
                total_revenue=to_money(revenue),
                total_guests=sum(o.guest_count for o in table_orders),
                average_revenue_per_order=_average(revenue, len(table_orders)),
            )
        )
    report.sort(key=lambda t: t.total_revenue, reverse=True)
    return report


async def z_report(restaurant_id: UUID, report_date: Optional[date] = None) -> ZReportResponse:
    """
    End-of-day summary over the orders created that day. The payment breakdown
    sums the positive payments of paid orders by method; refunds count every
    refund row written against the day's orders.
    """
    report_date = report_date or timezone.now().date()
    start, end = day_bounds(report_date)

    orders = await Order.filter(restaurant_id=restaurant_id, created_at__gte=start, created_at__lt=end)
    paid = [o for o in orders if o.payment_status == PaymentStatus.PAID]
    paid_ids = {o.id for o in paid}
    payments = await Payment.filter(order_id__in=[o.id for o in orders]) if orders else []

    breakdown: Dict[str, Decimal] = {}
    refunds = ZERO
    for payment in payments:
        if payment.amount < ZERO:
            refunds += -payment.amount
        elif payment.order_id in paid_ids:
            breakdown[payment.method.value] = breakdown.get(payment.method.value, ZERO) + payment.amount

    revenue = sum((o.total for o in paid), ZERO)
    log.info(f"Z-report for {report_date}: {len(paid)} paid order(s), revenue {to_money(revenue)}")

    return ZReportResponse(
        date=report_date,
        summary=ZReportSummary(
            total_orders=len(orders),
            paid_orders=len(paid),
            cancelled_orders=sum(1 for o in orders if o.status == OrderStatus.CANCELLED),
            total_revenue=to_money(revenue),
            total_subtotal=to_money(sum((o.subtotal for o in paid), ZERO)),
            total_tax=to_money(sum((o.tax for o in paid), ZERO)),
            total_service_charge=to_money(sum((o.service_charge for o in paid), ZERO)),
            total_discount=to_money(sum((o.discount for o in paid), ZERO)),
            total_refunds=to_money(refunds),
            net_revenue=to_money(revenue - refunds),
            average_ticket=_average(revenue, len(paid)),
        ),
        payment_breakdown={method: to_money(amount) for method, amount in breakdown.items()},
    )
