import logging
from datetime import date, datetime, time, timedelta, timezone as dt_timezone
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from tortoise import timezone
from tortoise.transactions import in_transaction

from app.core.errors import (
    IllegalTransition,
    ItemUnavailable,
    NotFound,
    OrderAlreadyCompleted,
    OrderClosed,
)
from app.core.money import ZERO, compute_order_totals, to_money
from app.events import notifier as events
from app.events.outbox_utility import (
    ORDER_CANCELLED,
    ORDER_ITEMS_ADDED,
    ORDER_PLACED,
    create_outbox_event,
)
from app.models.menu import MenuItem
from app.models.order import CLOSED_ORDER_STATUSES, Order, OrderItem, OrderStatus
from app.models.payment import Payment
from app.models.restaurant import OrderSequence, Restaurant
from app.models.table import Table, TableStatus
from app.schemas.order import OrderDetailResponse, OrderItemRequest, OrderRequest
from app.services.table_service import notify_table_status

log = logging.getLogger("app.services.orders")

# Legal moves of the order state machine; PAID and CANCELLED are terminal
ORDER_TRANSITIONS: Dict[OrderStatus, Tuple[OrderStatus, ...]] = {
    OrderStatus.PENDING: (OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
    OrderStatus.CONFIRMED: (OrderStatus.PREPARING, OrderStatus.CANCELLED),
    OrderStatus.PREPARING: (OrderStatus.READY, OrderStatus.CANCELLED),
    OrderStatus.READY: (OrderStatus.SERVED, OrderStatus.CANCELLED),
    OrderStatus.SERVED: (OrderStatus.PAID,),
    OrderStatus.PAID: (),
    OrderStatus.CANCELLED: (),
}

# Kitchen board ordering: open work first
STATUS_PRIORITY = {status: index for index, status in enumerate(OrderStatus)}

ITEM_STATUSES = (
    OrderStatus.PENDING,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.SERVED,
    OrderStatus.CANCELLED,
)


def can_transition(current: OrderStatus, new_status: OrderStatus) -> bool:
    return new_status in ORDER_TRANSITIONS.get(current, ())


async def _next_order_number(restaurant_id: UUID, conn) -> str:
    """Increments the tenant's counter under a row lock; the number is unique per restaurant."""
    sequence = await OrderSequence.filter(restaurant_id=restaurant_id).select_for_update().using_db(conn).first()
    if sequence is None:
        sequence = await OrderSequence.create(restaurant_id=restaurant_id, using_db=conn)
    sequence.last_value += 1
    await sequence.save(update_fields=["last_value"], using_db=conn)
    return f"ORD-{sequence.last_value:06d}"


async def _price_items(
    restaurant_id: UUID, items: Sequence[OrderItemRequest], conn
) -> List[Tuple[MenuItem, OrderItemRequest, Decimal]]:
    """Resolves each requested line against the current menu, snapshotting the price."""
    menu_item_ids = list({it.menu_item_id for it in items})
    menu_items = await MenuItem.filter(id__in=menu_item_ids, restaurant_id=restaurant_id).using_db(conn)
    menu_map = {m.id: m for m in menu_items}

    priced = []
    for it in items:
        menu = menu_map.get(it.menu_item_id)
        if not menu or not menu.orderable:
            raise ItemUnavailable(f"Menu item {it.menu_item_id} is not available")
        priced.append((menu, it, to_money(menu.price * it.quantity)))
    return priced


async def _create_order_items(order: Order, priced, conn) -> List[OrderItem]:
    created = []
    for menu, it, line_total in priced:
        created.append(
            await OrderItem.create(
                order=order,
                menu_item=menu,
                quantity=it.quantity,
                unit_price=menu.price,
                total=line_total,
                modifiers=it.modifiers,
                notes=it.notes,
                using_db=conn,
            )
        )
    return created


def _stock_payload(order: Order, restaurant_id: UUID, lines: Sequence[Tuple[UUID, int]]) -> dict:
    return {
        "order_id": str(order.id),
        "order_number": order.order_number,
        "restaurant_id": str(restaurant_id),
        "user_id": order.user_id,
        "items": [{"menu_item_id": str(mid), "quantity": qty} for mid, qty in lines],
    }


async def _locked_order(restaurant_id: UUID, order_id: UUID, conn) -> Order:
    order = await Order.filter(id=order_id, restaurant_id=restaurant_id).select_for_update().using_db(conn).first()
    if not order:
        raise NotFound("Order not found")
    return order


async def build_order_detail(order: Order, include_payments: bool = True) -> OrderDetailResponse:
    items = await OrderItem.filter(order_id=order.id).prefetch_related("menu_item").order_by("created_at")
    payments = await Payment.filter(order_id=order.id).order_by("created_at") if include_payments else []
    return OrderDetailResponse.from_order(order, items, payments)


async def place_order(restaurant: Restaurant, user_id: str, data: OrderRequest, notifier) -> Order:
    """
    Creates the order, its items and the stock-deduction outbox event atomically.
    Stock bookkeeping happens later in the outbox consumer; the sale stands
    even when it fails.
    """
    if not data.items:
        raise ItemUnavailable("Order must contain items")

    table = None
    async with in_transaction() as conn:
        priced = await _price_items(restaurant.id, data.items, conn)

        if data.table_id:
            table = await Table.filter(
                id=data.table_id, restaurant_id=restaurant.id, is_active=True
            ).select_for_update().using_db(conn).first()
            if not table:
                raise NotFound("Table not found")

        subtotal = sum((line_total for _, _, line_total in priced), ZERO)
        totals = compute_order_totals(subtotal, restaurant.tax_rate, restaurant.service_charge)

        order = await Order.create(
            restaurant_id=restaurant.id,
            table=table,
            user_id=user_id,
            order_number=await _next_order_number(restaurant.id, conn),
            status=OrderStatus.PENDING,
            subtotal=totals.subtotal,
            tax=totals.tax,
            service_charge=totals.service_charge,
            discount=totals.discount,
            total=totals.total,
            guest_count=data.guest_count,
            notes=data.notes,
            using_db=conn,
        )
        items = await _create_order_items(order, priced, conn)

        if table and table.status != TableStatus.OCCUPIED:
            table.status = TableStatus.OCCUPIED
            await table.save(update_fields=["status"], using_db=conn)
        else:
            table = None  # nothing changed, nothing to announce

        await create_outbox_event(
            aggregate_type="order",
            aggregate_id=order.id,
            event_type=ORDER_PLACED,
            payload=_stock_payload(order, restaurant.id, [(it.menu_item_id, it.quantity) for it in data.items]),
            conn=conn,
        )

    log.info(f"Order {order.order_number} placed for restaurant {restaurant.id} (total {order.total}).")

    detail = OrderDetailResponse.from_order(order, items)
    await notifier.emit(restaurant.id, events.ORDER_CREATED, detail.model_dump(mode="json"))
    if table:
        await notify_table_status(notifier, table)
    return order


async def get_order(restaurant_id: UUID, order_id: UUID) -> Order:
    order = await Order.get_or_none(id=order_id, restaurant_id=restaurant_id)
    if not order:
        raise NotFound("Order not found")
    return order


async def list_orders(
    restaurant_id: UUID,
    status: Optional[OrderStatus] = None,
    on_date: Optional[date] = None,
    table_id: Optional[UUID] = None,
) -> List[Order]:
    """Orders of the tenant, open work first and newest first within a status."""
    query = Order.filter(restaurant_id=restaurant_id)
    if status:
        query = query.filter(status=status)
    if table_id:
        query = query.filter(table_id=table_id)
    if on_date:
        start = datetime.combine(on_date, time.min, tzinfo=dt_timezone.utc)
        query = query.filter(created_at__gte=start, created_at__lt=start + timedelta(days=1))

    orders = await query.order_by("-created_at")
    # Stable sort keeps the newest-first order inside each status
    return sorted(orders, key=lambda o: STATUS_PRIORITY.get(o.status, 99))


async def add_items_to_order(
    restaurant: Restaurant, order_id: UUID, items: Sequence[OrderItemRequest], notifier
) -> Order:
    """Adds lines to an open order and re-derives tax and service charge from the new subtotal."""
    if not items:
        raise ItemUnavailable("Order must contain items")

    async with in_transaction() as conn:
        order = await _locked_order(restaurant.id, order_id, conn)
        if order.status in CLOSED_ORDER_STATUSES:
            raise OrderClosed("Cannot add items to a completed or cancelled order")

        priced = await _price_items(restaurant.id, items, conn)
        await _create_order_items(order, priced, conn)

        additional = sum((line_total for _, _, line_total in priced), ZERO)
        totals = compute_order_totals(
            order.subtotal + additional, restaurant.tax_rate, restaurant.service_charge, order.discount
        )
        order.subtotal = totals.subtotal
        order.tax = totals.tax
        order.service_charge = totals.service_charge
        order.total = totals.total
        await order.save(update_fields=["subtotal", "tax", "service_charge", "total", "updated_at"], using_db=conn)

        await create_outbox_event(
            aggregate_type="order",
            aggregate_id=order.id,
            event_type=ORDER_ITEMS_ADDED,
            payload=_stock_payload(order, restaurant.id, [(it.menu_item_id, it.quantity) for it in items]),
            conn=conn,
        )

    log.info(f"Added {len(items)} line(s) to order {order.order_number}; new total {order.total}.")

    detail = await build_order_detail(order, include_payments=False)
    await notifier.emit(restaurant.id, events.ORDER_UPDATED, detail.model_dump(mode="json"))
    return order


async def update_order_status(
    restaurant_id: UUID, order_id: UUID, new_status: OrderStatus, notifier, user_id: Optional[str] = None
) -> Order:
    """
    Moves the order along the state machine. Cancellation is delegated to
    ``cancel_order`` so the table release and stock restoration always happen.
    """
    if new_status == OrderStatus.CANCELLED:
        return await cancel_order(restaurant_id, order_id, notifier, user_id)
    if new_status == OrderStatus.PAID:
        raise IllegalTransition("Orders become PAID only by settling their balance through a payment")

    async with in_transaction() as conn:
        order = await _locked_order(restaurant_id, order_id, conn)
        old_status = order.status
        if not can_transition(old_status, new_status):
            raise IllegalTransition(f"Cannot change order status from {old_status.value} to {new_status.value}")

        order.status = new_status
        update_fields = ["status", "updated_at"]
        if new_status == OrderStatus.SERVED:
            order.completed_at = timezone.now()
            update_fields.append("completed_at")
        await order.save(update_fields=update_fields, using_db=conn)

    log.info(f"Order {order.order_number}: {old_status.value} -> {new_status.value}")

    detail = await build_order_detail(order, include_payments=False)
    await notifier.emit(restaurant_id, events.ORDER_UPDATED, detail.model_dump(mode="json"))
    return order


async def update_order_item_status(
    restaurant_id: UUID, order_id: UUID, item_id: UUID, new_status: OrderStatus, notifier
) -> OrderItem:
    """Kitchen progress on a single line, stamping the matching timestamp."""
    if new_status not in ITEM_STATUSES:
        raise IllegalTransition(f"Order items cannot be set to {new_status.value}")

    order = await get_order(restaurant_id, order_id)
    if order.status in CLOSED_ORDER_STATUSES:
        raise OrderClosed("Cannot update items of a completed or cancelled order")

    item = await OrderItem.get_or_none(id=item_id, order_id=order.id)
    if not item:
        raise NotFound("Order item not found")

    item.status = new_status
    now = timezone.now()
    if new_status == OrderStatus.PREPARING:
        item.sent_to_kitchen_at = now
    elif new_status == OrderStatus.READY:
        item.ready_at = now
    elif new_status == OrderStatus.SERVED:
        item.served_at = now
    await item.save()

    await notifier.emit(
        restaurant_id,
        events.ORDER_ITEM_UPDATED,
        {
            "order_id": str(order.id),
            "item_id": str(item.id),
            "status": item.status.value,
            "sent_to_kitchen_at": item.sent_to_kitchen_at,
            "ready_at": item.ready_at,
            "served_at": item.served_at,
        },
    )
    return item


async def cancel_order(restaurant_id: UUID, order_id: UUID, notifier, user_id: Optional[str] = None) -> Order:
    """
    Cancels an open order, frees its table when nothing else is open on it and
    queues the stock restoration.
    """
    released_table = None
    async with in_transaction() as conn:
        order = await _locked_order(restaurant_id, order_id, conn)

        if order.status in (OrderStatus.SERVED, OrderStatus.PAID):
            raise OrderAlreadyCompleted("Cannot cancel completed order")
        if order.status == OrderStatus.CANCELLED:
            raise OrderClosed("Order is already cancelled")

        order.status = OrderStatus.CANCELLED
        await order.save(update_fields=["status", "updated_at"], using_db=conn)

        if order.table_id:
            still_open = await Order.filter(table_id=order.table_id).exclude(
                status__in=CLOSED_ORDER_STATUSES
            ).using_db(conn).exists()
            if not still_open:
                table = await Table.filter(id=order.table_id).select_for_update().using_db(conn).first()
                if table and table.status != TableStatus.AVAILABLE:
                    table.status = TableStatus.AVAILABLE
                    await table.save(update_fields=["status"], using_db=conn)
                    released_table = table

        await create_outbox_event(
            aggregate_type="order",
            aggregate_id=order.id,
            event_type=ORDER_CANCELLED,
            payload={
                "order_id": str(order.id),
                "order_number": order.order_number,
                "restaurant_id": str(restaurant_id),
                "user_id": user_id or order.user_id,
            },
            conn=conn,
        )

    log.info(f"Order {order.order_number} cancelled; stock restoration queued.")

    detail = await build_order_detail(order, include_payments=False)
    await notifier.emit(restaurant_id, events.ORDER_CANCELLED, detail.model_dump(mode="json"))
    if released_table:
        await notify_table_status(notifier, released_table)
    return order
