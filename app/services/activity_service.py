"""Recent activity feed: orders, payments, reservations and stock movements merged by time."""
from typing import List

from app.core.money import to_money
from app.models.inventory import InventoryMovement
from app.models.order import Order
from app.models.payment import Payment
from app.models.restaurant import Restaurant
from app.models.staff import StaffMember
from app.models.table import Reservation
from app.schemas.activity import ActivityEntry

MAX_ACTIVITY = 100


async def recent_activity(restaurant: Restaurant, limit: int = 50) -> List[ActivityEntry]:
    limit = max(1, min(limit, MAX_ACTIVITY))
    currency = restaurant.currency

    orders = await Order.filter(restaurant_id=restaurant.id).prefetch_related("table").order_by("-created_at").limit(limit)
    payments = await Payment.filter(order__restaurant_id=restaurant.id).prefetch_related("order").order_by(
        "-created_at"
    ).limit(limit)
    reservations = await Reservation.filter(restaurant_id=restaurant.id).order_by("-created_at").limit(limit)
    movements = await InventoryMovement.filter(restaurant_id=restaurant.id).prefetch_related("item").order_by(
        "-created_at"
    ).limit(limit)
    names = {str(m.id): m.full_name for m in await StaffMember.filter(restaurant_id=restaurant.id)}

    activities = []
    for order in orders:
        where = f" (Table {order.table.number})" if order.table else ""
        activities.append(ActivityEntry(
            id=order.id,
            type="order",
            title=f"Order {order.order_number}",
            description=f"{order.status.value}, {to_money(order.total)} {currency}{where}",
            actor=names.get(order.user_id, order.user_id),
            timestamp=order.created_at,
        ))
    for payment in payments:
        activities.append(ActivityEntry(
            id=payment.id,
            type="payment",
            title=f"Payment for {payment.order.order_number}",
            description=f"{payment.method.value}, {to_money(payment.amount)} {currency}",
            timestamp=payment.created_at,
        ))
    for reservation in reservations:
        activities.append(ActivityEntry(
            id=reservation.id,
            type="reservation",
            title=f"Reservation for {reservation.customer_name}",
            description=f"{reservation.guest_count} guests, {reservation.status.value}",
            timestamp=reservation.created_at,
        ))
    for movement in movements:
        note = f" ({movement.notes})" if movement.notes else ""
        activities.append(ActivityEntry(
            id=movement.id,
            type="inventory",
            title=f"Inventory {movement.type.value}",
            description=f"{movement.item.name}: {movement.quantity} {movement.item.unit}{note}",
            actor=names.get(movement.created_by, movement.created_by),
            timestamp=movement.created_at,
        ))

    activities.sort(key=lambda a: a.timestamp, reverse=True)
    return activities[:limit]
