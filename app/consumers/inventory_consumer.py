import logging
from typing import Any, Dict
from uuid import UUID

from tortoise.transactions import in_transaction

from app.events import notifier as events
from app.models.order import Order, OrderStatus
from app.models.processed_event import ProcessedEvent
from app.services.stock_service import deduct_stock_for_order, low_stock_payload, restore_stock_for_order

log = logging.getLogger("app.consumers.inventory")


async def _already_processed(event_id: str, conn) -> bool:
    return await ProcessedEvent.filter(event_id=event_id).using_db(conn).exists()


async def handle_order_placed(event_payload: Dict[str, Any], event_id: UUID, notifier, event_type: str = None):
    """
    Consumer logic for 'order.placed.v1' and 'order.items_added.v1'.
    Deducts recipe ingredients for the event's lines in one transaction, with
    the inventory rows locked. Errors propagate so the poller records them and
    retries; the ProcessedEvent row makes a retry harmless.
    """
    restaurant_id = UUID(event_payload["restaurant_id"])
    order_number = event_payload["order_number"]
    lines = [(UUID(item["menu_item_id"]), int(item["quantity"])) for item in event_payload.get("items", [])]
    event_id_str = str(event_id)

    async with in_transaction() as conn:
        # Idempotency Check
        if await _already_processed(event_id_str, conn):
            log.info(f"Event {event_id_str} already processed, skipping.")
            return

        order = await Order.filter(id=UUID(event_payload["order_id"])).using_db(conn).first()
        if order is None or order.status == OrderStatus.CANCELLED:
            log.info(f"Order {order_number} is cancelled or gone; nothing to deduct.")
            low_items = []
        else:
            low_items = await deduct_stock_for_order(
                restaurant_id, order_number, lines, event_payload.get("user_id"), conn
            )

        await ProcessedEvent.create(event_id=event_id_str, event_type=event_type, using_db=conn)

    log.info(f"Inventory deducted for order {order_number}")

    # Alerts only go out once the deduction is committed
    for item in low_items:
        await notifier.emit(restaurant_id, events.INVENTORY_LOW_STOCK, low_stock_payload(item))


async def handle_order_cancelled(event_payload: Dict[str, Any], event_id: UUID, notifier, event_type: str = None):
    """Consumer logic for 'order.cancelled.v1'. Restores what the order consumed."""
    restaurant_id = UUID(event_payload["restaurant_id"])
    order_number = event_payload["order_number"]
    event_id_str = str(event_id)

    async with in_transaction() as conn:
        if await _already_processed(event_id_str, conn):
            log.info(f"Event {event_id_str} already processed, skipping.")
            return

        restored = await restore_stock_for_order(restaurant_id, order_number, event_payload.get("user_id"), conn)
        await ProcessedEvent.create(event_id=event_id_str, event_type=event_type, using_db=conn)

    log.info(f"Inventory restored for order {order_number} ({len(restored)} item(s))")
