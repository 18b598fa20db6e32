from decimal import Decimal
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from app.consumers.inventory_consumer import handle_order_cancelled, handle_order_placed
from app.consumers.outbox_poller import poll_outbox_for_new_events
from app.core.config import MAX_ATTEMPTS
from app.events import notifier as events
from app.events.outbox_utility import ORDER_CANCELLED, ORDER_PLACED
from app.models.inventory import InventoryMovement, MovementType
from app.models.outbox import OutboxEvent
from app.models.processed_event import ProcessedEvent
from app.schemas.order import OrderItemRequest, OrderRequest
from app.services import order_service


async def place(restaurant, menu_item, quantity, notifier):
    request = OrderRequest(items=[OrderItemRequest(menu_item_id=menu_item.id, quantity=quantity)])
    order = await order_service.place_order(restaurant, "waiter-1", request, notifier)
    event = await OutboxEvent.get(aggregate_id=order.id, event_type=ORDER_PLACED)
    return order, event


class TestInventoryDeduction:

    @pytest.mark.asyncio
    async def test_deduction_reaching_threshold_emits_low_stock(self, restaurant, ndole, plantain, ndole_recipe, notifier):
        """Stock 5 with a minimum of 5: selling one Ndole leaves 4 and raises an alert."""
        _, event = await place(restaurant, ndole, 1, notifier)

        await handle_order_placed(event.payload, event.id, notifier, event_type=ORDER_PLACED)

        await plantain.refresh_from_db()
        assert plantain.current_stock == Decimal("4")
        movement = await InventoryMovement.get(item_id=plantain.id, type=MovementType.OUT)
        assert movement.reference == f"ORDER:{event.payload['order_number']}"
        alerts = notifier.of(events.INVENTORY_LOW_STOCK)
        assert len(alerts) == 1
        assert alerts[0]["item"]["name"] == "Plantain"

    @pytest.mark.asyncio
    async def test_item_without_recipe_leaves_stock_alone(self, restaurant, poulet, plantain, notifier):
        _, event = await place(restaurant, poulet, 2, notifier)

        await handle_order_placed(event.payload, event.id, notifier, event_type=ORDER_PLACED)

        await plantain.refresh_from_db()
        assert plantain.current_stock == Decimal("5")
        assert await InventoryMovement.all().count() == 0

    @pytest.mark.asyncio
    async def test_replayed_event_deducts_once(self, restaurant, ndole, plantain, ndole_recipe, notifier):
        _, event = await place(restaurant, ndole, 2, notifier)

        await handle_order_placed(event.payload, event.id, notifier, event_type=ORDER_PLACED)
        await handle_order_placed(event.payload, event.id, notifier, event_type=ORDER_PLACED)

        await plantain.refresh_from_db()
        assert plantain.current_stock == Decimal("3")
        assert await ProcessedEvent.filter(event_id=str(event.id)).count() == 1

    @pytest.mark.asyncio
    async def test_cancelled_order_is_not_deducted(self, restaurant, ndole, plantain, ndole_recipe, notifier):
        order, event = await place(restaurant, ndole, 1, notifier)
        await order_service.cancel_order(restaurant.id, order.id, notifier)

        await handle_order_placed(event.payload, event.id, notifier, event_type=ORDER_PLACED)

        await plantain.refresh_from_db()
        assert plantain.current_stock == Decimal("5")


class TestInventoryRestoration:

    @pytest.mark.asyncio
    async def test_clamped_deduction_then_restore_conserves_stock(self, restaurant, ndole, plantain, ndole_recipe, notifier):
        """Ordering 8 with 5 in stock clamps at zero; cancelling gives back exactly 5."""
        order, placed = await place(restaurant, ndole, 8, notifier)
        await handle_order_placed(placed.payload, placed.id, notifier, event_type=ORDER_PLACED)

        await plantain.refresh_from_db()
        assert plantain.current_stock == Decimal("0")
        out = await InventoryMovement.get(item_id=plantain.id, type=MovementType.OUT)
        assert out.quantity == Decimal("8")
        assert out.applied_quantity == Decimal("5")

        await order_service.cancel_order(restaurant.id, order.id, notifier)
        cancelled = await OutboxEvent.get(aggregate_id=order.id, event_type=ORDER_CANCELLED)
        await handle_order_cancelled(cancelled.payload, cancelled.id, notifier, event_type=ORDER_CANCELLED)

        await plantain.refresh_from_db()
        assert plantain.current_stock == Decimal("5")
        back = await InventoryMovement.get(item_id=plantain.id, type=MovementType.RETURN)
        assert back.quantity == Decimal("5")
        assert back.reference == f"CANCEL:{order.order_number}"

    @pytest.mark.asyncio
    async def test_restoration_runs_once(self, restaurant, ndole, plantain, ndole_recipe, notifier):
        order, placed = await place(restaurant, ndole, 2, notifier)
        await handle_order_placed(placed.payload, placed.id, notifier, event_type=ORDER_PLACED)
        await order_service.cancel_order(restaurant.id, order.id, notifier)
        cancelled = await OutboxEvent.get(aggregate_id=order.id, event_type=ORDER_CANCELLED)

        await handle_order_cancelled(cancelled.payload, cancelled.id, notifier, event_type=ORDER_CANCELLED)
        # A second event id for the same order must not credit twice either
        await handle_order_cancelled(cancelled.payload, uuid4(), notifier, event_type=ORDER_CANCELLED)

        await plantain.refresh_from_db()
        assert plantain.current_stock == Decimal("5")
        assert await InventoryMovement.filter(type=MovementType.RETURN).count() == 1


class TestOutboxPoller:

    @pytest.mark.asyncio
    async def test_dispatch_marks_events_published(self, restaurant, ndole, plantain, ndole_recipe, notifier):
        await place(restaurant, ndole, 1, notifier)

        published = await poll_outbox_for_new_events(notifier)

        assert published == 1
        assert await OutboxEvent.filter(published=False).count() == 0
        await plantain.refresh_from_db()
        assert plantain.current_stock == Decimal("4")

    @pytest.mark.asyncio
    async def test_failure_records_attempt_and_error(self, restaurant, ndole, notifier):
        _, event = await place(restaurant, ndole, 1, notifier)

        failing = AsyncMock(side_effect=RuntimeError("ledger unavailable"))
        with patch.dict("app.consumers.outbox_poller.HANDLERS", {ORDER_PLACED: failing}):
            published = await poll_outbox_for_new_events(notifier)

        assert published == 0
        await event.refresh_from_db()
        assert event.published is False
        assert event.attempts == 1
        assert "ledger unavailable" in event.last_error

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, restaurant, ndole, notifier):
        _, event = await place(restaurant, ndole, 1, notifier)
        failing = AsyncMock(side_effect=RuntimeError("boom"))

        with patch.dict("app.consumers.outbox_poller.HANDLERS", {ORDER_PLACED: failing}):
            for _ in range(MAX_ATTEMPTS + 2):
                await poll_outbox_for_new_events(notifier)

        assert failing.await_count == MAX_ATTEMPTS
        await event.refresh_from_db()
        assert event.attempts == MAX_ATTEMPTS
