from decimal import Decimal
from uuid import uuid4

import pytest

from app.core.errors import IllegalTransition, ItemUnavailable, NotFound, OrderAlreadyCompleted, OrderClosed
from app.events import notifier as events
from app.events.outbox_utility import ORDER_CANCELLED, ORDER_ITEMS_ADDED, ORDER_PLACED
from app.models.order import Order, OrderItem, OrderStatus, PaymentStatus
from app.models.outbox import OutboxEvent
from app.models.table import Table, TableStatus
from app.schemas.order import OrderItemRequest, OrderRequest
from app.services import order_service
from app.services.order_service import can_transition


def order_request(*lines, table=None, guests=2):
    return OrderRequest(
        table_id=table.id if table else None,
        guest_count=guests,
        items=[OrderItemRequest(menu_item_id=item.id, quantity=qty) for item, qty in lines],
    )


class TestPlaceOrder:

    @pytest.mark.asyncio
    async def test_totals_follow_restaurant_rates(self, restaurant, ndole, poulet, notifier):
        """2 x 3500 + 1 x 4500 at 19.25% tax and 10% service."""
        order = await order_service.place_order(
            restaurant, "waiter-1", order_request((ndole, 2), (poulet, 1)), notifier
        )

        assert order.subtotal == Decimal("11500.00")
        assert order.tax == Decimal("2213.75")
        assert order.service_charge == Decimal("1150.00")
        assert order.total == Decimal("14863.75")
        assert order.status == OrderStatus.PENDING
        assert await OrderItem.filter(order_id=order.id).count() == 2

    @pytest.mark.asyncio
    async def test_order_line_keeps_price_snapshot(self, restaurant, ndole, notifier):
        order = await order_service.place_order(restaurant, "waiter-1", order_request((ndole, 1)), notifier)
        ndole.price = Decimal("5000")
        await ndole.save()

        line = await OrderItem.get(order_id=order.id)
        assert line.unit_price == Decimal("3500.00")

    @pytest.mark.asyncio
    async def test_unavailable_item_persists_nothing(self, restaurant, ndole, poulet, notifier):
        poulet.is_available = False
        await poulet.save()

        with pytest.raises(ItemUnavailable):
            await order_service.place_order(restaurant, "waiter-1", order_request((ndole, 1), (poulet, 1)), notifier)

        assert await Order.all().count() == 0
        assert await OutboxEvent.all().count() == 0
        assert notifier.events == []

    @pytest.mark.asyncio
    async def test_unknown_table_is_rejected(self, restaurant, ndole, notifier):
        request = order_request((ndole, 1))
        request.table_id = uuid4()
        with pytest.raises(NotFound):
            await order_service.place_order(restaurant, "waiter-1", request, notifier)
        assert await Order.all().count() == 0

    @pytest.mark.asyncio
    async def test_table_becomes_occupied(self, restaurant, ndole, table, notifier):
        await order_service.place_order(restaurant, "waiter-1", order_request((ndole, 1), table=table), notifier)

        await table.refresh_from_db()
        assert table.status == TableStatus.OCCUPIED
        assert notifier.names() == [events.ORDER_CREATED, events.TABLE_STATUS_CHANGED]

    @pytest.mark.asyncio
    async def test_outbox_event_written_with_order(self, restaurant, ndole, notifier):
        order = await order_service.place_order(restaurant, "waiter-1", order_request((ndole, 3)), notifier)

        event = await OutboxEvent.get(aggregate_id=order.id)
        assert event.event_type == ORDER_PLACED
        assert event.published is False
        assert event.payload["order_number"] == order.order_number
        assert event.payload["items"] == [{"menu_item_id": str(ndole.id), "quantity": 3}]

    @pytest.mark.asyncio
    async def test_order_numbers_are_sequential_per_restaurant(self, restaurant, ndole, notifier):
        first = await order_service.place_order(restaurant, "waiter-1", order_request((ndole, 1)), notifier)
        second = await order_service.place_order(restaurant, "waiter-1", order_request((ndole, 1)), notifier)

        assert first.order_number == "ORD-000001"
        assert second.order_number == "ORD-000002"


class TestAddItems:

    @pytest.mark.asyncio
    async def test_totals_recomputed_from_new_subtotal(self, restaurant, ndole, poulet, notifier):
        order = await order_service.place_order(restaurant, "waiter-1", order_request((ndole, 2)), notifier)

        updated = await order_service.add_items_to_order(
            restaurant, order.id, [OrderItemRequest(menu_item_id=poulet.id, quantity=1)], notifier
        )

        assert updated.subtotal == Decimal("11500.00")
        assert updated.total == Decimal("14863.75")
        assert await OutboxEvent.filter(event_type=ORDER_ITEMS_ADDED).count() == 1
        assert events.ORDER_UPDATED in notifier.names()

    @pytest.mark.asyncio
    async def test_closed_order_rejects_new_items(self, restaurant, ndole, notifier):
        order = await order_service.place_order(restaurant, "waiter-1", order_request((ndole, 1)), notifier)
        await order_service.cancel_order(restaurant.id, order.id, notifier)

        with pytest.raises(OrderClosed):
            await order_service.add_items_to_order(
                restaurant, order.id, [OrderItemRequest(menu_item_id=ndole.id, quantity=1)], notifier
            )


class TestStatusTransitions:

    def test_transition_table(self):
        assert can_transition(OrderStatus.PENDING, OrderStatus.CONFIRMED)
        assert can_transition(OrderStatus.SERVED, OrderStatus.PAID)
        assert not can_transition(OrderStatus.PENDING, OrderStatus.SERVED)
        assert not can_transition(OrderStatus.PAID, OrderStatus.PENDING)
        assert not can_transition(OrderStatus.CANCELLED, OrderStatus.CONFIRMED)

    @pytest.mark.asyncio
    async def test_forward_transition(self, restaurant, ndole, notifier):
        order = await order_service.place_order(restaurant, "waiter-1", order_request((ndole, 1)), notifier)

        updated = await order_service.update_order_status(restaurant.id, order.id, OrderStatus.CONFIRMED, notifier)

        assert updated.status == OrderStatus.CONFIRMED
        assert notifier.of(events.ORDER_UPDATED)[-1]["status"] == "CONFIRMED"

    @pytest.mark.asyncio
    async def test_illegal_transition_leaves_order_untouched(self, restaurant, ndole, notifier):
        order = await order_service.place_order(restaurant, "waiter-1", order_request((ndole, 1)), notifier)

        with pytest.raises(IllegalTransition):
            await order_service.update_order_status(restaurant.id, order.id, OrderStatus.SERVED, notifier)

        await order.refresh_from_db()
        assert order.status == OrderStatus.PENDING

    @pytest.mark.asyncio
    async def test_served_stamps_completion(self, restaurant, ndole, notifier):
        order = await order_service.place_order(restaurant, "waiter-1", order_request((ndole, 1)), notifier)
        for status in (OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.SERVED):
            order = await order_service.update_order_status(restaurant.id, order.id, status, notifier)

        assert order.completed_at is not None

    @pytest.mark.asyncio
    async def test_paid_only_through_payment(self, restaurant, ndole, notifier):
        order = await order_service.place_order(restaurant, "waiter-1", order_request((ndole, 1)), notifier)
        for status in (OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.SERVED):
            order = await order_service.update_order_status(restaurant.id, order.id, status, notifier)

        with pytest.raises(IllegalTransition):
            await order_service.update_order_status(restaurant.id, order.id, OrderStatus.PAID, notifier)

        await order.refresh_from_db()
        assert order.status == OrderStatus.SERVED
        assert order.payment_status == PaymentStatus.PENDING

    @pytest.mark.asyncio
    async def test_cancel_through_status_update_queues_restoration(self, restaurant, ndole, notifier):
        order = await order_service.place_order(restaurant, "waiter-1", order_request((ndole, 1)), notifier)

        updated = await order_service.update_order_status(restaurant.id, order.id, OrderStatus.CANCELLED, notifier)

        assert updated.status == OrderStatus.CANCELLED
        assert await OutboxEvent.filter(event_type=ORDER_CANCELLED).count() == 1

    @pytest.mark.asyncio
    async def test_item_status_stamps_kitchen_times(self, restaurant, ndole, notifier):
        order = await order_service.place_order(restaurant, "waiter-1", order_request((ndole, 1)), notifier)
        line = await OrderItem.get(order_id=order.id)

        line = await order_service.update_order_item_status(
            restaurant.id, order.id, line.id, OrderStatus.PREPARING, notifier
        )
        assert line.sent_to_kitchen_at is not None
        assert line.ready_at is None

        line = await order_service.update_order_item_status(restaurant.id, order.id, line.id, OrderStatus.READY, notifier)
        assert line.ready_at is not None
        assert notifier.of(events.ORDER_ITEM_UPDATED)[-1]["status"] == "READY"


class TestCancelOrder:

    @pytest.mark.asyncio
    async def test_cancel_releases_table(self, restaurant, ndole, table, notifier):
        order = await order_service.place_order(restaurant, "waiter-1", order_request((ndole, 1), table=table), notifier)

        await order_service.cancel_order(restaurant.id, order.id, notifier)

        table = await Table.get(id=table.id)
        assert table.status == TableStatus.AVAILABLE
        assert notifier.names()[-2:] == [events.ORDER_CANCELLED, events.TABLE_STATUS_CHANGED]

    @pytest.mark.asyncio
    async def test_table_stays_occupied_while_another_order_is_open(self, restaurant, ndole, table, notifier):
        first = await order_service.place_order(restaurant, "waiter-1", order_request((ndole, 1), table=table), notifier)
        await order_service.place_order(restaurant, "waiter-1", order_request((ndole, 1), table=table), notifier)

        await order_service.cancel_order(restaurant.id, first.id, notifier)

        table = await Table.get(id=table.id)
        assert table.status == TableStatus.OCCUPIED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [OrderStatus.SERVED, OrderStatus.PAID])
    async def test_completed_orders_cannot_be_cancelled(self, restaurant, ndole, notifier, status):
        order = await order_service.place_order(restaurant, "waiter-1", order_request((ndole, 1)), notifier)
        await Order.filter(id=order.id).update(status=status)

        with pytest.raises(OrderAlreadyCompleted):
            await order_service.cancel_order(restaurant.id, order.id, notifier)
        assert await OutboxEvent.filter(event_type=ORDER_CANCELLED).count() == 0

    @pytest.mark.asyncio
    async def test_cancelling_twice_is_rejected(self, restaurant, ndole, notifier):
        order = await order_service.place_order(restaurant, "waiter-1", order_request((ndole, 1)), notifier)
        await order_service.cancel_order(restaurant.id, order.id, notifier)

        with pytest.raises(OrderClosed):
            await order_service.cancel_order(restaurant.id, order.id, notifier)

    @pytest.mark.asyncio
    async def test_other_tenant_cannot_see_order(self, restaurant, ndole, notifier):
        order = await order_service.place_order(restaurant, "waiter-1", order_request((ndole, 1)), notifier)

        with pytest.raises(NotFound):
            await order_service.cancel_order(uuid4(), order.id, notifier)


class TestListOrders:

    @pytest.mark.asyncio
    async def test_open_work_first(self, restaurant, ndole, notifier):
        done = await order_service.place_order(restaurant, "waiter-1", order_request((ndole, 1)), notifier)
        await order_service.cancel_order(restaurant.id, done.id, notifier)
        pending = await order_service.place_order(restaurant, "waiter-1", order_request((ndole, 1)), notifier)

        orders = await order_service.list_orders(restaurant.id)

        assert [o.id for o in orders] == [pending.id, done.id]

    @pytest.mark.asyncio
    async def test_filter_by_status(self, restaurant, ndole, notifier):
        await order_service.place_order(restaurant, "waiter-1", order_request((ndole, 1)), notifier)

        assert len(await order_service.list_orders(restaurant.id, status=OrderStatus.PENDING)) == 1
        assert await order_service.list_orders(restaurant.id, status=OrderStatus.PAID) == []
