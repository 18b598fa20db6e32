from decimal import Decimal

import pytest

from app.core.errors import AppError, InvalidSplit, OrderCancelled, OrderClosed, OverPayment, RefundExceedsPayment
from app.events import notifier as events
from app.models.menu import MenuItem
from app.models.order import Order, OrderStatus, PaymentStatus
from app.models.payment import Payment, PaymentMethod
from app.schemas.order import OrderItemRequest, OrderRequest
from app.schemas.payment import SplitPart
from app.services import order_service, payment_service


@pytest.fixture
def tax_free(restaurant):
    """Rates at zero so order totals equal their subtotal."""
    restaurant.tax_rate = Decimal("0")
    restaurant.service_charge = Decimal("0")
    return restaurant


async def order_of(restaurant, menu_item, quantity, notifier):
    request = OrderRequest(items=[OrderItemRequest(menu_item_id=menu_item.id, quantity=quantity)])
    return await order_service.place_order(restaurant, "waiter-1", request, notifier)


class TestProcessPayment:

    @pytest.mark.asyncio
    async def test_partial_then_full(self, tax_free, ndole, notifier):
        order = await order_of(tax_free, ndole, 2, notifier)  # 7000

        partial = await payment_service.process_payment(tax_free.id, order.id, Decimal("3000"), PaymentMethod.CASH, notifier)
        assert partial.payment_status == PaymentStatus.PARTIAL
        assert partial.remaining == Decimal("4000.00")

        full = await payment_service.process_payment(tax_free.id, order.id, Decimal("4000"), PaymentMethod.CARD, notifier)
        assert full.payment_status == PaymentStatus.PAID
        assert full.total_paid == Decimal("7000.00")

        await order.refresh_from_db()
        assert order.status == OrderStatus.PAID
        assert order.completed_at is not None
        assert len(notifier.of(events.ORDER_PAID)) == 2

    @pytest.mark.asyncio
    async def test_overpayment_writes_nothing(self, tax_free, ndole, notifier):
        order = await order_of(tax_free, ndole, 1, notifier)  # 3500

        with pytest.raises(OverPayment):
            await payment_service.process_payment(tax_free.id, order.id, Decimal("3600"), PaymentMethod.CASH, notifier)

        assert await Payment.filter(order_id=order.id).count() == 0

    @pytest.mark.asyncio
    async def test_one_cent_tolerance(self, tax_free, ndole, notifier):
        order = await order_of(tax_free, ndole, 1, notifier)

        result = await payment_service.process_payment(
            tax_free.id, order.id, Decimal("3499.99"), PaymentMethod.CASH, notifier
        )

        assert result.payment_status == PaymentStatus.PAID

    @pytest.mark.asyncio
    async def test_paid_order_takes_no_more_payments(self, tax_free, ndole, notifier):
        order = await order_of(tax_free, ndole, 1, notifier)
        await payment_service.process_payment(tax_free.id, order.id, Decimal("3500"), PaymentMethod.CASH, notifier)

        with pytest.raises(OrderClosed):
            await payment_service.process_payment(tax_free.id, order.id, Decimal("1"), PaymentMethod.CASH, notifier)

    @pytest.mark.asyncio
    async def test_cancelled_order_cannot_be_paid(self, tax_free, ndole, notifier):
        order = await order_of(tax_free, ndole, 1, notifier)
        await order_service.cancel_order(tax_free.id, order.id, notifier)

        with pytest.raises(OrderCancelled):
            await payment_service.process_payment(tax_free.id, order.id, Decimal("100"), PaymentMethod.CASH, notifier)


class TestSplitPayment:

    @pytest.mark.asyncio
    async def test_split_must_cover_balance(self, tax_free, notifier, restaurant):
        plate = await MenuItem.create(restaurant=restaurant, name="Menu complet", price=Decimal("10000"))
        order = await order_of(tax_free, plate, 1, notifier)

        with pytest.raises(InvalidSplit):
            await payment_service.split_payment(
                tax_free.id,
                order.id,
                [SplitPart(amount=Decimal("5000"), method=PaymentMethod.CASH), SplitPart(amount=Decimal("4999"), method=PaymentMethod.CARD)],
                notifier,
            )
        assert await Payment.filter(order_id=order.id).count() == 0

    @pytest.mark.asyncio
    async def test_mixed_methods_settle_order(self, tax_free, ndole, notifier):
        order = await order_of(tax_free, ndole, 2, notifier)

        result = await payment_service.split_payment(
            tax_free.id,
            order.id,
            [SplitPart(amount=Decimal("3000"), method=PaymentMethod.CASH), SplitPart(amount=Decimal("4000"), method=PaymentMethod.MOBILE_MONEY)],
            notifier,
        )

        assert result.payment_status == PaymentStatus.PAID
        assert len(result.payments) == 2
        order = await Order.get(id=order.id)
        assert order.payment_method == "SPLIT"
        assert order.status == OrderStatus.PAID


class TestRefunds:

    @pytest.mark.asyncio
    async def test_partial_refunds_up_to_payment(self, tax_free, ndole, notifier):
        order = await order_of(tax_free, ndole, 1, notifier)
        result = await payment_service.process_payment(tax_free.id, order.id, Decimal("3500"), PaymentMethod.CASH, notifier)
        payment_id = result.payments[0].id

        refund = await payment_service.refund_payment(tax_free.id, payment_id, Decimal("1000"))
        assert refund.amount == Decimal("-1000.00")
        assert refund.reference == f"REFUND:{payment_id}"
        order = await Order.get(id=order.id)
        assert order.payment_status == PaymentStatus.PARTIAL

        with pytest.raises(RefundExceedsPayment):
            await payment_service.refund_payment(tax_free.id, payment_id, Decimal("3000"))

        await payment_service.refund_payment(tax_free.id, payment_id)
        order = await Order.get(id=order.id)
        assert order.payment_status == PaymentStatus.REFUNDED

    @pytest.mark.asyncio
    async def test_refund_rows_are_not_refundable(self, tax_free, ndole, notifier):
        order = await order_of(tax_free, ndole, 1, notifier)
        result = await payment_service.process_payment(tax_free.id, order.id, Decimal("3500"), PaymentMethod.CASH, notifier)
        refund = await payment_service.refund_payment(tax_free.id, result.payments[0].id, Decimal("500"))

        with pytest.raises(AppError):
            await payment_service.refund_payment(tax_free.id, refund.id)

    @pytest.mark.asyncio
    async def test_payment_reference_cannot_pose_as_refund(self, tax_free, ndole, notifier):
        order = await order_of(tax_free, ndole, 2, notifier)  # 7000
        first = await payment_service.process_payment(tax_free.id, order.id, Decimal("3000"), PaymentMethod.CASH, notifier)
        payment_id = first.payments[0].id

        with pytest.raises(AppError) as exc:
            await payment_service.process_payment(
                tax_free.id, order.id, Decimal("4000"), PaymentMethod.CASH, notifier, reference=f"REFUND:{payment_id}"
            )
        assert exc.value.status_code == 400
        with pytest.raises(AppError):
            await payment_service.split_payment(
                tax_free.id,
                order.id,
                [SplitPart(amount=Decimal("4000"), method=PaymentMethod.CARD, reference=f"REFUND:{payment_id}")],
                notifier,
            )
        assert await Payment.filter(order_id=order.id).count() == 1

    @pytest.mark.asyncio
    async def test_refundable_amount_ignores_positive_rows(self, tax_free, ndole, notifier):
        order = await order_of(tax_free, ndole, 2, notifier)  # 7000
        first = await payment_service.process_payment(tax_free.id, order.id, Decimal("3000"), PaymentMethod.CASH, notifier)
        payment_id = first.payments[0].id
        # A row written around the service, e.g. by an import, with a look-alike reference
        await Payment.create(order_id=order.id, amount=Decimal("4000"), method=PaymentMethod.CASH, reference=f"REFUND:{payment_id}")

        refund = await payment_service.refund_payment(tax_free.id, payment_id)

        assert refund.amount == Decimal("-3000.00")
        with pytest.raises(RefundExceedsPayment):
            await payment_service.refund_payment(tax_free.id, payment_id, Decimal("1"))


class TestReceipt:

    @pytest.mark.asyncio
    async def test_receipt_lists_lines_and_payments(self, restaurant, ndole, table, notifier):
        request = OrderRequest(table_id=table.id, items=[OrderItemRequest(menu_item_id=ndole.id, quantity=1)])
        order = await order_service.place_order(restaurant, "waiter-1", request, notifier)
        await payment_service.process_payment(restaurant.id, order.id, Decimal("1000"), PaymentMethod.CASH, notifier)

        receipt = await payment_service.get_receipt(restaurant, order.id)

        assert receipt["table"] == "T1"
        assert receipt["items"][0]["name"] == "Ndole"
        assert receipt["total"] == str(order.total)
        assert receipt["payments"] == [{"method": "CASH", "amount": "1000.00", "reference": None}]
