"""Payments against an order's balance.

Payment rows are never mutated. A refund is a new row with a negative amount
whose reference reads ``REFUND:<payment id>``; the signed sum of an order's
rows is what the customer has paid so far.
"""
import logging
from decimal import Decimal
from typing import Iterable, Optional, Sequence
from uuid import UUID

from tortoise import timezone
from tortoise.transactions import in_transaction

from app.core.errors import (
    AppError,
    InvalidSplit,
    NotFound,
    OrderCancelled,
    OrderClosed,
    OverPayment,
    RefundExceedsPayment,
)
from app.core.money import EPSILON, ZERO, to_money
from app.events import notifier as events
from app.models.order import Order, OrderItem, OrderStatus, PaymentStatus
from app.models.payment import Payment, PaymentMethod
from app.models.restaurant import Restaurant
from app.models.table import Table
from app.schemas.payment import PaymentResponse, PaymentResultResponse, SplitPart

log = logging.getLogger("app.services.payments")

REFUND_PREFIX = "REFUND:"


def total_paid(payments: Iterable[Payment]) -> Decimal:
    return to_money(sum((p.amount for p in payments), ZERO))


def _check_reference(reference: Optional[str]) -> None:
    if reference and reference.startswith(REFUND_PREFIX):
        raise AppError(f"Payment reference cannot start with {REFUND_PREFIX}", status_code=400)


def _result(order: Order, payments: Sequence[Payment], paid: Decimal) -> PaymentResultResponse:
    return PaymentResultResponse(
        payments=[PaymentResponse.model_validate(p) for p in payments],
        order_total=order.total,
        total_paid=paid,
        remaining=max(ZERO, to_money(order.total - paid)),
        payment_status=order.payment_status,
    )


async def _locked_payable_order(restaurant_id: UUID, order_id: UUID, conn) -> Order:
    order = await Order.filter(id=order_id, restaurant_id=restaurant_id).select_for_update().using_db(conn).first()
    if not order:
        raise NotFound("Order not found")
    if order.status == OrderStatus.CANCELLED:
        raise OrderCancelled("Cannot pay for a cancelled order")
    if order.status == OrderStatus.PAID or order.payment_status == PaymentStatus.PAID:
        raise OrderClosed("Order is already paid")
    return order


async def _emit_paid(notifier, restaurant_id: UUID, order: Order, result: PaymentResultResponse) -> None:
    payload = result.model_dump(mode="json")
    payload["order_id"] = str(order.id)
    payload["order_number"] = order.order_number
    await notifier.emit(restaurant_id, events.ORDER_PAID, payload)


async def process_payment(
    restaurant_id: UUID,
    order_id: UUID,
    amount: Decimal,
    method: PaymentMethod,
    notifier,
    reference: Optional[str] = None,
    notes: Optional[str] = None,
) -> PaymentResultResponse:
    """
    Applies one payment. Amounts above the remaining balance (beyond the 0.01
    tolerance) are rejected before anything is written.
    """
    amount = to_money(amount)
    _check_reference(reference)
    async with in_transaction() as conn:
        order = await _locked_payable_order(restaurant_id, order_id, conn)

        paid_before = total_paid(await Payment.filter(order_id=order.id).using_db(conn))
        remaining = to_money(order.total - paid_before)
        if amount > remaining + EPSILON:
            raise OverPayment(f"Amount exceeds remaining balance: {remaining}")

        payment = await Payment.create(
            order=order, amount=amount, method=method, reference=reference, notes=notes, using_db=conn
        )

        paid = to_money(paid_before + amount)
        update_fields = ["payment_status", "payment_method", "updated_at"]
        order.payment_method = method.value
        if paid >= order.total - EPSILON:
            order.payment_status = PaymentStatus.PAID
            order.status = OrderStatus.PAID
            order.completed_at = timezone.now()
            update_fields += ["status", "completed_at"]
        else:
            order.payment_status = PaymentStatus.PARTIAL
        await order.save(update_fields=update_fields, using_db=conn)

    log.info(f"Payment of {amount} ({method.value}) on order {order.order_number}; status {order.payment_status.value}")

    result = _result(order, [payment], paid)
    await _emit_paid(notifier, restaurant_id, order, result)
    return result


async def split_payment(
    restaurant_id: UUID, order_id: UUID, splits: Sequence[SplitPart], notifier
) -> PaymentResultResponse:
    """All-or-nothing: the parts must settle the balance exactly (within 0.01)."""
    for split in splits:
        _check_reference(split.reference)
    async with in_transaction() as conn:
        order = await _locked_payable_order(restaurant_id, order_id, conn)

        paid_before = total_paid(await Payment.filter(order_id=order.id).using_db(conn))
        remaining = to_money(order.total - paid_before)
        split_total = to_money(sum((s.amount for s in splits), ZERO))
        if abs(split_total - remaining) > EPSILON:
            raise InvalidSplit(f"Split amounts ({split_total}) must equal order total ({remaining})")

        payments = []
        for split in splits:
            payments.append(
                await Payment.create(
                    order=order,
                    amount=to_money(split.amount),
                    method=split.method,
                    reference=split.reference,
                    using_db=conn,
                )
            )

        order.payment_status = PaymentStatus.PAID
        order.status = OrderStatus.PAID
        order.completed_at = timezone.now()
        order.payment_method = splits[0].method.value if len({s.method for s in splits}) == 1 else "SPLIT"
        await order.save(
            update_fields=["payment_status", "status", "completed_at", "payment_method", "updated_at"], using_db=conn
        )

    log.info(f"Order {order.order_number} settled with {len(payments)} split payment(s)")

    result = _result(order, payments, to_money(paid_before + split_total))
    await _emit_paid(notifier, restaurant_id, order, result)
    return result


async def refund_payment(
    restaurant_id: UUID, payment_id: UUID, amount: Optional[Decimal] = None, notes: Optional[str] = None
) -> Payment:
    """
    Refunds part or all of a payment. By default refunds whatever has not been
    refunded yet on it.
    """
    async with in_transaction() as conn:
        payment = await Payment.filter(id=payment_id).using_db(conn).first()
        order = None
        if payment:
            order = await Order.filter(
                id=payment.order_id, restaurant_id=restaurant_id
            ).select_for_update().using_db(conn).first()
        if not payment or not order:
            raise NotFound("Payment not found")

        if payment.amount <= ZERO or (payment.reference or "").startswith(REFUND_PREFIX):
            raise AppError("A refund cannot be refunded", status_code=400)

        reference = f"{REFUND_PREFIX}{payment.id}"
        earlier = await Payment.filter(order_id=order.id, reference=reference, amount__lt=0).using_db(conn)
        refundable = to_money(payment.amount + sum((r.amount for r in earlier), ZERO))
        if refundable <= ZERO:
            raise RefundExceedsPayment("Payment has already been fully refunded")

        refund_amount = to_money(amount) if amount is not None else refundable
        if refund_amount > refundable:
            raise RefundExceedsPayment("Refund amount exceeds payment amount")

        refund = await Payment.create(
            order=order,
            amount=-refund_amount,
            method=payment.method,
            reference=reference,
            notes=notes or f"Refund of payment {payment.id}",
            using_db=conn,
        )

        net = total_paid(await Payment.filter(order_id=order.id).using_db(conn))
        order.payment_status = PaymentStatus.REFUNDED if net <= ZERO else PaymentStatus.PARTIAL
        await order.save(update_fields=["payment_status", "updated_at"], using_db=conn)

    log.info(f"Refunded {refund_amount} of payment {payment.id} on order {order.order_number}")
    return refund


async def get_order_payments(restaurant_id: UUID, order_id: UUID) -> PaymentResultResponse:
    order = await Order.get_or_none(id=order_id, restaurant_id=restaurant_id)
    if not order:
        raise NotFound("Order not found")
    payments = await Payment.filter(order_id=order.id).order_by("created_at")
    return _result(order, payments, total_paid(payments))


async def get_receipt(restaurant: Restaurant, order_id: UUID) -> dict:
    """Everything a printed receipt needs, amounts as fixed-point strings."""
    order = await Order.get_or_none(id=order_id, restaurant_id=restaurant.id)
    if not order:
        raise NotFound("Order not found")

    items = await OrderItem.filter(order_id=order.id).prefetch_related("menu_item").order_by("created_at")
    payments = await Payment.filter(order_id=order.id).order_by("created_at")
    table = await Table.get_or_none(id=order.table_id) if order.table_id else None

    return {
        "restaurant": {
            "name": restaurant.name,
            "address": restaurant.address,
            "phone": restaurant.phone,
            "email": restaurant.email,
            "currency": restaurant.currency,
        },
        "order_number": order.order_number,
        "date": order.created_at,
        "table": table.number if table else "N/A",
        "server": order.user_id,
        "guest_count": order.guest_count,
        "items": [
            {
                "name": item.menu_item.name,
                "quantity": item.quantity,
                "unit_price": str(to_money(item.unit_price)),
                "total": str(to_money(item.total)),
                "notes": item.notes,
            }
            for item in items
        ],
        "subtotal": str(to_money(order.subtotal)),
        "tax": str(to_money(order.tax)),
        "service_charge": str(to_money(order.service_charge)),
        "discount": str(to_money(order.discount)),
        "total": str(to_money(order.total)),
        "payments": [
            {"method": p.method.value, "amount": str(to_money(p.amount)), "reference": p.reference}
            for p in payments
        ],
        "currency": restaurant.currency,
    }
