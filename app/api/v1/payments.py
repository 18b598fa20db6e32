from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_notifier
from app.core.permissions import Permission
from app.core.security import TenantContext, require_permission
from app.schemas.payment import PaymentRequest, PaymentResponse, RefundRequest, SplitPaymentRequest
from app.schemas.response import ERROR_RESPONSES, SuccessResponse, ok
from app.services import payment_service, report_service

router = APIRouter(responses=ERROR_RESPONSES)


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def process_payment_endpoint(
    payload: PaymentRequest,
    ctx: TenantContext = Depends(require_permission(Permission.PAYMENT_PROCESS)),
    notifier=Depends(get_notifier),
):
    """Records a payment; the order becomes PAID once its balance is settled."""
    result = await payment_service.process_payment(
        ctx.restaurant_id,
        payload.order_id,
        payload.amount,
        payload.method,
        notifier,
        reference=payload.reference,
        notes=payload.notes,
    )
    return ok(result)


@router.post("/split", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def split_payment_endpoint(
    payload: SplitPaymentRequest,
    ctx: TenantContext = Depends(require_permission(Permission.PAYMENT_PROCESS)),
    notifier=Depends(get_notifier),
):
    result = await payment_service.split_payment(ctx.restaurant_id, payload.order_id, payload.splits, notifier)
    return ok(result)


@router.get("/order/{order_id}", response_model=SuccessResponse)
async def order_payments_endpoint(
    order_id: UUID, ctx: TenantContext = Depends(require_permission(Permission.VIEW))
):
    return ok(await payment_service.get_order_payments(ctx.restaurant_id, order_id))


@router.post("/refund/{payment_id}", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def refund_payment_endpoint(
    payment_id: UUID,
    payload: RefundRequest,
    ctx: TenantContext = Depends(require_permission(Permission.PAYMENT_REFUND)),
):
    refund = await payment_service.refund_payment(ctx.restaurant_id, payment_id, payload.amount, payload.notes)
    return ok(PaymentResponse.model_validate(refund))


@router.get("/receipt/{order_id}", response_model=SuccessResponse)
async def receipt_endpoint(
    order_id: UUID, ctx: TenantContext = Depends(require_permission(Permission.VIEW))
):
    """Data for printing the customer receipt."""
    return ok(await payment_service.get_receipt(ctx.restaurant, order_id))


@router.get("/z-report", response_model=SuccessResponse)
async def z_report_endpoint(
    report_date: Optional[date] = Query(None, alias="date"),
    ctx: TenantContext = Depends(require_permission(Permission.PAYMENT_REPORT)),
):
    """End-of-day summary; defaults to today (UTC)."""
    return ok(await report_service.z_report(ctx.restaurant_id, report_date))
