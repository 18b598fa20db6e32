import logging
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_notifier
from app.core.permissions import Permission
from app.core.security import TenantContext, require_permission
from app.models.order import OrderStatus
from app.schemas.order import (
    AddItemsRequest,
    OrderDetailResponse,
    OrderItemResponse,
    OrderItemStatusUpdate,
    OrderRequest,
    OrderStatusUpdate,
)
from app.schemas.response import ERROR_RESPONSES, SuccessResponse, ok
from app.services import order_service

router = APIRouter(responses=ERROR_RESPONSES)
log = logging.getLogger("app.api.orders")


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_order_endpoint(
    request_data: OrderRequest,
    ctx: TenantContext = Depends(require_permission(Permission.ORDER_CREATE)),
    notifier=Depends(get_notifier),
):
    """
    Places a new order. Stock is deducted asynchronously by the outbox consumer,
    so the response does not wait for inventory bookkeeping.
    """
    order = await order_service.place_order(ctx.restaurant, ctx.user_id, request_data, notifier)
    return ok(await order_service.build_order_detail(order))


@router.get("/", response_model=SuccessResponse)
async def list_orders_endpoint(
    status: Optional[OrderStatus] = None,
    on_date: Optional[date] = Query(None, alias="date"),
    table_id: Optional[UUID] = None,
    ctx: TenantContext = Depends(require_permission(Permission.VIEW)),
):
    orders = await order_service.list_orders(ctx.restaurant_id, status=status, on_date=on_date, table_id=table_id)
    return ok([OrderDetailResponse.from_order(o) for o in orders])


@router.get("/{order_id}", response_model=SuccessResponse)
async def get_order_endpoint(
    order_id: UUID, ctx: TenantContext = Depends(require_permission(Permission.VIEW))
):
    """Fetches an order with its items and payments."""
    order = await order_service.get_order(ctx.restaurant_id, order_id)
    return ok(await order_service.build_order_detail(order))


@router.patch("/{order_id}/status", response_model=SuccessResponse)
async def update_status_endpoint(
    order_id: UUID,
    payload: OrderStatusUpdate,
    ctx: TenantContext = Depends(require_permission(Permission.ORDER_UPDATE_STATUS)),
    notifier=Depends(get_notifier),
):
    order = await order_service.update_order_status(
        ctx.restaurant_id, order_id, payload.status, notifier, user_id=ctx.user_id
    )
    return ok(await order_service.build_order_detail(order))


@router.patch("/{order_id}/items/{item_id}/status", response_model=SuccessResponse)
async def update_item_status_endpoint(
    order_id: UUID,
    item_id: UUID,
    payload: OrderItemStatusUpdate,
    ctx: TenantContext = Depends(require_permission(Permission.ORDER_ITEM_STATUS)),
    notifier=Depends(get_notifier),
):
    """Kitchen progress on a single order line."""
    item = await order_service.update_order_item_status(ctx.restaurant_id, order_id, item_id, payload.status, notifier)
    return ok(OrderItemResponse.from_item(item))


@router.post("/{order_id}/items", response_model=SuccessResponse)
async def add_items_endpoint(
    order_id: UUID,
    payload: AddItemsRequest,
    ctx: TenantContext = Depends(require_permission(Permission.ORDER_CREATE)),
    notifier=Depends(get_notifier),
):
    order = await order_service.add_items_to_order(ctx.restaurant, order_id, payload.items, notifier)
    return ok(await order_service.build_order_detail(order))


@router.post("/{order_id}/cancel", response_model=SuccessResponse)
async def cancel_order_endpoint(
    order_id: UUID,
    ctx: TenantContext = Depends(require_permission(Permission.ORDER_CANCEL)),
    notifier=Depends(get_notifier),
):
    """
    Cancels the order, releases its table and queues the inventory restoration.
    """
    order = await order_service.cancel_order(ctx.restaurant_id, order_id, notifier, user_id=ctx.user_id)
    log.info(f"Order {order.order_number} cancelled by {ctx.user_id}")
    return ok(await order_service.build_order_detail(order))
