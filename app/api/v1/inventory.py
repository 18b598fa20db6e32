import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_notifier
from app.core.permissions import Permission
from app.core.security import TenantContext, require_permission
from app.models.inventory import MovementType
from app.schemas.inventory import (
    InventoryItemCreate,
    InventoryItemResponse,
    InventoryItemUpdate,
    MovementCreate,
    MovementResponse,
    StockCheckRequest,
    TransferRequest,
    TransferResponse,
)
from app.schemas.response import ERROR_RESPONSES, SuccessResponse, ok
from app.services import inventory_service, stock_service

router = APIRouter(responses=ERROR_RESPONSES)
log = logging.getLogger("app.api.inventory")


@router.get("/items", response_model=SuccessResponse)
async def list_items_endpoint(
    category: Optional[str] = None,
    location: Optional[str] = None,
    low_stock: bool = Query(False, alias="lowStock"),
    ctx: TenantContext = Depends(require_permission(Permission.VIEW)),
):
    items = await inventory_service.list_items(ctx.restaurant_id, category, location, low_stock)
    return ok([InventoryItemResponse.model_validate(i) for i in items])


@router.get("/items/{item_id}", response_model=SuccessResponse)
async def get_item_endpoint(item_id: UUID, ctx: TenantContext = Depends(require_permission(Permission.VIEW))):
    """Fetches a stock item with its latest movements."""
    return ok(await inventory_service.get_item_detail(ctx.restaurant_id, item_id))


@router.post("/items", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_item_endpoint(
    payload: InventoryItemCreate, ctx: TenantContext = Depends(require_permission(Permission.INVENTORY_MANAGE))
):
    item = await inventory_service.create_item(ctx.restaurant_id, payload, ctx.user_id)
    return ok(InventoryItemResponse.model_validate(item))


@router.patch("/items/{item_id}", response_model=SuccessResponse)
async def update_item_endpoint(
    item_id: UUID,
    payload: InventoryItemUpdate,
    ctx: TenantContext = Depends(require_permission(Permission.INVENTORY_MANAGE)),
):
    item = await inventory_service.update_item(ctx.restaurant_id, item_id, payload)
    return ok(InventoryItemResponse.model_validate(item))


@router.delete("/items/{item_id}", response_model=SuccessResponse)
async def delete_item_endpoint(
    item_id: UUID, ctx: TenantContext = Depends(require_permission(Permission.INVENTORY_MANAGE))
):
    await inventory_service.delete_item(ctx.restaurant_id, item_id)
    return ok({"message": "Inventory item deleted"})


@router.get("/movements", response_model=SuccessResponse)
async def list_movements_endpoint(
    item_id: Optional[UUID] = None,
    movement_type: Optional[MovementType] = Query(None, alias="type"),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    ctx: TenantContext = Depends(require_permission(Permission.VIEW)),
):
    movements = await inventory_service.list_movements(
        ctx.restaurant_id, item_id=item_id, movement_type=movement_type, start_date=start_date, end_date=end_date
    )
    return ok([MovementResponse.model_validate(m) for m in movements])


@router.post("/movements", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def record_movement_endpoint(
    payload: MovementCreate,
    ctx: TenantContext = Depends(require_permission(Permission.INVENTORY_MANAGE)),
    notifier=Depends(get_notifier),
):
    """Manual stock adjustment (delivery, waste, return...)."""
    movement = await inventory_service.record_movement(ctx.restaurant_id, payload, ctx.user_id, notifier)
    return ok(MovementResponse.model_validate(movement))


@router.post("/transfers", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def transfer_endpoint(
    payload: TransferRequest, ctx: TenantContext = Depends(require_permission(Permission.INVENTORY_MANAGE))
):
    source, target, movement = await inventory_service.transfer_stock(ctx.restaurant_id, payload, ctx.user_id)
    return ok(
        TransferResponse(
            source=InventoryItemResponse.model_validate(source),
            target=InventoryItemResponse.model_validate(target),
            movement=MovementResponse.model_validate(movement),
        )
    )


@router.get("/alerts/low-stock", response_model=SuccessResponse)
async def low_stock_endpoint(ctx: TenantContext = Depends(require_permission(Permission.VIEW))):
    return ok(await inventory_service.low_stock_alerts(ctx.restaurant_id))


@router.get("/valuation", response_model=SuccessResponse)
async def valuation_endpoint(
    category: Optional[str] = None,
    location: Optional[str] = None,
    ctx: TenantContext = Depends(require_permission(Permission.INVENTORY_MANAGE)),
):
    return ok(await inventory_service.stock_valuation(ctx.restaurant_id, category, location))


@router.post("/check-availability", response_model=SuccessResponse)
async def check_availability_endpoint(
    payload: StockCheckRequest, ctx: TenantContext = Depends(require_permission(Permission.VIEW))
):
    """Tells whether current stock covers the given order lines, without touching it."""
    lines = [(item.menu_item_id, item.quantity) for item in payload.items]
    result = await stock_service.check_stock_availability(ctx.restaurant_id, lines)
    if not result["available"]:
        log.info(f"Stock check for restaurant {ctx.restaurant_id}: {len(result['shortages'])} shortage(s)")
    return ok(result)
