"""Inventory ledger: stock items and their append-only movement history."""
import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple
from uuid import UUID

from tortoise.transactions import in_transaction

from app.core.errors import AppError, DuplicateResource, InsufficientStock, NotFound
from app.core.money import ZERO, to_money, to_quantity
from app.events import notifier as events
from app.models.inventory import (
    INBOUND_MOVEMENTS,
    OUTBOUND_MOVEMENTS,
    InventoryItem,
    InventoryMovement,
    MovementType,
)
from app.schemas.inventory import (
    InventoryItemCreate,
    InventoryItemDetailResponse,
    InventoryItemResponse,
    InventoryItemUpdate,
    LowStockAlert,
    LowStockAlertsResponse,
    MovementCreate,
    MovementResponse,
    StockValuationResponse,
    TransferRequest,
    ValuationLine,
)
from app.services.stock_service import low_stock_payload, movement_cost

log = logging.getLogger("app.services.inventory")

MOVEMENT_HISTORY_LIMIT = 50
MOVEMENT_LIST_LIMIT = 200


async def get_item(restaurant_id: UUID, item_id: UUID, conn=None, lock: bool = False) -> InventoryItem:
    query = InventoryItem.filter(id=item_id, restaurant_id=restaurant_id)
    if lock:
        query = query.select_for_update()
    item = await query.using_db(conn).first()
    if not item:
        raise NotFound("Inventory item not found")
    return item


async def list_items(
    restaurant_id: UUID,
    category: Optional[str] = None,
    location: Optional[str] = None,
    low_stock: bool = False,
) -> List[InventoryItem]:
    query = InventoryItem.filter(restaurant_id=restaurant_id, is_active=True)
    if category:
        query = query.filter(category=category)
    if location:
        query = query.filter(location=location)
    items = await query.order_by("name")
    if low_stock:
        # Column-to-column comparison is done here rather than in SQL
        items = [item for item in items if item.is_low]
    return items


async def get_item_detail(restaurant_id: UUID, item_id: UUID) -> InventoryItemDetailResponse:
    item = await get_item(restaurant_id, item_id)
    movements = await InventoryMovement.filter(item_id=item.id).order_by("-created_at").limit(MOVEMENT_HISTORY_LIMIT)
    data = InventoryItemResponse.model_validate(item).model_dump()
    return InventoryItemDetailResponse(**data, movements=[MovementResponse.model_validate(m) for m in movements])


async def create_item(restaurant_id: UUID, data: InventoryItemCreate, user_id: str) -> InventoryItem:
    """Creates a stock item; an opening stock is booked as an INITIAL_STOCK movement."""
    if data.sku and await InventoryItem.filter(restaurant_id=restaurant_id, sku=data.sku).exists():
        raise DuplicateResource("SKU already exists")

    opening = to_quantity(data.current_stock)
    async with in_transaction() as conn:
        item = await InventoryItem.create(
            restaurant_id=restaurant_id,
            using_db=conn,
            **data.model_dump(exclude={"current_stock"}),
            current_stock=opening,
        )
        if opening > ZERO:
            await InventoryMovement.create(
                restaurant_id=restaurant_id,
                item=item,
                type=MovementType.IN,
                quantity=opening,
                applied_quantity=opening,
                unit_cost=data.unit_cost,
                total_cost=movement_cost(data.unit_cost, opening),
                reference="INITIAL_STOCK",
                notes="Initial stock entry",
                created_by=user_id,
                using_db=conn,
            )

    log.info(f"Inventory item {item.name} created with {opening} {item.unit}")
    return item


async def update_item(restaurant_id: UUID, item_id: UUID, data: InventoryItemUpdate) -> InventoryItem:
    item = await get_item(restaurant_id, item_id)
    changes = data.model_dump(exclude_unset=True)
    if changes.get("sku") and changes["sku"] != item.sku:
        if await InventoryItem.filter(restaurant_id=restaurant_id, sku=changes["sku"]).exists():
            raise DuplicateResource("SKU already exists")

    item.update_from_dict(changes)
    await item.save()
    return item


async def delete_item(restaurant_id: UUID, item_id: UUID) -> None:
    item = await get_item(restaurant_id, item_id)
    item.is_active = False
    await item.save(update_fields=["is_active", "updated_at"])
    log.info(f"Inventory item {item.name} deactivated")


async def list_movements(
    restaurant_id: UUID,
    item_id: Optional[UUID] = None,
    movement_type: Optional[MovementType] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> List[InventoryMovement]:
    query = InventoryMovement.filter(restaurant_id=restaurant_id)
    if item_id:
        query = query.filter(item_id=item_id)
    if movement_type:
        query = query.filter(type=movement_type)
    if start_date:
        query = query.filter(created_at__gte=start_date)
    if end_date:
        query = query.filter(created_at__lte=end_date)
    return await query.order_by("-created_at").limit(MOVEMENT_LIST_LIMIT)


async def record_movement(restaurant_id: UUID, data: MovementCreate, user_id: str, notifier) -> InventoryMovement:
    """
    Manual stock adjustment. IN and RETURN add stock, OUT and LOSS remove it
    and may not take the item below zero.
    """
    quantity = to_quantity(data.quantity)
    async with in_transaction() as conn:
        item = await get_item(restaurant_id, data.item_id, conn, lock=True)
        current = to_quantity(item.current_stock)

        if data.type in OUTBOUND_MOVEMENTS:
            if current < quantity:
                raise InsufficientStock(f"Insufficient stock. Available: {current} {item.unit}")
            item.current_stock = current - quantity
        elif data.type in INBOUND_MOVEMENTS:
            item.current_stock = current + quantity
        # TRANSFER rows only document a move; stock changes go through transfer_stock

        unit_cost = data.unit_cost if data.unit_cost is not None else item.unit_cost
        if data.unit_cost is not None:
            item.unit_cost = data.unit_cost
        await item.save(using_db=conn)

        movement = await InventoryMovement.create(
            restaurant_id=restaurant_id,
            item=item,
            type=data.type,
            quantity=quantity,
            applied_quantity=quantity if data.type != MovementType.TRANSFER else ZERO,
            unit_cost=unit_cost,
            total_cost=to_money((unit_cost or ZERO) * quantity),
            reference=data.reference,
            notes=data.notes,
            created_by=user_id,
            using_db=conn,
        )

    log.info(f"{data.type.value} movement of {quantity} {item.unit} on {item.name}; stock now {item.current_stock}")
    if item.is_low:
        await notifier.emit(restaurant_id, events.INVENTORY_LOW_STOCK, low_stock_payload(item))
    return movement


async def transfer_stock(
    restaurant_id: UUID, data: TransferRequest, user_id: str
) -> Tuple[InventoryItem, InventoryItem, InventoryMovement]:
    """
    Moves stock between locations in one transaction. The destination item is
    matched by name and created when the location does not stock it yet.
    """
    if data.from_location == data.to_location:
        raise AppError("Source and destination locations must differ", status_code=400)

    quantity = to_quantity(data.quantity)
    async with in_transaction() as conn:
        source = await InventoryItem.filter(
            id=data.item_id, restaurant_id=restaurant_id, location=data.from_location
        ).select_for_update().using_db(conn).first()
        if not source:
            raise NotFound(f"Inventory item not found at location: {data.from_location}")

        available = to_quantity(source.current_stock)
        if available < quantity:
            raise InsufficientStock(f"Insufficient stock at {data.from_location}. Available: {available} {source.unit}")

        target = await InventoryItem.filter(
            restaurant_id=restaurant_id, name=source.name, location=data.to_location, is_active=True
        ).select_for_update().using_db(conn).first()

        source.current_stock = available - quantity
        await source.save(update_fields=["current_stock", "updated_at"], using_db=conn)

        if target is None:
            sku = f"{source.sku}-{data.to_location.lower()}" if source.sku else None
            if sku and await InventoryItem.filter(restaurant_id=restaurant_id, sku=sku).using_db(conn).exists():
                raise DuplicateResource(f"SKU {sku} already exists for another item")
            target = await InventoryItem.create(
                restaurant_id=restaurant_id,
                name=source.name,
                sku=sku,
                unit=source.unit,
                current_stock=quantity,
                min_stock=source.min_stock,
                max_stock=source.max_stock,
                unit_cost=source.unit_cost,
                supplier=source.supplier,
                category=source.category,
                location=data.to_location,
                using_db=conn,
            )
        else:
            target.current_stock = to_quantity(target.current_stock) + quantity
            await target.save(update_fields=["current_stock", "updated_at"], using_db=conn)

        movement = await InventoryMovement.create(
            restaurant_id=restaurant_id,
            item=source,
            type=MovementType.TRANSFER,
            quantity=quantity,
            applied_quantity=quantity,
            unit_cost=source.unit_cost,
            total_cost=movement_cost(source.unit_cost, quantity),
            reference=f"TRANSFER:{data.from_location}->{data.to_location}",
            notes=data.notes or f"Transfer from {data.from_location} to {data.to_location}",
            created_by=user_id,
            using_db=conn,
        )

    log.info(f"Transferred {quantity} {source.unit} of {source.name} from {data.from_location} to {data.to_location}")
    return source, target, movement


async def low_stock_alerts(restaurant_id: UUID) -> LowStockAlertsResponse:
    items = await list_items(restaurant_id, low_stock=True)
    alerts = [
        LowStockAlert(
            id=item.id,
            name=item.name,
            sku=item.sku,
            unit=item.unit,
            current_stock=item.current_stock,
            min_stock=item.min_stock,
            location=item.location,
            deficit=to_quantity(item.min_stock - item.current_stock),
        )
        for item in items
    ]
    return LowStockAlertsResponse(count=len(alerts), items=alerts)


async def stock_valuation(
    restaurant_id: UUID, category: Optional[str] = None, location: Optional[str] = None
) -> StockValuationResponse:
    items = await list_items(restaurant_id, category=category, location=location)

    lines = []
    for item in items:
        unit_cost = item.unit_cost or ZERO
        lines.append(
            ValuationLine(
                id=item.id,
                name=item.name,
                sku=item.sku,
                unit=item.unit,
                current_stock=item.current_stock,
                unit_cost=unit_cost,
                total_value=to_money(item.current_stock * unit_cost),
                location=item.location,
                category=item.category,
            )
        )

    return StockValuationResponse(
        total_value=to_money(sum((line.total_value for line in lines), ZERO)),
        total_items=to_quantity(sum((line.current_stock for line in lines), Decimal("0"))),
        item_count=len(lines),
        items=lines,
    )
